"""Domain models for nutrition statistics."""

from dataclasses import dataclass, field
from datetime import date, datetime

from nutrition_store.domain.models import MealType


@dataclass(frozen=True)
class MacroTotals:
    """Calories and macronutrients summed over some set of entries."""

    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0

    def plus(self, other: "MacroTotals") -> "MacroTotals":
        """Return the element-wise sum with another total."""
        return MacroTotals(
            calories=self.calories + other.calories,
            protein_g=self.protein_g + other.protein_g,
            carbs_g=self.carbs_g + other.carbs_g,
            fat_g=self.fat_g + other.fat_g,
        )


ZERO_TOTALS = MacroTotals()


@dataclass(frozen=True)
class DailySummary:
    """Totals for one calendar day, with a per-meal breakdown."""

    day: date
    totals: MacroTotals
    by_meal: dict[MealType, MacroTotals] = field(default_factory=dict)
    entry_count: int = 0
    last_updated: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0


@dataclass(frozen=True)
class RangeSummary:
    """Sum and per-day average over the days of a range that have entries."""

    start: date
    end: date
    total: MacroTotals
    average: MacroTotals
    day_count: int
