"""Food logging service."""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol

from nutrition_store.domain.errors import InvalidRecordError
from nutrition_store.domain.models import FoodEntry, MealType
from nutrition_store.services.aggregation import AggregationEngine
from nutrition_store.services.templates import FoodTemplateService
from nutrition_store.services.validation import validate_food_entry


class FoodEntryRepository(Protocol):
    """Persistence interface for food entries."""

    def transaction(self) -> AbstractContextManager[object]:
        """Return a context manager that makes a block atomic."""

    def insert_entry(self, entry: FoodEntry, now: datetime) -> int:
        """Insert an entry and return its id."""

    def update_entry(self, entry: FoodEntry, now: datetime) -> bool:
        """Overwrite an entry by id; return whether it existed."""

    def delete_entry(self, entry_id: int) -> bool:
        """Delete an entry by id; return whether it existed."""

    def get_entry(self, entry_id: int) -> FoodEntry | None:
        """Return an entry by id."""

    def list_by_date(self, day: date) -> list[FoodEntry]:
        """Return the entries logged on a date."""

    def list_by_range(self, start: date, end: date) -> list[FoodEntry]:
        """Return entries within an inclusive date range."""

    def list_by_meal_type(self, day: date, meal_type: MealType) -> list[FoodEntry]:
        """Return a date's entries for one meal, ordered by name."""

    def list_all(self) -> list[FoodEntry]:
        """Return every entry."""


@dataclass
class FoodLogService:
    """Writes food entries and keeps the per-day cache coherent.

    Every mutation and the recomputation of the dates it touches run in one
    transaction.
    """

    repository: FoodEntryRepository
    aggregation: AggregationEngine
    templates: FoodTemplateService
    validate: bool = True

    def insert_food_entry(self, entry: FoodEntry, remember: bool = False) -> int:
        """Log an entry; ``remember`` also saves it as a food template."""
        self._check(entry)
        with self.repository.transaction():
            entry_id = self.repository.insert_entry(entry, now=datetime.now(tz=UTC))
            self.aggregation.recompute_day(entry.date)
            if remember:
                self.templates.remember_food_entry(entry)
        return entry_id

    def update_food_entry(self, entry: FoodEntry) -> bool:
        """Overwrite an entry; moving it to another date refreshes both days."""
        if entry.id is None:
            raise InvalidRecordError("id", "required to update a food entry")
        self._check(entry)
        with self.repository.transaction():
            existing = self.repository.get_entry(entry.id)
            if existing is None:
                return False
            self.repository.update_entry(entry, now=datetime.now(tz=UTC))
            self.aggregation.recompute_day(entry.date)
            if existing.date != entry.date:
                self.aggregation.recompute_day(existing.date)
        return True

    def delete_food_entry(self, entry_id: int) -> bool:
        with self.repository.transaction():
            existing = self.repository.get_entry(entry_id)
            if existing is None:
                return False
            self.repository.delete_entry(entry_id)
            self.aggregation.recompute_day(existing.date)
        return True

    def get_food_entry(self, entry_id: int) -> FoodEntry | None:
        return self.repository.get_entry(entry_id)

    def food_entries_by_date(self, day: date) -> list[FoodEntry]:
        return self.repository.list_by_date(day)

    def food_entries_by_range(self, start: date, end: date) -> list[FoodEntry]:
        if start > end:
            raise ValueError(f"Range start {start} is after end {end}")
        return self.repository.list_by_range(start, end)

    def food_entries_by_meal_type(
        self, day: date, meal_type: MealType
    ) -> list[FoodEntry]:
        return self.repository.list_by_meal_type(day, MealType(meal_type))

    def all_food_entries(self) -> list[FoodEntry]:
        return self.repository.list_all()

    def _check(self, entry: FoodEntry) -> None:
        if self.validate:
            validate_food_entry(entry)
