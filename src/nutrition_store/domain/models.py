"""Domain models for the nutrition store."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class Gender(StrEnum):
    """Biological sex used for energy estimates."""

    MALE = "male"
    FEMALE = "female"


class ActivityLevel(StrEnum):
    """Self-reported activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class MealType(StrEnum):
    """Meal a food entry belongs to, in the order meals happen."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class GoalType(StrEnum):
    """Direction of a health goal."""

    MAINTAIN = "maintain"
    LOSE = "lose"
    GAIN = "gain"


@dataclass(frozen=True)
class Profile:
    """The current user's profile (at most one exists)."""

    name: str
    age: int
    gender: Gender
    height_cm: float
    weight_kg: float
    activity_level: ActivityLevel
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class FoodEntry:
    """A logged food with its macros for one meal on one day."""

    name: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    meal_type: MealType
    date: date
    quantity: float | None = None
    unit: str | None = None
    notes: str | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class HealthGoal:
    """Daily calorie and macro targets."""

    target_calories: float
    target_protein_g: float
    target_carbs_g: float
    target_fat_g: float
    goal_type: GoalType | None = None
    notes: str | None = None
    is_active: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class FoodTemplate:
    """Reusable food remembered from earlier logging."""

    name: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    brand: str | None = None
    category: str | None = None
    serving_size: float | None = None
    serving_unit: str | None = None
    barcode: str | None = None
    frequency: int = 0
    last_used: datetime | None = None
    id: int | None = None
