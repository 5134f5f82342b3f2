"""Field checks applied before records are written."""

import math
from datetime import date
from enum import StrEnum

from nutrition_store.domain.errors import InvalidRecordError
from nutrition_store.domain.models import (
    ActivityLevel,
    FoodEntry,
    FoodTemplate,
    Gender,
    GoalType,
    HealthGoal,
    MealType,
    Profile,
)

_MACRO_FIELDS = ("calories", "protein_g", "carbs_g", "fat_g")
_TARGET_MACRO_FIELDS = ("target_protein_g", "target_carbs_g", "target_fat_g")


def validate_profile(profile: Profile) -> None:
    """Check types only; range rules such as plausible ages belong to callers."""
    _require_name("name", profile.name)
    if not isinstance(profile.age, int) or isinstance(profile.age, bool):
        raise InvalidRecordError("age", "must be an integer")
    _require_number("height_cm", profile.height_cm)
    _require_number("weight_kg", profile.weight_kg)
    _require_member("gender", profile.gender, Gender)
    _require_member("activity_level", profile.activity_level, ActivityLevel)


def validate_food_entry(entry: FoodEntry) -> None:
    _require_name("name", entry.name)
    for field in _MACRO_FIELDS:
        _require_non_negative(field, getattr(entry, field))
    _require_member("meal_type", entry.meal_type, MealType)
    if not isinstance(entry.date, date):
        raise InvalidRecordError("date", "must be a date")
    if entry.quantity is not None:
        _require_non_negative("quantity", entry.quantity)


def validate_health_goal(goal: HealthGoal) -> None:
    _require_number("target_calories", goal.target_calories)
    if goal.target_calories <= 0:
        raise InvalidRecordError("target_calories", "must be greater than zero")
    for field in _TARGET_MACRO_FIELDS:
        _require_non_negative(field, getattr(goal, field))
    if goal.goal_type is not None:
        _require_member("goal_type", goal.goal_type, GoalType)


def validate_food_template(template: FoodTemplate) -> None:
    _require_name("name", template.name)
    for field in _MACRO_FIELDS:
        _require_non_negative(field, getattr(template, field))
    if template.serving_size is not None:
        _require_non_negative("serving_size", template.serving_size)
    if not isinstance(template.frequency, int) or template.frequency < 0:
        raise InvalidRecordError("frequency", "must be a non-negative integer")


def _require_name(field: str, value: object) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidRecordError(field, "must be a non-empty string")


def _require_number(field: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidRecordError(field, "must be a number")
    if not math.isfinite(value):
        raise InvalidRecordError(field, "must be finite")


def _require_non_negative(field: str, value: object) -> None:
    _require_number(field, value)
    if value < 0:  # type: ignore[operator]
        raise InvalidRecordError(field, f"must not be negative (got {value})")


def _require_member(field: str, value: object, enum_type: type[StrEnum]) -> None:
    try:
        enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise InvalidRecordError(field, f"must be one of {allowed}") from exc
