"""Conversion between SQLite rows and domain records."""

import sqlite3
from datetime import date, datetime
from enum import StrEnum
from typing import TypeVar

from nutrition_store.adapters.sqlite_store import SqliteStore
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

Row = dict[str, object]
E = TypeVar("E", bound=StrEnum)


def insert_row(store: SqliteStore, table: str, row: Row) -> int:
    """Insert a row and return its id; a ``None`` id lets SQLite assign one."""
    columns = ", ".join(row)
    placeholders = ", ".join("?" for _ in row)
    cursor = store.execute(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
        tuple(row.values()),
    )
    return int(cursor.lastrowid)


def update_row(store: SqliteStore, table: str, row_id: int, values: Row) -> bool:
    """Update columns of one row by id; return whether it existed."""
    assignments = ", ".join(f"{column} = ?" for column in values)
    cursor = store.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        (*values.values(), row_id),
    )
    return cursor.rowcount > 0


def profile_row(profile: Profile) -> Row:
    return {
        "id": profile.id,
        "name": profile.name,
        "age": profile.age,
        "gender": Gender(profile.gender).value,
        "height_cm": float(profile.height_cm),
        "weight_kg": float(profile.weight_kg),
        "activity_level": ActivityLevel(profile.activity_level).value,
        "created_at": _format_datetime(profile.created_at),
        "updated_at": _format_datetime(profile.updated_at),
    }


def food_entry_row(entry: FoodEntry) -> Row:
    return {
        "id": entry.id,
        "name": entry.name,
        "calories": float(entry.calories),
        "protein_g": float(entry.protein_g),
        "carbs_g": float(entry.carbs_g),
        "fat_g": float(entry.fat_g),
        "meal_type": MealType(entry.meal_type).value,
        "date": entry.date.isoformat(),
        "quantity": entry.quantity,
        "unit": entry.unit,
        "notes": entry.notes,
        "created_at": _format_datetime(entry.created_at),
        "updated_at": _format_datetime(entry.updated_at),
    }


def health_goal_row(goal: HealthGoal) -> Row:
    return {
        "id": goal.id,
        "target_calories": float(goal.target_calories),
        "target_protein_g": float(goal.target_protein_g),
        "target_carbs_g": float(goal.target_carbs_g),
        "target_fat_g": float(goal.target_fat_g),
        "goal_type": GoalType(goal.goal_type).value if goal.goal_type else None,
        "notes": goal.notes,
        "created_at": _format_datetime(goal.created_at),
        "updated_at": _format_datetime(goal.updated_at),
        "is_active": 1 if goal.is_active else 0,
    }


def food_template_row(template: FoodTemplate) -> Row:
    return {
        "id": template.id,
        "name": template.name,
        "brand": template.brand,
        "calories": float(template.calories),
        "protein_g": float(template.protein_g),
        "carbs_g": float(template.carbs_g),
        "fat_g": float(template.fat_g),
        "category": template.category,
        "serving_size": template.serving_size,
        "serving_unit": template.serving_unit,
        "barcode": template.barcode,
        "frequency": int(template.frequency),
        "last_used": _format_datetime(template.last_used),
    }


def parse_profile(row: sqlite3.Row) -> Profile:
    return Profile(
        id=int(row["id"]),
        name=str(row["name"]),
        age=int(row["age"]),
        gender=_parse_enum("gender", Gender, row["gender"]),
        height_cm=float(row["height_cm"]),
        weight_kg=float(row["weight_kg"]),
        activity_level=_parse_enum(
            "activity_level", ActivityLevel, row["activity_level"]
        ),
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def parse_food_entry(row: sqlite3.Row) -> FoodEntry:
    return FoodEntry(
        id=int(row["id"]),
        name=str(row["name"]),
        calories=float(row["calories"]),
        protein_g=float(row["protein_g"]),
        carbs_g=float(row["carbs_g"]),
        fat_g=float(row["fat_g"]),
        meal_type=_parse_enum("meal_type", MealType, row["meal_type"]),
        date=parse_date(row["date"]),
        quantity=_optional_float(row["quantity"]),
        unit=row["unit"],
        notes=row["notes"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def parse_health_goal(row: sqlite3.Row) -> HealthGoal:
    goal_type_raw = row["goal_type"]
    return HealthGoal(
        id=int(row["id"]),
        target_calories=float(row["target_calories"]),
        target_protein_g=float(row["target_protein_g"]),
        target_carbs_g=float(row["target_carbs_g"]),
        target_fat_g=float(row["target_fat_g"]),
        goal_type=_parse_enum("goal_type", GoalType, goal_type_raw)
        if goal_type_raw
        else None,
        notes=row["notes"],
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
        is_active=bool(row["is_active"]),
    )


def parse_food_template(row: sqlite3.Row) -> FoodTemplate:
    return FoodTemplate(
        id=int(row["id"]),
        name=str(row["name"]),
        brand=row["brand"],
        calories=float(row["calories"]),
        protein_g=float(row["protein_g"]),
        carbs_g=float(row["carbs_g"]),
        fat_g=float(row["fat_g"]),
        category=row["category"],
        serving_size=_optional_float(row["serving_size"]),
        serving_unit=row["serving_unit"],
        barcode=row["barcode"],
        frequency=int(row["frequency"] or 0),
        last_used=parse_datetime(row["last_used"]),
    )


def parse_date(raw: object) -> date:
    # Older rows may carry a full timestamp; only the calendar day matters.
    return date.fromisoformat(str(raw)[:10])


def parse_datetime(raw: object) -> datetime | None:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return None


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _optional_float(raw: object) -> float | None:
    return float(raw) if raw is not None else None


def _parse_enum(field: str, enum_type: type[E], raw: object) -> E:
    try:
        return enum_type(raw)
    except ValueError as exc:
        raise InvalidRecordError(field, f"unknown value {raw!r}") from exc
