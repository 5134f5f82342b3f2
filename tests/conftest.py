"""Shared test fixtures."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import pytest

from nutrition_store.adapters.sqlite_cache_repository import SqliteCacheRepository
from nutrition_store.adapters.sqlite_schema import open_store
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.config import Settings
from nutrition_store.containers import AppContainer, build_container
from nutrition_store.domain.errors import CacheWriteError
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
from nutrition_store.domain.stats import DailySummary

DAY = date(2024, 3, 14)


def make_entry(**overrides: object) -> FoodEntry:
    values: dict[str, object] = {
        "name": "Chicken salad",
        "calories": 300.0,
        "protein_g": 30.0,
        "carbs_g": 10.0,
        "fat_g": 12.0,
        "meal_type": MealType.LUNCH,
        "date": DAY,
    }
    values.update(overrides)
    return FoodEntry(**values)  # type: ignore[arg-type]


def make_profile(**overrides: object) -> Profile:
    values: dict[str, object] = {
        "name": "Alex",
        "age": 34,
        "gender": Gender.FEMALE,
        "height_cm": 168.0,
        "weight_kg": 61.5,
        "activity_level": ActivityLevel.MODERATE,
    }
    values.update(overrides)
    return Profile(**values)  # type: ignore[arg-type]


def make_goal(**overrides: object) -> HealthGoal:
    values: dict[str, object] = {
        "target_calories": 2000.0,
        "target_protein_g": 120.0,
        "target_carbs_g": 220.0,
        "target_fat_g": 70.0,
        "goal_type": GoalType.MAINTAIN,
    }
    values.update(overrides)
    return HealthGoal(**values)  # type: ignore[arg-type]


def make_template(**overrides: object) -> FoodTemplate:
    values: dict[str, object] = {
        "name": "Greek yogurt",
        "brand": "Fage",
        "calories": 97.0,
        "protein_g": 9.0,
        "carbs_g": 3.9,
        "fat_g": 5.0,
        "serving_size": 100.0,
        "serving_unit": "g",
    }
    values.update(overrides)
    return FoodTemplate(**values)  # type: ignore[arg-type]


@dataclass
class FailingCacheRepository(SqliteCacheRepository):
    """Cache repository whose writes always fail."""

    attempts: list[date] = field(default_factory=list)

    def save_cached_day(self, summary: DailySummary) -> None:
        self.attempts.append(summary.day)
        raise CacheWriteError("disk full")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=tmp_path / "nutrition.db",
        backup_dir=tmp_path / "backups",
        cache_retention_days=30,
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    opened = open_store(tmp_path / "store.db")
    yield opened
    opened.close()


@pytest.fixture
def container(settings: Settings) -> Iterator[AppContainer]:
    built = build_container(settings)
    yield built
    built.close_resources()
