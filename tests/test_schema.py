"""Tests for schema creation and migrations."""

import sqlite3
from pathlib import Path

import pytest

from nutrition_store.adapters.sqlite_schema import (
    ALL_TABLES,
    MIGRATIONS,
    SCHEMA_VERSION,
    Migration,
    SchemaManager,
    initialize_store,
    open_store,
)
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.errors import SchemaMigrationError


def _columns(store: SqliteStore, table: str) -> list[str]:
    return [row["name"] for row in store.fetch_all(f"PRAGMA table_info({table})")]


def _tables(store: SqliteStore) -> set[str]:
    rows = store.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row["name"] for row in rows}


def test_open_store_creates_every_table_and_index(tmp_path: Path) -> None:
    store = open_store(tmp_path / "nested" / "dir" / "store.db")

    indexes = {
        row["name"]
        for row in store.fetch_all("SELECT name FROM sqlite_master WHERE type = 'index'")
    }

    assert set(ALL_TABLES) <= _tables(store)
    assert store.user_version() == SCHEMA_VERSION
    assert {
        "idx_food_entries_date",
        "idx_food_entries_meal_type",
        "idx_food_entries_date_meal",
        "idx_food_entries_name",
        "idx_health_goals_active",
        "idx_health_goals_created",
        "idx_food_templates_name",
        "idx_food_templates_frequency",
        "idx_food_templates_last_used",
        "idx_nutrition_cache_date",
        "idx_food_templates_identity",
    } <= indexes
    store.close()


def test_migrations_are_idempotent(store: SqliteStore) -> None:
    before = {table: _columns(store, table) for table in ALL_TABLES}
    store.execute("PRAGMA user_version = 0")

    version = SchemaManager().migrate(store)

    assert version == SCHEMA_VERSION
    for table in ALL_TABLES:
        columns = _columns(store, table)
        assert columns == before[table]
        assert len(columns) == len(set(columns))


def test_reopening_a_migrated_store_applies_nothing(tmp_path: Path) -> None:
    path = tmp_path / "store.db"
    open_store(path).close()

    store = open_store(path)

    assert store.user_version() == SCHEMA_VERSION
    store.close()


def test_legacy_store_gains_new_columns_and_merges_templates(tmp_path: Path) -> None:
    path = tmp_path / "legacy.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE profile (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL, age INTEGER NOT NULL, gender TEXT NOT NULL,
            height_cm REAL NOT NULL, weight_kg REAL NOT NULL,
            activity_level TEXT NOT NULL
        );
        CREATE TABLE food_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL, calories REAL NOT NULL, protein_g REAL NOT NULL,
            carbs_g REAL NOT NULL, fat_g REAL NOT NULL,
            meal_type TEXT NOT NULL, date TEXT NOT NULL,
            quantity REAL, unit TEXT
        );
        CREATE TABLE health_goals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            target_calories REAL NOT NULL, target_protein_g REAL NOT NULL,
            target_carbs_g REAL NOT NULL, target_fat_g REAL NOT NULL,
            goal_type TEXT, notes TEXT, created_at TEXT NOT NULL, updated_at TEXT
        );
        CREATE TABLE food_templates (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL, brand TEXT,
            calories REAL NOT NULL, protein_g REAL NOT NULL,
            carbs_g REAL NOT NULL, fat_g REAL NOT NULL,
            category TEXT, serving_size REAL, serving_unit TEXT, barcode TEXT,
            frequency INTEGER NOT NULL DEFAULT 0, last_used TEXT,
            UNIQUE(name, brand)
        );
        INSERT INTO profile (name, age, gender, height_cm, weight_kg, activity_level)
        VALUES ('Sam', 40, 'male', 180, 82, 'light');
        INSERT INTO food_entries (name, calories, protein_g, carbs_g, fat_g, meal_type, date)
        VALUES ('Toast', 120, 4, 20, 2, 'breakfast', '2024-01-02T08:00:00');
        INSERT INTO health_goals (target_calories, target_protein_g, target_carbs_g, target_fat_g, created_at)
        VALUES (1800, 100, 200, 60, '2024-01-01T00:00:00');
        INSERT INTO food_templates (name, brand, calories, protein_g, carbs_g, fat_g, frequency, last_used)
        VALUES ('Oats', NULL, 150, 5, 27, 3, 2, '2024-01-01T00:00:00'),
               ('Oats', NULL, 150, 5, 27, 3, 3, '2024-01-05T00:00:00');
        PRAGMA user_version = 1;
        """
    )
    conn.commit()
    conn.close()

    store = open_store(path)
    templates = store.fetch_all("SELECT * FROM food_templates")
    entry = store.fetch_one("SELECT * FROM food_entries")
    goal = store.fetch_one("SELECT * FROM health_goals")

    assert store.user_version() == SCHEMA_VERSION
    assert {"created_at", "updated_at"} <= set(_columns(store, "profile"))
    assert {"notes", "created_at", "updated_at"} <= set(_columns(store, "food_entries"))
    assert entry["created_at"] is not None
    assert goal["is_active"] == 1
    assert "nutrition_cache" in _tables(store)
    assert len(templates) == 1
    assert templates[0]["frequency"] == 5
    assert templates[0]["last_used"] == "2024-01-05T00:00:00"
    with pytest.raises(sqlite3.IntegrityError):
        store.execute(
            "INSERT INTO food_templates (name, calories, protein_g, carbs_g, fat_g) "
            "VALUES ('Oats', 1, 1, 1, 1)"
        )
    store.close()


def _broken(conn: sqlite3.Connection) -> None:
    conn.execute("CREATE TABLE scratch (id INTEGER PRIMARY KEY)")
    conn.execute("SELECT * FROM table_that_does_not_exist")


def test_failed_migration_rolls_back_and_closes(tmp_path: Path) -> None:
    path = tmp_path / "store.db"
    manager = SchemaManager((*MIGRATIONS, Migration(4, "broken step", _broken)))
    store = SqliteStore(path)

    with pytest.raises(SchemaMigrationError) as excinfo:
        initialize_store(store, manager)

    assert excinfo.value.version == 4
    assert not store.is_open
    reopened = open_store(path)
    assert reopened.user_version() == SCHEMA_VERSION
    assert "scratch" not in _tables(reopened)
    reopened.close()


def test_store_from_newer_build_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "future.db"
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA user_version = 99")
    conn.close()

    with pytest.raises(SchemaMigrationError):
        open_store(path)


def test_schema_manager_rejects_duplicate_versions() -> None:
    with pytest.raises(ValueError):
        SchemaManager((*MIGRATIONS, MIGRATIONS[0]))
