"""Versioned SQLite schema and migrations."""

import logging
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.errors import SchemaMigrationError

PROFILE_TABLE = "profile"
FOOD_ENTRIES_TABLE = "food_entries"
HEALTH_GOALS_TABLE = "health_goals"
FOOD_TEMPLATES_TABLE = "food_templates"
NUTRITION_CACHE_TABLE = "nutrition_cache"

AUTHORITATIVE_TABLES = (
    PROFILE_TABLE,
    FOOD_ENTRIES_TABLE,
    HEALTH_GOALS_TABLE,
    FOOD_TEMPLATES_TABLE,
)
ALL_TABLES = (*AUTHORITATIVE_TABLES, NUTRITION_CACHE_TABLE)

_logger = logging.getLogger(__name__)

_CREATE_TEMPLATES = f"""
    CREATE TABLE IF NOT EXISTS {FOOD_TEMPLATES_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        brand TEXT,
        calories REAL NOT NULL DEFAULT 0,
        protein_g REAL NOT NULL DEFAULT 0,
        carbs_g REAL NOT NULL DEFAULT 0,
        fat_g REAL NOT NULL DEFAULT 0,
        category TEXT,
        serving_size REAL,
        serving_unit TEXT,
        barcode TEXT,
        frequency INTEGER NOT NULL DEFAULT 0,
        last_used TEXT,
        UNIQUE(name, brand)
    );
"""

_CREATE_CACHE = f"""
    CREATE TABLE IF NOT EXISTS {NUTRITION_CACHE_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT NOT NULL UNIQUE,
        total_calories REAL NOT NULL DEFAULT 0,
        total_protein_g REAL NOT NULL DEFAULT 0,
        total_carbs_g REAL NOT NULL DEFAULT 0,
        total_fat_g REAL NOT NULL DEFAULT 0,
        per_meal_breakdown TEXT NOT NULL DEFAULT '{{}}',
        entry_count INTEGER NOT NULL DEFAULT 0,
        last_updated TEXT
    );
"""

_INDEXES = (
    f"CREATE INDEX IF NOT EXISTS idx_food_entries_date ON {FOOD_ENTRIES_TABLE}(date);",
    f"CREATE INDEX IF NOT EXISTS idx_food_entries_meal_type ON {FOOD_ENTRIES_TABLE}(meal_type);",
    f"CREATE INDEX IF NOT EXISTS idx_food_entries_date_meal ON {FOOD_ENTRIES_TABLE}(date, meal_type);",
    f"CREATE INDEX IF NOT EXISTS idx_food_entries_name ON {FOOD_ENTRIES_TABLE}(name);",
    f"CREATE INDEX IF NOT EXISTS idx_health_goals_active ON {HEALTH_GOALS_TABLE}(is_active);",
    f"CREATE INDEX IF NOT EXISTS idx_health_goals_created ON {HEALTH_GOALS_TABLE}(created_at);",
    f"CREATE INDEX IF NOT EXISTS idx_food_templates_name ON {FOOD_TEMPLATES_TABLE}(name);",
    f"CREATE INDEX IF NOT EXISTS idx_food_templates_frequency ON {FOOD_TEMPLATES_TABLE}(frequency DESC);",
    f"CREATE INDEX IF NOT EXISTS idx_food_templates_last_used ON {FOOD_TEMPLATES_TABLE}(last_used DESC);",
    f"CREATE INDEX IF NOT EXISTS idx_nutrition_cache_date ON {NUTRITION_CACHE_TABLE}(date);",
)


def _baseline(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {PROFILE_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            age INTEGER NOT NULL,
            gender TEXT NOT NULL,
            height_cm REAL NOT NULL,
            weight_kg REAL NOT NULL,
            activity_level TEXT NOT NULL,
            created_at TEXT,
            updated_at TEXT
        );
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {FOOD_ENTRIES_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            calories REAL NOT NULL DEFAULT 0,
            protein_g REAL NOT NULL DEFAULT 0,
            carbs_g REAL NOT NULL DEFAULT 0,
            fat_g REAL NOT NULL DEFAULT 0,
            meal_type TEXT NOT NULL,
            date TEXT NOT NULL,
            quantity REAL,
            unit TEXT,
            notes TEXT,
            created_at TEXT,
            updated_at TEXT
        );
        """
    )
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {HEALTH_GOALS_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            target_calories REAL NOT NULL,
            target_protein_g REAL NOT NULL,
            target_carbs_g REAL NOT NULL,
            target_fat_g REAL NOT NULL,
            goal_type TEXT,
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT,
            is_active INTEGER NOT NULL DEFAULT 1
        );
        """
    )
    conn.execute(_CREATE_TEMPLATES)
    conn.execute(_CREATE_CACHE)
    for statement in _INDEXES:
        conn.execute(statement)


def _timestamps_and_goal_activation(conn: sqlite3.Connection) -> None:
    now = datetime.now(tz=UTC).isoformat()
    for table in (PROFILE_TABLE, FOOD_ENTRIES_TABLE):
        _add_column_if_missing(conn, table, "created_at", "TEXT")
        _add_column_if_missing(conn, table, "updated_at", "TEXT")
        conn.execute(
            f"UPDATE {table} SET created_at = ? WHERE created_at IS NULL", (now,)
        )
        conn.execute(
            f"UPDATE {table} SET updated_at = created_at WHERE updated_at IS NULL"
        )
    _add_column_if_missing(conn, FOOD_ENTRIES_TABLE, "notes", "TEXT")
    _add_column_if_missing(
        conn, HEALTH_GOALS_TABLE, "is_active", "INTEGER NOT NULL DEFAULT 1"
    )
    conn.execute(_CREATE_TEMPLATES)
    conn.execute(_CREATE_CACHE)
    for statement in _INDEXES:
        conn.execute(statement)


def _template_identity(conn: sqlite3.Connection) -> None:
    # NULL brands never collide under UNIQUE(name, brand); merge them first.
    conn.execute(
        f"""
        UPDATE {FOOD_TEMPLATES_TABLE}
        SET frequency = (
                SELECT SUM(d.frequency) FROM {FOOD_TEMPLATES_TABLE} AS d
                WHERE d.name = {FOOD_TEMPLATES_TABLE}.name
                  AND IFNULL(d.brand, '') = IFNULL({FOOD_TEMPLATES_TABLE}.brand, '')
            ),
            last_used = (
                SELECT MAX(d.last_used) FROM {FOOD_TEMPLATES_TABLE} AS d
                WHERE d.name = {FOOD_TEMPLATES_TABLE}.name
                  AND IFNULL(d.brand, '') = IFNULL({FOOD_TEMPLATES_TABLE}.brand, '')
            )
        WHERE id IN (
            SELECT MIN(id) FROM {FOOD_TEMPLATES_TABLE}
            GROUP BY name, IFNULL(brand, '')
            HAVING COUNT(*) > 1
        )
        """
    )
    conn.execute(
        f"""
        DELETE FROM {FOOD_TEMPLATES_TABLE}
        WHERE id NOT IN (
            SELECT MIN(id) FROM {FOOD_TEMPLATES_TABLE}
            GROUP BY name, IFNULL(brand, '')
        )
        """
    )
    conn.execute(
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_food_templates_identity "
        f"ON {FOOD_TEMPLATES_TABLE}(name, IFNULL(brand, ''));"
    )


def _add_column_if_missing(
    conn: sqlite3.Connection, table: str, column: str, ddl: str
) -> None:
    existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}
    if column not in existing:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")


@dataclass(frozen=True)
class Migration:
    """One schema step, applied once and recorded in ``user_version``."""

    version: int
    description: str
    apply: Callable[[sqlite3.Connection], None]


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "baseline tables and indexes", _baseline),
    Migration(2, "timestamps and goal activation", _timestamps_and_goal_activation),
    Migration(3, "template identity ignores missing brand", _template_identity),
)

SCHEMA_VERSION = MIGRATIONS[-1].version


@dataclass
class SchemaManager:
    """Brings a store up to the schema version this build supports."""

    migrations: Sequence[Migration] = MIGRATIONS

    def __post_init__(self) -> None:
        self.migrations = tuple(sorted(self.migrations, key=lambda m: m.version))
        versions = [migration.version for migration in self.migrations]
        if len(set(versions)) != len(versions) or any(v < 1 for v in versions):
            raise ValueError(f"Migration versions must be unique and positive: {versions}")

    @property
    def target_version(self) -> int:
        return self.migrations[-1].version if self.migrations else 0

    def migrate(self, store: SqliteStore) -> int:
        """Apply pending migrations in order and return the resulting version."""
        try:
            current = store.user_version()
        except sqlite3.Error as exc:
            raise SchemaMigrationError(self.target_version, str(exc)) from exc
        if current > self.target_version:
            raise SchemaMigrationError(
                current,
                f"store was written by a newer build (supported: {self.target_version})",
            )
        for migration in self.migrations:
            if migration.version <= current:
                continue
            try:
                with store.transaction() as conn:
                    migration.apply(conn)
                    conn.execute(f"PRAGMA user_version = {int(migration.version)}")
            except Exception as exc:
                _logger.error(
                    "Schema migration %s (%s) failed: %s",
                    migration.version,
                    migration.description,
                    exc,
                )
                raise SchemaMigrationError(migration.version, str(exc)) from exc
            _logger.info(
                "Applied schema migration %s: %s",
                migration.version,
                migration.description,
            )
            current = migration.version
        return current


def initialize_store(store: SqliteStore, schema: SchemaManager | None = None) -> None:
    """Connect the store and migrate it, leaving it closed on failure."""
    manager = schema or SchemaManager()
    try:
        store.connect()
        manager.migrate(store)
    except sqlite3.Error as exc:
        store.close()
        raise SchemaMigrationError(manager.target_version, str(exc)) from exc
    except BaseException:
        store.close()
        raise


def open_store(
    path: Path | str,
    busy_timeout_seconds: float = 5.0,
    schema: SchemaManager | None = None,
) -> SqliteStore:
    """Open (creating if needed) and migrate the store at ``path``."""
    store = SqliteStore(path, busy_timeout_seconds=busy_timeout_seconds)
    initialize_store(store, schema)
    return store
