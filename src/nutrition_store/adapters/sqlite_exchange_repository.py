"""SQLite bulk access for export and import."""

import sqlite3
from collections.abc import Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from nutrition_store.adapters.sqlite_rows import (
    food_entry_row,
    food_template_row,
    health_goal_row,
    insert_row,
    parse_food_entry,
    parse_food_template,
    parse_health_goal,
    parse_profile,
    profile_row,
)
from nutrition_store.adapters.sqlite_schema import (
    ALL_TABLES,
    FOOD_ENTRIES_TABLE,
    FOOD_TEMPLATES_TABLE,
    HEALTH_GOALS_TABLE,
    PROFILE_TABLE,
)
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.models import FoodEntry, FoodTemplate, HealthGoal, Profile
from nutrition_store.services.exchange import ExchangeRepository


@dataclass
class SqliteExchangeRepository(ExchangeRepository):
    """Reads and rewrites the authoritative tables in bulk."""

    store: SqliteStore

    def transaction(self) -> AbstractContextManager[object]:
        return self.store.transaction()

    def schema_version(self) -> int:
        return self.store.user_version()

    def list_profiles(self) -> list[Profile]:
        return [parse_profile(row) for row in self._rows(PROFILE_TABLE)]

    def list_food_entries(self) -> list[FoodEntry]:
        return [parse_food_entry(row) for row in self._rows(FOOD_ENTRIES_TABLE)]

    def list_health_goals(self) -> list[HealthGoal]:
        return [parse_health_goal(row) for row in self._rows(HEALTH_GOALS_TABLE)]

    def list_food_templates(self) -> list[FoodTemplate]:
        return [parse_food_template(row) for row in self._rows(FOOD_TEMPLATES_TABLE)]

    def replace_all(
        self,
        profiles: Sequence[Profile],
        food_entries: Sequence[FoodEntry],
        health_goals: Sequence[HealthGoal],
        food_templates: Sequence[FoodTemplate],
    ) -> None:
        """Rewrite every table, keeping the ids the records carry."""
        now = datetime.now(tz=UTC)
        with self.store.transaction() as conn:
            for table in ALL_TABLES:
                conn.execute(f"DELETE FROM {table}")
            conn.execute("DELETE FROM sqlite_sequence")
            for profile in profiles:
                insert_row(self.store, PROFILE_TABLE, profile_row(profile))
            for entry in food_entries:
                insert_row(self.store, FOOD_ENTRIES_TABLE, food_entry_row(entry))
            for goal in health_goals:
                insert_row(
                    self.store,
                    HEALTH_GOALS_TABLE,
                    health_goal_row(
                        replace(goal, is_active=True, created_at=goal.created_at or now)
                    ),
                )
            for template in food_templates:
                insert_row(self.store, FOOD_TEMPLATES_TABLE, food_template_row(template))

    def _rows(self, table: str) -> list[sqlite3.Row]:
        return self.store.fetch_all(f"SELECT * FROM {table} ORDER BY id")
