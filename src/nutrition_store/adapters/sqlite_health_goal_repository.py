"""SQLite repository for health goals."""

from dataclasses import dataclass, replace
from datetime import datetime

from nutrition_store.adapters.sqlite_rows import (
    health_goal_row,
    insert_row,
    parse_health_goal,
)
from nutrition_store.adapters.sqlite_schema import HEALTH_GOALS_TABLE
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.models import HealthGoal
from nutrition_store.services.goals import HealthGoalRepository


@dataclass
class SqliteHealthGoalRepository(HealthGoalRepository):
    """SQLite-backed repository for the current health goal."""

    store: SqliteStore

    def replace_current_goal(self, goal: HealthGoal, now: datetime) -> int:
        """Delete every goal and insert ``goal`` in one transaction."""
        with self.store.transaction():
            self.store.execute(f"DELETE FROM {HEALTH_GOALS_TABLE}")
            return insert_row(
                self.store,
                HEALTH_GOALS_TABLE,
                health_goal_row(
                    replace(
                        goal,
                        id=None,
                        is_active=True,
                        created_at=goal.created_at or now,
                        updated_at=now,
                    )
                ),
            )

    def get_current_goal(self) -> HealthGoal | None:
        """Return the most recently created active goal."""
        row = self.store.fetch_one(
            f"""
            SELECT * FROM {HEALTH_GOALS_TABLE}
            WHERE is_active = 1
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """
        )
        if row is None:
            return None
        return parse_health_goal(row)

    def count_goals(self) -> int:
        row = self.store.fetch_one(f"SELECT COUNT(*) FROM {HEALTH_GOALS_TABLE}")
        return int(row[0]) if row else 0
