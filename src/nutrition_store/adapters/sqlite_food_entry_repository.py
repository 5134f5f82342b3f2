"""SQLite repository for food entries."""

from contextlib import AbstractContextManager
from dataclasses import dataclass, replace
from datetime import date, datetime

from nutrition_store.adapters.sqlite_rows import (
    food_entry_row,
    insert_row,
    parse_food_entry,
    update_row,
)
from nutrition_store.adapters.sqlite_schema import FOOD_ENTRIES_TABLE
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.models import FoodEntry, MealType
from nutrition_store.services.food_log import FoodEntryRepository

_DEFAULT_ORDER = "date DESC, meal_type ASC, name ASC, id ASC"


@dataclass
class SqliteFoodEntryRepository(FoodEntryRepository):
    """SQLite implementation for food entries."""

    store: SqliteStore

    def transaction(self) -> AbstractContextManager[object]:
        return self.store.transaction()

    def insert_entry(self, entry: FoodEntry, now: datetime) -> int:
        """Insert an entry row and return its id."""
        return insert_row(
            self.store,
            FOOD_ENTRIES_TABLE,
            food_entry_row(
                replace(entry, id=None, created_at=entry.created_at or now, updated_at=now)
            ),
        )

    def update_entry(self, entry: FoodEntry, now: datetime) -> bool:
        """Overwrite every field except id and creation time."""
        if entry.id is None:
            return False
        values = food_entry_row(replace(entry, updated_at=now))
        for column in ("id", "created_at"):
            values.pop(column)
        return update_row(self.store, FOOD_ENTRIES_TABLE, entry.id, values)

    def delete_entry(self, entry_id: int) -> bool:
        cursor = self.store.execute(
            f"DELETE FROM {FOOD_ENTRIES_TABLE} WHERE id = ?", (entry_id,)
        )
        return cursor.rowcount > 0

    def get_entry(self, entry_id: int) -> FoodEntry | None:
        row = self.store.fetch_one(
            f"SELECT * FROM {FOOD_ENTRIES_TABLE} WHERE id = ?", (entry_id,)
        )
        if row is None:
            return None
        return parse_food_entry(row)

    def list_by_date(self, day: date) -> list[FoodEntry]:
        return self._select("WHERE date = ?", (day.isoformat(),))

    def list_by_range(self, start: date, end: date) -> list[FoodEntry]:
        return self._select(
            "WHERE date >= ? AND date <= ?", (start.isoformat(), end.isoformat())
        )

    def list_by_meal_type(self, day: date, meal_type: MealType) -> list[FoodEntry]:
        return self._select(
            "WHERE date = ? AND meal_type = ?",
            (day.isoformat(), meal_type.value),
            order="name ASC, id ASC",
        )

    def list_all(self) -> list[FoodEntry]:
        return self._select()

    def _select(
        self,
        where: str = "",
        params: tuple[object, ...] = (),
        order: str = _DEFAULT_ORDER,
    ) -> list[FoodEntry]:
        rows = self.store.fetch_all(
            f"SELECT * FROM {FOOD_ENTRIES_TABLE} {where} ORDER BY {order}", params
        )
        return [parse_food_entry(row) for row in rows]
