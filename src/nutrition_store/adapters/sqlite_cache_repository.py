"""SQLite repository for the derived per-day nutrition cache."""

import json
import logging
import sqlite3
from contextlib import AbstractContextManager
from dataclasses import asdict, dataclass
from datetime import date

from nutrition_store.adapters.sqlite_rows import parse_date, parse_datetime
from nutrition_store.adapters.sqlite_schema import (
    FOOD_ENTRIES_TABLE,
    NUTRITION_CACHE_TABLE,
)
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.errors import CacheWriteError
from nutrition_store.domain.models import MealType
from nutrition_store.domain.stats import DailySummary, MacroTotals
from nutrition_store.services.aggregation import NutritionCacheRepository

_logger = logging.getLogger(__name__)


@dataclass
class SqliteCacheRepository(NutritionCacheRepository):
    """SQLite implementation of entry sums and cache rows."""

    store: SqliteStore

    def transaction(self) -> AbstractContextManager[object]:
        return self.store.transaction()

    def day_meal_totals(self, day: date) -> tuple[dict[MealType, MacroTotals], int]:
        """Sum the day's entries per meal type."""
        rows = self.store.fetch_all(
            f"""
            SELECT
                meal_type,
                SUM(calories) AS calories,
                SUM(protein_g) AS protein_g,
                SUM(carbs_g) AS carbs_g,
                SUM(fat_g) AS fat_g,
                COUNT(*) AS entry_count
            FROM {FOOD_ENTRIES_TABLE}
            WHERE date = ?
            GROUP BY meal_type
            """,
            (day.isoformat(),),
        )
        by_meal: dict[MealType, MacroTotals] = {}
        entry_count = 0
        for row in rows:
            by_meal[MealType(row["meal_type"])] = MacroTotals(
                calories=float(row["calories"] or 0.0),
                protein_g=float(row["protein_g"] or 0.0),
                carbs_g=float(row["carbs_g"] or 0.0),
                fat_g=float(row["fat_g"] or 0.0),
            )
            entry_count += int(row["entry_count"])
        return by_meal, entry_count

    def entry_days(
        self, start: date | None = None, end: date | None = None
    ) -> list[date]:
        """Return distinct entry dates, optionally within an inclusive range."""
        clauses = []
        params: list[object] = []
        if start is not None:
            clauses.append("date >= ?")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("date <= ?")
            params.append(end.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.store.fetch_all(
            f"SELECT DISTINCT date FROM {FOOD_ENTRIES_TABLE} {where} ORDER BY date ASC",
            params,
        )
        return [parse_date(row["date"]) for row in rows]

    def get_cached_day(self, day: date) -> DailySummary | None:
        row = self.store.fetch_one(
            f"SELECT * FROM {NUTRITION_CACHE_TABLE} WHERE date = ?",
            (day.isoformat(),),
        )
        if row is None:
            return None
        return _parse_summary(row)

    def list_cached_days(self, start: date, end: date) -> list[DailySummary]:
        rows = self.store.fetch_all(
            f"""
            SELECT * FROM {NUTRITION_CACHE_TABLE}
            WHERE date >= ? AND date <= ?
            ORDER BY date ASC
            """,
            (start.isoformat(), end.isoformat()),
        )
        summaries = (_parse_summary(row) for row in rows)
        return [summary for summary in summaries if summary is not None]

    def save_cached_day(self, summary: DailySummary) -> None:
        """Upsert the cache row keyed by date."""
        breakdown = {
            meal.value: asdict(totals) for meal, totals in summary.by_meal.items()
        }
        try:
            self.store.execute(
                f"""
                INSERT INTO {NUTRITION_CACHE_TABLE} (
                    date, total_calories, total_protein_g, total_carbs_g,
                    total_fat_g, per_meal_breakdown, entry_count, last_updated
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    total_calories = excluded.total_calories,
                    total_protein_g = excluded.total_protein_g,
                    total_carbs_g = excluded.total_carbs_g,
                    total_fat_g = excluded.total_fat_g,
                    per_meal_breakdown = excluded.per_meal_breakdown,
                    entry_count = excluded.entry_count,
                    last_updated = excluded.last_updated
                """,
                (
                    summary.day.isoformat(),
                    summary.totals.calories,
                    summary.totals.protein_g,
                    summary.totals.carbs_g,
                    summary.totals.fat_g,
                    json.dumps(breakdown, sort_keys=True),
                    summary.entry_count,
                    summary.last_updated.isoformat() if summary.last_updated else None,
                ),
            )
        except sqlite3.Error as exc:
            raise CacheWriteError(str(exc)) from exc

    def delete_cached_day(self, day: date) -> None:
        try:
            self.store.execute(
                f"DELETE FROM {NUTRITION_CACHE_TABLE} WHERE date = ?",
                (day.isoformat(),),
            )
        except sqlite3.Error as exc:
            raise CacheWriteError(str(exc)) from exc

    def clear_cache(self) -> int:
        cursor = self.store.execute(f"DELETE FROM {NUTRITION_CACHE_TABLE}")
        return cursor.rowcount


def _parse_summary(row: sqlite3.Row) -> DailySummary | None:
    """Parse a cache row; an unreadable row counts as a cache miss."""
    try:
        breakdown = json.loads(row["per_meal_breakdown"] or "{}")
        by_meal = {
            MealType(meal): MacroTotals(**totals) for meal, totals in breakdown.items()
        }
        return DailySummary(
            day=parse_date(row["date"]),
            totals=MacroTotals(
                calories=float(row["total_calories"]),
                protein_g=float(row["total_protein_g"]),
                carbs_g=float(row["total_carbs_g"]),
                fat_g=float(row["total_fat_g"]),
            ),
            by_meal=by_meal,
            entry_count=int(row["entry_count"]),
            last_updated=parse_datetime(row["last_updated"]),
        )
    except (ValueError, TypeError, AttributeError) as exc:
        _logger.warning("Ignoring unreadable nutrition cache row %s: %s", row["date"], exc)
        return None
