"""Daily and date-range nutrition aggregation over the derived cache."""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from nutrition_store.domain.errors import CacheWriteError
from nutrition_store.domain.models import MealType
from nutrition_store.domain.stats import (
    ZERO_TOTALS,
    DailySummary,
    MacroTotals,
    RangeSummary,
)

_logger = logging.getLogger(__name__)


class NutritionCacheRepository(Protocol):
    """Persistence interface for food-entry sums and the per-day cache."""

    def transaction(self) -> AbstractContextManager[object]:
        """Return a context manager that makes a block atomic."""

    def day_meal_totals(self, day: date) -> tuple[dict[MealType, MacroTotals], int]:
        """Return per-meal sums of the day's entries and the entry count."""

    def entry_days(
        self, start: date | None = None, end: date | None = None
    ) -> list[date]:
        """Return the distinct dates that have entries, ascending."""

    def get_cached_day(self, day: date) -> DailySummary | None:
        """Return the cached summary for a date, if present."""

    def list_cached_days(self, start: date, end: date) -> list[DailySummary]:
        """Return cached summaries within an inclusive range."""

    def save_cached_day(self, summary: DailySummary) -> None:
        """Insert or replace the cache row for ``summary.day``."""

    def delete_cached_day(self, day: date) -> None:
        """Delete the cache row for a date, if present."""

    def clear_cache(self) -> int:
        """Delete every cache row and return how many were removed."""


@dataclass
class AggregationEngine:
    """Keeps the per-day cache in step with food entries and reads from it.

    The cache is an optimisation only: every value it returns can be
    recomputed from food entries, and a failed cache write never changes the
    totals a caller sees.
    """

    repository: NutritionCacheRepository

    def recompute_day(self, day: date) -> DailySummary:
        """Recompute a day's totals and refresh (or drop) its cache row.

        The read and the cache write share one transaction so a concurrent
        entry write cannot land between them.
        """
        with self.repository.transaction():
            return self._recompute_locked(day)

    def _recompute_locked(self, day: date) -> DailySummary:
        by_meal, entry_count = self.repository.day_meal_totals(day)
        if entry_count == 0:
            self._discard(day)
            return DailySummary(day=day, totals=ZERO_TOTALS)

        totals = ZERO_TOTALS
        for meal in MealType:
            if meal in by_meal:
                totals = totals.plus(by_meal[meal])
        summary = DailySummary(
            day=day,
            totals=totals,
            by_meal=by_meal,
            entry_count=entry_count,
            last_updated=datetime.now(tz=UTC),
        )
        try:
            self.repository.save_cached_day(summary)
        except CacheWriteError as exc:
            _logger.warning("Nutrition cache write failed for %s: %s", day, exc)
            self._discard(day)
        return summary

    def summary_for_date(self, day: date) -> DailySummary:
        """Return a day's totals, from the cache when it holds the date."""
        with self.repository.transaction():
            cached = self.repository.get_cached_day(day)
            if cached is not None:
                return cached
            return self._recompute_locked(day)

    def summary_for_range(self, start: date, end: date) -> RangeSummary:
        """Return sums and per-day averages over days with entries."""
        _check_range(start, end)
        total = ZERO_TOTALS
        day_count = 0
        for summary in self._summaries_with_entries(start, end):
            total = total.plus(summary.totals)
            day_count += 1
        if day_count == 0:
            return RangeSummary(
                start=start, end=end, total=ZERO_TOTALS, average=ZERO_TOTALS, day_count=0
            )
        return RangeSummary(
            start=start,
            end=end,
            total=total,
            average=MacroTotals(
                calories=total.calories / day_count,
                protein_g=total.protein_g / day_count,
                carbs_g=total.carbs_g / day_count,
                fat_g=total.fat_g / day_count,
            ),
            day_count=day_count,
        )

    def daily_totals(self, start: date, end: date) -> list[DailySummary]:
        """Return one summary per calendar day in range, empty days included."""
        _check_range(start, end)
        known = {summary.day: summary for summary in self._summaries_with_entries(start, end)}
        daily = []
        for offset in range((end - start).days + 1):
            day = start + timedelta(days=offset)
            daily.append(known.get(day) or DailySummary(day=day, totals=ZERO_TOTALS))
        return daily

    def rebuild_cache(self) -> int:
        """Drop the whole cache and recompute every date that has entries."""
        with self.repository.transaction():
            self.repository.clear_cache()
            days = self.repository.entry_days()
            for day in days:
                self._recompute_locked(day)
        _logger.info("Rebuilt nutrition cache for %s days", len(days))
        return len(days)

    def _summaries_with_entries(self, start: date, end: date) -> list[DailySummary]:
        with self.repository.transaction():
            cached = {
                summary.day: summary
                for summary in self.repository.list_cached_days(start, end)
            }
            return [
                cached.get(day) or self._recompute_locked(day)
                for day in self.repository.entry_days(start, end)
            ]

    def _discard(self, day: date) -> None:
        try:
            self.repository.delete_cached_day(day)
        except CacheWriteError as exc:
            _logger.warning("Nutrition cache delete failed for %s: %s", day, exc)


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise ValueError(f"Range start {start} is after end {end}")
