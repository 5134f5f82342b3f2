"""SQLite implementation of storage maintenance."""

import logging
import os
import shutil
import sqlite3
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from nutrition_store.adapters.sqlite_rows import parse_date
from nutrition_store.adapters.sqlite_schema import (
    ALL_TABLES,
    FOOD_ENTRIES_TABLE,
    FOOD_TEMPLATES_TABLE,
    HEALTH_GOALS_TABLE,
    NUTRITION_CACHE_TABLE,
    PROFILE_TABLE,
    SchemaManager,
    initialize_store,
)
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.errors import (
    CorruptBackupError,
    MaintenanceError,
    StoreClosedError,
)
from nutrition_store.domain.maintenance import DatabaseStats, IntegrityReport
from nutrition_store.services.maintenance import MaintenanceRepository

_logger = logging.getLogger(__name__)


@dataclass
class SqliteMaintenanceRepository(MaintenanceRepository):
    """File-level operations on the SQLite store."""

    store: SqliteStore
    schema: SchemaManager | None = None

    def database_path(self) -> Path | None:
        return self.store.path

    def copy_database_to(self, target: Path) -> None:
        """Copy through a partial file so a failed copy leaves nothing behind."""
        source = self._require_open_file()
        partial = target.with_name(target.name + ".partial")
        with self.store.exclusive():
            try:
                shutil.copy2(source, partial)
                os.replace(partial, target)
            except OSError as exc:
                partial.unlink(missing_ok=True)
                raise MaintenanceError(f"Backup to {target} failed: {exc}") from exc

    def replace_database_with(self, source: Path) -> None:
        live = self._require_open_file()
        staged = live.with_name(live.name + ".restore")
        previous = live.with_name(live.name + ".previous")
        with self.store.exclusive():
            try:
                shutil.copy2(source, staged)
            except OSError as exc:
                staged.unlink(missing_ok=True)
                raise MaintenanceError(f"Could not stage {source}: {exc}") from exc
            self.store.close()
            try:
                if live.exists():
                    os.replace(live, previous)
                os.replace(staged, live)
                initialize_store(self.store, self.schema)
                report = self.integrity_report()
                if not report.ok:
                    raise CorruptBackupError(
                        f"Backup {source} failed the integrity check: {report.problems}"
                    )
            except Exception:
                self._roll_back_restore(live, staged, previous)
                raise
            previous.unlink(missing_ok=True)

    def integrity_report(self) -> IntegrityReport:
        try:
            rows = self.store.fetch_all("PRAGMA integrity_check")
        except sqlite3.OperationalError as exc:
            raise MaintenanceError(f"Integrity check could not run: {exc}") from exc
        except sqlite3.DatabaseError as exc:
            return IntegrityReport(ok=False, problems=[str(exc)])
        messages = [str(row[0]) for row in rows]
        if messages == ["ok"]:
            return IntegrityReport(ok=True)
        return IntegrityReport(ok=False, problems=messages)

    def optimize(self) -> None:
        try:
            self.store.execute("VACUUM")
            self.store.execute("PRAGMA optimize")
        except sqlite3.Error as exc:
            raise MaintenanceError(f"Optimize failed: {exc}") from exc

    def delete_cache_before(self, cutoff: date) -> int:
        cursor = self.store.execute(
            f"DELETE FROM {NUTRITION_CACHE_TABLE} WHERE date < ?",
            (cutoff.isoformat(),),
        )
        return cursor.rowcount

    def database_stats(self) -> DatabaseStats:
        path = self.store.path
        size = path.stat().st_size if path is not None and path.exists() else 0
        span = self.store.fetch_one(
            f"SELECT MIN(date) AS earliest, MAX(date) AS latest FROM {FOOD_ENTRIES_TABLE}"
        )
        earliest = span["earliest"] if span else None
        latest = span["latest"] if span else None
        return DatabaseStats(
            size_bytes=size,
            profile_count=self._count(PROFILE_TABLE),
            food_entry_count=self._count(FOOD_ENTRIES_TABLE),
            health_goal_count=self._count(HEALTH_GOALS_TABLE),
            food_template_count=self._count(FOOD_TEMPLATES_TABLE),
            cache_count=self._count(NUTRITION_CACHE_TABLE),
            earliest_food_date=parse_date(earliest) if earliest else None,
            latest_food_date=parse_date(latest) if latest else None,
            schema_version=self.store.user_version(),
        )

    def clear_all_data(self) -> None:
        with self.store.transaction() as conn:
            for table in ALL_TABLES:
                conn.execute(f"DELETE FROM {table}")
            conn.execute("DELETE FROM sqlite_sequence")

    def _count(self, table: str) -> int:
        row = self.store.fetch_one(f"SELECT COUNT(*) FROM {table}")
        return int(row[0]) if row else 0

    def _require_open_file(self) -> Path:
        if not self.store.is_open:
            raise StoreClosedError("The nutrition store is closed")
        if self.store.path is None:
            raise MaintenanceError("An in-memory store has no file")
        return self.store.path

    def _roll_back_restore(self, live: Path, staged: Path, previous: Path) -> None:
        self.store.close()
        staged.unlink(missing_ok=True)
        if previous.exists():
            os.replace(previous, live)
        else:
            live.unlink(missing_ok=True)
        _logger.error("Restore failed; reopening the previous store at %s", live)
        initialize_store(self.store, self.schema)
