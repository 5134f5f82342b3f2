"""Backup, restore and housekeeping for the store file."""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Protocol

from nutrition_store.domain.errors import (
    BackupMissingError,
    CorruptBackupError,
    SourceMissingError,
)
from nutrition_store.domain.maintenance import DatabaseStats, IntegrityReport

_logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"
BACKUP_PREFIX = "backup_"


class MaintenanceRepository(Protocol):
    """Storage-level operations on the store file."""

    def database_path(self) -> Path | None:
        """Return the store file path, or ``None`` for an in-memory store."""

    def copy_database_to(self, target: Path) -> None:
        """Copy the store file to ``target`` while holding the store lock."""

    def replace_database_with(self, source: Path) -> None:
        """Swap ``source`` in as the store file and reopen it."""

    def integrity_report(self) -> IntegrityReport:
        """Run the storage engine's consistency check."""

    def optimize(self) -> None:
        """Compact the file and refresh planner statistics."""

    def delete_cache_before(self, cutoff: date) -> int:
        """Delete cache rows dated before ``cutoff``; return how many."""

    def database_stats(self) -> DatabaseStats:
        """Return size and row counts."""

    def clear_all_data(self) -> None:
        """Delete every row and reset id counters."""


@dataclass
class MaintenanceService:
    """Operational tasks: backups, integrity checks and cache housekeeping."""

    repository: MaintenanceRepository
    backup_dir: Path | None = None
    cache_retention_days: int = 30

    def backup(self) -> Path:
        """Copy the store to a timestamped file and return its path."""
        source = self._require_source()
        directory = self.backup_dir or source.parent
        directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S%fZ")
        target = directory / f"{BACKUP_PREFIX}{stamp}_{source.name}"
        self.repository.copy_database_to(target)
        _logger.info("Backed up %s to %s", source, target)
        return target

    def restore(self, backup_path: Path | str) -> None:
        """Replace the live store with a backup file.

        The backup is checked before anything is touched. When the swapped-in
        file cannot be opened the previous store is put back and the error is
        raised.
        """
        path = Path(backup_path)
        if not path.is_file():
            raise BackupMissingError(f"Backup file not found: {path}")
        with path.open("rb") as handle:
            header = handle.read(len(SQLITE_HEADER))
        if header != SQLITE_HEADER:
            raise CorruptBackupError(f"Not a nutrition store file: {path}")
        self.repository.replace_database_with(path)
        _logger.info("Restored store from %s", path)

    def list_backups(self) -> list[Path]:
        """Return backups of this store, newest first."""
        source = self.repository.database_path()
        if source is None:
            return []
        directory = self.backup_dir or source.parent
        if not directory.is_dir():
            return []
        return sorted(
            directory.glob(f"{BACKUP_PREFIX}*_{source.name}"),
            key=lambda candidate: candidate.name,
            reverse=True,
        )

    def integrity_check(self) -> bool:
        return self.integrity_report().ok

    def integrity_report(self) -> IntegrityReport:
        report = self.repository.integrity_report()
        if not report.ok:
            _logger.warning("Integrity check found problems: %s", report.problems)
        return report

    def optimize(self) -> None:
        self.repository.optimize()
        _logger.info("Optimized store")

    def cleanup_cache(self, retention_days: int | None = None) -> int:
        """Drop cache rows older than the retention window.

        Food entries are never touched; dropped days are recomputed on demand.
        """
        days = self.cache_retention_days if retention_days is None else retention_days
        if days < 0:
            raise ValueError(f"Retention must not be negative (got {days})")
        cutoff = date.today() - timedelta(days=days)
        removed = self.repository.delete_cache_before(cutoff)
        _logger.info("Removed %s cache rows dated before %s", removed, cutoff)
        return removed

    def database_stats(self) -> DatabaseStats:
        return self.repository.database_stats()

    def schema_version(self) -> int:
        return self.repository.database_stats().schema_version

    def clear_all_data(self) -> None:
        """Delete every record; the schema and version are kept."""
        self.repository.clear_all_data()
        _logger.warning("Cleared all data from the store")

    def _require_source(self) -> Path:
        source = self.repository.database_path()
        if source is None or not source.is_file():
            raise SourceMissingError(f"No store file to back up: {source or 'in-memory'}")
        return source
