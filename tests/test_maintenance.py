"""Tests for backups, restores and housekeeping."""

import sqlite3
from datetime import date, timedelta
from pathlib import Path

import pytest

from nutrition_store.adapters.sqlite_maintenance_repository import (
    SqliteMaintenanceRepository,
)
from nutrition_store.adapters.sqlite_schema import SCHEMA_VERSION, open_store
from nutrition_store.containers import AppContainer
from nutrition_store.domain.errors import (
    BackupMissingError,
    CorruptBackupError,
    SchemaMigrationError,
    SourceMissingError,
    StoreClosedError,
)
from nutrition_store.services.maintenance import MaintenanceService
from tests.conftest import make_entry, make_template


def test_backup_writes_a_timestamped_copy(container: AppContainer) -> None:
    container.food_log_service.insert_food_entry(make_entry())

    path = container.maintenance_service.backup()

    assert path.parent == container.settings.backup_dir
    assert path.name.startswith("backup_")
    assert path.name.endswith("_nutrition.db")
    assert path.read_bytes()[:16] == b"SQLite format 3\x00"
    assert not list(path.parent.glob("*.partial"))
    assert container.maintenance_service.list_backups() == [path]


def test_backup_of_in_memory_store_is_rejected() -> None:
    store = open_store(":memory:")
    service = MaintenanceService(SqliteMaintenanceRepository(store))

    with pytest.raises(SourceMissingError):
        service.backup()
    assert service.list_backups() == []
    store.close()


def test_restore_brings_back_the_backed_up_state(container: AppContainer) -> None:
    log = container.food_log_service
    log.insert_food_entry(make_entry(name="Before backup"))
    backup = container.maintenance_service.backup()
    log.insert_food_entry(make_entry(name="After backup"))

    container.maintenance_service.restore(backup)

    names = [entry.name for entry in log.all_food_entries()]
    assert names == ["Before backup"]
    assert container.maintenance_service.integrity_check() is True
    log.insert_food_entry(make_entry(name="After restore"))
    assert len(log.all_food_entries()) == 2
    assert not list(container.settings.database_path.parent.glob("*.previous"))


def test_restore_requires_an_existing_backup(
    container: AppContainer, tmp_path: Path
) -> None:
    with pytest.raises(BackupMissingError):
        container.maintenance_service.restore(tmp_path / "missing.db")


def test_restore_rejects_a_file_that_is_not_a_store(
    container: AppContainer, tmp_path: Path
) -> None:
    container.food_log_service.insert_food_entry(make_entry())
    bogus = tmp_path / "notes.txt"
    bogus.write_text("definitely not sqlite", encoding="utf-8")

    with pytest.raises(CorruptBackupError):
        container.maintenance_service.restore(bogus)

    assert len(container.food_log_service.all_food_entries()) == 1


def test_integrity_report_on_a_healthy_store(container: AppContainer) -> None:
    report = container.maintenance_service.integrity_report()

    assert report.ok is True
    assert report.problems == []


def test_optimize_keeps_data(container: AppContainer) -> None:
    container.food_log_service.insert_food_entry(make_entry())

    container.maintenance_service.optimize()

    assert len(container.food_log_service.all_food_entries()) == 1


def test_cleanup_cache_keeps_entries_and_recomputes(container: AppContainer) -> None:
    log = container.food_log_service
    old_day = date.today() - timedelta(days=3)
    log.insert_food_entry(make_entry(calories=510, date=old_day))
    log.insert_food_entry(make_entry(calories=120, date=date.today()))

    removed = container.maintenance_service.cleanup_cache(retention_days=0)

    assert removed == 1
    assert len(log.all_food_entries()) == 2
    assert container.aggregation_engine.summary_for_date(old_day).totals.calories == 510
    assert container.aggregation_engine.rebuild_cache() == 2


def test_cleanup_cache_uses_configured_retention(container: AppContainer) -> None:
    log = container.food_log_service
    log.insert_food_entry(make_entry(date=date.today() - timedelta(days=45)))
    log.insert_food_entry(make_entry(date=date.today() - timedelta(days=5)))

    assert container.maintenance_service.cleanup_cache() == 1


def test_cleanup_cache_rejects_negative_retention(container: AppContainer) -> None:
    with pytest.raises(ValueError):
        container.maintenance_service.cleanup_cache(retention_days=-1)


def test_database_stats_and_clear_all(container: AppContainer) -> None:
    log = container.food_log_service
    first_day = date(2024, 1, 1)
    log.insert_food_entry(make_entry(date=first_day))
    log.insert_food_entry(make_entry(date=first_day + timedelta(days=9)))
    container.template_service.upsert_food_template(make_template())

    stats = container.maintenance_service.database_stats()

    assert stats.food_entry_count == 2
    assert stats.cache_count == 2
    assert stats.food_template_count == 1
    assert stats.earliest_food_date == first_day
    assert stats.latest_food_date == first_day + timedelta(days=9)
    assert stats.schema_version == SCHEMA_VERSION
    assert stats.size_bytes > 0

    container.maintenance_service.clear_all_data()
    cleared = container.maintenance_service.database_stats()

    assert cleared.food_entry_count == 0
    assert cleared.cache_count == 0
    assert cleared.schema_version == SCHEMA_VERSION
    assert log.insert_food_entry(make_entry()) == 1


def test_cleanup_with_zero_retention_still_answers_today(container: AppContainer) -> None:
    today = date.today()
    container.food_log_service.insert_food_entry(
        make_entry(calories=300, protein_g=20, carbs_g=30, fat_g=10, date=today)
    )

    container.maintenance_service.cleanup_cache(retention_days=0)
    summary = container.aggregation_engine.summary_for_date(today)

    assert summary.totals.calories == 300
    assert summary.totals.protein_g == 20


def test_failed_restore_puts_the_previous_store_back(
    container: AppContainer, tmp_path: Path
) -> None:
    container.food_log_service.insert_food_entry(make_entry(name="Keep me"))
    future = tmp_path / "future.db"
    conn = sqlite3.connect(future)
    conn.execute("CREATE TABLE unknown_table (id INTEGER PRIMARY KEY)")
    conn.execute("PRAGMA user_version = 99")
    conn.close()

    with pytest.raises(SchemaMigrationError):
        container.maintenance_service.restore(future)

    live = container.settings.database_path
    assert container.store.is_open is True
    assert [entry.name for entry in container.food_log_service.all_food_entries()] == [
        "Keep me"
    ]
    assert container.maintenance_service.schema_version() == SCHEMA_VERSION
    assert not list(live.parent.glob("*.previous"))
    assert not list(live.parent.glob("*.restore"))


def test_backup_and_restore_refuse_a_closed_store(container: AppContainer) -> None:
    backup = container.maintenance_service.backup()
    container.close_resources()

    with pytest.raises(StoreClosedError):
        container.maintenance_service.backup()
    with pytest.raises(StoreClosedError):
        container.maintenance_service.restore(backup)
    with pytest.raises(StoreClosedError):
        container.maintenance_service.integrity_check()
    with pytest.raises(StoreClosedError):
        container.maintenance_service.cleanup_cache()

    assert container.store.is_open is False
