"""Dependency container wiring for the store."""

from collections.abc import Callable
from dataclasses import dataclass

from nutrition_store.adapters.sqlite_cache_repository import SqliteCacheRepository
from nutrition_store.adapters.sqlite_exchange_repository import (
    SqliteExchangeRepository,
)
from nutrition_store.adapters.sqlite_food_entry_repository import (
    SqliteFoodEntryRepository,
)
from nutrition_store.adapters.sqlite_food_template_repository import (
    SqliteFoodTemplateRepository,
)
from nutrition_store.adapters.sqlite_health_goal_repository import (
    SqliteHealthGoalRepository,
)
from nutrition_store.adapters.sqlite_maintenance_repository import (
    SqliteMaintenanceRepository,
)
from nutrition_store.adapters.sqlite_profile_repository import (
    SqliteProfileRepository,
)
from nutrition_store.adapters.sqlite_schema import SchemaManager, open_store
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.app_logging import configure_logging
from nutrition_store.config import Settings
from nutrition_store.services.aggregation import AggregationEngine
from nutrition_store.services.exchange import ExchangeService
from nutrition_store.services.food_log import FoodLogService
from nutrition_store.services.goals import GoalService
from nutrition_store.services.maintenance import MaintenanceService
from nutrition_store.services.profiles import ProfileService
from nutrition_store.services.templates import FoodTemplateService


@dataclass
class AppContainer:
    """Holds the store and the services built on it."""

    settings: Settings
    store: SqliteStore
    profile_service: ProfileService
    food_log_service: FoodLogService
    goal_service: GoalService
    template_service: FoodTemplateService
    aggregation_engine: AggregationEngine
    maintenance_service: MaintenanceService
    exchange_service: ExchangeService
    close_resources: Callable[[], None]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Open the configured store and wire every service to it."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    schema = SchemaManager()
    store = open_store(
        resolved_settings.database_path,
        busy_timeout_seconds=resolved_settings.busy_timeout_seconds,
        schema=schema,
    )
    validate = resolved_settings.validate_records
    aggregation_engine = AggregationEngine(SqliteCacheRepository(store))
    template_service = FoodTemplateService(
        SqliteFoodTemplateRepository(store), validate=validate
    )
    food_log_service = FoodLogService(
        repository=SqliteFoodEntryRepository(store),
        aggregation=aggregation_engine,
        templates=template_service,
        validate=validate,
    )
    maintenance_service = MaintenanceService(
        repository=SqliteMaintenanceRepository(store, schema=schema),
        backup_dir=resolved_settings.backup_dir,
        cache_retention_days=resolved_settings.cache_retention_days,
    )
    exchange_service = ExchangeService(
        repository=SqliteExchangeRepository(store),
        aggregation=aggregation_engine,
        validate=validate,
    )

    def close_resources() -> None:
        store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        profile_service=ProfileService(
            SqliteProfileRepository(store), validate=validate
        ),
        food_log_service=food_log_service,
        goal_service=GoalService(SqliteHealthGoalRepository(store), validate=validate),
        template_service=template_service,
        aggregation_engine=aggregation_engine,
        maintenance_service=maintenance_service,
        exchange_service=exchange_service,
        close_resources=close_resources,
    )
