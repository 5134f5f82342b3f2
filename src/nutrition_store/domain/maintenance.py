"""Domain models for store maintenance."""

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class IntegrityReport:
    """Outcome of the storage engine's consistency check."""

    ok: bool
    problems: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DatabaseStats:
    """Size and row counts of the store."""

    size_bytes: int
    profile_count: int
    food_entry_count: int
    health_goal_count: int
    food_template_count: int
    cache_count: int
    earliest_food_date: date | None
    latest_food_date: date | None
    schema_version: int
