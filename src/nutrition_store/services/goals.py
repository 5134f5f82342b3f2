"""Health goal service."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from nutrition_store.domain.models import HealthGoal
from nutrition_store.services.validation import validate_health_goal


class HealthGoalRepository(Protocol):
    """Persistence interface for health goals."""

    def replace_current_goal(self, goal: HealthGoal, now: datetime) -> int:
        """Atomically replace every goal with ``goal``; return the new id."""

    def get_current_goal(self) -> HealthGoal | None:
        """Return the most recently created active goal."""


@dataclass
class GoalService:
    """Service for the current health goal.

    Setting a goal deletes all earlier goals rather than deactivating them, so
    no goal history is kept. Anything that needs past goals has to change
    this first.
    """

    repository: HealthGoalRepository
    validate: bool = True

    def set_current_health_goal(self, goal: HealthGoal) -> int:
        """Make ``goal`` the only stored goal."""
        if self.validate:
            validate_health_goal(goal)
        return self.repository.replace_current_goal(goal, now=datetime.now(tz=UTC))

    def current_health_goal(self) -> HealthGoal | None:
        return self.repository.get_current_goal()
