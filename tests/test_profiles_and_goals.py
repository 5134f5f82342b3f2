"""Tests for the profile and health goal singletons."""

import pytest

from nutrition_store.adapters.sqlite_health_goal_repository import (
    SqliteHealthGoalRepository,
)
from nutrition_store.adapters.sqlite_profile_repository import (
    SqliteProfileRepository,
)
from nutrition_store.containers import AppContainer
from nutrition_store.domain.errors import InvalidRecordError
from nutrition_store.domain.models import ActivityLevel, GoalType
from tests.conftest import make_goal, make_profile


def test_profile_upsert_keeps_a_single_row(container: AppContainer) -> None:
    service = container.profile_service
    assert service.has_profile() is False

    first_id = service.upsert_profile(make_profile())
    created = service.get_profile()
    second_id = service.upsert_profile(
        make_profile(weight_kg=60.0, activity_level=ActivityLevel.ACTIVE)
    )
    profile = service.get_profile()

    assert first_id == second_id
    assert SqliteProfileRepository(container.store).count_profiles() == 1
    assert profile.weight_kg == 60.0
    assert profile.activity_level is ActivityLevel.ACTIVE
    assert profile.created_at == created.created_at
    assert service.has_profile() is True


def test_profile_upsert_removes_legacy_duplicates(container: AppContainer) -> None:
    for name in ("Old one", "Old two"):
        container.store.execute(
            "INSERT INTO profile (name, age, gender, height_cm, weight_kg, activity_level) "
            "VALUES (?, 30, 'male', 175, 70, 'light')",
            (name,),
        )

    container.profile_service.upsert_profile(make_profile(name="Current"))

    assert SqliteProfileRepository(container.store).count_profiles() == 1
    assert container.profile_service.get_profile().name == "Current"


def test_profile_with_non_integer_age_is_rejected(container: AppContainer) -> None:
    with pytest.raises(InvalidRecordError) as excinfo:
        container.profile_service.upsert_profile(make_profile(age="34"))

    assert excinfo.value.field == "age"


def test_setting_a_goal_replaces_the_previous_one(container: AppContainer) -> None:
    service = container.goal_service
    assert service.current_health_goal() is None

    service.set_current_health_goal(make_goal())
    service.set_current_health_goal(
        make_goal(target_calories=1700.0, goal_type=GoalType.LOSE)
    )
    current = service.current_health_goal()

    assert SqliteHealthGoalRepository(container.store).count_goals() == 1
    assert current.target_calories == 1700.0
    assert current.goal_type is GoalType.LOSE
    assert current.is_active is True
    assert current.created_at is not None


def test_goal_with_zero_calories_is_rejected(container: AppContainer) -> None:
    container.goal_service.set_current_health_goal(make_goal())

    with pytest.raises(InvalidRecordError) as excinfo:
        container.goal_service.set_current_health_goal(make_goal(target_calories=0))

    assert excinfo.value.field == "target_calories"
    assert container.goal_service.current_health_goal().target_calories == 2000.0


def test_goal_validation_can_be_disabled(container: AppContainer) -> None:
    container.goal_service.validate = False

    container.goal_service.set_current_health_goal(make_goal(target_protein_g=-1))

    assert container.goal_service.current_health_goal().target_protein_g == -1
