"""Profile-related business logic."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from nutrition_store.domain.models import Profile
from nutrition_store.services.validation import validate_profile


class ProfileRepository(Protocol):
    """Persistence interface for the single user profile."""

    def upsert_profile(self, profile: Profile, now: datetime) -> int:
        """Insert the profile or overwrite the existing one; return its id."""

    def get_profile(self) -> Profile | None:
        """Return the profile, if present."""


@dataclass
class ProfileService:
    """Application service for the current user's profile."""

    repository: ProfileRepository
    validate: bool = True

    def upsert_profile(self, profile: Profile) -> int:
        """Save the profile; there is never more than one."""
        if self.validate:
            validate_profile(profile)
        return self.repository.upsert_profile(profile, now=datetime.now(tz=UTC))

    def get_profile(self) -> Profile | None:
        return self.repository.get_profile()

    def has_profile(self) -> bool:
        """Return True once onboarding saved a profile."""
        return self.repository.get_profile() is not None
