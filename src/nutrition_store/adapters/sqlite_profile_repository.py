"""SQLite repository for the user profile."""

from dataclasses import dataclass, replace
from datetime import datetime

from nutrition_store.adapters.sqlite_rows import (
    insert_row,
    parse_profile,
    profile_row,
    update_row,
)
from nutrition_store.adapters.sqlite_schema import PROFILE_TABLE
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.models import Profile
from nutrition_store.services.profiles import ProfileRepository


@dataclass
class SqliteProfileRepository(ProfileRepository):
    """SQLite-backed repository for the single profile row."""

    store: SqliteStore

    def upsert_profile(self, profile: Profile, now: datetime) -> int:
        """Insert the profile, or overwrite the one existing row."""
        with self.store.transaction():
            rows = self.store.fetch_all(
                f"SELECT id FROM {PROFILE_TABLE} ORDER BY id ASC"
            )
            if not rows:
                return insert_row(
                    self.store,
                    PROFILE_TABLE,
                    profile_row(
                        replace(
                            profile,
                            id=None,
                            created_at=profile.created_at or now,
                            updated_at=now,
                        )
                    ),
                )
            profile_id = int(rows[0]["id"])
            if len(rows) > 1:
                self.store.execute(
                    f"DELETE FROM {PROFILE_TABLE} WHERE id != ?", (profile_id,)
                )
            values = profile_row(replace(profile, updated_at=now))
            for column in ("id", "created_at"):
                values.pop(column)
            update_row(self.store, PROFILE_TABLE, profile_id, values)
            return profile_id

    def get_profile(self) -> Profile | None:
        """Return the profile, if one was saved."""
        row = self.store.fetch_one(
            f"SELECT * FROM {PROFILE_TABLE} ORDER BY id ASC LIMIT 1"
        )
        if row is None:
            return None
        return parse_profile(row)

    def count_profiles(self) -> int:
        row = self.store.fetch_one(f"SELECT COUNT(*) FROM {PROFILE_TABLE}")
        return int(row[0]) if row else 0
