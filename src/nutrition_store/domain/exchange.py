"""Models for whole-store export documents."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from nutrition_store.domain.models import FoodEntry, FoodTemplate, HealthGoal, Profile


class ExportDocument(BaseModel):
    """Snapshot of every authoritative table.

    The derived nutrition cache is never part of a document. Serialised with
    ``by_alias=True`` the keys are ``exportDate``, ``version``, ``profile``,
    ``foodEntries``, ``healthGoals`` and ``foodTemplates``; rows keep the
    entity field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    export_date: datetime = Field(alias="exportDate")
    version: int = Field(ge=1)
    profile: tuple[Profile, ...] = ()
    food_entries: tuple[FoodEntry, ...] = Field(default=(), alias="foodEntries")
    health_goals: tuple[HealthGoal, ...] = Field(default=(), alias="healthGoals")
    food_templates: tuple[FoodTemplate, ...] = Field(
        default=(), alias="foodTemplates"
    )

    def to_payload(self) -> dict[str, object]:
        """Return the JSON-compatible document."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int | None = 2) -> str:
        """Return the document as JSON text."""
        return self.model_dump_json(by_alias=True, indent=indent)
