"""Whole-store export and import."""

import logging
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from nutrition_store.domain.errors import (
    DocumentImportError,
    InvalidRecordError,
    StoreClosedError,
)
from nutrition_store.domain.exchange import ExportDocument
from nutrition_store.domain.models import FoodEntry, FoodTemplate, HealthGoal, Profile
from nutrition_store.services.aggregation import AggregationEngine
from nutrition_store.services.validation import (
    validate_food_entry,
    validate_food_template,
    validate_health_goal,
    validate_profile,
)

_logger = logging.getLogger(__name__)


class ExchangeRepository(Protocol):
    """Bulk access to the authoritative tables."""

    def transaction(self) -> AbstractContextManager[object]:
        """Return a context manager that makes a block atomic."""

    def schema_version(self) -> int:
        """Return the applied schema version."""

    def list_profiles(self) -> list[Profile]:
        """Return every profile row."""

    def list_food_entries(self) -> list[FoodEntry]:
        """Return every food entry, by id."""

    def list_health_goals(self) -> list[HealthGoal]:
        """Return every health goal row."""

    def list_food_templates(self) -> list[FoodTemplate]:
        """Return every template, by id."""

    def replace_all(
        self,
        profiles: Sequence[Profile],
        food_entries: Sequence[FoodEntry],
        health_goals: Sequence[HealthGoal],
        food_templates: Sequence[FoodTemplate],
    ) -> None:
        """Delete every row (cache included) and insert the given records."""


@dataclass
class ExchangeService:
    """Exports the store to a document and replaces it from one."""

    repository: ExchangeRepository
    aggregation: AggregationEngine
    validate: bool = True

    def export_document(self) -> ExportDocument:
        """Return a consistent snapshot of the authoritative tables."""
        with self.repository.transaction():
            document = ExportDocument(
                export_date=datetime.now(tz=UTC),
                version=self.repository.schema_version(),
                profile=tuple(self.repository.list_profiles()),
                food_entries=tuple(self.repository.list_food_entries()),
                health_goals=tuple(self.repository.list_health_goals()),
                food_templates=tuple(self.repository.list_food_templates()),
            )
        _logger.info(
            "Exported %s food entries and %s templates",
            len(document.food_entries),
            len(document.food_templates),
        )
        return document

    def import_document(self, document: ExportDocument | Mapping[str, object]) -> None:
        """Replace every table with the document's contents, all or nothing.

        The nutrition cache is rebuilt from the imported entries in the same
        transaction.
        """
        parsed = self._parse(document)
        supported = self.repository.schema_version()
        if parsed.version > supported:
            raise DocumentImportError(
                f"Document version {parsed.version} is newer than supported {supported}"
            )
        if self.validate:
            self._check_records(parsed)
        try:
            with self.repository.transaction():
                self.repository.replace_all(
                    profiles=parsed.profile,
                    food_entries=parsed.food_entries,
                    health_goals=parsed.health_goals,
                    food_templates=parsed.food_templates,
                )
                self.aggregation.rebuild_cache()
        except (StoreClosedError, DocumentImportError):
            raise
        except Exception as exc:
            _logger.error("Import failed, store left unchanged: %s", exc)
            raise DocumentImportError(f"Import failed: {exc}") from exc
        _logger.info(
            "Imported %s food entries and %s templates",
            len(parsed.food_entries),
            len(parsed.food_templates),
        )

    def export_json(self, indent: int | None = 2) -> str:
        return self.export_document().to_json(indent=indent)

    def import_json(self, text: str | bytes) -> None:
        try:
            document = ExportDocument.model_validate_json(text)
        except ValidationError as exc:
            raise DocumentImportError(f"Invalid export document: {exc}") from exc
        self.import_document(document)

    def export_to_file(self, path: Path | str) -> Path:
        """Write the export document as JSON and return the path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.export_json(), encoding="utf-8")
        return target

    def import_from_file(self, path: Path | str) -> None:
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise DocumentImportError(f"Could not read {source}: {exc}") from exc
        self.import_json(text)

    @staticmethod
    def _parse(document: ExportDocument | Mapping[str, object]) -> ExportDocument:
        if isinstance(document, ExportDocument):
            parsed = document
        else:
            try:
                parsed = ExportDocument.model_validate(document)
            except ValidationError as exc:
                raise DocumentImportError(f"Invalid export document: {exc}") from exc
        # The store keeps at most one profile and exactly one current goal.
        if len(parsed.profile) > 1:
            raise DocumentImportError(
                f"Document holds {len(parsed.profile)} profiles; at most one is allowed"
            )
        if len(parsed.health_goals) > 1:
            raise DocumentImportError(
                f"Document holds {len(parsed.health_goals)} health goals; at most one is allowed"
            )
        return parsed

    @staticmethod
    def _check_records(document: ExportDocument) -> None:
        try:
            for profile in document.profile:
                validate_profile(profile)
            for entry in document.food_entries:
                validate_food_entry(entry)
            for goal in document.health_goals:
                validate_health_goal(goal)
            for template in document.food_templates:
                validate_food_template(template)
        except InvalidRecordError as exc:
            raise DocumentImportError(f"Invalid record in document: {exc}") from exc
