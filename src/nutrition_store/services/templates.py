"""Services for managing reusable food templates."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from nutrition_store.domain.models import FoodEntry, FoodTemplate
from nutrition_store.services.validation import validate_food_template


class FoodTemplateRepository(Protocol):
    """Persistence interface for food templates."""

    def upsert_template(self, template: FoodTemplate, used_at: datetime) -> FoodTemplate:
        """Insert by (name, brand) or bump the existing row's usage."""

    def get_template(self, template_id: int) -> FoodTemplate | None:
        """Return a template by id, if present."""

    def find_by_barcode(self, barcode: str) -> FoodTemplate | None:
        """Return the most used template with this barcode."""

    def list_frequent(self, limit: int) -> list[FoodTemplate]:
        """Return templates by frequency, then recency."""

    def search(self, query: str, limit: int) -> list[FoodTemplate]:
        """Return templates whose name contains ``query``."""

    def increment_usage(self, template_id: int, used_at: datetime) -> bool:
        """Increment usage counters for a template."""

    def delete_template(self, template_id: int) -> bool:
        """Delete a template by id."""


@dataclass
class FoodTemplateService:
    """Application service for template operations."""

    repository: FoodTemplateRepository
    validate: bool = True

    def upsert_food_template(self, template: FoodTemplate) -> FoodTemplate:
        """Save a template; repeats of the same (name, brand) count as a use."""
        if self.validate:
            validate_food_template(template)
        return self.repository.upsert_template(
            template, used_at=datetime.now(tz=UTC)
        )

    def remember_food_entry(
        self, entry: FoodEntry, brand: str | None = None, category: str | None = None
    ) -> FoodTemplate:
        """Save a logged food as a template for quick re-entry."""
        return self.upsert_food_template(
            FoodTemplate(
                name=entry.name,
                brand=brand,
                category=category,
                calories=entry.calories,
                protein_g=entry.protein_g,
                carbs_g=entry.carbs_g,
                fat_g=entry.fat_g,
                serving_size=entry.quantity,
                serving_unit=entry.unit,
            )
        )

    def frequent_food_templates(self, limit: int = 10) -> list[FoodTemplate]:
        return self.repository.list_frequent(limit)

    def search_food_templates(
        self, query: str | None, limit: int = 20
    ) -> list[FoodTemplate]:
        """Search templates by name, falling back to frequent ones when empty."""
        cleaned = (query or "").strip()
        if not cleaned:
            return self.repository.list_frequent(limit)
        return self.repository.search(cleaned, limit)

    def get_food_template(self, template_id: int) -> FoodTemplate | None:
        return self.repository.get_template(template_id)

    def find_by_barcode(self, barcode: str) -> FoodTemplate | None:
        return self.repository.find_by_barcode(barcode)

    def record_use(self, template_id: int) -> bool:
        """Record that a template has been used again."""
        return self.repository.increment_usage(
            template_id, used_at=datetime.now(tz=UTC)
        )

    def delete_food_template(self, template_id: int) -> bool:
        """Remove a template; only explicit maintenance should call this."""
        return self.repository.delete_template(template_id)
