"""SQLite implementation for food templates."""

from dataclasses import dataclass, replace
from datetime import datetime

from nutrition_store.adapters.sqlite_rows import (
    food_template_row,
    insert_row,
    parse_food_template,
)
from nutrition_store.adapters.sqlite_schema import FOOD_TEMPLATES_TABLE
from nutrition_store.adapters.sqlite_store import SqliteStore
from nutrition_store.domain.models import FoodTemplate
from nutrition_store.services.templates import FoodTemplateRepository


@dataclass
class SqliteFoodTemplateRepository(FoodTemplateRepository):
    """SQLite-backed repository for food templates."""

    store: SqliteStore

    def upsert_template(
        self, template: FoodTemplate, used_at: datetime
    ) -> FoodTemplate:
        """Insert a template or count another use of the existing one."""
        with self.store.transaction():
            row = self.store.fetch_one(
                f"""
                SELECT id FROM {FOOD_TEMPLATES_TABLE}
                WHERE name = ? AND IFNULL(brand, '') = IFNULL(?, '')
                LIMIT 1
                """,
                (template.name, template.brand),
            )
            if row is None:
                template_id = insert_row(
                    self.store,
                    FOOD_TEMPLATES_TABLE,
                    food_template_row(
                        replace(template, id=None, frequency=1, last_used=used_at)
                    ),
                )
            else:
                template_id = int(row["id"])
                self.increment_usage(template_id, used_at)
            saved = self.get_template(template_id)
        if saved is None:
            raise RuntimeError("Failed to save food template")
        return saved

    def get_template(self, template_id: int) -> FoodTemplate | None:
        """Return a template by id, if present."""
        row = self.store.fetch_one(
            f"SELECT * FROM {FOOD_TEMPLATES_TABLE} WHERE id = ?", (template_id,)
        )
        if row is None:
            return None
        return parse_food_template(row)

    def find_by_barcode(self, barcode: str) -> FoodTemplate | None:
        """Return the most used template with this barcode."""
        row = self.store.fetch_one(
            f"""
            SELECT * FROM {FOOD_TEMPLATES_TABLE}
            WHERE barcode = ?
            ORDER BY frequency DESC, id ASC
            LIMIT 1
            """,
            (barcode,),
        )
        if row is None:
            return None
        return parse_food_template(row)

    def list_frequent(self, limit: int) -> list[FoodTemplate]:
        """Return templates by frequency, then last use."""
        rows = self.store.fetch_all(
            f"""
            SELECT * FROM {FOOD_TEMPLATES_TABLE}
            ORDER BY frequency DESC, last_used DESC, name ASC
            LIMIT ?
            """,
            (limit,),
        )
        return [parse_food_template(row) for row in rows]

    def search(self, query: str, limit: int) -> list[FoodTemplate]:
        """Return templates whose name contains ``query`` (case-insensitive)."""
        rows = self.store.fetch_all(
            f"""
            SELECT * FROM {FOOD_TEMPLATES_TABLE}
            WHERE name LIKE ? ESCAPE '\\'
            ORDER BY frequency DESC, name ASC
            LIMIT ?
            """,
            (f"%{_escape_like(query)}%", limit),
        )
        return [parse_food_template(row) for row in rows]

    def increment_usage(self, template_id: int, used_at: datetime) -> bool:
        """Increment usage counters for a template."""
        cursor = self.store.execute(
            f"""
            UPDATE {FOOD_TEMPLATES_TABLE}
            SET frequency = frequency + 1, last_used = ?
            WHERE id = ?
            """,
            (used_at.isoformat(), template_id),
        )
        return cursor.rowcount > 0

    def delete_template(self, template_id: int) -> bool:
        cursor = self.store.execute(
            f"DELETE FROM {FOOD_TEMPLATES_TABLE} WHERE id = ?", (template_id,)
        )
        return cursor.rowcount > 0


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
