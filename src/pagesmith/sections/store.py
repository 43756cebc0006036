"""Section store: idempotent, keyed storage of page fragments."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection

from pagesmith.db import Database, as_utc, content_item_sections, utcnow
from pagesmith.errors import ValidationError
from pagesmith.sections.models import (
    CANONICAL_ORDER,
    ProductCardMetadata,
    Section,
    SectionMetadata,
    SectionType,
    parse_section_type,
    validate_metadata,
)

logger = logging.getLogger(__name__)

# Alias to avoid shadowing by SectionStore.list method
_list = list


class SectionStore:
    """Upsert-only store of sections keyed by (content_item_id, section_id).

    Reads are ordered by the canonical type order, then the product
    position, then the section id; insertion order never matters.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert(
        self,
        content_item_id: str,
        section_id: str,
        section_type: SectionType | str,
        html: str,
        metadata: SectionMetadata | dict[str, Any] | None = None,
    ) -> Section:
        """Insert or replace one section.

        Raises:
            ValidationError: Unknown type, empty id or html, or bad metadata.
        """
        kind = parse_section_type(str(section_type))
        if not section_id.strip():
            raise ValidationError("section_id must not be empty", ["section_id"])
        if not html or not html.strip():
            raise ValidationError(f"Section {section_id!r} has empty html", ["html"])
        meta = validate_metadata(kind, metadata)
        now = utcnow()
        order_key = CANONICAL_ORDER[kind]

        with self._db.begin() as conn:
            self._db.upsert(
                conn,
                content_item_sections,
                {
                    "content_item_id": content_item_id,
                    "section_id": section_id,
                    "section_type": kind.value,
                    "order_key": order_key,
                    "position": meta.position,
                    "html": html,
                    "metadata_json": meta.model_dump(mode="json"),
                    "updated_at": now,
                },
                conflict_columns=("content_item_id", "section_id"),
                update_columns=(
                    "section_type",
                    "order_key",
                    "position",
                    "html",
                    "metadata_json",
                    "updated_at",
                ),
            )
        logger.debug("Saved section %s (%s) for content item %s", section_id, kind.value, content_item_id)
        return Section(
            content_item_id=content_item_id,
            section_id=section_id,
            section_type=kind,
            order_key=order_key,
            html=html,
            metadata=meta,
            updated_at=now,
        )

    def list(self, content_item_id: str) -> _list[Section]:
        """Return every section of an item in canonical order."""
        with self._db.connect() as conn:
            return self.list_on(conn, content_item_id)

    @classmethod
    def list_on(cls, conn: Connection, content_item_id: str) -> _list[Section]:
        """Same as :meth:`list`, on a connection the caller already holds."""
        t = content_item_sections
        rows = conn.execute(
            t.select()
            .where(t.c.content_item_id == content_item_id)
            .order_by(t.c.order_key, t.c.position, t.c.section_id)
        ).fetchall()
        sections = [cls._row_to_section(row._mapping) for row in rows]
        return sorted(sections, key=lambda section: section.sort_key)

    def get(self, content_item_id: str, section_id: str) -> Section | None:
        t = content_item_sections
        with self._db.connect() as conn:
            row = conn.execute(
                t.select().where(t.c.content_item_id == content_item_id, t.c.section_id == section_id)
            ).fetchone()
        return self._row_to_section(row._mapping) if row is not None else None

    def count(self, content_item_id: str) -> int:
        t = content_item_sections
        with self._db.connect() as conn:
            return conn.execute(
                sa.select(sa.func.count()).select_from(t).where(t.c.content_item_id == content_item_id)
            ).scalar_one()

    def clear(self, content_item_id: str) -> int:
        """Delete every section of an item and return how many were removed.

        Storage reclamation only; assembled pages are not touched.
        """
        t = content_item_sections
        with self._db.begin() as conn:
            result = conn.execute(t.delete().where(t.c.content_item_id == content_item_id))
        logger.info("Cleared %d sections for content item %s", result.rowcount, content_item_id)
        return result.rowcount

    @staticmethod
    def _row_to_section(mapping: Any) -> Section:
        kind = SectionType(mapping["section_type"])
        model = ProductCardMetadata if kind == SectionType.PRODUCT_CARD else SectionMetadata
        return Section(
            content_item_id=mapping["content_item_id"],
            section_id=mapping["section_id"],
            section_type=kind,
            order_key=mapping["order_key"],
            html=mapping["html"],
            metadata=model.model_validate(mapping["metadata_json"]),
            updated_at=as_utc(mapping["updated_at"]),
        )
