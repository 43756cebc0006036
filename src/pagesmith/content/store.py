"""SQL-backed content item store.

Reads and creation only; every status change goes through
:class:`~pagesmith.content.lifecycle.ContentStateMachine`.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.engine import Connection

from pagesmith.content.models import ContentItem, ContentStatus
from pagesmith.db import Database, as_utc, content_items, utcnow
from pagesmith.errors import NotFoundError

logger = logging.getLogger(__name__)

# Alias to avoid shadowing by ContentItemStore.list method
_list = list


def fetch_item(conn: Connection, item_id: str, *, for_update: bool = False) -> ContentItem:
    """Load one item on an open connection.

    Raises:
        NotFoundError: If no item has this id.
    """
    stmt = content_items.select().where(content_items.c.id == item_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = conn.execute(stmt).fetchone()
    if row is None:
        raise NotFoundError(f"Content item {item_id!r} not found")
    return row_to_item(row._mapping)


def row_to_item(mapping: Any) -> ContentItem:
    return ContentItem(
        id=mapping["id"],
        owner_id=mapping["owner_id"],
        scope_id=mapping["scope_id"] or None,
        title=mapping["title"],
        description=mapping["description"],
        slug=mapping["slug"],
        status=ContentStatus(mapping["status"]),
        assembled_html=mapping["assembled_html"],
        published_domain=mapping["published_domain"],
        published_path=mapping["published_path"],
        published_slug=mapping["published_slug"],
        published_at=as_utc(mapping["published_at"]),
        created_at=as_utc(mapping["created_at"]),
        updated_at=as_utc(mapping["updated_at"]),
    )


class ContentItemStore:
    """Creates content items and reads them back."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        owner_id: str,
        scope_id: str | None = None,
        title: str = "",
        slug: str = "",
        description: str = "",
    ) -> ContentItem:
        """Insert a new item at ``planned``."""
        now = utcnow()
        item = ContentItem(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            scope_id=scope_id,
            title=title,
            description=description,
            slug=slug,
            status=ContentStatus.PLANNED,
            created_at=now,
            updated_at=now,
        )
        with self._db.begin() as conn:
            conn.execute(
                content_items.insert().values(
                    id=item.id,
                    owner_id=owner_id,
                    scope_id=scope_id or "",
                    title=title,
                    description=description,
                    slug=slug,
                    status=item.status.value,
                    created_at=now,
                    updated_at=now,
                )
            )
        logger.info("Created content item %s for owner %s", item.id, owner_id)
        return item

    def get(self, item_id: str) -> ContentItem | None:
        """Return an item by id, or None if not found."""
        try:
            return self.require(item_id)
        except NotFoundError:
            return None

    def require(self, item_id: str) -> ContentItem:
        """Return an item by id.

        Raises:
            NotFoundError: If no item has this id.
        """
        with self._db.connect() as conn:
            return fetch_item(conn, item_id)

    def list(self, owner_id: str, status: ContentStatus | None = None) -> _list[ContentItem]:
        """Return an owner's items, oldest first, optionally filtered by status."""
        stmt = content_items.select().where(content_items.c.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(content_items.c.status == status.value)
        with self._db.connect() as conn:
            rows = conn.execute(stmt.order_by(content_items.c.created_at, content_items.c.id)).fetchall()
        return [row_to_item(row._mapping) for row in rows]
