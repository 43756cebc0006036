"""Content item state machine.

Every status change is a compare-and-set on the stored row: the current
status is read inside the write transaction and checked against
``TRANSITIONS`` before anything is written.  A request that does not match
raises :class:`StateConflictError`; the machine never coerces state.

``mark_generated`` and ``mark_published`` take an open connection so the
assembler and the publish resolver can run them inside their own
transactions.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Connection

from pagesmith.content.models import TRANSITIONS, ContentItem, ContentStatus
from pagesmith.content.store import ContentItemStore, fetch_item
from pagesmith.db import Database, content_items, utcnow
from pagesmith.errors import OwnershipError, StateConflictError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_METADATA = ("title", "slug")


def check_transition(item: ContentItem, requested: ContentStatus) -> None:
    """Raise StateConflictError unless ``item`` may move to ``requested``."""
    if requested not in TRANSITIONS[item.status]:
        raise StateConflictError(item.status.value, requested.value, item.id)


class ContentStateMachine:
    """Owns every status change of a content item."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self.items = ContentItemStore(db)

    def create(
        self,
        owner_id: str,
        scope_id: str | None = None,
        title: str = "",
        slug: str = "",
        description: str = "",
    ) -> ContentItem:
        return self.items.create(owner_id, scope_id, title=title, slug=slug, description=description)

    def mark_ready(self, item_id: str) -> ContentItem:
        """planned → ready, once the item has its required metadata.

        Raises:
            NotFoundError: Unknown item.
            StateConflictError: The item is not planned.
            ValidationError: ``title`` or ``slug`` is missing.
        """
        with self._db.begin() as conn:
            item = fetch_item(conn, item_id, for_update=True)
            check_transition(item, ContentStatus.READY)
            missing = [name for name in REQUIRED_METADATA if not getattr(item, name).strip()]
            if missing:
                raise ValidationError(
                    f"Content item {item_id!r} is missing required metadata: {', '.join(missing)}",
                    missing,
                )
            self._write(conn, item_id, status=ContentStatus.READY)
            item = fetch_item(conn, item_id)
        logger.info("Content item %s is ready", item_id)
        return item

    def mark_generated(self, conn: Connection, item_id: str, html: str) -> ContentItem:
        """ready|generated → generated, storing the assembled page.

        Must be called inside the caller's write transaction.
        """
        item = fetch_item(conn, item_id, for_update=True)
        check_transition(item, ContentStatus.GENERATED)
        self._write(conn, item_id, status=ContentStatus.GENERATED, assembled_html=html)
        logger.debug("Content item %s generated (%d chars)", item_id, len(html))
        return fetch_item(conn, item_id)

    def mark_published(
        self, conn: Connection, item_id: str, domain: str, path: str, slug: str
    ) -> ContentItem:
        """generated → published at ``domain``/``path``/``slug``.

        Must be called inside the caller's write transaction.
        """
        item = fetch_item(conn, item_id, for_update=True)
        check_transition(item, ContentStatus.PUBLISHED)
        self._write(
            conn,
            item_id,
            status=ContentStatus.PUBLISHED,
            slug=slug,
            published_domain=domain,
            published_path=path,
            published_slug=slug,
            published_at=utcnow(),
        )
        return fetch_item(conn, item_id)

    def unpublish(self, item_id: str, owner_id: str) -> ContentItem:
        """published → generated; keeps the assembled page and the slug.

        Raises:
            NotFoundError: Unknown item.
            OwnershipError: ``owner_id`` does not own the item.
            StateConflictError: The item is not published.
        """
        with self._db.begin() as conn:
            item = fetch_item(conn, item_id, for_update=True)
            if item.owner_id != owner_id:
                raise OwnershipError(f"Content item {item_id!r} does not belong to {owner_id!r}")
            if item.status != ContentStatus.PUBLISHED:
                raise StateConflictError(item.status.value, ContentStatus.GENERATED.value, item_id)
            self._write(
                conn,
                item_id,
                status=ContentStatus.GENERATED,
                published_domain=None,
                published_path=None,
                published_slug=None,
                published_at=None,
            )
            item = fetch_item(conn, item_id)
        logger.info("Content item %s unpublished", item_id)
        return item

    @staticmethod
    def _write(conn: Connection, item_id: str, *, status: ContentStatus, **values: object) -> None:
        conn.execute(
            content_items.update()
            .where(content_items.c.id == item_id)
            .values(status=status.value, updated_at=utcnow(), **values)
        )
