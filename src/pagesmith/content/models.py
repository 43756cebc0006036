"""Content item models: pure Pydantic v2 data types.

A content item is one page moving through the lifecycle
planned → ready → generated → published (and back to generated on
unpublish).  The assembled page and the public address live on the item
itself.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class ContentStatus(StrEnum):
    """Lifecycle status of a content item."""

    PLANNED = "planned"
    READY = "ready"
    GENERATED = "generated"
    PUBLISHED = "published"


# Allowed moves: current status -> statuses it may be moved to.
TRANSITIONS: dict[ContentStatus, frozenset[ContentStatus]] = {
    ContentStatus.PLANNED: frozenset({ContentStatus.READY}),
    ContentStatus.READY: frozenset({ContentStatus.GENERATED}),
    ContentStatus.GENERATED: frozenset({ContentStatus.GENERATED, ContentStatus.PUBLISHED}),
    ContentStatus.PUBLISHED: frozenset({ContentStatus.GENERATED}),
}


class ContentItem(BaseModel):
    """One page and its lifecycle state.

    ``assembled_html`` is set exactly when the item is generated or
    published; the ``published_*`` fields are set exactly when it is
    published.  A root publish path is stored as ``""``.
    """

    id: str
    owner_id: str
    scope_id: str | None = None
    title: str = ""
    description: str = ""
    slug: str = ""
    status: ContentStatus = ContentStatus.PLANNED
    assembled_html: str | None = None
    published_domain: str | None = None
    published_path: str | None = None
    published_slug: str | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED
