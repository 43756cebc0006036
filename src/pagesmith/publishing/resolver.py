"""Publish conflict resolver: the gate between a generated page and its public URL.

The domain check, the slug-uniqueness check and the status change all run
in one write transaction, so two concurrent publishes to the same address
cannot both succeed.  The partial unique index on published addresses is
the storage-level backstop.
"""

from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from pagesmith.config import PublishConfig
from pagesmith.content.lifecycle import ContentStateMachine, check_transition
from pagesmith.content.models import ContentItem, ContentStatus
from pagesmith.content.store import fetch_item
from pagesmith.db import Database, content_items
from pagesmith.errors import ConflictError, OwnershipError, ValidationError
from pagesmith.publishing.domains import DomainStore, fetch_owned_domain
from pagesmith.publishing.models import PublishResult
from pagesmith.publishing.paths import (
    build_published_url,
    display_path,
    normalize_path,
    validate_slug,
)

logger = logging.getLogger(__name__)


class PublishConflictResolver:
    """Publishes and unpublishes content items on customer domains."""

    def __init__(
        self,
        db: Database,
        config: PublishConfig | None = None,
        lifecycle: ContentStateMachine | None = None,
    ) -> None:
        self._db = db
        self.config = config or PublishConfig()
        self.lifecycle = lifecycle or ContentStateMachine(db)
        self.domains = DomainStore(db)

    def publish(
        self,
        content_item_id: str,
        domain_id: str,
        path: str | None,
        slug: str,
        acting_owner_id: str,
    ) -> PublishResult:
        """Publish a generated item at ``https://{domain}{path}/{slug}``.

        Raises:
            OwnershipError: Domain or item not owned by the actor, or the
                domain is unverified.
            ValidationError: Malformed path or slug, or an unregistered path
                when registered paths are required.
            NotFoundError: Unknown content item.
            StateConflictError: The item is not generated.
            ConflictError: Another published item holds the address.
        """
        normalized = ""
        try:
            with self._db.begin() as conn:
                domain = fetch_owned_domain(conn, domain_id, acting_owner_id)
                if not domain.verified:
                    raise OwnershipError(f"Domain {domain.name!r} must be verified before publishing")
                normalized = normalize_path(path)
                validate_slug(slug)
                if (
                    normalized
                    and self.config.require_registered_path
                    and not self.domains.has_subdirectory(conn, domain_id, normalized)
                ):
                    raise ValidationError(
                        f"Path {normalized} is not a registered subdirectory of {domain.name}",
                        ["path"],
                    )

                item = fetch_item(conn, content_item_id, for_update=True)
                if item.owner_id != acting_owner_id:
                    raise OwnershipError(
                        f"Content item {content_item_id!r} does not belong to {acting_owner_id!r}"
                    )
                check_transition(item, ContentStatus.PUBLISHED)

                holder = self._address_holder(conn, domain.name, normalized, slug, content_item_id)
                if holder is not None:
                    raise ConflictError(f"slug '{slug}' already exists at {display_path(normalized)}")

                self.lifecycle.mark_published(conn, content_item_id, domain.name, normalized, slug)
        except IntegrityError as exc:
            raise ConflictError(f"slug '{slug}' already exists at {display_path(normalized)}") from exc

        url = build_published_url(domain.name, normalized, slug, self.config.url_scheme)
        logger.info("Published content item %s at %s", content_item_id, url)
        return PublishResult(
            success=True,
            published_url=url,
            content_item_id=content_item_id,
            domain=domain.name,
            path=normalized,
            slug=slug,
        )

    def unpublish(self, content_item_id: str, owner_id: str) -> ContentItem:
        return self.lifecycle.unpublish(content_item_id, owner_id)

    @staticmethod
    def _address_holder(conn: Connection, domain: str, path: str, slug: str, exclude_id: str) -> str | None:
        t = content_items
        row = conn.execute(
            sa.select(t.c.id).where(
                t.c.status == ContentStatus.PUBLISHED.value,
                t.c.published_domain == domain,
                t.c.published_path == path,
                t.c.published_slug == slug,
                t.c.id != exclude_id,
            )
        ).fetchone()
        return row[0] if row is not None else None
