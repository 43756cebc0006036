"""Site context store: one upserted row per (owner, scope, kind)."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from pagesmith.context.models import (
    SiteContextField,
    SiteContextType,
    parse_context_type,
    validate_payload,
)
from pagesmith.db import Database, as_utc, site_contexts, utcnow

logger = logging.getLogger(__name__)

# Alias to avoid shadowing by SiteContextStore.list method
_list = list


def _scope_key(scope_id: str | None) -> str:
    return scope_id or ""


class SiteContextStore:
    """Per-field atomic upserts of site facts."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def upsert(
        self,
        owner_id: str,
        scope_id: str | None,
        field_type: SiteContextType | str,
        payload: BaseModel | dict[str, Any],
    ) -> SiteContextField:
        """Insert or replace one field; last write wins.

        Raises:
            ValidationError: If the kind is unknown or the payload does not
                match the kind's schema.
        """
        kind = parse_context_type(str(field_type))
        validated = validate_payload(kind, payload)
        now = utcnow()
        with self._db.begin() as conn:
            self._db.upsert(
                conn,
                site_contexts,
                {
                    "owner_id": owner_id,
                    "scope_id": _scope_key(scope_id),
                    "type": kind.value,
                    "payload": validated.model_dump(mode="json"),
                    "updated_at": now,
                },
                conflict_columns=("owner_id", "scope_id", "type"),
                update_columns=("payload", "updated_at"),
            )
        logger.debug("Saved %s for owner %s (scope %s)", kind.value, owner_id, scope_id)
        return SiteContextField(
            owner_id=owner_id,
            scope_id=scope_id,
            type=kind,
            payload=validated,
            updated_at=now,
        )

    def get(
        self, owner_id: str, scope_id: str | None, field_type: SiteContextType | str
    ) -> SiteContextField | None:
        """Return one field, or None if it has not been acquired."""
        kind = parse_context_type(str(field_type))
        with self._db.connect() as conn:
            row = conn.execute(
                site_contexts.select().where(
                    site_contexts.c.owner_id == owner_id,
                    site_contexts.c.scope_id == _scope_key(scope_id),
                    site_contexts.c.type == kind.value,
                )
            ).fetchone()
        return self._row_to_field(row._mapping) if row is not None else None

    def list(self, owner_id: str, scope_id: str | None) -> _list[SiteContextField]:
        """Return every acquired field for an owner and scope, ordered by kind."""
        with self._db.connect() as conn:
            rows = conn.execute(
                site_contexts.select()
                .where(
                    site_contexts.c.owner_id == owner_id,
                    site_contexts.c.scope_id == _scope_key(scope_id),
                )
                .order_by(site_contexts.c.type)
            ).fetchall()
        return [self._row_to_field(row._mapping) for row in rows]

    @staticmethod
    def _row_to_field(mapping: Any) -> SiteContextField:
        kind = SiteContextType(mapping["type"])
        return SiteContextField(
            owner_id=mapping["owner_id"],
            scope_id=mapping["scope_id"] or None,
            type=kind,
            payload=validate_payload(kind, mapping["payload"]),
            updated_at=as_utc(mapping["updated_at"]),
        )
