"""Domain registry: customer hosts and their registered path prefixes.

A domain becomes a publish target only after :meth:`DomainStore.verify`
finds its token in DNS.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Any

from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from pagesmith.db import Database, as_utc, domain_subdirectories, domains, utcnow
from pagesmith.errors import ConflictError, OwnershipError, ValidationError
from pagesmith.publishing.models import Domain, Subdirectory
from pagesmith.publishing.paths import clean_domain_name, normalize_path
from pagesmith.publishing.verification import DnsTxtVerifier, VerificationResult

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "pagesmith-verify-"


def fetch_owned_domain(conn: Connection, domain_id: str, owner_id: str) -> Domain:
    """Load a domain the owner holds.

    Unknown ids and foreign domains raise the same error so a caller cannot
    tell which ids exist.

    Raises:
        OwnershipError: No domain with this id belongs to ``owner_id``.
    """
    row = conn.execute(domains.select().where(domains.c.id == domain_id)).fetchone()
    if row is None or row._mapping["owner_id"] != owner_id:
        raise OwnershipError(f"Domain {domain_id!r} not found for owner {owner_id!r}")
    return _row_to_domain(row._mapping)


def _row_to_domain(mapping: Any) -> Domain:
    return Domain(
        id=mapping["id"],
        owner_id=mapping["owner_id"],
        name=mapping["name"],
        verified=bool(mapping["verified"]),
        verification_token=mapping["verification_token"],
        verified_at=as_utc(mapping["verified_at"]),
        created_at=as_utc(mapping["created_at"]),
    )


def _row_to_subdirectory(mapping: Any) -> Subdirectory:
    return Subdirectory(
        id=mapping["id"],
        domain_id=mapping["domain_id"],
        path=mapping["path"],
        created_at=as_utc(mapping["created_at"]),
    )


class DomainStore:
    def __init__(self, db: Database, verifier: DnsTxtVerifier | None = None) -> None:
        self._db = db
        self.verifier = verifier or DnsTxtVerifier()

    def add(self, owner_id: str, name: str) -> Domain:
        """Register a domain, unverified, with a fresh verification token.

        Raises:
            ValidationError: The name is not a bare host name.
            ConflictError: The domain is already registered.
        """
        cleaned = clean_domain_name(name)
        now = utcnow()
        domain = Domain(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=cleaned,
            verified=False,
            verification_token=TOKEN_PREFIX + secrets.token_hex(16),
            created_at=now,
        )
        try:
            with self._db.begin() as conn:
                conn.execute(domains.insert().values(**domain.model_dump()))
        except IntegrityError as exc:
            raise ConflictError(f"Domain {cleaned!r} is already registered") from exc
        logger.info("Registered domain %s for owner %s", cleaned, owner_id)
        return domain

    def get(self, domain_id: str, owner_id: str) -> Domain:
        with self._db.connect() as conn:
            return fetch_owned_domain(conn, domain_id, owner_id)

    def verify(self, domain_id: str, owner_id: str) -> VerificationResult:
        """Check the domain's DNS TXT record and mark it verified on a match.

        A mismatch or missing record leaves the domain unverified.

        Raises:
            OwnershipError: Unknown or foreign domain.
            TransientIOError: The DNS lookup failed.
        """
        domain = self.get(domain_id, owner_id)
        if domain.verified:
            return VerificationResult(domain=domain, verified=True, details="Domain already verified")
        matched, details = self.verifier.check(domain)
        if not matched:
            logger.info("Verification of %s failed: %s", domain.name, details)
            return VerificationResult(domain=domain, verified=False, details=details)
        domain = self.mark_verified(domain_id, owner_id)
        return VerificationResult(domain=domain, verified=True, details=details)

    def mark_verified(self, domain_id: str, owner_id: str) -> Domain:
        """Record a successful verification."""
        with self._db.begin() as conn:
            domain = fetch_owned_domain(conn, domain_id, owner_id)
            if not domain.verified:
                conn.execute(
                    domains.update()
                    .where(domains.c.id == domain_id)
                    .values(verified=True, verified_at=utcnow())
                )
            domain = fetch_owned_domain(conn, domain_id, owner_id)
        logger.info("Domain %s verified", domain.name)
        return domain

    def add_subdirectory(self, domain_id: str, owner_id: str, path: str) -> Subdirectory:
        """Register a path prefix on a verified domain; repeat calls are no-ops.

        Raises:
            OwnershipError: Foreign or unverified domain.
            ValidationError: The path is the root or malformed.
        """
        normalized = normalize_path(path)
        if not normalized:
            raise ValidationError("Subdirectory path must not be the root", ["path"])
        with self._db.begin() as conn:
            domain = fetch_owned_domain(conn, domain_id, owner_id)
            if not domain.verified:
                raise OwnershipError(f"Domain {domain.name!r} must be verified before adding subdirectories")
            self._db.upsert(
                conn,
                domain_subdirectories,
                {"domain_id": domain_id, "path": normalized, "created_at": utcnow()},
                conflict_columns=("domain_id", "path"),
                update_columns=("path",),
            )
            row = conn.execute(
                domain_subdirectories.select().where(
                    domain_subdirectories.c.domain_id == domain_id,
                    domain_subdirectories.c.path == normalized,
                )
            ).fetchone()
        return _row_to_subdirectory(row._mapping)

    def has_subdirectory(self, conn: Connection, domain_id: str, path: str) -> bool:
        row = conn.execute(
            domain_subdirectories.select().where(
                domain_subdirectories.c.domain_id == domain_id,
                domain_subdirectories.c.path == path,
            )
        ).fetchone()
        return row is not None

    def subdirectories(self, domain_id: str, owner_id: str) -> list[Subdirectory]:
        with self._db.connect() as conn:
            fetch_owned_domain(conn, domain_id, owner_id)
            rows = conn.execute(
                domain_subdirectories.select()
                .where(domain_subdirectories.c.domain_id == domain_id)
                .order_by(domain_subdirectories.c.path)
            ).fetchall()
        return [_row_to_subdirectory(row._mapping) for row in rows]

    def list_for_owner(self, owner_id: str) -> list[Domain]:
        with self._db.connect() as conn:
            rows = conn.execute(
                domains.select().where(domains.c.owner_id == owner_id).order_by(domains.c.name)
            ).fetchall()
        return [_row_to_domain(row._mapping) for row in rows]
