"""Process-wide database handle built on SQLAlchemy Core.

One ``Database`` owns the engine (and therefore the connection pool) for
the whole process.  It is created once, started explicitly, injected into
every store, and disposed on shutdown.

Tables:
- ``site_contexts``: one row per (owner_id, scope_id, type)
- ``content_items``: lifecycle rows, never deleted here
- ``content_item_sections``: one row per (content_item_id, section_id)
- ``domains`` / ``domain_subdirectories``: publish targets

On SQLite every transaction opened through :meth:`Database.begin` starts
with ``BEGIN IMMEDIATE`` so validate-then-write and check-then-act sequences
hold the write lock from their first read.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine

from pagesmith.config import DatabaseConfig

logger = logging.getLogger(__name__)

metadata = MetaData()

site_contexts = Table(
    "site_contexts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String(64), nullable=False),
    # NULL scope is stored as "" so the unique constraint covers it.
    Column("scope_id", String(64), nullable=False, server_default=""),
    Column("type", String(32), nullable=False),
    Column("payload", JSON, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("owner_id", "scope_id", "type", name="uq_site_contexts_field"),
)

content_items = Table(
    "content_items",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), nullable=False),
    Column("scope_id", String(64), nullable=False, server_default=""),
    Column("title", Text, nullable=False, server_default=""),
    Column("description", Text, nullable=False, server_default=""),
    Column("slug", String(200), nullable=False, server_default=""),
    Column("status", String(16), nullable=False),
    Column("assembled_html", Text, nullable=True),
    Column("published_domain", String(255), nullable=True),
    Column("published_path", String(255), nullable=True),
    Column("published_slug", String(200), nullable=True),
    Column("published_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index(
        "uq_content_items_published_address",
        "published_domain",
        "published_path",
        "published_slug",
        unique=True,
        sqlite_where=sa.text("status = 'published'"),
        postgresql_where=sa.text("status = 'published'"),
    ),
)

content_item_sections = Table(
    "content_item_sections",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("content_item_id", String(64), nullable=False, index=True),
    Column("section_id", String(200), nullable=False),
    Column("section_type", String(32), nullable=False),
    Column("order_key", Integer, nullable=False),
    Column("position", Integer, nullable=False, server_default="0"),
    Column("html", Text, nullable=False),
    Column("metadata_json", JSON, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("content_item_id", "section_id", name="uq_sections_item_section"),
)

domains = Table(
    "domains",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("verified", Boolean, nullable=False, server_default=sa.false()),
    Column("verification_token", String(128), nullable=False),
    Column("verified_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

domain_subdirectories = Table(
    "domain_subdirectories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("domain_id", String(64), ForeignKey("domains.id"), nullable=False),
    Column("path", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("domain_id", "path", name="uq_subdirectories_domain_path"),
)


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands datetimes back naive; pin them to UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


_IMMEDIATE_OPTION = "pagesmith_immediate"


def _enable_immediate_transactions(engine: Engine) -> None:
    """Make pysqlite defer to SQLAlchemy for BEGIN.

    Connections opened by :meth:`Database.begin` carry the
    ``pagesmith_immediate`` execution option and take the write lock up
    front; plain reads start a deferred transaction.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        if conn.get_execution_options().get(_IMMEDIATE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class Database:
    """Owns the engine and connection pool for the whole process.

    Call :meth:`startup` once before use and :meth:`shutdown` when the
    process stops.  Also usable as a context manager.
    """

    def __init__(self, url: str, *, echo: bool = False, pool_size: int = 5) -> None:
        self.url = url
        self._echo = echo
        self._pool_size = pool_size
        self._engine: Engine | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        return cls(config.url, echo=config.echo, pool_size=config.pool_size)

    # ── Lifecycle ────────────────────────────────────────────────

    def startup(self) -> None:
        """Create the engine and ensure all tables exist."""
        if self._engine is not None:
            return
        kwargs: dict[str, Any] = {"echo": self._echo}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        else:
            kwargs["pool_size"] = self._pool_size
            kwargs["pool_pre_ping"] = True
        engine = create_engine(self.url, **kwargs)
        if engine.dialect.name == "sqlite":
            _enable_immediate_transactions(engine)
        metadata.create_all(engine)
        self._engine = engine
        logger.info("Database started (%s)", engine.url.render_as_string(hide_password=True))

    def shutdown(self) -> None:
        """Dispose of the connection pool."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("Database shut down")

    @property
    def started(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database.startup() has not been called")
        return self._engine

    def __enter__(self) -> Database:
        self.startup()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    # ── Connections ──────────────────────────────────────────────

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Open a write transaction; commits on success, rolls back on error."""
        with self.engine.connect() as conn:
            conn.execution_options(**{_IMMEDIATE_OPTION: True})
            with conn.begin():
                yield conn

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Open a read-only connection."""
        with self.engine.connect() as conn:
            yield conn

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def upsert(
        conn: Connection,
        table: Table,
        values: dict[str, Any],
        *,
        conflict_columns: Iterable[str],
        update_columns: Iterable[str],
    ) -> None:
        """Insert ``values`` or update ``update_columns`` on a key conflict."""
        dialect = conn.dialect.name
        if dialect == "sqlite":
            stmt = sqlite.insert(table).values(**values)
        elif dialect == "postgresql":
            stmt = postgresql.insert(table).values(**values)
        else:
            raise RuntimeError(f"Upsert is not supported on dialect {dialect!r}")
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={col: stmt.excluded[col] for col in update_columns},
        )
        conn.execute(stmt)
