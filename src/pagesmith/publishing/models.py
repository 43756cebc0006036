"""Publishing domain models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Domain(BaseModel):
    """A customer-owned host that pages can be published to."""

    id: str
    owner_id: str
    name: str
    verified: bool = False
    verification_token: str
    verified_at: datetime | None = None
    created_at: datetime


class Subdirectory(BaseModel):
    """A registered path prefix on a domain, e.g. ``/blog``."""

    id: int
    domain_id: str
    path: str
    created_at: datetime


class PublishResult(BaseModel):
    success: bool
    published_url: str
    content_item_id: str
    domain: str
    path: str
    slug: str
