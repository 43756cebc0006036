"""Site context domain models: pure Pydantic v2 data types.

Every fact extracted from a customer's site is stored as a
``SiteContextField`` whose payload is one of the typed models below,
selected by ``SiteContextType``.  Payloads are validated against their
kind's schema before they reach the store.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from pagesmith.errors import ValidationError


class SiteContextType(StrEnum):
    """Kind of site fact; one stored row per owner, scope and kind."""

    HOMEPAGE_SUMMARY = "homepage-summary"
    SITEMAP = "sitemap"
    BRAND_ASSETS = "brand-assets"
    HERO_CONTENT = "hero-content"
    CONTACT_INFO = "contact-info"
    HEADER = "header"
    FOOTER = "footer"


# Kinds written by context acquisition; header and footer are supplied by the owner.
ACQUIRED_CONTEXT_TYPES = frozenset(
    {
        SiteContextType.HOMEPAGE_SUMMARY,
        SiteContextType.SITEMAP,
        SiteContextType.BRAND_ASSETS,
        SiteContextType.HERO_CONTENT,
        SiteContextType.CONTACT_INFO,
    }
)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


class HomepageSummary(_Payload):
    url: str
    title: str | None = None
    description: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    language: str = "en"
    text_excerpt: str = ""


class SitemapPayload(_Payload):
    url: str
    urls: list[str] = Field(default_factory=list)
    found_at: datetime


class BrandAssets(_Payload):
    logo: str | None = None
    logo_urls: list[str] = Field(default_factory=list)
    primary_color: str | None = None
    secondary_color: str | None = None
    detected_colors: list[str] = Field(default_factory=list)
    heading_font: str | None = None
    body_font: str | None = None
    google_fonts: list[str] = Field(default_factory=list)
    brand_name: str | None = None
    meta_description: str | None = None
    og_image: str | None = None
    favicon: str | None = None
    language: str = "en"
    alternative_languages: list[str] = Field(default_factory=list)


class HeroContent(_Payload):
    headline: str | None = None
    subheadline: str | None = None
    call_to_action: str | None = None
    full_text: str = ""


class ContactInfo(_Payload):
    emails: list[str] = Field(default_factory=list)
    phones: list[str] = Field(default_factory=list)
    social: dict[str, str] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.emails or self.phones or self.social)


class SiteChrome(_Payload):
    """Site-wide header or footer markup placed around every assembled page."""

    html: str


SiteContextPayload = HomepageSummary | SitemapPayload | BrandAssets | HeroContent | ContactInfo | SiteChrome

PAYLOAD_MODELS: dict[SiteContextType, type[_Payload]] = {
    SiteContextType.HOMEPAGE_SUMMARY: HomepageSummary,
    SiteContextType.SITEMAP: SitemapPayload,
    SiteContextType.BRAND_ASSETS: BrandAssets,
    SiteContextType.HERO_CONTENT: HeroContent,
    SiteContextType.CONTACT_INFO: ContactInfo,
    SiteContextType.HEADER: SiteChrome,
    SiteContextType.FOOTER: SiteChrome,
}


def parse_context_type(value: str) -> SiteContextType:
    """Resolve a kind name, rejecting anything outside the known set."""
    try:
        return SiteContextType(value)
    except ValueError:
        known = ", ".join(t.value for t in SiteContextType)
        raise ValidationError(
            f"Unknown site context type {value!r} (expected one of: {known})",
            [str(value)],
        ) from None


def validate_payload(
    field_type: SiteContextType | str, payload: BaseModel | dict[str, Any]
) -> SiteContextPayload:
    """Validate a payload against the schema of its kind.

    Accepts either the payload model itself or a plain dict.

    Raises:
        ValidationError: If the kind is unknown or the payload does not fit it.
    """
    kind = parse_context_type(str(field_type))
    model = PAYLOAD_MODELS[kind]
    if isinstance(payload, model):
        return payload  # type: ignore[return-value]
    raw = payload.model_dump() if isinstance(payload, BaseModel) else payload
    try:
        return model.model_validate(raw)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        bad = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise ValidationError(f"Invalid {kind.value} payload: {exc.error_count()} error(s)", bad) from exc


class SiteContextField(BaseModel):
    """One stored site fact."""

    owner_id: str
    scope_id: str | None = None
    type: SiteContextType
    payload: SiteContextPayload
    updated_at: datetime


# ── Extraction results ───────────────────────────────────────────


class PageMetadata(BaseModel):
    title: str | None = None
    description: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image: str | None = None
    favicon: str | None = None


class ColorPalette(BaseModel):
    primary: str | None = None
    secondary: str | None = None
    detected: list[str] = Field(default_factory=list)


class Typography(BaseModel):
    google_fonts: list[str] = Field(default_factory=list)
    heading: str | None = None
    body: str | None = None


class LogoCandidates(BaseModel):
    urls: list[str] = Field(default_factory=list)
    primary: str | None = None


class LanguageInfo(BaseModel):
    primary: str = "en"
    alternatives: list[str] = Field(default_factory=list)


class HomepageSnapshot(BaseModel):
    """Structured facts parsed from one fetched homepage."""

    url: str
    metadata: PageMetadata = Field(default_factory=PageMetadata)
    colors: ColorPalette = Field(default_factory=ColorPalette)
    typography: Typography = Field(default_factory=Typography)
    logo: LogoCandidates = Field(default_factory=LogoCandidates)
    hero: HeroContent = Field(default_factory=HeroContent)
    contact: ContactInfo = Field(default_factory=ContactInfo)
    language: LanguageInfo = Field(default_factory=LanguageInfo)
    full_text: str = ""


class SitemapResult(BaseModel):
    found: bool = False
    url: str | None = None
    urls: list[str] = Field(default_factory=list)


# ── Progress ─────────────────────────────────────────────────────


class PhaseStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


class PhaseResult(BaseModel):
    """Outcome of one acquisition phase."""

    phase: str
    status: PhaseStatus
    message: str
    saved_fields: list[str] = Field(default_factory=list)


class ProgressEvent(BaseModel):
    """One record on the progress stream; never persisted."""

    phase: str
    progress: int = Field(ge=0, le=100)
    message: str
    data: dict[str, Any] | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in ("complete", "error")
