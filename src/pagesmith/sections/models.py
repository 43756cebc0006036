"""Section domain models: named HTML fragments of one content item."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from pagesmith.errors import ValidationError


class SectionType(StrEnum):
    """Kind of page fragment."""

    HERO = "hero"
    TOC = "toc"
    VERDICT = "verdict"
    SCREENSHOTS = "screenshots"
    COMPARISON = "comparison"
    PRICING = "pricing"
    PROS_CONS = "pros_cons"
    USE_CASES = "use_cases"
    PRODUCT_CARD = "product_card"
    FAQ = "faq"
    CTA = "cta"
    CUSTOM = "custom"


# Position of each type on the assembled page.
CANONICAL_ORDER: dict[SectionType, int] = {kind: index for index, kind in enumerate(SectionType)}


class SectionMetadata(BaseModel):
    """Free-form metadata attached to a section."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    position: int = Field(default=0, ge=0)


class ProductCardMetadata(SectionMetadata):
    """Metadata for one product in a listicle."""

    product_name: str = Field(min_length=1)
    product_url: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)


def parse_section_type(value: str) -> SectionType:
    """Resolve a section type name, rejecting unknown names."""
    try:
        return SectionType(value)
    except ValueError:
        known = ", ".join(t.value for t in SectionType)
        raise ValidationError(
            f"Unknown section type {value!r} (expected one of: {known})",
            [str(value)],
        ) from None


def parse_section_types(values: list[str] | tuple[str, ...]) -> list[SectionType]:
    """Resolve a list of names, reporting every unknown one at once."""
    known = {t.value for t in SectionType}
    unknown = [str(value) for value in values if value not in known]
    if unknown:
        raise ValidationError(f"Unknown section type(s): {', '.join(unknown)}", unknown)
    return [SectionType(value) for value in values]


def validate_metadata(
    section_type: SectionType, metadata: SectionMetadata | dict[str, Any] | None
) -> SectionMetadata:
    """Validate metadata against the schema for ``section_type``."""
    model = ProductCardMetadata if section_type == SectionType.PRODUCT_CARD else SectionMetadata
    if isinstance(metadata, model):
        return metadata
    raw = metadata.model_dump() if isinstance(metadata, BaseModel) else (metadata or {})
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        bad = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
        raise ValidationError(
            f"Invalid metadata for {section_type.value} section: {', '.join(bad)}", bad
        ) from exc


class Section(BaseModel):
    """One stored fragment, unique per (content_item_id, section_id)."""

    content_item_id: str
    section_id: str
    section_type: SectionType
    order_key: int
    html: str
    metadata: ProductCardMetadata | SectionMetadata = Field(default_factory=SectionMetadata)
    updated_at: datetime

    @property
    def position(self) -> int:
        return self.metadata.position

    @property
    def sort_key(self) -> tuple[int, int, str]:
        return (self.order_key, self.position, self.section_id)
