"""Section domain: named HTML fragments stored per content item."""

from pagesmith.sections.models import (
    CANONICAL_ORDER,
    ProductCardMetadata,
    Section,
    SectionMetadata,
    SectionType,
    parse_section_type,
    parse_section_types,
)
from pagesmith.sections.store import SectionStore

__all__ = [
    "CANONICAL_ORDER",
    "ProductCardMetadata",
    "Section",
    "SectionMetadata",
    "SectionStore",
    "SectionType",
    "parse_section_type",
    "parse_section_types",
]
