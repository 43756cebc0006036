"""Page assembler: validation-gated merge of stored sections into one page.

Validation happens before any markup is produced, and the finished page
is written together with the ``ready → generated`` transition in a single
transaction.  The output depends only on the stored section types and
content, never on the order in which they were upserted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import BaseModel, Field

from pagesmith.assembly.envelope import PageMeta, normalize_hex, products_list, render_page
from pagesmith.config import AssemblyConfig, RecommendedPolicy
from pagesmith.content.lifecycle import ContentStateMachine
from pagesmith.content.models import ContentItem, ContentStatus
from pagesmith.content.store import fetch_item
from pagesmith.context.models import BrandAssets, SiteChrome, SiteContextType
from pagesmith.context.store import SiteContextStore
from pagesmith.db import Database
from pagesmith.errors import StateConflictError
from pagesmith.sections.models import Section, SectionType, parse_section_types
from pagesmith.sections.store import SectionStore

logger = logging.getLogger(__name__)

ASSEMBLABLE = (ContentStatus.READY, ContentStatus.GENERATED)

# Defaults for a comparison ("alternative") page.
DEFAULT_REQUIRED = (
    SectionType.HERO,
    SectionType.VERDICT,
    SectionType.COMPARISON,
    SectionType.FAQ,
    SectionType.CTA,
)
DEFAULT_RECOMMENDED = (
    SectionType.TOC,
    SectionType.PRICING,
    SectionType.PROS_CONS,
    SectionType.USE_CASES,
)


class AssemblyResult(BaseModel):
    """Outcome of one assemble call."""

    success: bool
    html: str | None = None
    missing_required: list[str] = Field(default_factory=list)
    missing_recommended: list[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        if self.success:
            return f"Assembled page ({len(self.html or '')} chars)"
        parts = []
        if self.missing_required:
            parts.append(f"missing required sections: {', '.join(self.missing_required)}")
        if self.missing_recommended:
            parts.append(f"missing recommended sections: {', '.join(self.missing_recommended)}")
        return "Cannot assemble page: " + "; ".join(parts)


@dataclass
class _SiteContexts:
    brand: BrandAssets | None = None
    header: str | None = None
    footer: str | None = None


def _missing(wanted: Iterable[SectionType], present: set[SectionType]) -> list[str]:
    missing: list[str] = []
    for section_type in wanted:
        if section_type not in present and section_type.value not in missing:
            missing.append(section_type.value)
    return missing


def merge_sections(sections: list[Section]) -> str:
    """Join section markup in canonical order, grouping runs of product cards."""
    blocks: list[str] = []
    cards: list[str] = []
    for section in sorted(sections, key=lambda s: s.sort_key):
        if section.section_type == SectionType.PRODUCT_CARD:
            cards.append(section.html)
            continue
        if cards:
            blocks.append(products_list(cards))
            cards = []
        blocks.append(section.html)
    if cards:
        blocks.append(products_list(cards))
    return "\n\n".join(blocks)


class PageAssembler:
    """Builds and stores the final page of a content item."""

    def __init__(
        self,
        db: Database,
        config: AssemblyConfig | None = None,
        lifecycle: ContentStateMachine | None = None,
    ) -> None:
        self._db = db
        self.config = config or AssemblyConfig()
        self.lifecycle = lifecycle or ContentStateMachine(db)
        self.contexts = SiteContextStore(db)

    def assemble(
        self,
        content_item_id: str,
        required_types: Iterable[str] = DEFAULT_REQUIRED,
        recommended_types: Iterable[str] = DEFAULT_RECOMMENDED,
        *,
        page: PageMeta | None = None,
        page_type: str | None = None,
    ) -> AssemblyResult:
        """Validate the stored sections and, if complete, write the page.

        Returns an unsuccessful result, without writing, when required
        sections (or recommended ones under the strict policy) are missing.

        Raises:
            ValidationError: A requested type name is unknown.
            NotFoundError: Unknown content item.
            StateConflictError: The item is neither ready nor generated.
        """
        required = parse_section_types(tuple(str(t) for t in required_types))
        recommended = parse_section_types(tuple(str(t) for t in recommended_types))
        kind = page_type or self.config.page_type

        site = self._site_contexts(self.lifecycle.items.require(content_item_id))
        brand = site.brand

        with self._db.begin() as conn:
            item = fetch_item(conn, content_item_id, for_update=True)
            if item.status not in ASSEMBLABLE:
                raise StateConflictError(item.status.value, ContentStatus.GENERATED.value, item.id)

            sections = SectionStore.list_on(conn, content_item_id)
            present = {section.section_type for section in sections}
            missing_required = _missing(required, present)
            missing_recommended = _missing(recommended, present)
            strict = self.config.recommended_policy == RecommendedPolicy.STRICT

            if missing_required or (strict and missing_recommended):
                result = AssemblyResult(
                    success=False,
                    missing_required=missing_required,
                    missing_recommended=missing_recommended,
                )
                logger.warning("Content item %s: %s", content_item_id, result.message)
                return result
            if missing_recommended:
                logger.warning(
                    "Content item %s is missing recommended sections: %s",
                    content_item_id,
                    ", ".join(missing_recommended),
                )

            meta = page or self._page_meta(item, brand)
            color = normalize_hex(brand.primary_color if brand else None)
            color = color or normalize_hex(self.config.default_brand_color) or "#0ea5e9"
            html = render_page(merge_sections(sections), meta, color, kind, site.header, site.footer)
            self.lifecycle.mark_generated(conn, content_item_id, html)

        logger.info(
            "Assembled content item %s from %d sections (%d chars)",
            content_item_id,
            len(sections),
            len(html),
        )
        return AssemblyResult(success=True, html=html, missing_recommended=missing_recommended)

    def _site_contexts(self, item: ContentItem) -> _SiteContexts:
        """Brand assets plus the owner's header and footer, in one read."""
        site = _SiteContexts()
        for field in self.contexts.list(item.owner_id, item.scope_id):
            payload = field.payload
            if field.type == SiteContextType.BRAND_ASSETS and isinstance(payload, BrandAssets):
                site.brand = payload
            elif field.type == SiteContextType.HEADER and isinstance(payload, SiteChrome):
                site.header = payload.html
            elif field.type == SiteContextType.FOOTER and isinstance(payload, SiteChrome):
                site.footer = payload.html
        return site

    @staticmethod
    def _page_meta(item: ContentItem, brand: BrandAssets | None) -> PageMeta:
        return PageMeta(
            title=item.title or item.slug,
            description=item.description,
            brand_name=brand.brand_name if brand else None,
            language=brand.language if brand else "en",
        )
