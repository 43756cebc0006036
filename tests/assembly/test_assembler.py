"""Tests for PageAssembler: validation gate, ordering and the generated write."""

import pytest

from pagesmith.assembly.assembler import AssemblyResult, PageAssembler, merge_sections
from pagesmith.assembly.envelope import PageMeta
from pagesmith.config import AssemblyConfig, RecommendedPolicy
from pagesmith.content.lifecycle import ContentStateMachine
from pagesmith.content.models import ContentItem, ContentStatus
from pagesmith.context.models import BrandAssets, SiteChrome
from pagesmith.context.store import SiteContextStore
from pagesmith.db import Database
from pagesmith.errors import NotFoundError, StateConflictError, ValidationError
from pagesmith.sections.store import SectionStore

REQUIRED = ("hero", "faq")
RECOMMENDED = ("toc",)


def _ready_item(lifecycle: ContentStateMachine, slug: str = "acme-vs-rivals") -> ContentItem:
    item = lifecycle.create("owner-1", title="Acme vs Rivals", slug=slug)
    return lifecycle.mark_ready(item.id)


def _add_basic_sections(sections: SectionStore, item_id: str, reverse: bool = False) -> None:
    rows = [
        ("hero", "hero", "<header>Hero</header>"),
        ("faq", "faq", "<section>FAQ</section>"),
        ("toc", "toc", "<nav>TOC</nav>"),
    ]
    for section_id, section_type, html in reversed(rows) if reverse else rows:
        sections.upsert(item_id, section_id, section_type, html)


@pytest.fixture
def lifecycle(db: Database) -> ContentStateMachine:
    return ContentStateMachine(db)


@pytest.fixture
def sections(db: Database) -> SectionStore:
    return SectionStore(db)


class TestSuccessfulAssembly:
    def test_writes_page_and_marks_generated(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)

        result = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED)

        assert result.success
        assert result.missing_required == []
        stored = lifecycle.items.require(item.id)
        assert stored.status == ContentStatus.GENERATED
        assert stored.assembled_html == result.html
        assert result.html.index("Hero") < result.html.index("TOC") < result.html.index("FAQ")
        assert "<title>Acme vs Rivals</title>" in result.html

    def test_output_ignores_upsert_order(self, db, lifecycle, sections):
        first = _ready_item(lifecycle, "first")
        second = _ready_item(lifecycle, "second")
        _add_basic_sections(sections, first.id)
        _add_basic_sections(sections, second.id, reverse=True)

        assembler = PageAssembler(db, lifecycle=lifecycle)
        page = PageMeta(title="Same")
        html_a = assembler.assemble(first.id, REQUIRED, RECOMMENDED, page=page).html
        html_b = assembler.assemble(second.id, REQUIRED, RECOMMENDED, page=page).html
        assert html_a == html_b

    def test_replaced_section_appears_once(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        sections.upsert(item.id, "hero", "hero", "<header>Second hero</header>")

        html = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html
        assert html.count("Second hero") == 1
        assert "<header>Hero</header>" not in html

    def test_reassembly_of_generated_item(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        assembler = PageAssembler(db, lifecycle=lifecycle)
        assembler.assemble(item.id, REQUIRED, RECOMMENDED)

        sections.upsert(item.id, "faq", "faq", "<section>New FAQ</section>")
        result = assembler.assemble(item.id, REQUIRED, RECOMMENDED)
        assert result.success
        assert "New FAQ" in lifecycle.items.require(item.id).assembled_html

    def test_product_cards_are_grouped(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        for position, name in ((2, "Beta"), (1, "Alpha")):
            sections.upsert(
                item.id,
                f"product-{name.lower()}",
                "product_card",
                f"<article>{name}</article>",
                {"product_name": name, "position": position},
            )

        html = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html
        assert html.count('id="products-list"') == 1
        assert html.index("Alpha") < html.index("Beta")
        assert html.index("products-list") < html.index("<article>Alpha")

    def test_brand_color_from_site_context(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        SiteContextStore(db).upsert(
            "owner-1", None, "brand-assets", BrandAssets(primary_color="#FF5500", brand_name="Acme")
        )

        html = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html
        assert "--brand-color: #ff5500;" in html
        assert '"name": "Acme"' in html

    def test_default_brand_color(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        config = AssemblyConfig(default_brand_color="#123456")

        html = PageAssembler(db, config, lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html
        assert "--brand-color: #123456;" in html


class TestSiteChrome:
    HEADER = '<div id="site-nav">Acme nav</div>'
    FOOTER = '<div id="site-footer">Acme footer</div>'

    def _store_chrome(self, db: Database) -> None:
        contexts = SiteContextStore(db)
        contexts.upsert("owner-1", None, "header", SiteChrome(html=f"  {self.HEADER}\n"))
        contexts.upsert("owner-1", None, "footer", {"html": self.FOOTER})

    def test_header_and_footer_wrap_main(self, db, lifecycle, sections):
        self._store_chrome(db)
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)

        html = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html

        assert html.count(self.HEADER) == 1
        assert html.count(self.FOOTER) == 1
        body = html.index("<body")
        assert body < html.index(self.HEADER) < html.index("<main>")
        assert html.index("</main>") < html.index(self.FOOTER) < html.index('id="scrollTop"')

    def test_output_with_chrome_ignores_upsert_order(self, db, lifecycle, sections):
        self._store_chrome(db)
        first = _ready_item(lifecycle, "first")
        second = _ready_item(lifecycle, "second")
        _add_basic_sections(sections, first.id)
        _add_basic_sections(sections, second.id, reverse=True)

        assembler = PageAssembler(db, lifecycle=lifecycle)
        page = PageMeta(title="Same")
        html_a = assembler.assemble(first.id, REQUIRED, RECOMMENDED, page=page).html
        html_b = assembler.assemble(second.id, REQUIRED, RECOMMENDED, page=page).html
        assert html_a == html_b
        assert self.HEADER in html_a

    def test_other_scope_chrome_not_used(self, db, lifecycle, sections):
        SiteContextStore(db).upsert("owner-1", "proj-2", "header", SiteChrome(html=self.HEADER))
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)

        html = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED).html
        assert self.HEADER not in html


class TestValidationGate:
    def test_missing_required_writes_nothing(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        sections.upsert(item.id, "hero", "hero", "<header>Hero</header>")

        result = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED)

        assert not result.success
        assert result.html is None
        assert result.missing_required == ["faq"]
        assert result.missing_recommended == ["toc"]
        stored = lifecycle.items.require(item.id)
        assert stored.status == ContentStatus.READY
        assert stored.assembled_html is None

    def test_failed_reassembly_keeps_previous_page(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        _add_basic_sections(sections, item.id)
        assembler = PageAssembler(db, lifecycle=lifecycle)
        first = assembler.assemble(item.id, REQUIRED, RECOMMENDED)

        sections.clear(item.id)
        result = assembler.assemble(item.id, REQUIRED, RECOMMENDED)
        assert not result.success
        assert lifecycle.items.require(item.id).assembled_html == first.html

    def test_advisory_recommended(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        sections.upsert(item.id, "hero", "hero", "<header>Hero</header>")
        sections.upsert(item.id, "faq", "faq", "<section>FAQ</section>")

        result = PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED)
        assert result.success
        assert result.missing_recommended == ["toc"]

    def test_strict_recommended(self, db, lifecycle, sections):
        item = _ready_item(lifecycle)
        sections.upsert(item.id, "hero", "hero", "<header>Hero</header>")
        sections.upsert(item.id, "faq", "faq", "<section>FAQ</section>")
        config = AssemblyConfig(recommended_policy=RecommendedPolicy.STRICT)

        result = PageAssembler(db, config, lifecycle).assemble(item.id, REQUIRED, RECOMMENDED)
        assert not result.success
        assert result.missing_required == []
        assert result.missing_recommended == ["toc"]
        assert lifecycle.items.require(item.id).status == ContentStatus.READY

    def test_unknown_type_rejected(self, db, lifecycle):
        item = _ready_item(lifecycle)
        with pytest.raises(ValidationError) as exc_info:
            PageAssembler(db, lifecycle=lifecycle).assemble(item.id, ("hero", "footer"), ())
        assert exc_info.value.items == ["footer"]

    def test_planned_item_conflicts(self, db, lifecycle, sections):
        item = lifecycle.create("owner-1", title="Draft", slug="draft")
        _add_basic_sections(sections, item.id)
        with pytest.raises(StateConflictError) as exc_info:
            PageAssembler(db, lifecycle=lifecycle).assemble(item.id, REQUIRED, RECOMMENDED)
        assert exc_info.value.current == "planned"

    def test_unknown_item(self, db, lifecycle):
        with pytest.raises(NotFoundError):
            PageAssembler(db, lifecycle=lifecycle).assemble("missing", REQUIRED, RECOMMENDED)


class TestResultMessage:
    def test_lists_missing_sections(self):
        result = AssemblyResult(success=False, missing_required=["faq", "cta"])
        assert result.message == "Cannot assemble page: missing required sections: faq, cta"

    def test_merge_of_nothing(self):
        assert merge_sections([]) == ""
