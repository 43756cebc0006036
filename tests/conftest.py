"""Shared fixtures: a throwaway SQLite database and a scripted site fetcher."""

from __future__ import annotations

import time
from collections.abc import Iterator
from pathlib import Path

import pytest

from pagesmith.context.models import (
    ColorPalette,
    ContactInfo,
    HeroContent,
    HomepageSnapshot,
    LanguageInfo,
    LogoCandidates,
    PageMetadata,
    SitemapResult,
    Typography,
)
from pagesmith.db import Database
from pagesmith.errors import TransientIOError


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    database = Database(f"sqlite:///{tmp_path / 'pagesmith.db'}")
    database.startup()
    yield database
    database.shutdown()


def make_snapshot(url: str = "https://acme.test/", **overrides: object) -> HomepageSnapshot:
    """A homepage snapshot with every extractor populated."""
    values: dict[str, object] = {
        "url": url,
        "metadata": PageMetadata(
            title="Acme Analytics | Product analytics for teams",
            description="Understand your users.",
            og_title="Acme Analytics",
            og_image="https://acme.test/og.png",
            favicon="https://acme.test/favicon.ico",
        ),
        "colors": ColorPalette(primary="#ff5500", secondary="#222222", detected=["#ff5500", "#222222"]),
        "typography": Typography(google_fonts=["Inter"], heading="Inter", body="Inter"),
        "logo": LogoCandidates(urls=["https://acme.test/logo.svg"], primary="https://acme.test/logo.svg"),
        "hero": HeroContent(
            headline="Analytics your whole team can use",
            subheadline="Answers in seconds.",
            call_to_action="Start free",
            full_text="Analytics your whole team can use. Answers in seconds.",
        ),
        "contact": ContactInfo(emails=["hello@acme.test"], social={"twitter": "https://twitter.com/acme"}),
        "language": LanguageInfo(primary="en", alternatives=["de"]),
        "full_text": "Acme Analytics helps product teams understand users.",
    }
    values.update(overrides)
    return HomepageSnapshot(**values)  # type: ignore[arg-type]


class FakeFetcher:
    """SiteFetcher double returning canned results or raising on demand."""

    def __init__(
        self,
        snapshot: HomepageSnapshot | None = None,
        sitemap: SitemapResult | None = None,
        homepage_error: Exception | None = None,
        sitemap_error: Exception | None = None,
        homepage_delay: float = 0.0,
    ) -> None:
        self.snapshot = snapshot or make_snapshot()
        self.sitemap = sitemap or SitemapResult(
            found=True,
            url="https://acme.test/sitemap.xml",
            urls=["https://acme.test/", "https://acme.test/pricing"],
        )
        self.homepage_error = homepage_error
        self.sitemap_error = sitemap_error
        self.homepage_delay = homepage_delay
        self.calls: list[str] = []

    def fetch_homepage(self, url: str, timeout: float) -> HomepageSnapshot:
        self.calls.append("homepage")
        if self.homepage_delay:
            time.sleep(self.homepage_delay)
        if self.homepage_error is not None:
            raise self.homepage_error
        return self.snapshot.model_copy(update={"url": url})

    def fetch_sitemap(self, origin: str, timeout: float) -> SitemapResult:
        self.calls.append("sitemap")
        if self.sitemap_error is not None:
            raise self.sitemap_error
        return self.sitemap


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def failing_fetcher() -> FakeFetcher:
    return FakeFetcher(homepage_error=TransientIOError("HTTP 503: Service Unavailable"))


@pytest.fixture
def fetcher_factory() -> type[FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def snapshot_factory():
    return make_snapshot
