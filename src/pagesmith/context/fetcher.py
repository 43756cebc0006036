"""Fetch collaborators consumed by context acquisition.

The orchestrator only depends on the :class:`SiteFetcher` protocol;
:class:`HttpSiteFetcher` is the default implementation backed by
``urllib.request`` and the regex extractors.
"""

from __future__ import annotations

import logging
import socket
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pagesmith.config import DEFAULT_USER_AGENT
from pagesmith.context.extractors import parse_homepage, parse_sitemap
from pagesmith.context.models import HomepageSnapshot, SitemapResult
from pagesmith.errors import TransientIOError

logger = logging.getLogger(__name__)

SITEMAP_CANDIDATES = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml")


class SiteFetcher(Protocol):
    """Fetch + parse service returning structured site facts."""

    def fetch_homepage(self, url: str, timeout: float) -> HomepageSnapshot:
        """Fetch and parse a homepage; raise TransientIOError on failure."""
        ...

    def fetch_sitemap(self, origin: str, timeout: float) -> SitemapResult:
        """Try the usual sitemap locations under ``origin`` in turn."""
        ...


class HttpSiteFetcher:
    """SiteFetcher over plain HTTP."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, max_sitemap_urls: int = 500) -> None:
        self.user_agent = user_agent
        self.max_sitemap_urls = max_sitemap_urls

    def _get(self, url: str, timeout: float) -> str:
        request = Request(url, headers={"User-Agent": self.user_agent})
        try:
            with urlopen(request, timeout=timeout) as response:  # noqa: S310
                charset = response.headers.get_content_charset() or "utf-8"
                return response.read().decode(charset, errors="replace")
        except HTTPError as exc:
            raise TransientIOError(f"HTTP {exc.code}: {exc.reason} ({url})") from exc
        except (URLError, socket.timeout, TimeoutError, ConnectionError) as exc:
            raise TransientIOError(f"Failed to fetch {url}: {exc}") from exc

    def fetch_homepage(self, url: str, timeout: float) -> HomepageSnapshot:
        markup = self._get(url, timeout)
        logger.debug("Fetched %d bytes from %s", len(markup), url)
        return parse_homepage(markup, url)

    def fetch_sitemap(self, origin: str, timeout: float) -> SitemapResult:
        for path in SITEMAP_CANDIDATES:
            sitemap_url = f"{origin}{path}"
            try:
                xml = self._get(sitemap_url, timeout)
            except TransientIOError as exc:
                logger.debug("No sitemap at %s: %s", sitemap_url, exc)
                continue
            urls = parse_sitemap(xml)[: self.max_sitemap_urls]
            return SitemapResult(found=True, url=sitemap_url, urls=urls)
        return SitemapResult(found=False)
