"""Fact extraction from raw homepage HTML and sitemap XML.

Document metadata and main text come from trafilatura. Brand facts that
live in attributes and stylesheets (colors, fonts, logo, contact links)
use regexes. Nothing here raises on odd markup: an extractor that finds
nothing leaves the corresponding fact empty.
"""

from __future__ import annotations

import html as _html
import re
from collections.abc import Iterable
from urllib.parse import unquote, urljoin, urlparse

import trafilatura as _trafilatura

from pagesmith.context.models import (
    ColorPalette,
    ContactInfo,
    HeroContent,
    HomepageSnapshot,
    LanguageInfo,
    LogoCandidates,
    PageMetadata,
    Typography,
)

_BLOCK = re.IGNORECASE | re.DOTALL

_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", _BLOCK)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", _BLOCK)
_NOSCRIPT_RE = re.compile(r"<noscript[^>]*>.*?</noscript>", _BLOCK)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", _BLOCK)
_OG_RES = {
    "og_title": re.compile(r"""property=["']og:title["']\s+content=["']([^"']+)["']""", re.IGNORECASE),
    "og_description": re.compile(
        r"""property=["']og:description["']\s+content=["']([^"']+)["']""", re.IGNORECASE
    ),
}
_FAVICON_RE = re.compile(
    r"""<link\s+[^>]*rel=["'](?:icon|shortcut icon)["'][^>]*href=["']([^"']+)["']""", re.IGNORECASE
)

_PRIMARY_VAR_RE = re.compile(
    r"--(?:primary|brand|main)[-_]?color\s*:\s*(#[0-9A-Fa-f]{3,6}|rgba?\([^)]+\))", re.IGNORECASE
)
_SECONDARY_VAR_RE = re.compile(
    r"--(?:secondary|accent)[-_]?color\s*:\s*(#[0-9A-Fa-f]{3,6}|rgba?\([^)]+\))", re.IGNORECASE
)
_HEX_RE = re.compile(r"#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})\b")
_NEUTRAL_COLORS = frozenset(
    {
        "#FFFFFF", "#FFF", "#000000", "#000", "#EEEEEE", "#EEE", "#F5F5F5",
        "#FAFAFA", "#333333", "#333", "#666666", "#666", "#999999", "#999",
    }
)

_GOOGLE_FONTS_RE = re.compile(r"""fonts\.googleapis\.com/css2?\?family=([^"'&]+)""", re.IGNORECASE)

_LOGO_CLASSES = "logo|brand-logo|navbar-brand"
_LOGO_RES = [
    re.compile(rf'<img[^>]*class="[^"]*(?:{_LOGO_CLASSES})[^"]*"[^>]*src="([^"]+)"', re.IGNORECASE),
    re.compile(rf'<img[^>]*src="([^"]+)"[^>]*class="[^"]*(?:{_LOGO_CLASSES})[^"]*"', re.IGNORECASE),
    re.compile(r'<img[^>]*alt="[^"]*(?:logo|brand)[^"]*"[^>]*src="([^"]+)"', re.IGNORECASE),
    re.compile(r'<img[^>]*src="([^"]+)"[^>]*alt="[^"]*(?:logo|brand)[^"]*"', re.IGNORECASE),
    re.compile(r'<header[^>]*>.*?<img[^>]*src="([^"]+)"', _BLOCK),
    re.compile(r'<nav[^>]*>.*?<img[^>]*src="([^"]+)"', _BLOCK),
]
_MAX_LOGOS = 5

_HERO_CLASSES = "hero|banner|masthead|jumbotron|homepage-hero|main-hero"
_HERO_RES = [
    re.compile(rf'<section[^>]*class="[^"]*(?:{_HERO_CLASSES})[^"]*"[^>]*>(.*?)</section>', _BLOCK),
    re.compile(rf'<div[^>]*class="[^"]*(?:{_HERO_CLASSES})[^"]*"[^>]*>(.*?)</div>', _BLOCK),
    re.compile(r"<main[^>]*>.*?<section[^>]*>(.*?)</section>", _BLOCK),
]
_AFTER_HEADER_RE = re.compile(r"</header>(.{500,2000})", _BLOCK)
_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", _BLOCK)
_SUBHEAD_RES = [
    re.compile(r'<(?:p|h2)[^>]*class="[^"]*(?:sub|desc|tagline)[^"]*"[^>]*>(.*?)</(?:p|h2)>', _BLOCK),
    re.compile(r"<h1[^>]*>.*?</h1>.*?<(?:p|h2)[^>]*>(.*?)</(?:p|h2)>", _BLOCK),
]
_CTA_RE = re.compile(
    r'<(?:a|button)[^>]*class="[^"]*(?:btn|button|cta)[^"]*"[^>]*>(.*?)</(?:a|button)>', _BLOCK
)
_HERO_TEXT_LIMIT = 800

_EMAIL_RE = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+)")
_PHONE_RE = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4,6}")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_IGNORED_EMAIL_HOSTS = ("example.com", "wixpress")
_SOCIAL_RES = {
    "twitter": re.compile(r'href="(https?://(?:www\.)?(?:twitter|x)\.com/[^"]+)"', re.IGNORECASE),
    "linkedin": re.compile(r'href="(https?://(?:www\.)?linkedin\.com/[^"]+)"', re.IGNORECASE),
    "facebook": re.compile(r'href="(https?://(?:www\.)?facebook\.com/[^"]+)"', re.IGNORECASE),
    "instagram": re.compile(r'href="(https?://(?:www\.)?instagram\.com/[^"]+)"', re.IGNORECASE),
    "youtube": re.compile(r'href="(https?://(?:www\.)?youtube\.com/[^"]+)"', re.IGNORECASE),
}
_MAX_CONTACTS = 5

_HTML_LANG_RE = re.compile(r"""<html[^>]*lang=["']([^"']+)["']""", re.IGNORECASE)
_HREFLANG_RE = re.compile(r"""hreflang=["']([^"']+)["']""", re.IGNORECASE)

_BODY_RE = re.compile(r"<body[^>]*>(.*)</body>", _BLOCK)
_FULL_TEXT_LIMIT = 8000

_LOC_RE = re.compile(r"<loc>([^<]+)</loc>", re.IGNORECASE)


def clean_text(markup: str) -> str:
    """Strip tags, scripts and styles; unescape entities; collapse whitespace."""
    text = _SCRIPT_RE.sub("", markup)
    text = _STYLE_RE.sub("", text)
    text = _NOSCRIPT_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    text = _html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def extract_metadata(markup: str) -> PageMetadata:
    """Title, description and share image of a document.

    The ``<title>`` element is kept verbatim when present; trafilatura's
    title (which may come from ``og:title`` or a lone ``<h1>``) is the
    fallback.
    """
    meta = PageMetadata()
    if not markup.strip():
        return meta
    document = _trafilatura.extract_metadata(markup)
    title = _TITLE_RE.search(markup)
    if title:
        meta.title = clean_text(title.group(1)) or None
    if document is not None:
        meta.title = meta.title or document.title or None
        meta.description = document.description or None
        meta.og_image = document.image or None
    for attr, pattern in _OG_RES.items():
        match = pattern.search(markup)
        if match:
            setattr(meta, attr, _html.unescape(match.group(1)))
    favicon = _FAVICON_RE.search(markup)
    if favicon:
        meta.favicon = favicon.group(1)
    return meta


def extract_colors(markup: str) -> ColorPalette:
    palette = ColorPalette()
    primary = _PRIMARY_VAR_RE.search(markup)
    if primary:
        palette.primary = primary.group(1)
    secondary = _SECONDARY_VAR_RE.search(markup)
    if secondary:
        palette.secondary = secondary.group(1)

    hexes = _unique([c.upper() for c in _HEX_RE.findall(markup)])
    brand = [c for c in hexes if c not in _NEUTRAL_COLORS]
    palette.detected = brand[:10]
    if palette.primary is None and brand:
        palette.primary = brand[0]
    if palette.secondary is None and len(brand) > 1:
        palette.secondary = brand[1]
    return palette


def extract_typography(markup: str) -> Typography:
    fonts: list[str] = []
    for match in _GOOGLE_FONTS_RE.finditer(markup):
        families = unquote(match.group(1))
        for family in families.split("|"):
            fonts.append(family.split(":")[0].replace("+", " "))
    fonts = _unique(fonts)
    typography = Typography(google_fonts=fonts)
    if fonts:
        typography.heading = fonts[0]
        typography.body = fonts[1] if len(fonts) > 1 else fonts[0]
    return typography


def extract_logo(markup: str, base_url: str) -> LogoCandidates:
    logos: list[str] = []
    for pattern in _LOGO_RES:
        for match in pattern.finditer(markup):
            src = match.group(1)
            if not src:
                continue
            absolute = src if src.startswith(("http://", "https://")) else urljoin(base_url, src)
            if absolute not in logos:
                logos.append(absolute)
    return LogoCandidates(urls=logos[:_MAX_LOGOS], primary=logos[0] if logos else None)


def extract_hero(markup: str) -> HeroContent:
    hero_html = ""
    for pattern in _HERO_RES:
        match = pattern.search(markup)
        if match:
            hero_html = match.group(1)
            break
    if not hero_html:
        after_header = _AFTER_HEADER_RE.search(markup)
        if after_header:
            hero_html = after_header.group(1)
    if not hero_html:
        return HeroContent()

    hero = HeroContent(full_text=clean_text(hero_html)[:_HERO_TEXT_LIMIT])
    h1 = _H1_RE.search(hero_html)
    if h1:
        hero.headline = clean_text(h1.group(1)) or None
    for pattern in _SUBHEAD_RES:
        match = pattern.search(hero_html)
        if match:
            hero.subheadline = clean_text(match.group(1)) or None
            break
    cta = _CTA_RE.search(hero_html)
    if cta:
        hero.call_to_action = clean_text(cta.group(1)) or None
    return hero


def extract_contact(markup: str) -> ContactInfo:
    emails = [
        e for e in _unique(_EMAIL_RE.findall(markup))
        if not any(host in e for host in _IGNORED_EMAIL_HOSTS)
    ]
    phones = [
        p for p in _unique(m.group(0).strip() for m in _PHONE_RE.finditer(markup))
        if len(p) >= 7 and not _ISO_DATE_RE.match(p)
    ]
    social: dict[str, str] = {}
    for name, pattern in _SOCIAL_RES.items():
        match = pattern.search(markup)
        if match:
            social[name] = match.group(1)
    return ContactInfo(
        emails=emails[:_MAX_CONTACTS], phones=phones[:_MAX_CONTACTS], social=social
    )


def extract_language(markup: str) -> LanguageInfo:
    info = LanguageInfo()
    match = _HTML_LANG_RE.search(markup)
    if match:
        info.primary = match.group(1).split("-")[0].lower()
    for alt in _HREFLANG_RE.findall(markup):
        lang = alt.split("-")[0].lower()
        if lang != info.primary and lang not in info.alternatives:
            info.alternatives.append(lang)
    return info


def extract_full_text(markup: str) -> str:
    """Main text of the page, or the whole visible body when trafilatura finds none."""
    if not markup.strip():
        return ""
    extracted = _trafilatura.extract(
        markup,
        include_comments=False,
        include_tables=True,
        output_format="txt",
    )
    if extracted:
        return _WS_RE.sub(" ", extracted).strip()[:_FULL_TEXT_LIMIT]
    body = _BODY_RE.search(markup)
    return clean_text(body.group(1) if body else markup)[:_FULL_TEXT_LIMIT]


def parse_homepage(markup: str, url: str) -> HomepageSnapshot:
    """Run every extractor over one homepage document."""
    return HomepageSnapshot(
        url=url,
        metadata=extract_metadata(markup),
        colors=extract_colors(markup),
        typography=extract_typography(markup),
        logo=extract_logo(markup, url),
        hero=extract_hero(markup),
        contact=extract_contact(markup),
        language=extract_language(markup),
        full_text=extract_full_text(markup),
    )


def parse_sitemap(xml: str) -> list[str]:
    """Return page URLs listed in a sitemap, skipping nested sitemap indexes."""
    urls: list[str] = []
    for loc in _LOC_RE.findall(xml):
        loc = loc.strip()
        if loc and not loc.endswith(".xml"):
            urls.append(loc)
    return urls


def site_origin(url: str) -> str:
    """Return ``scheme://host[:port]`` for a URL, or raise ValueError."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Not an absolute http(s) URL: {url!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


def brand_name_from_title(title: str | None) -> str | None:
    """Take the leading segment of a ``Brand | Tagline`` style title."""
    if not title:
        return None
    name = title.split("|")[0].split(" - ")[0].strip()
    return name or None
