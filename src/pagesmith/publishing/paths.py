"""Address helpers: domain names, path prefixes, slugs and public URLs."""

from __future__ import annotations

import re

from pagesmith.errors import ValidationError

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._~-]+$")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)


def clean_domain_name(name: str) -> str:
    """Strip scheme and trailing slashes and lower-case a domain name.

    Raises:
        ValidationError: If nothing usable is left.
    """
    cleaned = _SCHEME_RE.sub("", name.strip()).rstrip("/").lower()
    if not cleaned or "/" in cleaned or any(ch.isspace() for ch in cleaned):
        raise ValidationError(f"Invalid domain name {name!r}", ["name"])
    return cleaned


def normalize_path(path: str | None) -> str:
    """Return ``/a/b`` for any spelling of a path prefix; the root is ``""``.

    Raises:
        ValidationError: A segment is empty, ``..``, or uses characters
            outside ``[A-Za-z0-9._~-]``.
    """
    trimmed = (path or "").strip().strip("/")
    if not trimmed:
        return ""
    segments = trimmed.split("/")
    bad = [seg for seg in segments if not seg or seg in (".", "..") or not _SEGMENT_RE.fullmatch(seg)]
    if bad:
        listed = ", ".join(repr(s) for s in bad)
        raise ValidationError(f"Invalid path {path!r}: bad segment(s) {listed}", ["path"])
    return "/" + "/".join(segments)


def display_path(path: str) -> str:
    return path or "/"


def validate_slug(slug: str) -> str:
    """Raises ValidationError unless ``slug`` is lower-case words joined by hyphens."""
    if not SLUG_RE.fullmatch(slug or ""):
        raise ValidationError(
            f"Invalid slug {slug!r}: use lower-case letters, digits and single hyphens",
            ["slug"],
        )
    return slug


def build_published_url(domain: str, path: str, slug: str, scheme: str = "https") -> str:
    return f"{scheme}://{domain}{path}/{slug}"
