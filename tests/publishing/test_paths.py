"""Tests for address helpers."""

import pytest

from pagesmith.errors import ValidationError
from pagesmith.publishing.paths import (
    build_published_url,
    clean_domain_name,
    display_path,
    normalize_path,
    validate_slug,
)


class TestNormalizePath:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, ""),
            ("", ""),
            ("/", ""),
            ("docs", "/docs"),
            ("/docs/", "/docs"),
            (" /docs/guides ", "/docs/guides"),
        ],
    )
    def test_normal_forms(self, raw, expected):
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["/docs//guides", "/docs/..", "/a b", "/docs/?x", "/docs\n/x", "docs\n/x"]
    )
    def test_bad_segments(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            normalize_path(raw)
        assert exc_info.value.items == ["path"]

    def test_display(self):
        assert display_path("") == "/"
        assert display_path("/docs") == "/docs"


class TestSlugAndUrl:
    @pytest.mark.parametrize("slug", ["intro", "getting-started-2"])
    def test_valid_slugs(self, slug):
        assert validate_slug(slug) == slug

    @pytest.mark.parametrize("slug", ["Intro", "a--b", "trailing-", "with_underscore", "intro\n"])
    def test_invalid_slugs(self, slug):
        with pytest.raises(ValidationError):
            validate_slug(slug)

    def test_build_url(self):
        assert build_published_url("acme.test", "", "intro") == "https://acme.test/intro"
        assert build_published_url("acme.test", "/docs", "intro", "http") == "http://acme.test/docs/intro"

    def test_clean_domain_name(self):
        assert clean_domain_name(" HTTPS://Acme.Test// ") == "acme.test"

    @pytest.mark.parametrize("name", ["acme\n.test", "acme .test", "acme.test/docs"])
    def test_domain_name_rejects_whitespace_and_paths(self, name):
        with pytest.raises(ValidationError):
            clean_domain_name(name)
