"""Tests for the homepage and sitemap extractors."""

from unittest.mock import MagicMock, patch

import pytest

from pagesmith.context.extractors import (
    brand_name_from_title,
    clean_text,
    extract_colors,
    extract_contact,
    extract_full_text,
    extract_hero,
    extract_language,
    extract_logo,
    extract_metadata,
    extract_typography,
    parse_homepage,
    parse_sitemap,
    site_origin,
)

HOMEPAGE = """<!DOCTYPE html>
<html lang="en-US">
<head>
  <title>Acme Analytics | Product analytics</title>
  <meta name="description" content="Understand your users &amp; grow.">
  <meta property="og:title" content="Acme Analytics">
  <meta property="og:image" content="https://acme.test/og.png">
  <link rel="icon" href="/favicon.ico">
  <link rel="alternate" hreflang="de" href="https://acme.test/de">
  <link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;700" rel="stylesheet">
  <style>:root { --primary-color: #ff5500; } .x { color: #ffffff; }</style>
</head>
<body>
  <header><img class="site-logo" src="/img/logo.svg"></header>
  <section class="hero">
    <h1>Analytics your <em>whole</em> team can use</h1>
    <p class="subtitle">Answers in seconds.</p>
    <a class="btn btn-primary" href="/signup">Start free</a>
  </section>
  <footer>
    Contact: hello@acme.test or +1 555 123 4567
    <a href="https://twitter.com/acme">Twitter</a>
    <a href="https://www.linkedin.com/company/acme">LinkedIn</a>
  </footer>
  <script>var tracking = "ignore me";</script>
</body>
</html>
"""


class TestCleanText:
    def test_strips_tags_scripts_and_entities(self):
        assert clean_text("<p>a &amp; <b>b</b></p><script>x()</script>") == "a & b"


class TestMetadata:
    def test_reads_title_description_and_og(self):
        meta = extract_metadata(HOMEPAGE)
        assert meta.title == "Acme Analytics | Product analytics"
        assert meta.description == "Understand your users & grow."
        assert meta.og_title == "Acme Analytics"
        assert meta.og_image == "https://acme.test/og.png"
        assert meta.favicon is not None

    def test_empty_document(self):
        meta = extract_metadata("")
        assert meta.title is None
        assert meta.description is None

    def test_falls_back_to_trafilatura_title(self):
        document = MagicMock(title="Acme Analytics", description=None, image=None)
        with patch("pagesmith.context.extractors._trafilatura") as mock_traf:
            mock_traf.extract_metadata.return_value = document
            meta = extract_metadata("<html><body><h1>Acme Analytics</h1></body></html>")
        assert meta.title == "Acme Analytics"
        assert meta.description is None

    def test_unparseable_document(self):
        with patch("pagesmith.context.extractors._trafilatura") as mock_traf:
            mock_traf.extract_metadata.return_value = None
            meta = extract_metadata("<title>Only a title</title>")
        assert meta.title == "Only a title"
        assert meta.og_image is None


class TestFullText:
    def test_uses_trafilatura_main_text(self):
        with patch("pagesmith.context.extractors._trafilatura") as mock_traf:
            mock_traf.extract.return_value = "Main   text\n\nof the page"
            text = extract_full_text(HOMEPAGE)
        assert text == "Main text of the page"
        kwargs = mock_traf.extract.call_args.kwargs
        assert kwargs["include_comments"] is False
        assert kwargs["output_format"] == "txt"

    def test_falls_back_to_visible_body(self):
        with patch("pagesmith.context.extractors._trafilatura") as mock_traf:
            mock_traf.extract.return_value = None
            text = extract_full_text(HOMEPAGE)
        assert "Start free" in text
        assert "ignore me" not in text
        assert "Product analytics" not in text

    def test_empty_document(self):
        assert extract_full_text("  ") == ""


class TestColorsAndFonts:
    def test_css_variable_wins(self):
        palette = extract_colors(HOMEPAGE)
        assert palette.primary == "#ff5500"

    def test_neutral_colors_are_ignored(self):
        palette = extract_colors("<style>a{color:#FFFFFF} b{color:#123abc}</style>")
        assert palette.detected == ["#123ABC"]
        assert palette.primary == "#123ABC"

    def test_google_fonts(self):
        typography = extract_typography(HOMEPAGE)
        assert typography.google_fonts == ["Inter"]
        assert typography.heading == "Inter"
        assert typography.body == "Inter"


class TestLogo:
    def test_relative_logo_is_made_absolute(self):
        logo = extract_logo(HOMEPAGE, "https://acme.test/")
        assert logo.primary == "https://acme.test/img/logo.svg"

    def test_no_logo(self):
        assert extract_logo("<p>nothing</p>", "https://acme.test/").primary is None


class TestHero:
    def test_hero_section(self):
        hero = extract_hero(HOMEPAGE)
        assert hero.headline == "Analytics your whole team can use"
        assert hero.subheadline == "Answers in seconds."
        assert hero.call_to_action == "Start free"
        assert "Answers in seconds." in hero.full_text

    def test_no_hero(self):
        hero = extract_hero("<p>short</p>")
        assert hero.headline is None
        assert hero.full_text == ""


class TestContact:
    def test_emails_phones_and_social(self):
        contact = extract_contact(HOMEPAGE)
        assert contact.emails == ["hello@acme.test"]
        assert contact.phones
        assert contact.social["twitter"] == "https://twitter.com/acme"
        assert "linkedin" in contact.social

    def test_placeholder_emails_are_dropped(self):
        assert extract_contact("mail user@example.com").emails == []

    def test_empty(self):
        assert extract_contact("<p>nothing</p>").is_empty


class TestLanguage:
    def test_primary_and_alternatives(self):
        info = extract_language(HOMEPAGE)
        assert info.primary == "en"
        assert info.alternatives == ["de"]


class TestParseHomepage:
    def test_full_text_excludes_scripts(self):
        snapshot = parse_homepage(HOMEPAGE, "https://acme.test/")
        assert snapshot.url == "https://acme.test/"
        assert snapshot.full_text
        assert "ignore me" not in snapshot.full_text


class TestSitemap:
    def test_skips_nested_sitemaps(self):
        xml = """<urlset>
          <url><loc>https://acme.test/</loc></url>
          <url><loc> https://acme.test/pricing </loc></url>
          <sitemap><loc>https://acme.test/sitemap-posts.xml</loc></sitemap>
        </urlset>"""
        assert parse_sitemap(xml) == ["https://acme.test/", "https://acme.test/pricing"]

    def test_empty(self):
        assert parse_sitemap("<urlset></urlset>") == []


class TestSiteOrigin:
    def test_origin(self):
        assert site_origin("https://acme.test/a/b?c=1") == "https://acme.test"

    @pytest.mark.parametrize("url", ["acme.test", "ftp://acme.test/", ""])
    def test_rejects_non_http(self, url: str):
        with pytest.raises(ValueError):
            site_origin(url)


class TestBrandName:
    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Acme | Analytics", "Acme"),
            ("Acme - Analytics", "Acme"),
            ("Acme", "Acme"),
            (None, None),
            ("", None),
        ],
    )
    def test_leading_segment(self, title, expected):
        assert brand_name_from_title(title) == expected
