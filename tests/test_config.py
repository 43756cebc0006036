"""Tests for pagesmith.config: PagesmithConfig, TOML loading, env and CLI overrides."""

from unittest.mock import patch

import pytest

from pagesmith.config import (
    AcquisitionConfig,
    PagesmithConfig,
    RecommendedPolicy,
    load_config,
    merge_cli_overrides,
)

ENV_VARS = (
    "PAGESMITH_DATABASE_URL",
    "PAGESMITH_USER_AGENT",
    "PAGESMITH_RECOMMENDED_POLICY",
    "PAGESMITH_BRAND_COLOR",
    "PAGESMITH_URL_SCHEME",
    "PAGESMITH_HOMEPAGE_TIMEOUT",
    "PAGESMITH_REQUIRE_REGISTERED_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


class TestDefaults:
    def test_sections(self):
        cfg = PagesmithConfig()
        assert cfg.database.url == "sqlite:///.pagesmith.db"
        assert cfg.assembly.recommended_policy == RecommendedPolicy.ADVISORY
        assert cfg.assembly.default_brand_color == "#0ea5e9"
        assert cfg.publish.url_scheme == "https"
        assert cfg.publish.require_registered_path is False

    def test_phase_timeouts(self):
        cfg = AcquisitionConfig(homepage_timeout=1, sitemap_timeout=2, extraction_timeout=3)
        assert cfg.timeout_for("homepage") == 1
        assert cfg.timeout_for("sitemap") == 2
        assert cfg.timeout_for("brand") == 3
        assert cfg.timeout_for("contact") == 3


class TestLoadConfig:
    def test_explicit_path(self, tmp_path):
        toml_path = tmp_path / ".pagesmith.toml"
        toml_path.write_text(
            '[assembly]\nrecommended_policy = "strict"\n\n'
            "[acquisition]\nhomepage_timeout = 4.5\n"
        )
        cfg = load_config(toml_path)
        assert cfg.assembly.recommended_policy == RecommendedPolicy.STRICT
        assert cfg.acquisition.homepage_timeout == 4.5
        assert cfg.acquisition.sitemap_timeout == 10.0

    def test_missing_path_returns_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nonexistent.toml")
        assert cfg == PagesmithConfig()

    def test_searches_cwd(self, tmp_path, monkeypatch):
        (tmp_path / ".pagesmith.toml").write_text('[publish]\nurl_scheme = "http"\n')
        monkeypatch.chdir(tmp_path)
        with patch("pagesmith.config.CONFIG_SEARCH_PATHS", [tmp_path]):
            cfg = load_config()
        assert cfg.publish.url_scheme == "http"

    def test_invalid_toml_returns_defaults(self, tmp_path):
        toml_path = tmp_path / ".pagesmith.toml"
        toml_path.write_text("this is not valid toml {{{")
        assert load_config(toml_path) == PagesmithConfig()


class TestEnvVarOverrides:
    def test_env_beats_toml(self, tmp_path, monkeypatch):
        toml_path = tmp_path / ".pagesmith.toml"
        toml_path.write_text('[database]\nurl = "sqlite:///from-toml.db"\n')
        monkeypatch.setenv("PAGESMITH_DATABASE_URL", "sqlite:///from-env.db")
        assert load_config(toml_path).database.url == "sqlite:///from-env.db"

    def test_typed_env_vars(self, monkeypatch):
        monkeypatch.setenv("PAGESMITH_HOMEPAGE_TIMEOUT", "2.5")
        monkeypatch.setenv("PAGESMITH_REQUIRE_REGISTERED_PATH", "yes")
        monkeypatch.setenv("PAGESMITH_RECOMMENDED_POLICY", "strict")
        with patch("pagesmith.config.CONFIG_SEARCH_PATHS", []):
            cfg = load_config()
        assert cfg.acquisition.homepage_timeout == 2.5
        assert cfg.publish.require_registered_path is True
        assert cfg.assembly.recommended_policy == RecommendedPolicy.STRICT


class TestMergeCliOverrides:
    def test_database_url(self):
        merged = merge_cli_overrides(PagesmithConfig(), database_url="sqlite:///cli.db")
        assert merged.database.url == "sqlite:///cli.db"

    def test_none_values_ignored(self):
        merged = merge_cli_overrides(PagesmithConfig(), database_url=None, brand_color=None)
        assert merged == PagesmithConfig()

    def test_unknown_keys_ignored(self):
        assert merge_cli_overrides(PagesmithConfig(), colour="red") == PagesmithConfig()
