"""pagesmith settings: built-in defaults, then a TOML file, then PAGESMITH_* env vars, then CLI flags."""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pagesmith.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "pagesmith",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class RecommendedPolicy(StrEnum):
    """How assembly treats missing recommended sections."""

    ADVISORY = "advisory"
    STRICT = "strict"


class DatabaseConfig(BaseModel):
    """[database] section."""

    url: str = "sqlite:///.pagesmith.db"
    echo: bool = False
    pool_size: int = 5


class AcquisitionConfig(BaseModel):
    """[acquisition] section."""

    user_agent: str = DEFAULT_USER_AGENT
    homepage_timeout: float = 15.0
    sitemap_timeout: float = 10.0
    extraction_timeout: float = 10.0
    channel_size: int = 32
    max_sitemap_urls: int = 500

    def timeout_for(self, phase: str) -> float:
        """Return the timeout budget in seconds for a phase id."""
        if phase == "homepage":
            return self.homepage_timeout
        if phase == "sitemap":
            return self.sitemap_timeout
        return self.extraction_timeout


class AssemblyConfig(BaseModel):
    """[assembly] section."""

    recommended_policy: RecommendedPolicy = RecommendedPolicy.ADVISORY
    default_brand_color: str = "#0ea5e9"
    page_type: str = "alternative"


class PublishConfig(BaseModel):
    """[publish] section."""

    url_scheme: str = "https"
    require_registered_path: bool = False
    # TXT record looked up at ``{verification_prefix}.{domain}``
    verification_prefix: str = "_pagesmith-verify"
    dns_timeout: float = 5.0


class PagesmithConfig(BaseModel):
    """Top-level configuration for the pagesmith core."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    acquisition: AcquisitionConfig = Field(default_factory=AcquisitionConfig)
    assembly: AssemblyConfig = Field(default_factory=AssemblyConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)


def _parse_flag(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


# Environment variable -> (section, field, parser).
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], object]]] = {
    "PAGESMITH_DATABASE_URL": ("database", "url", str),
    "PAGESMITH_USER_AGENT": ("acquisition", "user_agent", str),
    "PAGESMITH_HOMEPAGE_TIMEOUT": ("acquisition", "homepage_timeout", float),
    "PAGESMITH_RECOMMENDED_POLICY": ("assembly", "recommended_policy", str),
    "PAGESMITH_BRAND_COLOR": ("assembly", "default_brand_color", str),
    "PAGESMITH_URL_SCHEME": ("publish", "url_scheme", str),
    "PAGESMITH_REQUIRE_REGISTERED_PATH": ("publish", "require_registered_path", _parse_flag),
}

# CLI keyword -> (section, field).
CLI_OVERRIDES: dict[str, tuple[str, str]] = {
    "database_url": ("database", "url"),
    "recommended_policy": ("assembly", "recommended_policy"),
    "brand_color": ("assembly", "default_brand_color"),
    "page_type": ("assembly", "page_type"),
    "url_scheme": ("publish", "url_scheme"),
}


def load_config(path: str | Path | None = None) -> PagesmithConfig:
    """Build the effective configuration.

    An explicit ``path`` is used as-is (a missing file falls back to
    defaults with a warning).  Otherwise ``.pagesmith.toml`` is looked up in
    each of ``CONFIG_SEARCH_PATHS`` and then ``~/.config/pagesmith/config.toml``.
    Environment variables are applied last.
    """
    source = Path(path) if path is not None else _find_config_file()
    data: dict[str, object] = {}
    if source is not None:
        if source.exists():
            data = _load_toml(source)
            logger.info("Loaded config from %s", source)
        else:
            logger.warning("Config file not found: %s", source)

    config = PagesmithConfig.model_validate(data) if data else PagesmithConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: PagesmithConfig, **cli_kwargs: object) -> PagesmithConfig:
    """Overlay CLI flags that were actually given (not None) onto ``config``."""
    updates = {
        CLI_OVERRIDES[key]: value
        for key, value in cli_kwargs.items()
        if value is not None and key in CLI_OVERRIDES
    }
    return _with_updates(config, updates)


def _find_config_file() -> Path | None:
    for search_dir in CONFIG_SEARCH_PATHS:
        candidate = search_dir / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    global_config = Path.home() / ".config" / "pagesmith" / "config.toml"
    return global_config if global_config.exists() else None


def _load_toml(path: Path) -> dict[str, object]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: PagesmithConfig) -> PagesmithConfig:
    updates: dict[tuple[str, str], object] = {}
    for env_var, (section, field, parse) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        try:
            updates[(section, field)] = parse(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: not a valid value", env_var, raw)
    return _with_updates(config, updates)


def _with_updates(config: PagesmithConfig, updates: dict[tuple[str, str], object]) -> PagesmithConfig:
    if not updates:
        return config
    data = config.model_dump()
    for (section, field), value in updates.items():
        data[section][field] = value
    return PagesmithConfig.model_validate(data)
