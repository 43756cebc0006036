"""Site context domain: acquire, persist and stream facts about a customer site.

The orchestrator runs fixed, weighted phases against a target URL, upserts
each extracted field as soon as it is known, and reports progress through a
bounded channel that one consumer drains.
"""

from pagesmith.context.fetcher import HttpSiteFetcher, SiteFetcher
from pagesmith.context.models import (
    ACQUIRED_CONTEXT_TYPES,
    BrandAssets,
    ContactInfo,
    HeroContent,
    HomepageSnapshot,
    HomepageSummary,
    PhaseResult,
    PhaseStatus,
    ProgressEvent,
    SiteChrome,
    SiteContextField,
    SiteContextType,
    SitemapPayload,
    SitemapResult,
)
from pagesmith.context.orchestrator import PHASES, ContextAcquisitionOrchestrator, PhaseSpec
from pagesmith.context.progress import (
    AcquisitionCancelled,
    CancellationToken,
    ProgressChannel,
    to_sse,
)
from pagesmith.context.store import SiteContextStore

__all__ = [
    "ACQUIRED_CONTEXT_TYPES",
    "PHASES",
    "AcquisitionCancelled",
    "BrandAssets",
    "CancellationToken",
    "ContactInfo",
    "ContextAcquisitionOrchestrator",
    "HeroContent",
    "HomepageSnapshot",
    "HomepageSummary",
    "HttpSiteFetcher",
    "PhaseResult",
    "PhaseSpec",
    "PhaseStatus",
    "ProgressChannel",
    "ProgressEvent",
    "SiteChrome",
    "SiteContextField",
    "SiteContextStore",
    "SiteContextType",
    "SiteFetcher",
    "SitemapPayload",
    "SitemapResult",
    "to_sse",
]
