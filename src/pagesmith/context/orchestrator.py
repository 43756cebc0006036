"""Context acquisition: ordered phases against one target site.

Each phase runs inside its own failure boundary and persists every field
it extracts immediately, so a reader of the site context store sees a
consistent, possibly incomplete picture while the run is still going.
Progress is streamed through a :class:`ProgressChannel`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from pagesmith.config import AcquisitionConfig
from pagesmith.context.extractors import brand_name_from_title, site_origin
from pagesmith.context.fetcher import HttpSiteFetcher, SiteFetcher
from pagesmith.context.models import (
    BrandAssets,
    HomepageSnapshot,
    HomepageSummary,
    PhaseResult,
    PhaseStatus,
    ProgressEvent,
    SiteContextType,
    SitemapPayload,
)
from pagesmith.context.progress import AcquisitionCancelled, CancellationToken, ProgressChannel
from pagesmith.context.store import SiteContextStore
from pagesmith.db import utcnow

logger = logging.getLogger(__name__)

# Progress reserved for phases; the remainder belongs to ``complete``.
PHASE_PROGRESS_CEILING = 95
TEXT_EXCERPT_LIMIT = 2000


@dataclass
class _RunState:
    target_url: str
    origin: str
    owner_id: str
    scope_id: str | None
    cancel: CancellationToken
    outputs: dict[str, Any] = field(default_factory=dict)


@dataclass
class _PhaseOutcome:
    status: PhaseStatus
    message: str
    data: dict[str, Any] | None = None


PhaseRunner = Callable[["ContextAcquisitionOrchestrator", _RunState, list[str]], Awaitable[_PhaseOutcome]]


@dataclass(frozen=True)
class PhaseSpec:
    """Static description of one acquisition phase."""

    id: str
    name: str
    weight: int
    requires: tuple[str, ...]
    runner: PhaseRunner


class _ProgressTracker:
    """Keeps emitted progress monotonic."""

    def __init__(self, channel: ProgressChannel) -> None:
        self.channel = channel
        self.current = 0

    async def emit(self, phase: str, progress: int, message: str, data: dict[str, Any] | None = None) -> None:
        self.current = max(self.current, min(progress, 100))
        await self.channel.send(ProgressEvent(phase=phase, progress=self.current, message=message, data=data))


class ContextAcquisitionOrchestrator:
    """Runs the acquisition phases for one target and streams progress."""

    def __init__(
        self,
        store: SiteContextStore,
        fetcher: SiteFetcher | None = None,
        config: AcquisitionConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or AcquisitionConfig()
        self.fetcher = fetcher or HttpSiteFetcher(
            user_agent=self.config.user_agent,
            max_sitemap_urls=self.config.max_sitemap_urls,
        )
        self._background: set[asyncio.Task[list[PhaseResult]]] = set()

    async def acquire(
        self,
        target_url: str,
        owner_id: str,
        scope_id: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield progress events until exactly one ``complete`` or ``error`` event.

        Closing the iterator early detaches the consumer; the run keeps
        persisting facts in the background unless ``cancel`` is tripped.
        """
        channel = ProgressChannel(self.config.channel_size)
        token = cancel or CancellationToken()
        producer = asyncio.create_task(self.run(target_url, owner_id, scope_id, channel, token))
        finished = False
        try:
            async for event in channel:
                yield event
            finished = True
        finally:
            if finished:
                await producer
            else:
                channel.detach()
                if not producer.done():
                    logger.info("Progress consumer went away; acquisition of %s continues", target_url)
                    self._background.add(producer)
                    producer.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for runs whose consumers detached early."""
        if self._background:
            await asyncio.gather(*self._background)

    async def run(
        self,
        target_url: str,
        owner_id: str,
        scope_id: str | None,
        channel: ProgressChannel,
        cancel: CancellationToken,
    ) -> list[PhaseResult]:
        """Execute every phase, writing events to ``channel`` and closing it."""
        tracker = _ProgressTracker(channel)
        results: list[PhaseResult] = []
        try:
            try:
                origin = site_origin(target_url)
            except ValueError as exc:
                await tracker.emit("error", tracker.current, f"Invalid target URL: {exc}")
                return results

            state = _RunState(
                target_url=target_url,
                origin=origin,
                owner_id=owner_id,
                scope_id=scope_id,
                cancel=cancel,
            )
            total_weight = sum(spec.weight for spec in PHASES)
            completed_weight = 0
            for spec in PHASES:
                cancel.raise_if_cancelled()
                completed_weight += spec.weight
                end = completed_weight * PHASE_PROGRESS_CEILING // total_weight
                results.append(await self._run_phase(spec, state, tracker, end))

            saved = [name for result in results for name in result.saved_fields]
            succeeded = sum(1 for result in results if result.status == PhaseStatus.SUCCESS)
            await tracker.emit(
                "complete",
                100,
                "Context acquisition complete",
                {
                    "results": [result.model_dump(mode="json") for result in results],
                    "saved_fields": saved,
                    "success_rate": f"{succeeded}/{len(results)}",
                },
            )
            logger.info(
                "Acquired context for %s: %d/%d phases succeeded, %d fields saved",
                target_url,
                succeeded,
                len(results),
                len(saved),
            )
        except AcquisitionCancelled as exc:
            logger.info("Acquisition of %s cancelled: %s", target_url, exc)
            await tracker.emit("error", tracker.current, f"Acquisition cancelled: {exc}")
        except Exception as exc:
            logger.error("Acquisition of %s failed: %s", target_url, exc, exc_info=True)
            await tracker.emit("error", tracker.current, f"Acquisition failed: {exc}")
        finally:
            await channel.close()
        return results

    async def _run_phase(
        self, spec: PhaseSpec, state: _RunState, tracker: _ProgressTracker, end: int
    ) -> PhaseResult:
        missing = [dep for dep in spec.requires if dep not in state.outputs]
        if missing:
            message = f"Skipping {spec.name.lower()}: no {', '.join(missing)} data"
            await tracker.emit(spec.id, end, message)
            return PhaseResult(phase=spec.id, status=PhaseStatus.SKIPPED, message=message)

        await tracker.emit(spec.id, tracker.current, f"{spec.name}...")
        timeout = self.config.timeout_for(spec.id)
        saved: list[str] = []
        data: dict[str, Any] | None = None
        try:
            outcome = await asyncio.wait_for(spec.runner(self, state, saved), timeout=timeout)
        except AcquisitionCancelled:
            raise
        except TimeoutError:
            status, message = PhaseStatus.FAILED, f"{spec.name} timed out after {timeout:g}s"
            logger.warning("Phase %s timed out after %ss", spec.id, timeout)
        except Exception as exc:
            status, message = PhaseStatus.FAILED, f"{spec.name} failed: {exc}"
            logger.warning("Phase %s failed: %s", spec.id, exc, exc_info=True)
        else:
            status, message, data = outcome.status, outcome.message, outcome.data

        await tracker.emit(spec.id, end, message, data)
        return PhaseResult(phase=spec.id, status=status, message=message, saved_fields=saved)

    async def _save(
        self, state: _RunState, field_type: SiteContextType, payload: BaseModel, saved: list[str]
    ) -> None:
        """Persist one field and record it in ``saved``.

        A write that has started always finishes: if the phase times out
        meanwhile, the commit is awaited and recorded before the timeout
        propagates, so ``saved_fields`` matches what the store holds.
        """
        state.cancel.raise_if_cancelled()
        write = asyncio.ensure_future(
            asyncio.to_thread(self.store.upsert, state.owner_id, state.scope_id, field_type, payload)
        )
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            await asyncio.wait([write])
            if write.exception() is None:
                saved.append(field_type.value)
                logger.info("Saved %s after its phase was interrupted", field_type.value)
            raise
        saved.append(field_type.value)

    # ── Phases ───────────────────────────────────────────────────

    async def _homepage(self, state: _RunState, saved: list[str]) -> _PhaseOutcome:
        snapshot = await asyncio.to_thread(
            self.fetcher.fetch_homepage, state.target_url, self.config.homepage_timeout
        )
        state.outputs["homepage"] = snapshot
        meta = snapshot.metadata
        summary = HomepageSummary(
            url=snapshot.url,
            title=meta.title,
            description=meta.description,
            og_title=meta.og_title,
            og_description=meta.og_description,
            language=snapshot.language.primary,
            text_excerpt=snapshot.full_text[:TEXT_EXCERPT_LIMIT],
        )
        await self._save(state, SiteContextType.HOMEPAGE_SUMMARY, summary, saved)
        return _PhaseOutcome(
            PhaseStatus.SUCCESS,
            "Homepage scraped successfully",
            {"title": meta.title, "has_logo": bool(snapshot.logo.primary)},
        )

    async def _sitemap(self, state: _RunState, saved: list[str]) -> _PhaseOutcome:
        result = await asyncio.to_thread(
            self.fetcher.fetch_sitemap, state.origin, self.config.sitemap_timeout
        )
        if not result.found or not result.urls:
            return _PhaseOutcome(PhaseStatus.PARTIAL, "No sitemap found")
        payload = SitemapPayload(url=result.url or state.origin, urls=result.urls, found_at=utcnow())
        await self._save(state, SiteContextType.SITEMAP, payload, saved)
        return _PhaseOutcome(
            PhaseStatus.SUCCESS,
            f"Found {len(result.urls)} URLs in sitemap",
            {"total_urls": len(result.urls)},
        )

    async def _brand(self, state: _RunState, saved: list[str]) -> _PhaseOutcome:
        snapshot: HomepageSnapshot = state.outputs["homepage"]
        meta = snapshot.metadata
        assets = BrandAssets(
            logo=snapshot.logo.primary,
            logo_urls=snapshot.logo.urls,
            primary_color=snapshot.colors.primary,
            secondary_color=snapshot.colors.secondary,
            detected_colors=snapshot.colors.detected,
            heading_font=snapshot.typography.heading,
            body_font=snapshot.typography.body,
            google_fonts=snapshot.typography.google_fonts,
            brand_name=brand_name_from_title(meta.title),
            meta_description=meta.description,
            og_image=meta.og_image,
            favicon=meta.favicon,
            language=snapshot.language.primary,
            alternative_languages=snapshot.language.alternatives,
        )
        await self._save(state, SiteContextType.BRAND_ASSETS, assets, saved)
        return _PhaseOutcome(
            PhaseStatus.SUCCESS,
            "Brand assets saved",
            {
                "logo": bool(assets.logo),
                "primary_color": assets.primary_color,
                "brand_name": assets.brand_name,
            },
        )

    async def _content(self, state: _RunState, saved: list[str]) -> _PhaseOutcome:
        snapshot: HomepageSnapshot = state.outputs["homepage"]
        hero = snapshot.hero
        if not (hero.headline or hero.full_text):
            return _PhaseOutcome(PhaseStatus.PARTIAL, "Limited content found", {"has_hero": False})
        await self._save(state, SiteContextType.HERO_CONTENT, hero, saved)
        return _PhaseOutcome(PhaseStatus.SUCCESS, "Content saved", {"has_hero": bool(hero.headline)})

    async def _contact(self, state: _RunState, saved: list[str]) -> _PhaseOutcome:
        snapshot: HomepageSnapshot = state.outputs["homepage"]
        contact = snapshot.contact
        counts = {
            "emails": len(contact.emails),
            "phones": len(contact.phones),
            "social": len(contact.social),
        }
        if contact.is_empty:
            return _PhaseOutcome(PhaseStatus.PARTIAL, "No contact info found", counts)
        await self._save(state, SiteContextType.CONTACT_INFO, contact, saved)
        return _PhaseOutcome(PhaseStatus.SUCCESS, "Contact info saved", counts)


_Orch = ContextAcquisitionOrchestrator

PHASES: tuple[PhaseSpec, ...] = (
    PhaseSpec("homepage", "Scraping Homepage", 25, (), _Orch._homepage),
    PhaseSpec("sitemap", "Fetching Sitemap", 15, (), _Orch._sitemap),
    PhaseSpec("brand", "Extracting Brand Assets", 20, ("homepage",), _Orch._brand),
    PhaseSpec("content", "Analyzing Content", 25, ("homepage",), _Orch._content),
    PhaseSpec("contact", "Extracting Contact Info", 15, ("homepage",), _Orch._contact),
)
