# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Website import: crawl, extract, reconcile, persist.

``import_website`` is the single entry point used by the CLI and by
embedding services. Failures surface as ``SiteProfileError`` subclasses whose
``code`` is one of INVALID_URL, PLAYWRIGHT_MISSING, FETCH_FAILED,
PARSE_FAILED, SAVE_ERROR or UNEXPECTED_ERROR. Partial extraction is a normal
outcome and never an error.

Stages (timed by ``PipelineTimer``)::

    validate -> load_profile -> crawl -> extract -> oracle -> reconcile -> save
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from playwright.async_api import Error as PlaywrightError

from . import BusinessProfileDraft, CrawledPage, FinalProfile, ServiceCandidate
from . import business_name, locations
from .browser_session import BrowserConfig, BrowserSession, Renderer
from .config import SiteProfileConfig
from .contact import extract_from_pages, phones_from_text
from .errors import FetchError, InvalidUrlError, ParseError, SaveError, SiteProfileError
from .frontier import CrawlFrontier, CrawlResult
from .i18n import LocaleConfig
from .logging_config import bind_import_context, clear_import_context
from .opening_hours import extract_heuristic_hours, extract_structured_hours
from .oracle import NullOracle, Oracle, OracleExtraction, build_oracle_input
from .pipeline_timer import PipelineTimer
from .price_list import extract_if_price_list_page
from .reconciler import reconcile
from .repository import BusinessPageSink, ProfileRepositoryProtocol

logger = logging.getLogger(__name__)

RendererFactory = Callable[[BrowserConfig], Renderer]


@dataclass
class ImportSummary:
    url: str
    business_id: str
    pages_crawled: int = 0
    chunks_created: int = 0
    failed_urls: list[str] = field(default_factory=list)
    booking_providers: list[str] = field(default_factory=list)
    dom_services: int = 0
    services_saved: int = 0
    hours_saved: int = 0
    hours_source: str = "none"
    locations: int = 0
    name_source: str = "none"
    contact_sources: dict[str, str] = field(default_factory=dict)
    stage_ms: dict[str, float] = field(default_factory=dict)


@dataclass
class ImportOutcome:
    profile: FinalProfile
    summary: ImportSummary


def validate_url(url: str | None) -> str:
    """Return the stripped URL if it is absolute http(s).

    Raises:
        InvalidUrlError: anything else.
    """
    candidate = (url or "").strip()
    try:
        parts = urlsplit(candidate)
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL: {candidate!r}") from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidUrlError(f"URL must be a valid HTTP/HTTPS URL: {candidate!r}")
    return candidate


async def run_crawl(
    base_url: str,
    config: SiteProfileConfig,
    renderer_factory: RendererFactory,
    page_sink=None,
) -> CrawlResult:
    """Crawl with a fresh frontier, mapping driver failures to ``FetchError``."""
    frontier = CrawlFrontier(
        config=config.crawl,
        chunk_config=config.chunk,
        locale=config.locale,
        page_sink=page_sink,
    )
    try:
        return await frontier.crawl(base_url, renderer_factory(config.browser))
    except SiteProfileError:
        raise
    except (PlaywrightError, OSError, TimeoutError) as exc:
        raise FetchError(f"Failed to load website: {exc}") from exc


def _dom_services(pages: list[CrawledPage], locale: LocaleConfig) -> list[ServiceCandidate]:
    services = []
    for page in pages:
        if page.html and page.url:
            services.extend(extract_if_price_list_page(page.url, page.html, locale))
    if services:
        logger.info("Extracted %d services from price list pages via DOM", len(services))
    return services


def build_draft(base_url: str, crawl: CrawlResult, locale: LocaleConfig) -> BusinessProfileDraft:
    """Deterministic extraction over the crawled pages (no oracle yet)."""
    pages = crawl.pages
    combined = "\n\n".join(p.visible_text for p in pages if p.visible_text)
    phones = phones_from_text(combined, locale)
    return BusinessProfileDraft(
        website=base_url,
        contact=extract_from_pages(pages, locale),
        dom_services=_dom_services(pages, locale),
        structured_hours=extract_structured_hours(pages),
        heuristic_hours=extract_heuristic_hours(combined, locale),
        heuristic_phone=phones[0] if phones else None,
        booking_providers=list(crawl.booking_providers),
    )


async def ask_oracle(oracle: Oracle, crawl: CrawlResult) -> OracleExtraction:
    """Query the oracle, mapping transport failures to ``FetchError``."""
    text = build_oracle_input(crawl.chunks)
    try:
        return await oracle.extract(text)
    except SiteProfileError:
        raise
    except (OSError, TimeoutError) as exc:
        raise FetchError(f"Oracle network error: {exc}") from exc


async def save_profile(repository: ProfileRepositoryProtocol, profile: FinalProfile) -> tuple[int, int]:
    """Upsert profile, services and (only when freshly extracted) opening hours."""
    try:
        await repository.upsert_profile(profile)
        await repository.upsert_services(profile.business_id, profile.services)
        hours_saved = 0
        if profile.hours_source not in ("existing", "none"):
            await repository.upsert_opening_hours(profile.business_id, profile.opening_hours)
            hours_saved = profile.valid_hours_count
        else:
            logger.info("No opening hours extracted; skipping opening hours upsert")
    except SaveError:
        raise
    except (OSError, ValueError) as exc:
        raise SaveError(f"Failed to save profile: {exc}") from exc
    return len(profile.services), hours_saved


async def import_website(
    url: str,
    business_id: str,
    *,
    repository: ProfileRepositoryProtocol,
    oracle: Oracle | None = None,
    config: SiteProfileConfig | None = None,
    renderer_factory: RendererFactory = BrowserSession,
    timer: PipelineTimer | None = None,
) -> ImportOutcome:
    """Import *url* into the stored profile of *business_id*.

    Raises:
        SiteProfileError: one of the subclasses listed in the module docstring.
    """
    config = config or SiteProfileConfig()
    oracle = oracle or NullOracle()
    locale = config.locale
    timer = timer or PipelineTimer()
    bind_import_context(business_id=business_id, url=str(url))
    try:
        timer.stage("validate")
        base_url = validate_url(url)
        summary = ImportSummary(url=base_url, business_id=business_id)

        timer.stage("load_profile")
        existing = await repository.get_profile(business_id)
        logger.info("Existing profile: %s", "found" if existing else "none")

        timer.stage("crawl")
        crawl = await run_crawl(base_url, config, renderer_factory, BusinessPageSink(repository, business_id))
        summary.pages_crawled = crawl.pages_crawled
        summary.chunks_created = crawl.chunks_created
        summary.failed_urls = list(crawl.failed_urls)
        summary.booking_providers = list(crawl.booking_providers)
        logger.info("Crawled %d pages, created %d chunks", crawl.pages_crawled, crawl.chunks_created)
        if not crawl.chunks:
            raise ParseError("No content extracted from website")

        timer.stage("extract")
        draft = build_draft(base_url, crawl, locale)
        summary.dom_services = len(draft.dom_services)
        summary.contact_sources = dict(draft.contact.sources)

        timer.stage("oracle")
        guess = await ask_oracle(oracle, crawl)
        draft.oracle = guess

        timer.stage("reconcile")
        draft.name = business_name.select(crawl.pages, base_url, guess.name, locale)
        summary.name_source = draft.name.source if draft.name else "none"
        profile = reconcile(draft, existing, business_id, locale)
        profile.locations = locations.resolve(crawl.pages, profile.address, crawl.booking_providers, locale)
        summary.locations = len(profile.locations)
        summary.hours_source = profile.hours_source

        timer.stage("save")
        summary.services_saved, summary.hours_saved = await save_profile(repository, profile)
        timer.finalize()
    except SiteProfileError as exc:
        timer.finalize()
        report = timer.failure_report(exc.code)
        logger.error("Import failed (%s) at stage %s: %s. %s", exc.code, report["failed_at"], exc, report["hint"])
        raise
    except Exception as exc:
        timer.finalize()
        logger.exception("Import failed unexpectedly at stage %s", timer.last_stage)
        raise SiteProfileError(f"Unexpected error: {exc}") from exc
    finally:
        clear_import_context()

    summary.stage_ms = timer.elapsed_per_stage()
    logger.info("Import finished in %.1f ms", timer.total_ms())
    return ImportOutcome(profile=profile, summary=summary)
