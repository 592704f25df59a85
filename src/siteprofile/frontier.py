# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bounded, priority-aware crawl frontier.

Breadth-first over one site with a two-tier queue: priority links (contact,
booking, pricing, services) always dequeue before normal links. Bounds:

- ``max_pages`` successfully processed pages (failed pages do not count)
- ``max_depth`` link hops from the base URL
- ``max_links_per_page`` links enqueued per page
- ``max_queue_size`` tasks waiting at any time

Seeding: base URL (depth 0), forced paths (depth 1, priority), then
``/sitemap.xml`` URLs (depth 1). All state lives in a ``CrawlContext`` built
per call, so a ``CrawlFrontier`` can be reused across sites.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable
from urllib.parse import urljoin

from . import CrawledPage, CrawlTask, TextChunk
from .booking_detector import BookingProviderSet, detect
from .browser_session import Renderer
from .config import ChunkConfig, CrawlConfig
from .errors import PageRenderError, SiteProfileError
from .i18n import CS, LocaleConfig
from .link_classifier import LinkClassifier, extract_links, is_excluded, normalize_url
from .robots_checker import RobotsChecker
from .sitemap import discover_sitemap_urls
from .text import chunk_text, count_tokens

logger = logging.getLogger(__name__)

SitemapFetcher = Callable[..., Awaitable[list[str]]]


@runtime_checkable
class PageSink(Protocol):
    """Receives each accepted page and its text chunks (downstream indexing)."""

    async def store_page(self, page: CrawledPage, chunks: list[TextChunk]) -> None: ...


@dataclass
class CrawlResult:
    pages: list[CrawledPage] = field(default_factory=list)
    booking_providers: list[str] = field(default_factory=list)
    chunks: list[TextChunk] = field(default_factory=list)
    failed_urls: list[str] = field(default_factory=list)

    @property
    def pages_crawled(self) -> int:
        return len(self.pages)

    @property
    def chunks_created(self) -> int:
        return len(self.chunks)


@dataclass
class CrawlContext:
    """Mutable state of one crawl invocation."""

    base_url: str
    max_depth: int
    max_pages: int
    exclude_paths: tuple[str, ...]
    max_queue_size: int
    priority: deque[CrawlTask] = field(default_factory=deque)
    normal: deque[CrawlTask] = field(default_factory=deque)
    seen: set[str] = field(default_factory=set)
    visited: set[str] = field(default_factory=set)
    providers: BookingProviderSet = field(default_factory=BookingProviderSet)
    result: CrawlResult = field(default_factory=CrawlResult)

    @property
    def queue_len(self) -> int:
        return len(self.priority) + len(self.normal)

    @property
    def pages_crawled(self) -> int:
        return self.result.pages_crawled

    @property
    def budget_left(self) -> bool:
        return self.pages_crawled < self.max_pages

    def enqueue(self, url: str, depth: int, *, priority: bool = False) -> bool:
        """Queue *url* unless already seen, excluded, or the queue is full."""
        if not url:
            return False
        normalized = normalize_url(url)
        if normalized in self.seen or normalized in self.visited:
            return False
        if is_excluded(normalized, self.exclude_paths):
            return False
        if self.queue_len >= self.max_queue_size:
            return False
        self.seen.add(normalized)
        task = CrawlTask(url=normalized, depth=depth, is_priority=priority)
        (self.priority if priority else self.normal).append(task)
        return True

    def dequeue(self) -> CrawlTask | None:
        if self.priority:
            return self.priority.popleft()
        if self.normal:
            return self.normal.popleft()
        return None


class CrawlFrontier:
    """Runs crawls against a renderer. One page is fully processed before the next."""

    def __init__(
        self,
        *,
        config: CrawlConfig | None = None,
        chunk_config: ChunkConfig | None = None,
        locale: LocaleConfig = CS,
        page_sink: PageSink | None = None,
        sitemap_fetcher: SitemapFetcher = discover_sitemap_urls,
        robots_checker: RobotsChecker | None = None,
    ) -> None:
        self.config = config or CrawlConfig()
        self.chunk_config = chunk_config or ChunkConfig()
        self.locale = locale
        self.page_sink = page_sink
        self.sitemap_fetcher = sitemap_fetcher
        if robots_checker is None and self.config.respect_robots:
            robots_checker = RobotsChecker()
        self.robots_checker = robots_checker

    def new_context(self, base_url: str, max_depth: int, max_pages: int, exclude_paths) -> CrawlContext:
        return CrawlContext(
            base_url=base_url,
            max_depth=max_depth,
            max_pages=max_pages,
            exclude_paths=tuple(exclude_paths or ()),
            max_queue_size=self.config.max_queue_size,
        )

    async def _seed(self, ctx: CrawlContext, forced_urls) -> None:
        # base leads the priority tier so forced paths never displace it
        ctx.enqueue(ctx.base_url, 0, priority=True)
        for forced in forced_urls or ():
            try:
                full = urljoin(ctx.base_url, forced)
            except ValueError:
                logger.warning("Ignoring invalid forced URL %r", forced)
                continue
            ctx.enqueue(full, 1, priority=True)

        if self.config.use_sitemap:
            sitemap_urls = await self.sitemap_fetcher(
                ctx.base_url,
                ctx.max_pages,
                ctx.exclude_paths,
                timeout=self.config.sitemap_timeout_s,
            )
            for url in sitemap_urls:
                ctx.enqueue(url, 1)

        logger.info(
            "Initial queue: %d tasks (max_depth=%d, max_pages=%d, base=%s)",
            ctx.queue_len,
            ctx.max_depth,
            ctx.max_pages,
            ctx.base_url,
        )

    async def crawl(
        self,
        base_url: str,
        renderer: Renderer,
        *,
        max_depth: int | None = None,
        max_pages: int | None = None,
        exclude_paths=None,
        forced_urls=None,
    ) -> CrawlResult:
        """Crawl *base_url* and return every accepted page.

        The renderer is entered here and closed on every exit path.

        Raises:
            BrowserLaunchError: no browser could be started.
        """
        ctx = self.new_context(
            base_url,
            self.config.max_depth if max_depth is None else max_depth,
            self.config.max_pages if max_pages is None else max_pages,
            self.config.exclude_paths if exclude_paths is None else exclude_paths,
        )
        forced = self.config.forced_urls if forced_urls is None else forced_urls
        await self._seed(ctx, forced)

        async with renderer:
            while ctx.budget_left:
                task = ctx.dequeue()
                if task is None:
                    break
                if task.url in ctx.visited or task.depth > ctx.max_depth:
                    continue
                ctx.visited.add(task.url)
                if self.robots_checker is not None and not await self.robots_checker.is_allowed(task.url):
                    logger.info("Skipping %s (disallowed by robots.txt)", task.url)
                    continue
                if await self._process(ctx, renderer, task):
                    await asyncio.sleep(self.config.politeness_delay_s)

        ctx.result.booking_providers = ctx.providers.as_list()
        logger.info("Crawl completed: %d pages, %d chunks", ctx.result.pages_crawled, ctx.result.chunks_created)
        if ctx.result.booking_providers:
            logger.info("Detected booking providers: %s", ", ".join(ctx.result.booking_providers))
        return ctx.result

    async def _process(self, ctx: CrawlContext, renderer: Renderer, task: CrawlTask) -> bool:
        """Render one task. Returns False when the page failed and was skipped."""
        note = ", priority" if task.is_priority else ""
        logger.debug("Dequeued %s (depth %d%s)", task.url, task.depth, note)
        try:
            rendered = await renderer.render(task.url)
        except PageRenderError as exc:
            logger.error("Error crawling %s: %s", task.url, exc)
            rendered = None
        if rendered is None:
            ctx.result.failed_urls.append(task.url)
            return False

        detected = detect(task.url, rendered.html)
        for provider_id in ctx.providers.add(detected):
            logger.info("Detected booking provider %s on %s", provider_id, task.url)

        page = CrawledPage(
            url=task.url,
            depth=task.depth,
            title=rendered.title,
            html=rendered.html,
            visible_text=rendered.visible_text,
            http_status=rendered.http_status,
            booking_provider_id=detected[0] if detected else None,
        )
        chunks = self._chunk(page)

        if self.page_sink is not None:
            try:
                await self.page_sink.store_page(page, chunks)
            except SiteProfileError as exc:
                logger.error("Error storing page %s: %s", task.url, exc)
                ctx.result.failed_urls.append(task.url)
                return False

        ctx.result.pages.append(page)
        ctx.result.chunks.extend(chunks)
        logger.info("Stored %s (%d chunks)", task.url, len(chunks))

        if task.depth < ctx.max_depth and ctx.budget_left:
            self._discover(ctx, page)
        return True

    def _chunk(self, page: CrawledPage) -> list[TextChunk]:
        pieces = chunk_text(page.visible_text, self.chunk_config.chunk_size, self.chunk_config.overlap)
        chunks = []
        for piece in pieces:
            text = piece.strip()
            if text:
                chunk = TextChunk(
                    url=page.url, title=page.title, index=len(chunks), text=text, tokens=count_tokens(text)
                )
                chunks.append(chunk)
        return chunks

    def _discover(self, ctx: CrawlContext, page: CrawledPage) -> None:
        try:
            links = extract_links(page.html, page.url)
        except (ValueError, TypeError) as exc:
            logger.error("Error extracting links from %s: %s", page.url, exc)
            return
        classifier = LinkClassifier(ctx.base_url, ctx.exclude_paths, self.locale)
        priority, normal = classifier.classify(links)
        logger.info(
            "Discovered %d links on %s (%d priority, %d normal)", len(links), page.url, len(priority), len(normal)
        )

        added = 0
        for url, is_priority in [(u, True) for u in priority] + [(u, False) for u in normal]:
            if added >= self.config.max_links_per_page or ctx.queue_len >= ctx.max_queue_size:
                break
            if ctx.enqueue(url, page.depth + 1, priority=is_priority):
                added += 1
                if is_priority:
                    logger.debug("Priority link queued: %s", url)


async def crawl(
    base_url: str,
    max_depth: int,
    max_pages: int,
    exclude_paths=(),
    forced_urls=(),
    *,
    renderer: Renderer,
    config: CrawlConfig | None = None,
    **frontier_kwargs,
) -> CrawlResult:
    """One-shot crawl with a fresh frontier."""
    frontier = CrawlFrontier(config=config, **frontier_kwargs)
    return await frontier.crawl(
        base_url,
        renderer,
        max_depth=max_depth,
        max_pages=max_pages,
        exclude_paths=exclude_paths,
        forced_urls=forced_urls,
    )
