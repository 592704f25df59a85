# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright browser session and page renderer.

One Chromium instance, one context and one page serve a whole crawl. The
session is an async context manager so the browser process is torn down on
every exit path, including cancellation.

Launch order: bundled Chromium first, then each fallback executable in turn
(``$SITEPROFILE_CHROMIUM_PATH`` / ``$CHROMIUM_PATH`` first). Exhausting all of
them raises ``BrowserLaunchError``, which aborts the crawl.
"""

from __future__ import annotations

import logging
import os
from contextlib import suppress
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from playwright.async_api import (
    Browser,
    BrowserContext,
    Dialog,
    Page,
    Playwright,
    Response,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from . import RenderedPage
from .errors import BrowserLaunchError, PageRenderError
from .text import clean_text, sanitize_text

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_VIEWPORT = {"width": 1920, "height": 1080}

CHROMIUM_PATH_ENV_VARS = ("SITEPROFILE_CHROMIUM_PATH", "CHROMIUM_PATH")
DEFAULT_FALLBACK_EXECUTABLES = (
    "chromium",
    "chromium-browser",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
)

# (wait_until, timeout_ms). The second strategy only runs after a timeout.
DEFAULT_NAVIGATION_STRATEGIES = (("networkidle", 30000), ("domcontentloaded", 45000))

NOISE_SELECTORS = (
    "script, style, noscript, iframe, .cookie, .cta, .social, "
    ".cookie-banner, .popup, .modal, .advertisement, .ads"
)

# Removes noise elements, then walks text nodes whose parent is rendered.
_VISIBLE_TEXT_JS = """
(selectors) => {
  document.querySelectorAll(selectors).forEach((el) => el.remove());
  const body = document.body;
  if (!body) return '';
  const walker = document.createTreeWalker(body, NodeFilter.SHOW_TEXT, {
    acceptNode: (node) => {
      const parent = node.parentElement;
      if (!parent) return NodeFilter.FILTER_REJECT;
      const style = window.getComputedStyle(parent);
      if (style.display === 'none' || style.visibility === 'hidden' || style.opacity === '0') {
        return NodeFilter.FILTER_REJECT;
      }
      return NodeFilter.FILTER_ACCEPT;
    },
  });
  const parts = [];
  let node;
  while ((node = walker.nextNode())) {
    const text = node.textContent.trim();
    if (text) parts.push(text);
  }
  return parts.join(' ');
}
"""


def _first_line(exc: Exception) -> str:
    """Playwright errors carry a multi-line call log; keep the headline."""
    lines = str(exc).splitlines()
    return lines[0] if lines else type(exc).__name__


@dataclass
class BrowserConfig:
    """Browser launch and navigation configuration."""

    headless: bool = True
    viewport_width: int = DEFAULT_VIEWPORT["width"]
    viewport_height: int = DEFAULT_VIEWPORT["height"]
    user_agent: str = DEFAULT_USER_AGENT
    locale: str | None = None
    navigation_strategies: tuple[tuple[str, int], ...] = DEFAULT_NAVIGATION_STRATEGIES
    settle_ms: int = 2000  # fixed wait for SPA rendering after load
    fallback_executables: tuple[str, ...] = DEFAULT_FALLBACK_EXECUTABLES


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Launch arguments shared by bundled and fallback launches."""
    args = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
        "--disable-extensions",
        "--no-first-run",
    ]
    if config.locale:
        args.append(f"--lang={config.locale}")
    return args


def fallback_candidates(config: BrowserConfig) -> list[str]:
    """Ordered, de-duplicated executables to try after the bundled build fails."""
    env_paths = [os.environ.get(var, "").strip() for var in CHROMIUM_PATH_ENV_VARS]
    seen: set[str] = set()
    ordered = []
    for candidate in (*env_paths, *config.fallback_executables):
        if candidate and candidate not in seen:
            seen.add(candidate)
            ordered.append(candidate)
    return ordered


@runtime_checkable
class Renderer(Protocol):
    """What the crawl frontier needs from a browser."""

    async def render(self, url: str) -> RenderedPage | None: ...

    async def __aenter__(self) -> Renderer: ...

    async def __aexit__(self, *args) -> None: ...


class BrowserSession:
    """Manages a Playwright Chromium session and renders pages one at a time."""

    def __init__(self, config: BrowserConfig | None = None):
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self.executable: str | None = None  # None = bundled Chromium

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started. Use async with or call start().")
        return self._page

    async def _launch_browser(self) -> None:
        args = chromium_launch_args(self.config)
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless, args=args)
            return
        except PlaywrightError as exc:
            first_error = _first_line(exc)
            logger.error("Playwright launch failed (bundled chromium): %s", first_error)

        attempted = fallback_candidates(self.config)
        for candidate in attempted:
            logger.warning("Retrying launch with system chromium (executable_path=%s)", candidate)
            try:
                self._browser = await self._playwright.chromium.launch(
                    headless=self.config.headless,
                    executable_path=candidate,
                    args=args,
                )
            except PlaywrightError as exc:
                logger.error("Fallback launch failed for %s: %s", candidate, _first_line(exc))
                continue
            self.executable = candidate
            logger.info("Launched using system chromium: %s", candidate)
            return

        raise BrowserLaunchError(f"No Chromium binary could be launched: {first_error}", attempted=tuple(attempted))

    async def start(self) -> None:
        """Launch browser and create the crawl page."""
        self._playwright = await async_playwright().start()
        try:
            await self._launch_browser()
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
                locale=self.config.locale,
                accept_downloads=False,
            )
            self._context.on("dialog", self._on_dialog)
            self._page = await self._context.new_page()
        except BaseException:
            await self.stop()
            raise
        logger.info("Browser session started (headless=%s)", self.config.headless)

    async def stop(self) -> None:
        """Close page, context, browser and Playwright. Safe on a crashed browser."""
        if self._context:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        self._page = None
        if self._browser:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        logger.info("Browser session stopped")

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    async def _on_dialog(self, dialog: Dialog) -> None:
        """Dismiss JS dialogs so a stray alert() cannot freeze the crawl page."""
        with suppress(PlaywrightError):
            await dialog.dismiss()

    async def navigate(self, url: str) -> Response | None:
        """Go to *url* trying each navigation strategy in order.

        A timeout moves on to the next strategy. Any other error gives up
        immediately. Returns None when no strategy produced a response.
        """
        strategies = self.config.navigation_strategies
        for attempt, (wait_until, timeout_ms) in enumerate(strategies, start=1):
            logger.info("Visiting %s (attempt %d, wait_until=%s, timeout=%dms)", url, attempt, wait_until, timeout_ms)
            try:
                return await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            except PlaywrightTimeoutError:
                logger.warning("Timeout loading %s on attempt %d (wait_until=%s)", url, attempt, wait_until)
            except PlaywrightError as exc:
                logger.error("Error loading %s: %s", url, _first_line(exc))
                return None
        logger.warning("Giving up on %s after all navigation strategies timed out", url)
        return None

    async def render(self, url: str) -> RenderedPage | None:
        """Render *url* and return its HTML, visible text, title and status.

        Returns None on navigation failure or a non-2xx response.

        Raises:
            PageRenderError: content extraction failed after a successful load.
        """
        response = await self.navigate(url)
        if response is None:
            return None
        if not response.ok:
            logger.error("HTTP %d for %s", response.status, url)
            return None

        try:
            await self.page.wait_for_timeout(self.config.settle_ms)
            # raw HTML first: booking widgets live in the iframes removed below
            html = await self.page.content()
            title = await self.page.title()
            body_text = await self.page.evaluate(_VISIBLE_TEXT_JS, NOISE_SELECTORS)
        except PlaywrightError as exc:
            raise PageRenderError(f"content extraction failed for {url}: {exc}") from exc

        text = clean_text(body_text or "")
        logger.info("Extracted %d characters from %s", len(text), url)
        return RenderedPage(
            html=html or "",
            visible_text=text,
            title=sanitize_text(clean_text(title or ""), max_len=300) or "",
            http_status=response.status,
        )
