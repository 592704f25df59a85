# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import siteprofile  # noqa: F401
except ImportError:
    raise ImportError("siteprofile is not installed. Run: pip install -e '.[test]'") from None

import pytest

from siteprofile import RenderedPage
from siteprofile.config import SiteProfileConfig


@pytest.fixture(autouse=True)
def _block_real_browser(request, monkeypatch):
    """Safety net: prevent real browser launches in unit tests.

    Tests that drive ``BrowserSession`` with a mocked Playwright patch
    ``siteprofile.browser_session.async_playwright`` themselves; that patch
    takes priority over this fixture.
    """
    if "allow_real_browser" in request.keywords:
        return

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to start a real Playwright. Use FakeRenderer or patch "
            "'siteprofile.browser_session.async_playwright'."
        )

    monkeypatch.setattr("siteprofile.browser_session.async_playwright", _no_real_playwright)


class FakeRenderer:
    """In-memory renderer: url -> RenderedPage. Unknown URLs fail to render."""

    def __init__(self, pages: dict[str, RenderedPage] | None = None, raise_on: dict[str, Exception] | None = None):
        self.pages = dict(pages or {})
        self.raise_on = dict(raise_on or {})
        self.rendered: list[str] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, *args):
        self.exited = True

    async def render(self, url: str) -> RenderedPage | None:
        self.rendered.append(url)
        if url in self.raise_on:
            raise self.raise_on[url]
        return self.pages.get(url)


def page(html: str = "", text: str = "", title: str = "", status: int = 200) -> RenderedPage:
    """RenderedPage shorthand; visible text defaults to a placeholder sentence."""
    return RenderedPage(html=html, visible_text=text or f"{title or 'Page'} content.", title=title, http_status=status)


def nav(*hrefs: tuple[str, str] | str) -> str:
    """HTML body with one anchor per href (optionally (href, text) pairs)."""
    anchors = []
    for item in hrefs:
        href, text = item if isinstance(item, tuple) else (item, item)
        anchors.append(f'<a href="{href}">{text}</a>')
    return f"<html><body>{''.join(anchors)}</body></html>"


@pytest.fixture
def fast_config() -> SiteProfileConfig:
    """Config with no sitemap fetch and no politeness delay."""
    config = SiteProfileConfig()
    config.crawl.use_sitemap = False
    config.crawl.politeness_delay_s = 0
    return config
