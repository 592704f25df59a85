# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for /sitemap.xml seeding."""

from __future__ import annotations

import urllib.error
from unittest.mock import MagicMock, patch

from siteprofile.sitemap import discover_sitemap_urls, parse_sitemap

BASE = "https://salon.cz/"

URLSET = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://salon.cz/</loc></url>
  <url><loc> https://www.salon.cz/cenik </loc></url>
  <url><loc>https://jiny-web.cz/kontakt</loc></url>
  <url><loc>/relative</loc></url>
  <url><loc>https://salon.cz/blog/1</loc></url>
</urlset>
"""

INDEX = b"""<?xml version="1.0"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://salon.cz/sitemap-1.xml</loc></sitemap>
</sitemapindex>
"""

# ── helpers ──────────────────────────────────────────────────────────


def _mock_response(body: bytes, status: int = 200):
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body
    resp.__enter__ = MagicMock(return_value=resp)
    resp.__exit__ = MagicMock(return_value=False)
    return resp


# ── parse_sitemap ────────────────────────────────────────────────────


class TestParseSitemap:
    def test_same_site_urls_only(self):
        urls = parse_sitemap(URLSET, BASE)
        assert urls == ["https://salon.cz/", "https://www.salon.cz/cenik", "https://salon.cz/blog/1"]

    def test_exclude_paths(self):
        urls = parse_sitemap(URLSET, BASE, exclude_paths=["/blog"])
        assert "https://salon.cz/blog/1" not in urls

    def test_limit(self):
        assert parse_sitemap(URLSET, BASE, limit=1) == ["https://salon.cz/"]

    def test_sitemap_index_yields_nothing(self):
        assert parse_sitemap(INDEX, BASE) == []

    def test_garbage(self):
        assert parse_sitemap(b"", BASE) == []
        assert parse_sitemap("<html><body>404</body></html>", BASE) == []

    def test_str_input(self):
        assert parse_sitemap(URLSET.decode(), BASE)[0] == "https://salon.cz/"


# ── discover_sitemap_urls ────────────────────────────────────────────


class TestDiscoverSitemapUrls:
    async def test_fetches_root_sitemap(self):
        with patch("siteprofile.sitemap.urllib.request.urlopen", return_value=_mock_response(URLSET)) as mock_open:
            urls = await discover_sitemap_urls("https://salon.cz/sluzby/strihani", limit=10)
        request = mock_open.call_args[0][0]
        assert request.full_url == "https://salon.cz/sitemap.xml"
        assert len(urls) == 3

    async def test_http_error_returns_empty(self):
        err = urllib.error.HTTPError("https://salon.cz/sitemap.xml", 404, "Not Found", {}, None)
        with patch("siteprofile.sitemap.urllib.request.urlopen", side_effect=err):
            assert await discover_sitemap_urls(BASE) == []

    async def test_network_error_returns_empty(self):
        with patch("siteprofile.sitemap.urllib.request.urlopen", side_effect=urllib.error.URLError("dns")):
            assert await discover_sitemap_urls(BASE) == []

    async def test_non_2xx_returns_empty(self):
        with patch("siteprofile.sitemap.urllib.request.urlopen", return_value=_mock_response(URLSET, status=500)):
            assert await discover_sitemap_urls(BASE) == []
