# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Unit tests for siteprofile.robots_checker (RFC 9309 compliance)."""

from __future__ import annotations

import urllib.error
from unittest.mock import MagicMock, patch

from siteprofile.robots_checker import ROBOT_USER_AGENT, RobotsChecker

# ── helpers ──────────────────────────────────────────────────────────


def _mock_response(body: str = "", status: int = 200):
    """Create a mock HTTP response for urllib.request.urlopen."""
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body.encode("utf-8")
    resp.__enter__ = MagicMock(return_value=resp)
    resp.__exit__ = MagicMock(return_value=False)
    return resp


def _http_error(code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://salon.cz/robots.txt", code, "error", {}, None)


DISALLOW_ALL = "User-agent: *\nDisallow: /"
DISALLOW_ADMIN = "User-agent: *\nDisallow: /admin"
LONGEST_MATCH = "User-agent: *\nDisallow: /\nAllow: /public/"
SPECIFIC_AGENT = f"User-agent: *\nDisallow: /\n\nUser-agent: {ROBOT_USER_AGENT}\nAllow: /\n"

# ── Basic behavior ───────────────────────────────────────────────────


class TestIsAllowed:
    async def test_missing_robots_allows_all(self):
        with patch("siteprofile.robots_checker.urllib.request.urlopen", side_effect=_http_error(404)):
            assert await RobotsChecker().is_allowed("https://salon.cz/cenik") is True

    async def test_disallowed_path(self):
        checker = RobotsChecker()
        with patch("siteprofile.robots_checker.urllib.request.urlopen", return_value=_mock_response(DISALLOW_ADMIN)):
            assert await checker.is_allowed("https://salon.cz/admin/login") is False
            assert await checker.is_allowed("https://salon.cz/cenik") is True

    async def test_longest_match_wins(self):
        checker = RobotsChecker()
        with patch("siteprofile.robots_checker.urllib.request.urlopen", return_value=_mock_response(LONGEST_MATCH)):
            assert await checker.is_allowed("https://salon.cz/public/page") is True
            assert await checker.is_allowed("https://salon.cz/private") is False

    async def test_specific_agent_group(self):
        with patch("siteprofile.robots_checker.urllib.request.urlopen", return_value=_mock_response(SPECIFIC_AGENT)):
            assert await RobotsChecker().is_allowed("https://salon.cz/x") is True

    async def test_forbidden_disallows_all(self):
        with patch("siteprofile.robots_checker.urllib.request.urlopen", side_effect=_http_error(403)):
            assert await RobotsChecker().is_allowed("https://salon.cz/") is False

    async def test_server_error_fails_open(self):
        with patch("siteprofile.robots_checker.urllib.request.urlopen", side_effect=_http_error(503)):
            assert await RobotsChecker().is_allowed("https://salon.cz/") is True

    async def test_network_error_fails_open(self):
        with patch("siteprofile.robots_checker.urllib.request.urlopen", side_effect=urllib.error.URLError("dns")):
            assert await RobotsChecker().is_allowed("https://salon.cz/") is True


# ── Caching ──────────────────────────────────────────────────────────


class TestCache:
    async def test_one_fetch_per_origin(self):
        checker = RobotsChecker()
        with patch(
            "siteprofile.robots_checker.urllib.request.urlopen", return_value=_mock_response(DISALLOW_ALL)
        ) as mock_open:
            await checker.is_allowed("https://salon.cz/a")
            await checker.is_allowed("https://salon.cz/b")
            await checker.is_allowed("http://salon.cz:8080/c")
        assert mock_open.call_count == 2
        assert checker.cache_size == 2

    def test_origin(self):
        assert RobotsChecker._origin("https://salon.cz:443/x") == "https://salon.cz"
        assert RobotsChecker._origin("http://salon.cz:8080/x") == "http://salon.cz:8080"
