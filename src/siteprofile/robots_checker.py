# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Opt-in robots.txt compliance for the crawl frontier (RFC 9309).

Protego does the matching (wildcards, longest match). One robots.txt fetch per
origin per checker; fetch failures fail open.
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from urllib.parse import urlsplit

from protego import Protego

logger = logging.getLogger(__name__)

ROBOT_USER_AGENT = "SiteProfileBot"
_ROBOTS_FETCH_TIMEOUT = 10
_DISALLOW_ALL = "User-agent: *\nDisallow: /"


@dataclass(frozen=True, slots=True)
class _Rules:
    robots: Protego | None  # None = allow everything


def _rules_for_status(status: int, body: str = "") -> _Rules:
    if 200 <= status < 300:
        return _Rules(Protego.parse(body))
    if status in (401, 403):
        # access restricted: disallow all
        return _Rules(Protego.parse(_DISALLOW_ALL))
    # other 4xx: no robots.txt. 5xx: fail open
    return _Rules(None)


class RobotsChecker:
    """robots.txt checker scoped to one crawl (origin-level cache, no TTL)."""

    def __init__(self, user_agent: str = ROBOT_USER_AGENT) -> None:
        self.user_agent = user_agent
        self._cache: dict[str, _Rules] = {}

    async def is_allowed(self, url: str) -> bool:
        origin = self._origin(url)
        rules = self._cache.get(origin)
        if rules is None:
            rules = await self._fetch(origin)
            self._cache[origin] = rules
        if rules.robots is None:
            return True
        return rules.robots.can_fetch(url, self.user_agent)

    async def _fetch(self, origin: str) -> _Rules:
        robots_url = f"{origin}/robots.txt"

        def _sync_fetch() -> _Rules:
            req = urllib.request.Request(robots_url, headers={"User-Agent": self.user_agent})
            try:
                with urllib.request.urlopen(req, timeout=_ROBOTS_FETCH_TIMEOUT) as resp:  # noqa: S310  # nosec B310
                    body = resp.read().decode("utf-8", errors="replace")
                    return _rules_for_status(resp.status, body)
            except urllib.error.HTTPError as e:
                return _rules_for_status(e.code)
            except (urllib.error.URLError, OSError, ValueError):
                logger.debug("robots.txt fetch failed for %s", robots_url, exc_info=True)
                return _Rules(None)

        try:
            return await asyncio.wait_for(asyncio.to_thread(_sync_fetch), timeout=_ROBOTS_FETCH_TIMEOUT + 5)
        except TimeoutError:
            logger.debug("robots.txt fetch timed out for %s", robots_url)
            return _Rules(None)

    @staticmethod
    def _origin(url: str) -> str:
        p = urlsplit(url)
        scheme = p.scheme or "https"
        host = p.hostname or ""
        port = p.port
        if port and not ((scheme == "http" and port == 80) or (scheme == "https" and port == 443)):
            return f"{scheme}://{host}:{port}"
        return f"{scheme}://{host}"

    @property
    def cache_size(self) -> int:
        return len(self._cache)
