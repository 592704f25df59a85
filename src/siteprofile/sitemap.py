# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""``/sitemap.xml`` seeding.

Only ``<urlset>`` documents are read; a ``<sitemapindex>`` (or anything else)
yields no URLs. Every failure is logged and turns into an empty list: the
sitemap is an optional seed source and never fails a crawl.
"""

from __future__ import annotations

import asyncio
import logging
import re
import urllib.error
import urllib.request
from urllib.parse import urljoin, urlsplit

from lxml import etree

from .browser_session import DEFAULT_USER_AGENT
from .link_classifier import is_excluded

logger = logging.getLogger(__name__)

_SITEMAP_FETCH_TIMEOUT = 10
_MAX_SITEMAP_BYTES = 5 * 1024 * 1024
_DEFAULT_LIMIT = 200
_WWW_RE = re.compile(r"^www\.")

_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, recover=True, huge_tree=False)


def _bare_host(url: str) -> str:
    try:
        return _WWW_RE.sub("", (urlsplit(url).hostname or "").lower())
    except ValueError:
        return ""


def parse_sitemap(xml: bytes | str, base_url: str, limit: int | None = None, exclude_paths=()) -> list[str]:
    """Same-site ``<loc>`` URLs from a urlset document.

    Hostnames are compared with a leading ``www.`` stripped on both sides.
    """
    if not xml:
        return []
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    try:
        root = etree.fromstring(xml, parser=_XML_PARSER)
    except etree.XMLSyntaxError:
        logger.info("Unparseable sitemap for %s", base_url)
        return []
    if root is None or etree.QName(root).localname != "urlset":
        logger.info("Unrecognized sitemap structure for %s", base_url)
        return []

    base_host = _bare_host(base_url)
    urls = []
    for loc in root.xpath("./*[local-name()='url']/*[local-name()='loc']/text()"):
        loc = loc.strip()
        if not loc.startswith(("http://", "https://")):
            continue
        if _bare_host(loc) != base_host:
            continue
        if is_excluded(loc, exclude_paths):
            continue
        urls.append(loc)
    return urls[: limit or _DEFAULT_LIMIT]


def _fetch_sync(sitemap_url: str, timeout: float) -> bytes | None:
    req = urllib.request.Request(sitemap_url, headers={"User-Agent": DEFAULT_USER_AGENT})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # noqa: S310  # nosec B310
            if not 200 <= resp.status < 300:
                logger.info("No sitemap (status %d)", resp.status)
                return None
            return resp.read(_MAX_SITEMAP_BYTES)
    except urllib.error.HTTPError as e:
        logger.info("No sitemap (status %d)", e.code)
        return None
    except (urllib.error.URLError, OSError, ValueError) as e:
        logger.info("Error fetching sitemap %s: %s", sitemap_url, e)
        return None


async def discover_sitemap_urls(
    base_url: str,
    limit: int | None = None,
    exclude_paths=(),
    *,
    timeout: float = _SITEMAP_FETCH_TIMEOUT,
) -> list[str]:
    """Fetch ``/sitemap.xml`` for *base_url* and return up to *limit* same-site URLs."""
    sitemap_url = urljoin(base_url, "/sitemap.xml")
    logger.info("Trying %s", sitemap_url)
    try:
        body = await asyncio.wait_for(asyncio.to_thread(_fetch_sync, sitemap_url, timeout), timeout=timeout + 5)
    except TimeoutError:
        logger.info("Sitemap fetch timed out for %s", sitemap_url)
        return []
    if body is None:
        return []
    urls = parse_sitemap(body, base_url, limit, exclude_paths)
    logger.info("Discovered %d URLs from sitemap.xml", len(urls))
    return urls
