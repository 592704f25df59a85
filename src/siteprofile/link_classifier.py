# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""In-domain link discovery and priority classification.

Hrefs come from the rendered HTML (lxml), are resolved to absolute URLs,
filtered to the exact base hostname and the exclude patterns, then split into
priority links (contact, booking, pricing, services) and normal links.
Cross-domain links are never returned; booking widgets on other domains are
picked up by the booking detector instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit, urlunsplit

import lxml.html
from lxml import etree

from .i18n import CS, LocaleConfig

logger = logging.getLogger(__name__)

_REJECTED_PREFIXES = ("mailto:", "tel:", "javascript:", "#")
_BARE_DOMAIN_RE = re.compile(r"^(?:www\.)?[a-z0-9-]+\.[a-z]{2,}(?:/|$)", re.IGNORECASE)
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class DiscoveredLink:
    url: str
    text: str


def normalize_url(url: str) -> str:
    """Drop the fragment and trailing slashes (the root path keeps one).

    Unparseable input is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def is_bare_domain_href(href: str) -> bool:
    return bool(_BARE_DOMAIN_RE.match((href or "").strip()))


def resolve_href(href: str, page_url: str) -> str | None:
    """Resolve an anchor href to an absolute http(s) URL, or None if not navigational."""
    h = (href or "").strip()
    if not h or h.lower().startswith(_REJECTED_PREFIXES):
        return None
    if h.startswith(("http://", "https://")):
        return h
    if h.startswith("//"):
        return f"https:{h}"
    if is_bare_domain_href(h):
        # "fresha.com/x" would otherwise resolve as a relative path on the site
        normalized = "https://" + _WWW_RE.sub("", h)
        logger.debug("Normalized bare-domain href -> %s (from %r)", normalized, h)
        return normalized
    try:
        resolved = urljoin(page_url, h)
    except ValueError:
        return None
    return resolved if resolved.startswith(("http://", "https://")) else None


def hostname(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def _exclude_regex(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern.replace("*", ".*"))
    except re.error:
        return None


def is_excluded(url: str, exclude_paths) -> bool:
    """True if path+query of *url* matches any exclude pattern.

    Patterns containing ``*`` are globs (``*`` matches anything); others are
    plain substrings.
    """
    if not exclude_paths:
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    path = (parts.path or "/") + (f"?{parts.query}" if parts.query else "")
    for pattern in exclude_paths:
        if not pattern:
            continue
        if "*" in pattern:
            rx = _exclude_regex(pattern)
            if rx is not None and rx.search(path):
                return True
        elif pattern in path:
            return True
    return False


def extract_links(html: str, page_url: str) -> list[DiscoveredLink]:
    """Every ``<a href>`` in *html* resolved against *page_url*, in document order."""
    if not html or not html.strip():
        return []
    try:
        doc = lxml.html.fromstring(html)
    except (etree.ParserError, ValueError):
        return []
    links = []
    for anchor in doc.iter("a"):
        href = anchor.get("href")
        if not href:
            continue
        url = resolve_href(href, page_url)
        if url is None:
            continue
        text = " ".join((anchor.text_content() or "").split())
        links.append(DiscoveredLink(url=normalize_url(url), text=text))
    return links


class LinkClassifier:
    """Splits discovered links into priority and normal lists for one site."""

    def __init__(self, base_url: str, exclude_paths=(), locale: LocaleConfig = CS) -> None:
        self.base_host = hostname(base_url)
        self.exclude_paths = tuple(exclude_paths or ())
        self.locale = locale
        self._priority_texts = tuple(t.lower() for t in locale.priority_link_texts)
        self._priority_hrefs = tuple(re.compile(p, re.IGNORECASE) for p in locale.priority_href_patterns)

    def is_in_domain(self, url: str) -> bool:
        return bool(self.base_host) and hostname(url) == self.base_host

    def is_priority(self, link: DiscoveredLink) -> bool:
        text = link.text.lower()
        if any(key in text for key in self._priority_texts):
            return True
        return any(rx.search(link.url) for rx in self._priority_hrefs)

    def classify(self, links) -> tuple[list[str], list[str]]:
        """Return (priority, normal) URL lists, preserving discovery order."""
        priority: list[str] = []
        normal: list[str] = []
        for link in links:
            if not self.is_in_domain(link.url) or is_excluded(link.url, self.exclude_paths):
                continue
            (priority if self.is_priority(link) else normal).append(link.url)
        return priority, normal


def classify_links(links, base_url: str, exclude_paths=(), locale: LocaleConfig = CS) -> tuple[list[str], list[str]]:
    return LinkClassifier(base_url, exclude_paths, locale).classify(links)
