# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Brand name selection.

Candidates come from the oracle and from page metadata (JSON-LD, og:site_name,
application-name, header home link, logo alt, <title>). Each is scored with a
small rule table; the highest score wins and ties keep collection order.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlsplit

import lxml.html
from lxml import etree

from . import BusinessNameCandidate, CrawledPage
from .i18n import CS, LOWER, TRADEMARK_GLYPHS, UPPER, LocaleConfig
from .structured_data import jsonld_objects, org_name
from .text import fold

logger = logging.getLogger(__name__)

MAX_NAME_PAGES = 6
MAX_NAME_HTML = 120_000
TOP_CANDIDATES = 6
EMPTY_SCORE = -1000

_EDGE_DASHES_RE = re.compile(r"^[-–—]+\s*|\s*[-–—]+$")
_WORD_SPLIT_RE = re.compile(r"[^a-z0-9]+")
_HAS_LOWER_RE = re.compile(rf"[{LOWER}]")
_HAS_UPPER_RE = re.compile(rf"[{UPPER}]")


@dataclass(frozen=True)
class NameContext:
    name: str
    lower: str
    domain_token: str
    words: tuple[str, ...]


@dataclass(frozen=True)
class NameScoreRule:
    name: str
    weight: int
    predicate: Callable[[NameContext], bool]


def domain_token(url: str) -> str:
    """``https://www.cutegory.cz/`` -> ``cutegory``."""
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host.split(".")[0]


def normalize_name(name) -> str:
    if not name or not isinstance(name, str):
        return ""
    collapsed = " ".join(name.replace("\u00a0", " ").split())
    return _EDGE_DASHES_RE.sub("", collapsed).strip()


NAME_SCORE_RULES: tuple[NameScoreRule, ...] = (
    NameScoreRule("domain_token", 35, lambda c: bool(c.domain_token) and c.domain_token in c.lower),
    NameScoreRule("trademark", 25, lambda c: any(g in c.name for g in TRADEMARK_GLYPHS)),
    NameScoreRule("short", 10, lambda c: len(c.name) <= 25),
    NameScoreRule("tagline", -25, lambda c: len(c.name) > 60),
    NameScoreRule(
        "mixed_case", 8, lambda c: bool(_HAS_LOWER_RE.search(c.name)) and bool(_HAS_UPPER_RE.search(c.name))
    ),
    NameScoreRule("sentence", -10, lambda c: sum(ch.isspace() for ch in c.name) >= 4),
)

GENERIC_WORD_PENALTY = -12


def score_name(
    name, url: str, locale: LocaleConfig = CS, rules: tuple[NameScoreRule, ...] = NAME_SCORE_RULES
) -> int:
    """Higher is better; an empty name scores ``EMPTY_SCORE``."""
    n = normalize_name(name)
    if not n:
        return EMPTY_SCORE
    words = tuple(w for w in _WORD_SPLIT_RE.split(fold(n)) if w)
    ctx = NameContext(name=n, lower=n.lower(), domain_token=domain_token(url), words=words)
    score = sum(rule.weight for rule in rules if rule.predicate(ctx))
    score += GENERIC_WORD_PENALTY * sum(1 for w in words if w in locale.generic_name_words)
    return score


def is_generic(name, url: str, locale: LocaleConfig = CS) -> bool:
    return score_name(name, url, locale) < locale.generic_name_threshold


def _first_attr(doc, xpaths: tuple[str, ...]) -> str | None:
    for xp in xpaths:
        values = doc.xpath(xp)
        if values:
            return str(values[0])
    return None


def _first_text(doc, xpaths: tuple[str, ...]) -> str | None:
    for xp in xpaths:
        for el in doc.xpath(xp):
            text = el.text_content()
            if text and text.strip():
                return text
    return None


def candidates_from_html(html: str, page_url: str) -> list[BusinessNameCandidate]:
    """Name candidates from one page, in decreasing source reliability."""
    raw: list[tuple[str | None, str]] = []
    for obj in jsonld_objects(html):
        raw.append((org_name(obj), f"json-ld:{page_url}"))

    try:
        doc = lxml.html.fromstring(html)
    except (etree.ParserError, ValueError):
        doc = None
    if doc is not None:
        raw.append((_first_attr(doc, ('//meta[@property="og:site_name"]/@content',)), f"og:site_name:{page_url}"))
        raw.append(
            (_first_attr(doc, ('//meta[@name="application-name"]/@content',)), f"meta:application-name:{page_url}")
        )
        raw.append(
            (
                _first_text(doc, ('//header//a[@href="/"]', '//header//a[@href="./"]', "//header//a")),
                f"header:a-home:{page_url}",
            )
        )
        raw.append((_first_attr(doc, ("//header//img/@alt", "//img/@alt")), f"img:alt:{page_url}"))
        raw.append((_first_text(doc, ("//title",)), f"title:{page_url}"))

    out = []
    for name, source in raw:
        normalized = normalize_name(name)
        if normalized:
            out.append(BusinessNameCandidate(name=normalized, source=source))
    return out


def _page_priority(url: str, token: str, locale: LocaleConfig) -> int:
    score = 0
    if token and token in url:
        score += 2
    if url.endswith("/"):
        score += 2
    lower = url.lower()
    if locale.primary_contact_token in lower or "contact" in lower:
        score += 3
    return score


def rank_candidates(
    pages: list[CrawledPage], base_url: str, oracle_name: str | None = None, locale: LocaleConfig = CS
) -> list[BusinessNameCandidate]:
    """All scored candidates, best first (stable on ties)."""
    token = domain_token(base_url)
    prioritized = sorted(pages, key=lambda p: _page_priority(p.url, token, locale), reverse=True)

    collected: list[BusinessNameCandidate] = []
    if oracle_name and normalize_name(oracle_name):
        collected.append(BusinessNameCandidate(name=normalize_name(oracle_name), source="oracle"))
    for page in prioritized[:MAX_NAME_PAGES]:
        if page.html:
            collected.extend(candidates_from_html(page.html[:MAX_NAME_HTML], page.url))

    scored = [
        BusinessNameCandidate(name=c.name, source=c.source, score=score_name(c.name, base_url, locale))
        for c in collected
    ]
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored


def select(
    pages: list[CrawledPage], base_url: str, oracle_name: str | None = None, locale: LocaleConfig = CS
) -> BusinessNameCandidate | None:
    """Best-scoring business name, or None when nothing was found."""
    ranked = rank_candidates(pages, base_url, oracle_name, locale)
    if not ranked:
        logger.info("No business name candidates for %s", base_url)
        return None
    top = ", ".join(f"{c.name!r}={c.score}" for c in ranked[:TOP_CANDIDATES])
    logger.info("Business name: %r from %s (score %d); top: %s", ranked[0].name, ranked[0].source, ranked[0].score, top)
    return ranked[0]
