# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Structured price-list scraping.

Runs only on pages whose URL looks like a price list. Item containers are
tried in a fixed order and the first selector that yields at least one
service wins. Items without a duration or a price are treated as section
headers and discarded.
"""

from __future__ import annotations

import logging
import re

import lxml.html
from lxml import etree

from . import ServiceCandidate
from .i18n import CS, LocaleConfig

logger = logging.getLogger(__name__)


def _has_class(token: str) -> str:
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {token} ')"


# CSS equivalents: .block-listitem .listitem, .listitem, .price-list .item,
# .service-item, [class*=price] [class*=item]
ITEM_XPATHS: tuple[str, ...] = (
    f"//*[{_has_class('block-listitem')}]//*[{_has_class('listitem')}]",
    f"//*[{_has_class('listitem')}]",
    f"//*[{_has_class('price-list')}]//*[{_has_class('item')}]",
    f"//*[{_has_class('service-item')}]",
    "//*[contains(@class, 'price')]//*[contains(@class, 'item')]",
)

_NAME_XPATHS = (".//h4", ".//h3", ".//strong", ".//*[contains(@class, 'name')]")
_PRICE_XPATHS = (
    f".//p[{_has_class('right')}]//strong",
    f".//p[{_has_class('right')}]",
    ".//strong",
    ".//*[contains(@class, 'price')]",
)

_FOOTNOTE_RE = re.compile(r"\s*[*†‡]+$")


def is_price_list_url(url: str, locale: LocaleConfig = CS) -> bool:
    lower = (url or "").lower()
    return any(keyword in lower for keyword in locale.price_list_url_keywords)


def normalize_service_name(raw: str | None, locale: LocaleConfig = CS) -> str:
    """Collapse whitespace, drop a generic leading adjective and footnote marks."""
    if not raw:
        return ""
    name = " ".join(raw.split())
    for prefix in locale.generic_service_prefixes:
        name = re.sub(rf"^{prefix}\s+", "", name, flags=re.IGNORECASE)
    return _FOOTNOTE_RE.sub("", name).strip()


def parse_duration_minutes(text: str | None, locale: LocaleConfig = CS) -> int | None:
    """ "(Délka: 30 min)" -> 30, "(Délka: 1,5 hod)" -> 90."""
    if not text:
        return None
    t = text.lower()
    minutes = "|".join(re.escape(tok) for tok in locale.minute_tokens)
    m = re.search(rf"(\d+)\s*(?:{minutes})", t)
    if m:
        return int(m.group(1))
    hours = "|".join(re.escape(tok) for tok in locale.hour_tokens)
    m = re.search(rf"(\d+(?:[.,]\d+)?)\s*(?:{hours})", t)
    if m:
        return round(float(m.group(1).replace(",", ".")) * 60)
    return None


def _parse_number(s: str) -> int | None:
    digits = re.sub(r"\D", "", s or "")
    return int(digits) if digits else None


def parse_price_range(text: str | None, locale: LocaleConfig = CS) -> tuple[int | None, int | None]:
    """ "500 - 800 Kč" -> (500, 800); "990 Kč" -> (990, 990). Thousands separators are ignored."""
    if not text:
        return None, None
    cleaned = re.sub(r"\s+", "", text.replace("\u00a0", " "))
    currency = "|".join(re.escape(c) for c in locale.currency_suffixes)
    m = re.search(rf"(\d[\d.,]*)[–-](\d[\d.,]*)(?:{currency})", cleaned, re.IGNORECASE)
    if m:
        return _parse_number(m.group(1)), _parse_number(m.group(2))
    m = re.search(rf"(\d[\d.,]*)(?:{currency})", cleaned, re.IGNORECASE)
    if m:
        value = _parse_number(m.group(1))
        return value, value
    return None, None


def _first_text(el, xpaths: tuple[str, ...]) -> str:
    for xp in xpaths:
        found = el.xpath(xp)
        if found:
            text = found[0].text_content()
            if text:
                return text
    return ""


def _duration_text(el, locale: LocaleConfig) -> str:
    for p in el.xpath(".//p"):
        text = p.text_content() or ""
        if any(word in text.lower() for word in locale.duration_words):
            return text
    return ""


def _price_range(el, locale: LocaleConfig) -> tuple[int | None, int | None]:
    """First price slot that actually holds a price, else any currency-suffixed number."""
    for xp in _PRICE_XPATHS:
        found = el.xpath(xp)
        if found:
            price = parse_price_range(found[0].text_content() or "", locale)
            if price != (None, None):
                return price
    currency = "|".join(re.escape(c) for c in locale.currency_suffixes)
    m = re.search(rf"\d+\s*[–-]?\s*\d*\s*(?:{currency})", el.text_content() or "", re.IGNORECASE)
    return parse_price_range(m.group(0), locale) if m else (None, None)


def _service_from_item(el, locale: LocaleConfig) -> ServiceCandidate | None:
    name = normalize_service_name(_first_text(el, _NAME_XPATHS), locale)
    if not name:
        return None
    duration = parse_duration_minutes(_duration_text(el, locale), locale)
    price_from, price_to = _price_range(el, locale)
    if not duration and price_from is None and price_to is None:
        return None
    return ServiceCandidate(
        name=name,
        description=None,
        duration_minutes=duration or None,
        price_from=price_from,
        price_to=price_to,
        is_core=True,
    )


def extract_services(html: str, url: str = "", locale: LocaleConfig = CS) -> list[ServiceCandidate]:
    """Services from a price-list DOM; the first selector producing any service wins."""
    if not html or not html.strip():
        return []
    try:
        doc = lxml.html.fromstring(html)
    except (etree.ParserError, ValueError):
        logger.debug("Unparseable price list HTML at %s", url)
        return []

    for xpath in ITEM_XPATHS:
        services = []
        for el in doc.xpath(xpath):
            service = _service_from_item(el, locale)
            if service is not None:
                services.append(service)
        if services:
            logger.info("Extracted %d services from price list DOM (%s)", len(services), url)
            return services
    return []


def extract_if_price_list_page(url: str, html: str, locale: LocaleConfig = CS) -> list[ServiceCandidate]:
    if not is_price_list_url(url, locale):
        return []
    return extract_services(html, url, locale)
