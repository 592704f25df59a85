# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Branch location disambiguation.

Multi-branch businesses list several addresses across their pages. This module
turns crawled text, URL/heading city signals and the profile address into at
most ``max_locations`` canonical ``LocationRecord`` rows, one per city.

Pipeline:
1. raw candidates (address patterns, name signals, profile address)
2. filter + dedup (``is_probably_address``)
3. one canonical location per city; the profile address always wins its city
4. booking-provider attribution via city-scoped URLs
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from . import CrawledPage, LocationRecord
from .i18n import CS, LETTER, LOWER, UPPER, LocaleConfig
from .text import collapse_ws, fold

logger = logging.getLogger(__name__)

MIN_ADDRESS_MATCH = 10
MAX_ADDRESS_MATCH = 200
_CONTEXT_BEFORE = 100
_CONTEXT_AFTER = 200

_DIGIT_RE = re.compile(r"\d")
_WORD = rf"[{UPPER}][{LOWER}]+"


@dataclass(frozen=True)
class _AddressPatterns:
    street_first: re.Pattern[str]
    number_first: re.Pattern[str]
    town: re.Pattern[str]
    nearby_street: re.Pattern[str]
    district: re.Pattern[str]


def _patterns(locale: LocaleConfig) -> _AddressPatterns:
    street_words = "|".join(re.escape(w) for w in locale.street_words)
    towns = "|".join(re.escape(t) for t in sorted(locale.known_towns, key=len, reverse=True))
    signal = "|".join(re.escape(c) for c in locale.signal_cities)
    return _AddressPatterns(
        # "Vinohradská 12/34, 120 00 Praha"
        street_first=re.compile(
            rf"({_WORD}(?:\s+{_WORD})*\s+(?:{street_words})?)\s*(\d+(?:/\d+)?)"
            rf"(?:\s*,\s*)?(?:\s*(\d{{3}}\s*\d{{2}})?\s*)?({_WORD}(?:\s+\d+)?)?",
            re.IGNORECASE,
        ),
        # "12 Vinohradská, Praha"
        number_first=re.compile(rf"(\d+(?:/\d+)?)\s+({_WORD}(?:\s+{_WORD})*)\s*,\s*({_WORD})", re.IGNORECASE),
        town=re.compile(rf"\b({towns})\b", re.IGNORECASE) if towns else re.compile(r"(?!x)x"),
        nearby_street=re.compile(rf"({_WORD}\s+\d+(?:/\d+)?)", re.IGNORECASE),
        # "Praha – Vinohrady"
        district=re.compile(rf"\b(?:{signal})\s*[–-]\s*[{LETTER}]+") if signal else re.compile(r"(?!x)x"),
    )


def extract_addresses(text: str, locale: LocaleConfig = CS) -> list[str]:
    """Address-shaped fragments of *text*, deduplicated in order of discovery."""
    if not text:
        return []
    pats = _patterns(locale)
    found: dict[str, None] = {}

    for pattern in (pats.street_first, pats.number_first):
        for m in pattern.finditer(text):
            candidate = m.group(0).strip()
            if MIN_ADDRESS_MATCH < len(candidate) < MAX_ADDRESS_MATCH:
                found.setdefault(candidate, None)

    for m in pats.town.finditer(text):
        street = _nearest_street(pats.nearby_street, text, m.start(), m.end())
        if street:
            found.setdefault(f"{street}, {m.group(1)}", None)

    return list(found)


def _nearest_street(pattern: re.Pattern[str], text: str, start: int, end: int) -> str | None:
    """Closest "Street 12" before the town mention, else the first one after it."""
    before = list(pattern.finditer(text[max(0, start - _CONTEXT_BEFORE) : start]))
    if before:
        return before[-1].group(1)
    after = pattern.search(text[end : end + _CONTEXT_AFTER])
    return after.group(1) if after else None


def extract_location_names(pages: list[CrawledPage], locale: LocaleConfig = CS) -> list[str]:
    """City signals from URL paths (``/praha``), page text and district headings."""
    names: dict[str, None] = {}
    folded_cities = [(fold(c), c) for c in locale.signal_cities]
    city_re = re.compile("|".join(re.escape(f) for f, _ in folded_cities)) if folded_cities else None
    by_folded = dict(folded_cities)
    district_re = _patterns(locale).district

    for page in pages:
        url = fold(page.url)
        for folded, display in folded_cities:
            if f"/{folded}" in url:
                names.setdefault(display, None)

        text = f"{page.title or ''} {page.visible_text or ''}"
        if city_re is not None:
            for m in city_re.finditer(fold(text)):
                names.setdefault(by_folded[m.group(0)], None)
        for m in district_re.finditer(text):
            names.setdefault(m.group(0).strip(), None)

    return list(names)


def is_probably_address(value: str | None, locale: LocaleConfig = CS) -> bool:
    """Digit + city keyword, no junk tokens, sane length."""
    if not value:
        return False
    s = value.strip()
    if not locale.location_min_len <= len(s) <= locale.location_max_len:
        return False
    if not _DIGIT_RE.search(s):
        return False
    if locale.city_in(s) is None:
        return False
    lower = s.lower()
    return not any(token in lower for token in locale.junk_tokens)


def _address_key(address: str) -> str:
    return collapse_ws(address).lower()


def _city_of(address: str | None, locale: LocaleConfig) -> str | None:
    if not address:
        return None
    folded = fold(address)
    for city in locale.signal_cities:
        if fold(city) in folded:
            return city
    return None


def _inferred_name(address: str, locale: LocaleConfig) -> str:
    keyword = locale.city_in(address)
    return locale.city_name(keyword) if keyword else locale.location_fallback_name


def raw_locations(
    addresses: list[str], names: list[str], profile_address: str | None, locale: LocaleConfig = CS
) -> list[LocationRecord]:
    """Pair address candidates with name signals before any filtering."""
    if len(addresses) > 1:
        rows = []
        for i, address in enumerate(addresses):
            lower = address.lower()
            name = next((n for n in names if n.lower() in lower), None)
            if name is None:
                name = _city_of(address, locale) or f"{locale.location_fallback_name} {i + 1}"
            rows.append(LocationRecord(name=name, address=address))
        return rows
    if len(addresses) == 1:
        if len(names) > 1:
            return [LocationRecord(name=n, address=addresses[0]) for n in names]
        return [LocationRecord(name=names[0] if names else None, address=addresses[0])]
    if names:
        return [LocationRecord(name=n, address=profile_address) for n in names]
    return [LocationRecord(name=None, address=profile_address)]


def normalize_and_filter(rows: list[LocationRecord], locale: LocaleConfig = CS) -> list[LocationRecord]:
    generic = re.compile(rf"^{re.escape(locale.location_fallback_name)}", re.IGNORECASE)
    seen: set[str] = set()
    out = []
    for row in rows:
        if not is_probably_address(row.address, locale):
            continue
        address = collapse_ws(row.address)
        key = _address_key(address)
        if key in seen:
            continue
        seen.add(key)
        name = row.name
        if not name or generic.match(name):
            name = _inferred_name(address, locale)
        out.append(LocationRecord(name=name, address=address, booking_providers=list(row.booking_providers)))
    return out


def base_location(
    profile_address: str | None, providers: list[str], locale: LocaleConfig = CS
) -> LocationRecord | None:
    """The profile address as a location, if it names a city and has a number."""
    if not profile_address:
        return None
    address = collapse_ws(profile_address)
    if not (locale.city_in(address) and _DIGIT_RE.search(address)):
        return None
    return LocationRecord(name=_inferred_name(address, locale), address=address, booking_providers=list(providers))


def _canonical_sort_key(row: LocationRecord) -> tuple[int, int, str]:
    address = row.address or ""
    return (0 if "/" in address else 1, len(address), address)


def canonicalize(
    rows: list[LocationRecord], base: LocationRecord | None, locale: LocaleConfig = CS
) -> list[LocationRecord]:
    """One location per city keyword. Rows with no city are dropped."""
    by_city: dict[str, list[LocationRecord]] = {}
    for row in rows:
        by_city.setdefault(locale.city_in(row.address or "") or "unknown", []).append(row)

    result = []
    if base is not None:
        result.append(base)
        by_city.pop(locale.city_in(base.address or "") or "unknown", None)

    for city, group in by_city.items():
        if city == "unknown":
            continue
        result.append(min(group, key=_canonical_sort_key))
    return result[: locale.max_locations]


def attribute_providers(
    rows: list[LocationRecord], pages: list[CrawledPage], providers: list[str], locale: LocaleConfig = CS
) -> None:
    """Attach all providers to locations whose city also appears in a crawled URL path."""
    if not providers:
        return
    url_cities = set()
    for page in pages:
        url = fold(page.url)
        for city in locale.signal_cities:
            if f"/{fold(city)}" in url:
                url_cities.add(fold(city))
                break
    if not url_cities:
        return
    for row in rows:
        haystack = fold(f"{row.name or ''} {row.address or ''}")
        if any(city in haystack for city in url_cities):
            for provider_id in providers:
                if provider_id not in row.booking_providers:
                    row.booking_providers.append(provider_id)


def resolve(
    pages: list[CrawledPage],
    profile_address: str | None,
    booking_providers: list[str] | None = None,
    locale: LocaleConfig = CS,
) -> list[LocationRecord]:
    """Canonical branch locations for a crawled site, capped at ``locale.max_locations``."""
    providers = list(booking_providers or ())
    combined = "\n\n".join(p.visible_text for p in pages if p.visible_text)

    addresses = extract_addresses(combined, locale)
    names = extract_location_names(pages, locale)
    logger.debug("Location candidates: %d addresses, %d names", len(addresses), len(names))

    rows = normalize_and_filter(raw_locations(addresses, names, profile_address, locale), locale)
    base = base_location(profile_address, providers, locale)
    locations = canonicalize(rows, base, locale)
    attribute_providers(locations, pages, providers, locale)

    if not locations and profile_address:
        locations = [LocationRecord(name=None, address=profile_address, booking_providers=providers)]

    logger.info("Resolved %d locations", len(locations))
    return locations
