# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Opening hours from three sources, in decreasing confidence.

1. JSON-LD ``openingHoursSpecification`` on any crawled page
2. weekday/time patterns in the page text ("Pondělí - Pátek 8:00 - 20:00")
3. the oracle's ``{mon: {opens, closes}}`` mapping

Every source returns only days that have both an opening and a closing time,
ordered Monday first.
"""

from __future__ import annotations

import logging
import re

from . import WEEKDAYS, CrawledPage, OpeningHour
from .i18n import CS, LocaleConfig
from .structured_data import jsonld_objects, opening_hours_specs
from .text import fold

logger = logging.getLogger(__name__)

MAX_HOURS_HTML = 120_000

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_COMPACT_RE = re.compile(r"^(\d{1,2})(\d{2})$")

_SCHEMA_DAYS = {
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
    "sunday": "sun",
    **{d: d for d in WEEKDAYS},
}


def normalize_time(value) -> str | None:
    """Normalize "9:00", "0900", "900" or "09:00:00" to "HH:MM"; anything else gives None."""
    if value is None:
        return None
    s = str(value).strip()
    m = _HHMM_RE.match(s) or _COMPACT_RE.match(s)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 24 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def weekday_from_schema(day) -> str | None:
    """``https://schema.org/Monday`` or ``Monday`` -> ``mon``."""
    if not day or not isinstance(day, str):
        return None
    tail = day.rstrip("/").rsplit("/", 1)[-1].lower()
    return _SCHEMA_DAYS.get(tail)


def _ordered(by_day: dict[str, tuple[str, str]]) -> list[OpeningHour]:
    return [OpeningHour(day, *by_day[day]) for day in WEEKDAYS if day in by_day]


def extract_structured_hours(pages: list[CrawledPage]) -> list[OpeningHour]:
    by_day: dict[str, tuple[str, str]] = {}
    specs_found = 0
    for page in pages or ():
        if not page.html:
            continue
        for obj in jsonld_objects(page.html[:MAX_HOURS_HTML]):
            specs = opening_hours_specs(obj)
            specs_found += len(specs)
            for spec in specs:
                opens = normalize_time(spec.get("opens"))
                closes = normalize_time(spec.get("closes"))
                if not opens or not closes:
                    continue
                days = spec.get("dayOfWeek")
                for day in days if isinstance(days, list) else [days]:
                    key = weekday_from_schema(day)
                    if key:
                        by_day[key] = (opens, closes)
    hours = _ordered(by_day)
    logger.info("JSON-LD hours: %d specs, %d valid days", specs_found, len(hours))
    return hours


def _hour_patterns(locale: LocaleConfig) -> tuple[re.Pattern[str], re.Pattern[str]]:
    names = "|".join(re.escape(n) for n in locale.weekday_names)
    time = r"(\d{1,2}):(\d{2})"
    dash = r"\s*[-–]\s*"
    range_re = re.compile(rf"({names}){dash}({names})\s+{time}{dash}{time}")
    per_day_re = re.compile(rf"({names})\s+{time}{dash}{time}")
    return range_re, per_day_re


def _hhmm(hour: str, minute: str) -> str:
    return f"{int(hour):02d}:{minute}"


def extract_heuristic_hours(text: str, locale: LocaleConfig = CS) -> list[OpeningHour]:
    """Weekday/time patterns over folded text; a day range wins over per-day rows."""
    if not text:
        return []
    folded = fold(text)
    order = list(locale.weekday_names)
    range_re, per_day_re = _hour_patterns(locale)

    m = range_re.search(folded)
    if m:
        start, end = order.index(m.group(1)), order.index(m.group(2))
        if start <= end:
            opens, closes = _hhmm(m.group(3), m.group(4)), _hhmm(m.group(5), m.group(6))
            by_day = {locale.weekday_names[order[i]]: (opens, closes) for i in range(start, end + 1)}
            return _ordered(by_day)

    by_day = {}
    for m in per_day_re.finditer(folded):
        by_day[locale.weekday_names[m.group(1)]] = (_hhmm(m.group(2), m.group(3)), _hhmm(m.group(4), m.group(5)))
    return _ordered(by_day)


def hours_from_oracle(mapping) -> list[OpeningHour]:
    """Oracle ``{mon: {opens, closes}}``; days with a missing end are dropped."""
    if not mapping:
        return []
    if hasattr(mapping, "model_dump"):
        mapping = mapping.model_dump()
    by_day = {}
    for day in WEEKDAYS:
        entry = mapping.get(day) if isinstance(mapping, dict) else None
        if entry is None:
            continue
        if hasattr(entry, "model_dump"):
            entry = entry.model_dump()
        if not isinstance(entry, dict):
            continue
        opens, closes = normalize_time(entry.get("opens")), normalize_time(entry.get("closes"))
        if opens and closes:
            by_day[day] = (opens, closes)
    return _ordered(by_day)


def choose_hours(structured, heuristic, oracle) -> tuple[list[OpeningHour], str]:
    """First non-empty source wins: structured > heuristic > oracle."""
    for source, hours in (("json-ld", structured), ("heuristic", heuristic), ("oracle", oracle)):
        valid = [h for h in hours or () if h.opens_at and h.closes_at]
        if valid:
            return valid, source
    return [], "none"
