# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""JSON-LD sniffing for embedded business metadata.

Parses every ``application/ld+json`` block in raw HTML once and flattens
arrays and ``@graph`` containers into a list of objects. Invalid JSON blocks
are skipped silently: structured data is the highest-confidence strategy but
never a required one.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .text import sanitize_text

_JSONLD_RE = re.compile(
    r'<script[^>]*type\s*=\s*["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)

_MAX_DEPTH = 5


def parse_jsonld_blocks(html: str) -> list[Any]:
    """Parse all JSON-LD blocks in *html*. Returns the decoded top-level values."""
    if not html:
        return []
    parsed = []
    for m in _JSONLD_RE.finditer(html):
        raw = m.group(1).strip()
        if not raw:
            continue
        try:
            parsed.append(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError):
            continue
    return parsed


def _flatten(data: Any, out: list[dict], depth: int) -> None:
    if depth <= 0:
        return
    if isinstance(data, list):
        for item in data:
            _flatten(item, out, depth - 1)
    elif isinstance(data, dict):
        out.append(data)
        if "@graph" in data:
            _flatten(data["@graph"], out, depth - 1)


def jsonld_objects(html: str) -> list[dict]:
    """All JSON-LD objects in document order, with @graph members expanded."""
    out: list[dict] = []
    for block in parse_jsonld_blocks(html):
        _flatten(block, out, _MAX_DEPTH)
    return out


def format_postal_address(addr: Any, domestic_countries: tuple[str, ...] = ()) -> str | None:
    """Render a PostalAddress object (or plain string) as "street, locality, postcode"."""
    if isinstance(addr, str):
        return sanitize_text(addr.strip(), max_len=200) or None
    if not isinstance(addr, dict):
        return None
    parts = [addr.get("streetAddress"), addr.get("addressLocality"), addr.get("postalCode")]
    country = addr.get("addressCountry")
    if isinstance(country, dict):
        country = country.get("name")
    if country and country not in domestic_countries:
        parts.append(country)
    result = ", ".join(str(p).strip() for p in parts if p and str(p).strip())
    return sanitize_text(result, max_len=200) if result else None


def find_address(obj: dict, domestic_countries: tuple[str, ...] = ()) -> str | None:
    """Address from ``address`` or ``location.address`` of one object."""
    addr = obj.get("address")
    if addr is None:
        location = obj.get("location")
        if isinstance(location, dict):
            addr = location.get("address")
    return format_postal_address(addr, domestic_countries)


def org_name(obj: dict) -> str | None:
    """Organization-ish name: own name, then publisher/organization/sourceOrganization."""
    for value in (
        obj.get("name"),
        (obj.get("publisher") or {}).get("name") if isinstance(obj.get("publisher"), dict) else None,
        (obj.get("organization") or {}).get("name") if isinstance(obj.get("organization"), dict) else None,
        (obj.get("sourceOrganization") or {}).get("name")
        if isinstance(obj.get("sourceOrganization"), dict)
        else None,
    ):
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def opening_hours_specs(obj: dict) -> list[dict]:
    """``openingHoursSpecification`` entries, also looked up under ``mainEntity``."""
    spec = obj.get("openingHoursSpecification")
    if spec is None and isinstance(obj.get("mainEntity"), dict):
        spec = obj["mainEntity"].get("openingHoursSpecification")
    if spec is None:
        return []
    specs = spec if isinstance(spec, list) else [spec]
    return [s for s in specs if isinstance(s, dict)]
