# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Profile reconciliation.

Merges one crawl's deterministic extraction, the oracle's guess and the
previously stored profile into a ``FinalProfile``. Two rules hold for every
field:

- coalesce: a non-empty stored value is never replaced by an empty one
- idempotence: the same draft against the same stored profile gives the
  same result

Services are merged by a normalized name key, cleaned of header rows, and
slugged; a stored ``is_bookable`` flag on the same slug always survives.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import replace

from . import (
    BusinessProfileDraft,
    ContactResult,
    FinalProfile,
    ServiceCandidate,
    StoredProfile,
    StoredService,
)
from .business_name import is_generic, score_name
from .contact import merge_contact, normalize_phone
from .i18n import CS, LocaleConfig
from .opening_hours import choose_hours, hours_from_oracle

logger = logging.getLogger(__name__)

SHORT_ADDRESS_LEN = 20

_FOOTNOTE_RE = re.compile(r"\s*[*†‡]+$")
_TRAILING_PUNCT_RE = re.compile(r"\s*[.:,-]+$")


# ── Scalar fields ───────────────────────────────────────────────────


def coalesce(new, existing):
    """New value if non-empty (strings are stripped), else the existing one."""
    if isinstance(new, str):
        new = new.strip()
    if new:
        return new
    return existing or None


def choose_address(deterministic: str | None, oracle: str | None, locale: LocaleConfig = CS) -> str | None:
    """Deterministic wins unless it is a short/generic placeholder and the oracle is longer."""
    if deterministic and oracle:
        generic = deterministic == locale.multi_city_summary or len(deterministic) < SHORT_ADDRESS_LEN
        if generic and len(oracle) > len(deterministic):
            logger.info("Using oracle address %r over generic %r", oracle, deterministic)
            return oracle
        return deterministic
    return deterministic or oracle or None


def choose_phone(
    deterministic: str | None, oracle: str | None, heuristic: str | None, locale: LocaleConfig = CS
) -> str | None:
    if deterministic:
        return deterministic
    if oracle:
        return normalize_phone(oracle, locale) or oracle.strip() or None
    return heuristic or None


def choose_name(new: str | None, existing: str | None, website: str | None, locale: LocaleConfig = CS) -> str | None:
    """Replace the stored name only when it is empty, or generic and outscored."""
    new = (new or "").strip() or None
    existing = (existing or "").strip() or None
    if not new or new == existing:
        return existing or new
    if not existing:
        return new
    if not website:
        return existing
    if is_generic(existing, website, locale) and score_name(new, website, locale) > score_name(
        existing, website, locale
    ):
        logger.info("Replacing generic name %r with %r", existing, new)
        return new
    return existing


# ── Services ────────────────────────────────────────────────────────


def _strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def canonicalize_service_name(name: str | None) -> str:
    """Display form: whitespace collapsed, footnote marks and trailing punctuation dropped."""
    if not name:
        return ""
    s = " ".join(str(name).replace("\u00a0", " ").split())
    s = _FOOTNOTE_RE.sub("", s)
    s = _TRAILING_PUNCT_RE.sub("", s)
    return s.strip()


def normalize_service_key(name: str | None, locale: LocaleConfig = CS) -> str:
    """Comparison key: "Klasický Pánský  střih*" -> "pansky strih"."""
    s = canonicalize_service_name(name).lower()
    for prefix in locale.generic_service_prefixes:
        s = re.sub(rf"^{prefix}\s+", "", s, flags=re.IGNORECASE)
    return " ".join(_strip_diacritics(s).split())


def make_slug(name: str | None) -> str:
    """ "Pánský střih" -> "pansky_strih"."""
    if not name or not isinstance(name, str):
        return ""
    s = _strip_diacritics(name.lower())
    s = re.sub(r"[^a-z0-9\s-]", "", s).strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"-+", "_", s)
    s = re.sub(r"_+", "_", s)
    return s.strip("_")


def services_from_oracle(oracle) -> list[ServiceCandidate]:
    out = []
    for svc in getattr(oracle, "services", None) or ():
        name = (svc.name or "").strip()
        if not name:
            continue
        out.append(
            ServiceCandidate(
                name=name,
                description=svc.description or None,
                duration_minutes=svc.duration_minutes or None,
                price_from=svc.price_from or None,
                price_to=svc.price_to or None,
                is_core=svc.is_core is True,
            )
        )
    return out


def merge_services(
    dom: list[ServiceCandidate], oracle: list[ServiceCandidate], locale: LocaleConfig = CS
) -> list[ServiceCandidate]:
    """Oracle services first; DOM numeric fields override on a key match, new DOM services append."""
    merged = [replace(s) for s in oracle]
    by_key = {}
    for svc in merged:
        key = normalize_service_key(svc.name, locale)
        if key:
            by_key[key] = svc

    for dom_svc in dom:
        key = normalize_service_key(dom_svc.name, locale)
        if not key:
            continue
        target = by_key.get(key)
        if target is None:
            added = replace(dom_svc)
            merged.append(added)
            by_key[key] = added
            logger.debug("Added service from DOM: %r", dom_svc.name)
            continue
        if dom_svc.duration_minutes is not None:
            target.duration_minutes = dom_svc.duration_minutes
        if dom_svc.price_from is not None:
            target.price_from = dom_svc.price_from
        if dom_svc.price_to is not None:
            target.price_to = dom_svc.price_to
        if dom_svc.description:
            target.description = dom_svc.description
        logger.debug(
            "Merged DOM data for %r: duration=%s, price=%s-%s",
            dom_svc.name,
            dom_svc.duration_minutes,
            dom_svc.price_from,
            dom_svc.price_to,
        )
    return merged


def clean_services(services: list[ServiceCandidate], locale: LocaleConfig = CS) -> list[ServiceCandidate]:
    """Drop header rows, strip footnotes, and merge duplicates by most numeric information."""
    by_key: dict[str, ServiceCandidate] = {}
    dropped = merged = 0
    for svc in services:
        name = canonicalize_service_name(svc.name)
        if not name:
            continue
        candidate = replace(svc, name=name, is_core=svc.has_numeric)
        if not candidate.has_numeric:
            dropped += 1
            continue
        key = normalize_service_key(name, locale)
        existing = by_key.get(key)
        if existing is None:
            by_key[key] = candidate
            continue

        winner, loser = (
            (candidate, existing) if candidate.numeric_count >= existing.numeric_count else (existing, candidate)
        )
        if winner.description is None and loser.description:
            winner.description = loser.description
        if winner.duration_minutes is None and loser.duration_minutes is not None:
            winner.duration_minutes = loser.duration_minutes
        if winner.price_from is None and loser.price_from is not None:
            winner.price_from = loser.price_from
        if winner.price_to is None and loser.price_to is not None:
            winner.price_to = loser.price_to
        by_key[key] = winner
        merged += 1

    cleaned = list(by_key.values())
    logger.info(
        "Services cleanup: raw=%d cleaned=%d dropped_headers=%d merged=%d",
        len(services),
        len(cleaned),
        dropped,
        merged,
    )
    return cleaned


def to_stored_services(
    services: list[ServiceCandidate], existing: list[StoredService] | None = None
) -> list[StoredService]:
    """Slug each service; keep stored ``is_bookable`` per slug. Last service wins a slug collision."""
    bookable = {s.slug: s.is_bookable for s in existing or () if s.slug}
    by_slug: dict[str, StoredService] = {}
    for i, svc in enumerate(services):
        slug = make_slug(svc.name) or f"service-{i + 1}"
        by_slug[slug] = StoredService(
            slug=slug,
            name=svc.name,
            description=svc.description,
            duration_minutes=svc.duration_minutes,
            price_from=svc.price_from,
            price_to=svc.price_to,
            is_active=True,
            is_bookable=bookable.get(slug, False),
        )
    return list(by_slug.values())


# ── Whole profile ───────────────────────────────────────────────────


def _oracle_field(oracle, name: str) -> str | None:
    value = getattr(oracle, name, None) if oracle is not None else None
    return value if isinstance(value, str) and value.strip() else None


def reconcile(
    draft: BusinessProfileDraft,
    existing: StoredProfile | None,
    business_id: str | None = None,
    locale: LocaleConfig = CS,
) -> FinalProfile:
    """Merge a crawl draft with the stored profile. Pure: nothing is persisted here."""
    business_id = business_id or (existing.business_id if existing else "")
    existing = existing or StoredProfile(business_id=business_id)
    oracle = draft.oracle

    contact: ContactResult = merge_contact(draft.contact, oracle)
    phone = choose_phone(draft.contact.phone, _oracle_field(oracle, "phone"), draft.heuristic_phone, locale)
    email = contact.email
    address = choose_address(draft.contact.address, _oracle_field(oracle, "address"), locale)

    new_name = draft.name.name if draft.name is not None else _oracle_field(oracle, "name")
    name = choose_name(new_name, existing.name, draft.website, locale)

    hours, source = choose_hours(
        draft.structured_hours,
        draft.heuristic_hours,
        hours_from_oracle(getattr(oracle, "opening_hours", None)),
    )
    if not hours:
        logger.info("No opening hours extracted; keeping %d stored days", len(existing.opening_hours))
        hours = list(existing.opening_hours)
        source = "existing" if hours else "none"

    services = clean_services(merge_services(draft.dom_services, services_from_oracle(oracle), locale), locale)
    stored_services = to_stored_services(services, existing.services)

    profile = FinalProfile(
        business_id=business_id,
        name=name,
        address=coalesce(address, existing.address),
        phone=coalesce(phone, existing.phone),
        email=coalesce(email, existing.email),
        website=coalesce(draft.website, existing.website),
        services=stored_services,
        opening_hours=hours,
        locations=list(draft.locations),
        booking_providers=list(draft.booking_providers),
        hours_source=source,
    )
    logger.info(
        "Reconciled profile: name=%r phone=%r email=%r address=%r services=%d hours=%d (%s)",
        profile.name,
        profile.phone,
        profile.email,
        profile.address,
        len(profile.services),
        profile.valid_hours_count,
        source,
    )
    return profile
