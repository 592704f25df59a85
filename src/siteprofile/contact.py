# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Deterministic phone / email / address extraction.

Per page, strategies run in priority order and the first hit per field wins:

1. JSON-LD business metadata (``telephone``, ``email``, ``address``)
2. ``tel:`` / ``mailto:`` links
3. regex over the page text
4. address-only DOM-proximity heuristic (scored context windows)

Across pages, contact/about pages are read first and a hit on the primary
contact page supersedes earlier ones.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from . import ContactCandidate, ContactResult, CrawledPage
from .i18n import CS, LETTER, LocaleConfig
from .structured_data import find_address, jsonld_objects
from .text import fold, html_to_text, sanitize_text

logger = logging.getLogger(__name__)

MAX_PAGE_HTML = 100_000
MAX_ADDRESS_HTML = 80_000
MAX_ADDRESS_CANDIDATES = 12
ADDRESS_CONTEXT_CHARS = 140

EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
_EMAIL_PLACEHOLDERS = ("example.com", "email.com", "youremail")
_EMAIL_IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".svg", ".gif", ".webp")

_TEL_LINK_RE = re.compile(r"""(?:href\s*=\s*["']?tel:([^"'\s>]+)|tel:([^\s<"']+))""", re.IGNORECASE)
_MAILTO_LINK_RE = re.compile(r"""(?:href\s*=\s*["']?mailto:([^"'\s>?]+)|mailto:([^\s<"'?]+))""", re.IGNORECASE)

# "Vinohradská 12/3, 120 00 Praha 2"
ADDRESS_RE = re.compile(
    rf"([{LETTER}]+(?:\s+[{LETTER}]+){{0,3}})\s+(\d+(?:/\d+)?)\s*,\s*(?:(\d{{3}}\s?\d{{2}})\s+)?([{LETTER}]+(?:\s+\d+)?)"
)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_phone(raw: str | None, locale: LocaleConfig = CS) -> str | None:
    """Normalize to ``+<country><national>``; None when the shape is not a phone number."""
    if not raw or not isinstance(raw, str):
        return None
    cleaned = re.sub(r"[^\d+]", "", raw)
    cc = locale.country_code
    full_len = 1 + len(cc) + locale.national_digits
    if cleaned.startswith("+"):
        if cleaned.startswith(f"+{cc}") and len(cleaned) == full_len:
            return cleaned
        if 10 <= len(cleaned) <= 15:
            return cleaned
        return None
    if cleaned.startswith(cc):
        cleaned = f"+{cleaned}"
        return cleaned if len(cleaned) == full_len else None
    if len(cleaned) == locale.national_digits:
        return f"+{cc}{cleaned}"
    return None


def is_plausible_email(email: str) -> bool:
    email = email.lower()
    if any(p in email for p in _EMAIL_PLACEHOLDERS):
        return False
    return not email.endswith(_EMAIL_IMAGE_SUFFIXES)


def is_contact_page(url: str, locale: LocaleConfig = CS) -> bool:
    if not url:
        return False
    return any(re.search(p, url, re.IGNORECASE) for p in locale.contact_page_patterns)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def phones_from_text(text: str, locale: LocaleConfig = CS) -> list[str]:
    """Normalized, de-duplicated phones; patterns are tried most specific first."""
    if not text:
        return []
    found: dict[str, None] = {}
    for pattern in locale.phone_patterns:
        for m in re.finditer(pattern, text):
            phone = normalize_phone(m.group(0), locale)
            if phone:
                found.setdefault(phone)
    return list(found)


def emails_from_text(text: str) -> list[str]:
    found: dict[str, None] = {}
    for m in EMAIL_RE.finditer(text or ""):
        email = m.group(0).lower().strip()
        if is_plausible_email(email):
            found.setdefault(email)
    return list(found)


def _tel_links(html: str, locale: LocaleConfig) -> list[str]:
    found: dict[str, None] = {}
    for m in _TEL_LINK_RE.finditer(html):
        phone = normalize_phone(m.group(1) or m.group(2), locale)
        if phone:
            found.setdefault(phone)
    return list(found)


def _mailto_links(html: str) -> list[str]:
    found: dict[str, None] = {}
    for m in _MAILTO_LINK_RE.finditer(html):
        email = (m.group(1) or m.group(2) or "").lower().strip()
        if email and EMAIL_RE.search(email) and is_plausible_email(email):
            found.setdefault(email)
    return list(found)


def _jsonld_contact(html: str, url: str, locale: LocaleConfig) -> list[ContactCandidate]:
    phone = email = address = None
    for obj in jsonld_objects(html):
        if phone is None and isinstance(obj.get("telephone"), str):
            phone = normalize_phone(obj["telephone"], locale)
        if email is None and isinstance(obj.get("email"), str):
            value = obj["email"].lower().strip().removeprefix("mailto:")
            if EMAIL_RE.search(value):
                email = value
        if address is None:
            address = find_address(obj, locale.domestic_country_names)
    out = []
    for kind, value in (("phone", phone), ("email", email), ("address", address)):
        if value:
            out.append(ContactCandidate(value=value, kind=kind, strategy="json-ld", source_url=url))
    return out


# ---------------------------------------------------------------------------
# Address heuristic
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AddressScoreRule:
    name: str
    weight: int
    predicate: Callable[[str, LocaleConfig], bool]  # (folded context, locale)


def _has_any(folded: str, words) -> bool:
    return any(fold(w) in folded for w in words)


ADDRESS_SCORE_RULES: tuple[AddressScoreRule, ...] = (
    AddressScoreRule("address_label", 35, lambda ctx, loc: _has_any(ctx, loc.address_labels)),
    AddressScoreRule("map_keyword", 10, lambda ctx, loc: _has_any(ctx, loc.map_keywords)),
    AddressScoreRule("known_city", 10, lambda ctx, loc: _has_any(ctx, loc.city_keywords)),
    AddressScoreRule("legal_keyword", -60, lambda ctx, loc: _has_any(ctx, loc.legal_keywords)),
)


def score_address_context(context: str, locale: LocaleConfig = CS, rules=ADDRESS_SCORE_RULES) -> int:
    folded = fold(context)
    return sum(rule.weight for rule in rules if rule.predicate(folded, locale))


@dataclass
class AddressPick:
    address: str | None
    reason: str
    candidates: list[ContactCandidate] = field(default_factory=list)
    multi_location: bool = False


def address_from_dom(html: str, url: str = "", locale: LocaleConfig = CS) -> AddressPick:
    """Best scored address-shaped substring of the page text.

    Returns the locale's multi-city summary when every multi-city keyword
    occurs on the page and no candidate is strongly labeled.
    """
    if not html:
        return AddressPick(None, "no_html")
    text = html_to_text(html[:MAX_ADDRESS_HTML])
    folded_text = fold(text)
    multi_location = bool(locale.multi_city_keywords and locale.multi_city_summary) and all(
        fold(k) in folded_text for k in locale.multi_city_keywords
    )

    candidates: list[ContactCandidate] = []
    for m in ADDRESS_RE.finditer(text):
        addr = m.group(0).strip()
        if not 10 <= len(addr) <= 160:
            continue
        start = max(0, m.start() - ADDRESS_CONTEXT_CHARS)
        end = min(len(text), m.start() + len(addr) + ADDRESS_CONTEXT_CHARS)
        score = score_address_context(text[start:end], locale)
        candidates.append(
            ContactCandidate(value=addr, kind="address", strategy="dom-heuristic", source_url=url, score=score)
        )
        if len(candidates) >= MAX_ADDRESS_CANDIDATES:
            break

    # stable: ties keep document order
    candidates.sort(key=lambda c: c.score, reverse=True)
    best = candidates[0] if candidates else None

    if multi_location and (best is None or best.score < locale.address_strong_threshold):
        return AddressPick(locale.multi_city_summary, "multi_location_summary", candidates, True)
    if best is not None and best.score < 0:
        return AddressPick(None, "rejected_low_score", candidates, multi_location)
    if best is not None and best.score >= locale.address_pick_threshold:
        return AddressPick(best.value, "picked_scored_candidate", candidates, multi_location)
    return AddressPick(None, "no_confident_candidate", candidates, multi_location)


# ---------------------------------------------------------------------------
# Page + cross-page extraction
# ---------------------------------------------------------------------------


def collect_candidates(html: str, url: str = "", locale: LocaleConfig = CS) -> list[ContactCandidate]:
    """First candidate per kind per strategy, in strategy priority order."""
    if not html:
        return []
    candidates = _jsonld_contact(html, url, locale)
    tel = _tel_links(html, locale)
    if tel:
        candidates.append(ContactCandidate(tel[0], "phone", "tel-link", url))
    mailto = _mailto_links(html)
    if mailto:
        candidates.append(ContactCandidate(mailto[0], "email", "mailto-link", url))
    text = html_to_text(html)
    phones = phones_from_text(text, locale)
    if phones:
        candidates.append(ContactCandidate(phones[0], "phone", "text-regex", url))
    emails = emails_from_text(text)
    if emails:
        candidates.append(ContactCandidate(emails[0], "email", "text-regex", url))
    return candidates


def extract_from_page(html: str, url: str = "", locale: LocaleConfig = CS) -> ContactResult:
    """Phone, email and address from one page; first strategy with a value wins."""
    result = ContactResult()
    if not html:
        return result
    for cand in collect_candidates(html, url, locale):
        if getattr(result, cand.kind) is None:
            setattr(result, cand.kind, cand.value)
            result.sources[cand.kind] = cand.strategy

    if result.address is None:
        pick = address_from_dom(html, url, locale)
        if pick.candidates:
            logger.debug(
                "Address candidates on %s (reason=%s): %s",
                url,
                pick.reason,
                [(c.value, c.score) for c in pick.candidates[:5]],
            )
        if pick.address:
            result.address = sanitize_text(pick.address, max_len=200)
            result.sources["address"] = "dom-heuristic"
            logger.info("Picked address %r (reason=%s) on %s", result.address, pick.reason, url)
    return result


def extract_from_pages(pages: list[CrawledPage], locale: LocaleConfig = CS) -> ContactResult:
    """Merge per-page results; contact pages first, stopping once all fields resolve."""
    result = ContactResult()
    if not pages:
        return result
    ordered = sorted(pages, key=lambda p: 0 if is_contact_page(p.url, locale) else 1)
    found_from: dict[str, str] = {}
    token = locale.primary_contact_token

    for page in ordered:
        if not page.html or not page.url:
            continue
        is_contact = is_contact_page(page.url, locale)
        try:
            found = extract_from_page(page.html[:MAX_PAGE_HTML], page.url, locale)
        except Exception:
            logger.warning("Contact extraction failed for %s", page.url, exc_info=True)
            continue

        for kind in ("phone", "email"):
            value = getattr(found, kind)
            if not value:
                continue
            current = getattr(result, kind)
            if current is None or (is_contact and token not in found_from.get(kind, "")):
                setattr(result, kind, value)
                result.sources[kind] = f"{found.sources[kind]} from {page.url}"
                found_from[kind] = page.url
                logger.debug("%s found: %s (%s)", kind, value, result.sources[kind])

        if found.address:
            current_len = len(result.address or "")
            if (
                result.address is None
                or (is_contact and token not in found_from.get("address", ""))
                or len(found.address) > current_len + 10
            ):
                result.address = found.address
                result.sources["address"] = f"{found.sources['address']} from {page.url}"
                found_from["address"] = page.url

        if result.complete:
            break

    logger.info(
        "Contact extraction over %d pages: phone=%s email=%s address=%s",
        len(pages),
        result.phone,
        result.email,
        result.address,
    )
    return result


def merge_contact(deterministic: ContactResult, oracle) -> ContactResult:
    """Deterministic values win per field; disagreements with the oracle are logged."""
    merged = ContactResult(sources=dict(deterministic.sources))
    for kind in ("phone", "email", "address"):
        det = getattr(deterministic, kind)
        guess = getattr(oracle, kind, None) if oracle is not None else None
        if det and guess and det != guess:
            logger.info("Using deterministic %s (%s) over oracle (%s)", kind, det, guess)
        if det:
            setattr(merged, kind, det)
        elif guess:
            setattr(merged, kind, guess)
            merged.sources[kind] = "oracle"
    return merged
