# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site Profile: turns a business website into a structured business profile.

Crawls a site with a bounded, priority-aware frontier over JS-rendered pages and
reconciles several extraction strategies into:
- contact details (phone, email, address)
- branch locations and opening hours
- a service price list
"""

from __future__ import annotations

from dataclasses import dataclass, field

WEEKDAYS: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass(frozen=True, slots=True)
class CrawlTask:
    """A normalized URL waiting in the crawl frontier."""

    url: str
    depth: int
    is_priority: bool = False


@dataclass(frozen=True, slots=True)
class RenderedPage:
    """Raw output of one successful render."""

    html: str
    visible_text: str
    title: str
    http_status: int


@dataclass(frozen=True, slots=True)
class CrawledPage:
    """A page that was rendered and accepted during a crawl."""

    url: str
    depth: int
    title: str
    html: str
    visible_text: str
    http_status: int
    booking_provider_id: str | None = None


@dataclass(frozen=True, slots=True)
class TextChunk:
    """Overlapping slice of a page's visible text for downstream indexing."""

    url: str
    title: str
    index: int
    text: str
    tokens: int


@dataclass(frozen=True, slots=True)
class ContactCandidate:
    """One extracted phone/email/address value with its provenance."""

    value: str
    kind: str  # phone, email, address
    strategy: str  # json-ld, tel-link, mailto-link, text-regex, dom-heuristic
    source_url: str = ""
    score: int = 0


@dataclass
class ContactResult:
    """Best phone/email/address, one per kind."""

    phone: str | None = None
    email: str | None = None
    address: str | None = None
    sources: dict[str, str] = field(default_factory=dict)  # kind -> "strategy from url"

    @property
    def complete(self) -> bool:
        return bool(self.phone and self.email and self.address)


@dataclass
class LocationRecord:
    """A physical branch of the business."""

    name: str | None
    address: str | None
    booking_providers: list[str] = field(default_factory=list)


@dataclass
class ServiceCandidate:
    """A service row from a price list or the oracle."""

    name: str
    description: str | None = None
    duration_minutes: int | None = None
    price_from: int | None = None
    price_to: int | None = None
    is_core: bool = False

    @property
    def has_numeric(self) -> bool:
        return self.duration_minutes is not None or self.price_from is not None or self.price_to is not None

    @property
    def numeric_count(self) -> int:
        return sum(v is not None for v in (self.duration_minutes, self.price_from, self.price_to))


@dataclass(frozen=True, slots=True)
class BusinessNameCandidate:
    """A brand-name guess and its heuristic score."""

    name: str
    source: str
    score: int = 0


@dataclass(frozen=True, slots=True)
class OpeningHour:
    """Opening interval for one weekday (HH:MM strings)."""

    weekday: str  # mon..sun
    opens_at: str
    closes_at: str


@dataclass
class StoredService:
    """A service row as currently persisted."""

    slug: str
    name: str
    description: str | None = None
    duration_minutes: int | None = None
    price_from: int | None = None
    price_to: int | None = None
    is_active: bool = True
    is_bookable: bool = False


@dataclass
class StoredProfile:
    """The existing durable business record, used only for coalesce comparison."""

    business_id: str
    name: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    services: list[StoredService] = field(default_factory=list)
    opening_hours: list[OpeningHour] = field(default_factory=list)


@dataclass
class BusinessProfileDraft:
    """Everything one crawl learned, handed to the reconciler."""

    website: str
    contact: ContactResult = field(default_factory=ContactResult)
    oracle: object | None = None  # OracleExtraction; typed loosely to keep this module a leaf
    dom_services: list[ServiceCandidate] = field(default_factory=list)
    structured_hours: list[OpeningHour] = field(default_factory=list)
    heuristic_hours: list[OpeningHour] = field(default_factory=list)
    heuristic_phone: str | None = None
    name: BusinessNameCandidate | None = None
    locations: list[LocationRecord] = field(default_factory=list)
    booking_providers: list[str] = field(default_factory=list)


@dataclass
class FinalProfile:
    """Reconciled profile ready for upsert."""

    business_id: str
    name: str | None
    address: str | None
    phone: str | None
    email: str | None
    website: str | None
    services: list[StoredService] = field(default_factory=list)
    opening_hours: list[OpeningHour] = field(default_factory=list)
    locations: list[LocationRecord] = field(default_factory=list)
    booking_providers: list[str] = field(default_factory=list)
    hours_source: str = "none"  # json-ld, heuristic, oracle, existing, none

    @property
    def valid_hours_count(self) -> int:
        return sum(1 for h in self.opening_hours if h.opens_at and h.closes_at)
