# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Repository abstraction for stored business profiles.

Defines ``ProfileRepositoryProtocol`` (profile, services, opening hours and
crawled pages) and ``InMemoryProfileRepository`` for tests and one-off runs.
``repository_sqlite.SqliteProfileRepository`` is the persistent
implementation.

Every write is an upsert keyed the same way in all implementations:
profile by business id, services by (business id, slug), opening hours by
(business id, weekday), pages by (business id, url).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol, runtime_checkable

from . import CrawledPage, FinalProfile, OpeningHour, StoredProfile, StoredService, TextChunk

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ProfileRepositoryProtocol(Protocol):
    """Interface for profile storage. Write failures raise ``SaveError``."""

    async def get_profile(self, business_id: str) -> StoredProfile | None: ...

    async def upsert_profile(self, profile: FinalProfile) -> None: ...

    async def upsert_services(self, business_id: str, services: list[StoredService]) -> None: ...

    async def upsert_opening_hours(self, business_id: str, hours: list[OpeningHour]) -> None: ...

    async def store_page(self, business_id: str, page: CrawledPage, chunks: list[TextChunk]) -> None: ...

    async def close(self) -> None: ...


class BusinessPageSink:
    """Binds a repository to one business so the crawl frontier can store pages."""

    def __init__(self, repository: ProfileRepositoryProtocol, business_id: str) -> None:
        self.repository = repository
        self.business_id = business_id

    async def store_page(self, page: CrawledPage, chunks: list[TextChunk]) -> None:
        await self.repository.store_page(self.business_id, page, chunks)


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryProfileRepository:
    """Dict-backed repository. Nothing survives the process."""

    def __init__(self) -> None:
        self._profiles: dict[str, StoredProfile] = {}
        self._services: dict[str, dict[str, StoredService]] = {}
        self._hours: dict[str, dict[str, OpeningHour]] = {}
        self._pages: dict[str, dict[str, tuple[CrawledPage, list[TextChunk]]]] = {}

    async def get_profile(self, business_id: str) -> StoredProfile | None:
        profile = self._profiles.get(business_id)
        if profile is None:
            return None
        return replace(
            profile,
            services=[replace(s) for s in self._services.get(business_id, {}).values()],
            opening_hours=list(self._hours.get(business_id, {}).values()),
        )

    async def upsert_profile(self, profile: FinalProfile) -> None:
        self._profiles[profile.business_id] = StoredProfile(
            business_id=profile.business_id,
            name=profile.name,
            address=profile.address,
            phone=profile.phone,
            email=profile.email,
            website=profile.website,
        )

    async def upsert_services(self, business_id: str, services: list[StoredService]) -> None:
        stored = self._services.setdefault(business_id, {})
        for service in services:
            stored[service.slug] = replace(service)

    async def upsert_opening_hours(self, business_id: str, hours: list[OpeningHour]) -> None:
        stored = self._hours.setdefault(business_id, {})
        for hour in hours:
            stored[hour.weekday] = hour

    async def store_page(self, business_id: str, page: CrawledPage, chunks: list[TextChunk]) -> None:
        self._pages.setdefault(business_id, {})[page.url] = (page, list(chunks))

    async def close(self) -> None:
        """No-op for the in-memory repository."""

    # ── Convenience accessors (not part of Protocol) ──────────────

    def seed(self, profile: StoredProfile) -> None:
        """Install a stored profile with its services and hours (tests, fixtures)."""
        self._profiles[profile.business_id] = replace(profile, services=[], opening_hours=[])
        self._services[profile.business_id] = {s.slug: replace(s) for s in profile.services}
        self._hours[profile.business_id] = {h.weekday: h for h in profile.opening_hours}

    def pages(self, business_id: str) -> list[CrawledPage]:
        return [page for page, _ in self._pages.get(business_id, {}).values()]

    def chunks(self, business_id: str) -> list[TextChunk]:
        return [chunk for _, chunks in self._pages.get(business_id, {}).values() for chunk in chunks]
