# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed profile repository.

Uses ``aiosqlite`` with a single long-lived connection. WAL journal mode
enables concurrent reads with serialized writes. Schema versioned via
``PRAGMA user_version``. Every write is an ``INSERT ... ON CONFLICT DO
UPDATE`` upsert; any database error surfaces as ``SaveError``.
"""

from __future__ import annotations

import time
from contextlib import suppress
from pathlib import Path

import aiosqlite

from . import CrawledPage, FinalProfile, OpeningHour, StoredProfile, StoredService, TextChunk
from .errors import SaveError

_SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_CREATE_PROFILES = """
CREATE TABLE IF NOT EXISTS business_profile (
    business_id TEXT PRIMARY KEY,
    name        TEXT,
    address     TEXT,
    phone       TEXT,
    email       TEXT,
    website_url TEXT,
    updated_at  REAL NOT NULL
)
"""

_CREATE_SERVICES = """
CREATE TABLE IF NOT EXISTS services (
    business_id      TEXT NOT NULL,
    slug             TEXT NOT NULL,
    name             TEXT NOT NULL,
    description      TEXT,
    duration_minutes INTEGER,
    price_from       INTEGER,
    price_to         INTEGER,
    is_active        INTEGER NOT NULL DEFAULT 1,
    is_bookable      INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (business_id, slug)
)
"""

_CREATE_OPENING_HOURS = """
CREATE TABLE IF NOT EXISTS opening_hours (
    business_id TEXT NOT NULL,
    weekday     TEXT NOT NULL,
    opens_at    TEXT,
    closes_at   TEXT,
    PRIMARY KEY (business_id, weekday)
)
"""

_CREATE_PAGES = """
CREATE TABLE IF NOT EXISTS pages (
    business_id TEXT NOT NULL,
    url         TEXT NOT NULL,
    depth       INTEGER NOT NULL,
    title       TEXT NOT NULL DEFAULT '',
    http_status INTEGER NOT NULL,
    booking_provider_id TEXT,
    crawled_at  REAL NOT NULL,
    PRIMARY KEY (business_id, url)
)
"""

_CREATE_CHUNKS = """
CREATE TABLE IF NOT EXISTS page_chunks (
    business_id TEXT NOT NULL,
    url         TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    title       TEXT NOT NULL DEFAULT '',
    content     TEXT NOT NULL,
    tokens      INTEGER NOT NULL,
    PRIMARY KEY (business_id, url, chunk_index)
)
"""

_WEEKDAY_ORDER = (
    "CASE weekday WHEN 'mon' THEN 0 WHEN 'tue' THEN 1 WHEN 'wed' THEN 2 WHEN 'thu' THEN 3 "
    "WHEN 'fri' THEN 4 WHEN 'sat' THEN 5 ELSE 6 END"
)


# ---------------------------------------------------------------------------
# SqliteProfileRepository
# ---------------------------------------------------------------------------


class SqliteProfileRepository:
    """SQLite-backed repository implementing ``ProfileRepositoryProtocol``.

    Use the ``create()`` async classmethod factory; never instantiate directly.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    @classmethod
    async def create(cls, db_path: str | Path) -> SqliteProfileRepository:
        """Open (or create) a SQLite database and initialise the schema.

        Resolves ``~`` and creates parent directories automatically.

        Raises:
            SaveError: If the database cannot be opened or has a newer schema version.
        """
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            db = await aiosqlite.connect(str(path))
        except (aiosqlite.Error, OSError) as exc:
            raise SaveError(f"Cannot open database {path}: {exc}") from exc
        try:
            await db.execute("PRAGMA journal_mode = WAL")

            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise SaveError(
                    f"Database schema version {current_version} is newer than supported version {_SCHEMA_VERSION}"
                )

            if current_version < _SCHEMA_VERSION:
                for ddl in (_CREATE_PROFILES, _CREATE_SERVICES, _CREATE_OPENING_HOURS, _CREATE_PAGES, _CREATE_CHUNKS):
                    await db.execute(ddl)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except aiosqlite.Error as exc:
            await db.close()
            raise SaveError(f"Cannot initialise database {path}: {exc}") from exc
        except BaseException:
            await db.close()
            raise

        return cls(db)

    # ── ProfileRepositoryProtocol methods ─────────────────────────

    async def get_profile(self, business_id: str) -> StoredProfile | None:
        """Stored profile with its services and opening hours, or ``None``."""
        cursor = await self._db.execute(
            "SELECT business_id, name, address, phone, email, website_url FROM business_profile WHERE business_id = ?",
            (business_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None

        cursor = await self._db.execute(
            "SELECT slug, name, description, duration_minutes, price_from, price_to, is_active, is_bookable "
            "FROM services WHERE business_id = ? ORDER BY slug",
            (business_id,),
        )
        services = [
            StoredService(
                slug=r[0],
                name=r[1],
                description=r[2],
                duration_minutes=r[3],
                price_from=r[4],
                price_to=r[5],
                is_active=bool(r[6]),
                is_bookable=bool(r[7]),
            )
            for r in await cursor.fetchall()
        ]

        cursor = await self._db.execute(
            f"SELECT weekday, opens_at, closes_at FROM opening_hours WHERE business_id = ? ORDER BY {_WEEKDAY_ORDER}",
            (business_id,),
        )
        hours = [OpeningHour(weekday=r[0], opens_at=r[1], closes_at=r[2]) for r in await cursor.fetchall()]

        return StoredProfile(
            business_id=row[0],
            name=row[1],
            address=row[2],
            phone=row[3],
            email=row[4],
            website=row[5],
            services=services,
            opening_hours=hours,
        )

    async def upsert_profile(self, profile: FinalProfile) -> None:
        await self._write(
            "INSERT INTO business_profile (business_id, name, address, phone, email, website_url, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(business_id) DO UPDATE SET name = excluded.name, address = excluded.address, "
            "phone = excluded.phone, email = excluded.email, website_url = excluded.website_url, "
            "updated_at = excluded.updated_at",
            [
                (
                    profile.business_id,
                    profile.name,
                    profile.address,
                    profile.phone,
                    profile.email,
                    profile.website,
                    time.time(),
                )
            ],
            "profile",
        )

    async def upsert_services(self, business_id: str, services: list[StoredService]) -> None:
        """Upsert by (business_id, slug). Services missing from *services* are left alone."""
        await self._write(
            "INSERT INTO services "
            "(business_id, slug, name, description, duration_minutes, price_from, price_to, is_active, is_bookable) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(business_id, slug) DO UPDATE SET name = excluded.name, "
            "description = excluded.description, duration_minutes = excluded.duration_minutes, "
            "price_from = excluded.price_from, price_to = excluded.price_to, "
            "is_active = excluded.is_active, is_bookable = excluded.is_bookable",
            [
                (
                    business_id,
                    s.slug,
                    s.name,
                    s.description,
                    s.duration_minutes,
                    s.price_from,
                    s.price_to,
                    int(s.is_active),
                    int(s.is_bookable),
                )
                for s in services
            ],
            "services",
        )

    async def upsert_opening_hours(self, business_id: str, hours: list[OpeningHour]) -> None:
        await self._write(
            "INSERT INTO opening_hours (business_id, weekday, opens_at, closes_at) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(business_id, weekday) DO UPDATE SET opens_at = excluded.opens_at, "
            "closes_at = excluded.closes_at",
            [(business_id, h.weekday, h.opens_at, h.closes_at) for h in hours],
            "opening hours",
        )

    async def store_page(self, business_id: str, page: CrawledPage, chunks: list[TextChunk]) -> None:
        """Persist one crawled page and replace its chunks."""
        try:
            await self._db.execute(
                "INSERT INTO pages (business_id, url, depth, title, http_status, booking_provider_id, crawled_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(business_id, url) DO UPDATE SET depth = excluded.depth, title = excluded.title, "
                "http_status = excluded.http_status, booking_provider_id = excluded.booking_provider_id, "
                "crawled_at = excluded.crawled_at",
                (
                    business_id,
                    page.url,
                    page.depth,
                    page.title or "",
                    page.http_status,
                    page.booking_provider_id,
                    time.time(),
                ),
            )
            await self._db.execute("DELETE FROM page_chunks WHERE business_id = ? AND url = ?", (business_id, page.url))
            await self._db.executemany(
                "INSERT INTO page_chunks (business_id, url, chunk_index, title, content, tokens) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [(business_id, c.url, c.index, c.title or "", c.text, c.tokens) for c in chunks],
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            with suppress(aiosqlite.Error):
                await self._db.rollback()
            raise SaveError(f"Failed to store page {page.url}: {exc}") from exc

    async def close(self) -> None:
        """Close the database connection. Idempotent."""
        with suppress(Exception):
            await self._db.close()

    # ── Internals ─────────────────────────────────────────────────

    async def _write(self, sql: str, rows: list[tuple], what: str) -> None:
        if not rows:
            return
        try:
            await self._db.executemany(sql, rows)
            await self._db.commit()
        except aiosqlite.Error as exc:
            with suppress(aiosqlite.Error):
                await self._db.rollback()
            raise SaveError(f"Failed to upsert {what}: {exc}") from exc

    # ── Convenience accessors (not part of Protocol) ──────────────

    async def count_pages(self, business_id: str) -> int:
        cursor = await self._db.execute("SELECT COUNT(*) FROM pages WHERE business_id = ?", (business_id,))
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_chunks(self, business_id: str) -> int:
        cursor = await self._db.execute("SELECT COUNT(*) FROM page_chunks WHERE business_id = ?", (business_id,))
        row = await cursor.fetchone()
        return row[0] if row else 0
