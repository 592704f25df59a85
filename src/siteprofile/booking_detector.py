# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Third-party booking widget fingerprints.

Pure substring matching over ``url + "\\n" + html``. The last entry is a
low-confidence generic fallback ("iframe", "booking", "rezervace").
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BookingSignature:
    provider_id: str
    patterns: tuple[str, ...]
    generic: bool = False


BOOKING_SIGNATURES: tuple[BookingSignature, ...] = (
    BookingSignature("fresha", ("fresha.com", "widget.fresha.com")),
    BookingSignature("reserva", ("reserva.cz", "reservaonline")),
    BookingSignature("simplebook", ("simplebook", "simplybook.me")),
    BookingSignature("timely", ("gettimely", "book.gettimely.com")),
    BookingSignature("rever", ("rever.io", "reverapp")),
    BookingSignature("other_booking", ("iframe", "booking", "rezervace"), generic=True),
)

KNOWN_PROVIDER_IDS = tuple(sig.provider_id for sig in BOOKING_SIGNATURES)


def detect(url: str, html: str | None, signatures=BOOKING_SIGNATURES) -> list[str]:
    """Provider ids whose fingerprints occur in the page, in table order."""
    haystack = f"{url or ''}\n{html or ''}".lower()
    return [sig.provider_id for sig in signatures if any(p.lower() in haystack for p in sig.patterns)]


class BookingProviderSet:
    """Crawl-wide ordered set of detected providers."""

    def __init__(self) -> None:
        self._ids: dict[str, None] = {}

    def add(self, provider_ids) -> list[str]:
        """Add ids, returning the ones seen for the first time."""
        new = [pid for pid in provider_ids if pid not in self._ids]
        for pid in new:
            self._ids[pid] = None
        return new

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._ids

    def __iter__(self):
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def as_list(self) -> list[str]:
        return list(self._ids)
