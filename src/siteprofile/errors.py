# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site Profile exception hierarchy.

All errors inherit from SiteProfileError and carry a stable ``code`` that
callers map to user-visible status. Partial extraction is never an error.
"""

from __future__ import annotations


class SiteProfileError(Exception):
    """Base exception for all Site Profile errors."""

    code = "UNEXPECTED_ERROR"
    http_status = 500


class InvalidUrlError(SiteProfileError):
    """Base URL is missing, malformed, or not http/https."""

    code = "INVALID_URL"
    http_status = 400


class BrowserLaunchError(SiteProfileError):
    """No Chromium binary could be launched. Aborts the whole crawl."""

    code = "PLAYWRIGHT_MISSING"
    http_status = 503

    def __init__(self, message: str, *, attempted: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.attempted = attempted


class PageRenderError(SiteProfileError):
    """A single page failed to render. Never escapes the crawl loop."""

    code = "PAGE_FAILED"


class FetchError(SiteProfileError):
    """The site (or the oracle) could not be reached."""

    code = "FETCH_FAILED"
    http_status = 502


class ParseError(SiteProfileError):
    """No usable content, or the oracle returned unusable output."""

    code = "PARSE_FAILED"
    http_status = 422


class SaveError(SiteProfileError):
    """Persisting the reconciled profile failed (crawl may have succeeded)."""

    code = "SAVE_ERROR"
