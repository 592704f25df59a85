# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Site Profile CLI: import, crawl, show commands.

Usage:
    siteprofile import URL --business-id ID [--db PATH] [--oracle-json FILE] [--json]
    siteprofile crawl URL [--max-pages N] [--max-depth N] [--exclude PATTERN]... [--json]
    siteprofile show --business-id ID [--db PATH] [--json]

Failures print ``Error [CODE]: message`` to stderr and exit with status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path

from tabulate import tabulate

from . import FinalProfile, StoredProfile
from .browser_session import BrowserSession
from .config import SiteProfileConfig, load_config
from .errors import SiteProfileError
from .importer import ImportOutcome, import_website, run_crawl, validate_url
from .logging_config import configure
from .oracle import NullOracle, StaticOracle
from .repository_sqlite import SqliteProfileRepository

DEFAULT_DB_PATH = "~/.siteprofile/profiles.db"


def _fail(exc: SiteProfileError) -> None:
    print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
    sys.exit(1)


def _load(args: argparse.Namespace) -> SiteProfileConfig:
    """Config file plus command-line overrides."""
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: cannot load config: {e}", file=sys.stderr)
        sys.exit(1)
    crawl = config.crawl
    if getattr(args, "max_pages", None) is not None:
        crawl.max_pages = args.max_pages
    if getattr(args, "max_depth", None) is not None:
        crawl.max_depth = args.max_depth
    if getattr(args, "exclude", None):
        crawl.exclude_paths = [*crawl.exclude_paths, *args.exclude]
    if getattr(args, "force", None):
        crawl.forced_urls = [*crawl.forced_urls, *args.force]
    if getattr(args, "no_sitemap", False):
        crawl.use_sitemap = False
    if getattr(args, "respect_robots", False):
        crawl.respect_robots = True
    return config


# ── Output ──────────────────────────────────────────────────────────


def _profile_rows(profile: FinalProfile | StoredProfile) -> list[list[str]]:
    return [
        ["Name", profile.name or "-"],
        ["Address", profile.address or "-"],
        ["Phone", profile.phone or "-"],
        ["Email", profile.email or "-"],
        ["Website", profile.website or "-"],
    ]


def _print_profile(profile: FinalProfile | StoredProfile) -> None:
    print(tabulate(_profile_rows(profile), tablefmt="simple"))

    if profile.services:
        rows = [
            [
                s.slug,
                s.name,
                s.duration_minutes or "",
                s.price_from or "",
                s.price_to or "",
                "yes" if s.is_bookable else "",
            ]
            for s in profile.services
        ]
        print()
        print(tabulate(rows, headers=["Slug", "Service", "Min", "From", "To", "Bookable"], tablefmt="simple"))

    if profile.opening_hours:
        rows = [[h.weekday, h.opens_at, h.closes_at] for h in profile.opening_hours]
        print()
        print(tabulate(rows, headers=["Day", "Opens", "Closes"], tablefmt="simple"))

    locations = getattr(profile, "locations", None)
    if locations:
        rows = [[loc.name or "-", loc.address or "-", ", ".join(loc.booking_providers)] for loc in locations]
        print()
        print(tabulate(rows, headers=["Location", "Address", "Booking"], tablefmt="simple"))


def _print_outcome(outcome: ImportOutcome) -> None:
    _print_profile(outcome.profile)
    s = outcome.summary
    print()
    print(f"Pages crawled: {s.pages_crawled} ({len(s.failed_urls)} failed)")
    print(f"Chunks: {s.chunks_created}")
    print(f"Services saved: {s.services_saved} (DOM: {s.dom_services})")
    print(f"Opening hours: {s.hours_saved} days saved (source: {s.hours_source})")
    if s.booking_providers:
        print(f"Booking providers: {', '.join(s.booking_providers)}")
    total = sum(s.stage_ms.values())
    print(f"Total: {total:.0f}ms")


# ── Commands ────────────────────────────────────────────────────────


async def _import(args: argparse.Namespace, config: SiteProfileConfig) -> ImportOutcome:
    oracle = StaticOracle.from_file(args.oracle_json) if args.oracle_json else NullOracle()
    repository = await SqliteProfileRepository.create(args.db)
    try:
        return await import_website(
            args.url,
            args.business_id,
            repository=repository,
            oracle=oracle,
            config=config,
            renderer_factory=BrowserSession,
        )
    finally:
        await repository.close()


def cmd_import(args: argparse.Namespace) -> None:
    """Crawl a website and merge the result into a stored profile."""
    config = _load(args)
    try:
        outcome = asyncio.run(_import(args, config))
    except SiteProfileError as e:
        _fail(e)
        return

    if args.json:
        payload = {
            "profile": dataclasses.asdict(outcome.profile),
            "summary": dataclasses.asdict(outcome.summary),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        _print_outcome(outcome)


def cmd_crawl(args: argparse.Namespace) -> None:
    """Crawl only; list the accepted pages."""
    config = _load(args)
    try:
        base_url = validate_url(args.url)
        result = asyncio.run(run_crawl(base_url, config, BrowserSession))
    except SiteProfileError as e:
        _fail(e)
        return

    if args.json:
        payload = {
            "pages": [{"url": p.url, "depth": p.depth, "title": p.title, "status": p.http_status} for p in result.pages],
            "failed_urls": result.failed_urls,
            "booking_providers": result.booking_providers,
            "chunks_created": result.chunks_created,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    rows = [[p.depth, p.http_status, p.url, (p.title or "")[:60], p.booking_provider_id or ""] for p in result.pages]
    print(tabulate(rows, headers=["Depth", "Status", "URL", "Title", "Booking"], tablefmt="simple"))
    print(f"\nPages: {result.pages_crawled}, chunks: {result.chunks_created}, failed: {len(result.failed_urls)}")
    if result.booking_providers:
        print(f"Booking providers: {', '.join(result.booking_providers)}")


async def _show(args: argparse.Namespace) -> StoredProfile | None:
    repository = await SqliteProfileRepository.create(args.db)
    try:
        return await repository.get_profile(args.business_id)
    finally:
        await repository.close()


def cmd_show(args: argparse.Namespace) -> None:
    """Print a stored profile."""
    try:
        profile = asyncio.run(_show(args))
    except SiteProfileError as e:
        _fail(e)
        return
    if profile is None:
        print(f"No stored profile for business {args.business_id}", file=sys.stderr)
        sys.exit(1)
    if args.json:
        print(json.dumps(dataclasses.asdict(profile), ensure_ascii=False, indent=2))
    else:
        _print_profile(profile)


# ── Parser ──────────────────────────────────────────────────────────


def _add_crawl_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("url", metavar="URL", help="Website base URL (http or https)")
    p.add_argument("--config", type=Path, metavar="FILE", help="YAML config file")
    p.add_argument("--max-pages", type=int, metavar="N", help="Page budget (default: 20)")
    p.add_argument("--max-depth", type=int, metavar="N", help="Link hops from the base URL (default: 2)")
    p.add_argument("--exclude", action="append", metavar="PATTERN", help="Skip URLs matching PATTERN (repeatable)")
    p.add_argument("--force", action="append", metavar="PATH", help="Crawl PATH with priority (repeatable)")
    p.add_argument("--no-sitemap", action="store_true", help="Do not seed from /sitemap.xml")
    p.add_argument("--respect-robots", action="store_true", help="Skip URLs disallowed by robots.txt")
    p.add_argument("--json", action="store_true", help="Print JSON to stdout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Site Profile CLI", prog="siteprofile")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-level", type=str, default=None, help="Log level (default: $SITEPROFILE_LOG_LEVEL or INFO)")
    parser.add_argument("--log-json", action="store_true", help="JSON log lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_import = subparsers.add_parser("import", help="Import a website into a stored business profile")
    _add_crawl_options(p_import)
    p_import.add_argument("--business-id", required=True, metavar="ID", help="Business identifier")
    p_import.add_argument("--db", default=DEFAULT_DB_PATH, metavar="PATH", help=f"SQLite database (default: {DEFAULT_DB_PATH})")
    p_import.add_argument("--oracle-json", type=Path, metavar="FILE", help="Recorded oracle answer (JSON)")
    p_import.set_defaults(func=cmd_import)

    p_crawl = subparsers.add_parser("crawl", help="Crawl a website and list the pages")
    _add_crawl_options(p_crawl)
    p_crawl.set_defaults(func=cmd_crawl)

    p_show = subparsers.add_parser("show", help="Print a stored business profile")
    p_show.add_argument("--business-id", required=True, metavar="ID", help="Business identifier")
    p_show.add_argument("--db", default=DEFAULT_DB_PATH, metavar="PATH", help=f"SQLite database (default: {DEFAULT_DB_PATH})")
    p_show.add_argument("--json", action="store_true", help="Print JSON to stdout")
    p_show.set_defaults(func=cmd_show)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else args.log_level
    configure(json_output=args.log_json, level=level)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
