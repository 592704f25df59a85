# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime configuration: crawl bounds, browser settings, chunking, locale.

Everything has a working default. ``load_config()`` overlays a YAML file
(sections ``crawl``, ``browser``, ``chunk``, ``locale``). The Chromium
fallback path from the environment is read by the browser session itself.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .browser_session import BrowserConfig
from .i18n import LocaleConfig, get_locale
from .text import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE

logger = logging.getLogger(__name__)


@dataclass
class CrawlConfig:
    """Bounds for one crawl invocation."""

    max_depth: int = 2
    max_pages: int = 20
    max_links_per_page: int = 50
    max_queue_size: int = 400
    politeness_delay_s: float = 0.5
    use_sitemap: bool = True
    sitemap_timeout_s: float = 10.0
    respect_robots: bool = False
    exclude_paths: list[str] = field(default_factory=list)
    forced_urls: list[str] = field(default_factory=list)


@dataclass
class ChunkConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = DEFAULT_CHUNK_OVERLAP


@dataclass
class SiteProfileConfig:
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    chunk: ChunkConfig = field(default_factory=ChunkConfig)
    locale: LocaleConfig = field(default_factory=LocaleConfig)


def _apply(obj, section: dict | None, name: str):
    """Return a copy of dataclass *obj* with known keys from *section* replaced."""
    if not section:
        return obj
    if not isinstance(section, dict):
        raise ValueError(f"config section '{name}' must be a mapping")
    known = {f.name for f in dataclasses.fields(obj)}
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning("Ignoring unknown %s config keys: %s", name, ", ".join(unknown))
    values = {k: v for k, v in section.items() if k in known}
    for key, value in values.items():
        if isinstance(value, list) and isinstance(getattr(obj, key), tuple):
            values[key] = tuple(value)
    return dataclasses.replace(obj, **values)


def load_config(path: str | Path | None = None) -> SiteProfileConfig:
    """Load configuration from an optional YAML file.

    Raises:
        FileNotFoundError: *path* was given but does not exist.
        ValueError: the file is not a YAML mapping.
    """
    raw: dict = {}
    if path is not None:
        text = Path(path).read_text(encoding="utf-8")
        raw = yaml.safe_load(text) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"config file {path} must contain a mapping")

    crawl = _apply(CrawlConfig(), raw.get("crawl"), "crawl")
    browser = _apply(BrowserConfig(), raw.get("browser"), "browser")
    chunk = _apply(ChunkConfig(), raw.get("chunk"), "chunk")

    locale_section = dict(raw.get("locale") or {})
    locale = get_locale(locale_section.pop("code", None))
    if locale_section:
        known = {f.name for f in dataclasses.fields(locale)}
        unknown = sorted(set(locale_section) - known)
        if unknown:
            logger.warning("Ignoring unknown locale config keys: %s", ", ".join(unknown))
        locale = locale.with_overrides(**{k: v for k, v in locale_section.items() if k in known})

    return SiteProfileConfig(crawl=crawl, browser=browser, chunk=chunk, locale=locale)
