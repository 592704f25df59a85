# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for YAML configuration loading."""

from __future__ import annotations

import logging

import pytest

from siteprofile.config import CrawlConfig, SiteProfileConfig, load_config
from siteprofile.i18n import CS, EN


def _write(tmp_path, text: str):
    path = tmp_path / "siteprofile.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_no_file(self):
        config = load_config()
        assert config.crawl == CrawlConfig()
        assert config.crawl.max_pages == 20
        assert config.crawl.max_depth == 2
        assert config.crawl.respect_robots is False
        assert config.locale.code == "cs"

    def test_empty_file(self, tmp_path):
        assert load_config(_write(tmp_path, "")).crawl == SiteProfileConfig().crawl


class TestSections:
    def test_crawl_and_browser_overrides(self, tmp_path):
        path = _write(
            tmp_path,
            "crawl:\n"
            "  max_pages: 5\n"
            "  exclude_paths: ['/blog', '*.pdf']\n"
            "browser:\n"
            "  headless: false\n"
            "  fallback_executables: ['/opt/chromium']\n"
            "chunk:\n"
            "  chunk_size: 400\n",
        )
        config = load_config(path)
        assert config.crawl.max_pages == 5
        assert config.crawl.max_depth == 2
        assert config.crawl.exclude_paths == ["/blog", "*.pdf"]
        assert config.browser.headless is False
        assert config.browser.fallback_executables == ("/opt/chromium",)
        assert config.chunk.chunk_size == 400

    def test_unknown_keys_ignored(self, tmp_path, caplog):
        path = _write(tmp_path, "crawl:\n  max_pages: 3\n  turbo: true\n")
        with caplog.at_level(logging.WARNING, logger="siteprofile.config"):
            config = load_config(path)
        assert config.crawl.max_pages == 3
        assert "turbo" in caplog.text

    def test_locale_code(self, tmp_path):
        assert load_config(_write(tmp_path, "locale:\n  code: en-US\n")).locale is EN

    def test_locale_overrides(self, tmp_path):
        path = _write(tmp_path, "locale:\n  known_towns: ['Kolín', 'Mělník']\n  max_locations: 2\n")
        locale = load_config(path).locale
        assert locale.known_towns == ("Kolín", "Mělník")
        assert locale.max_locations == 2
        assert locale.country_code == CS.country_code


class TestErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "- a\n- b\n"))

    def test_section_not_a_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="crawl"):
            load_config(_write(tmp_path, "crawl: 5\n"))
