# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for siteprofile.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from siteprofile.logging_config import bind_import_context, clear_import_context, configure


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    clear_import_context()
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_single_stderr_handler(self):
        configure(json_output=False)
        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_console_output_is_human_readable(self, capsys):
        configure(json_output=False)
        logging.getLogger("test.console").info("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")


class TestJsonRenderer:
    def test_json_lines(self, capsys):
        configure(json_output=True)
        logging.getLogger("siteprofile.frontier").warning("Crawl completed: %d pages", 3)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["event"] == "Crawl completed: 3 pages"
        assert data["level"] == "warning"
        assert data["logger"] == "siteprofile.frontier"
        assert "timestamp" in data

    def test_import_context_on_every_line(self, capsys):
        configure(json_output=True)
        bind_import_context(business_id="b1", url="https://salon.cz/")
        logging.getLogger("test.ctx").info("first")
        clear_import_context()
        logging.getLogger("test.ctx").info("second")
        first, second = (json.loads(x) for x in capsys.readouterr().err.strip().splitlines()[-2:])
        assert first["business_id"] == "b1"
        assert first["url"] == "https://salon.cz/"
        assert "business_id" not in second


class TestLevel:
    def test_explicit_level(self):
        configure(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("SITEPROFILE_LOG_LEVEL", "WARNING")
        configure()
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.delenv("SITEPROFILE_LOG_LEVEL", raising=False)
        configure(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_driver_loggers_quieted(self):
        configure(level="DEBUG")
        assert logging.getLogger("aiosqlite").level == logging.WARNING
