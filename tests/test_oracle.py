# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the oracle contract: input format and lenient output parsing."""

from __future__ import annotations

import json

import pytest

from siteprofile import OpeningHour, TextChunk
from siteprofile.errors import FetchError, ParseError
from siteprofile.opening_hours import hours_from_oracle
from siteprofile.oracle import (
    NullOracle,
    Oracle,
    OracleExtraction,
    StaticOracle,
    build_oracle_input,
    parse_oracle_output,
)

RAW = {
    "name": " Salon Bella ",
    "phone": 608744774,
    "address": "",
    "services": [
        {"name": "Střih", "price_from": "1 200 Kč", "duration_minutes": "30 min", "is_core": "yes"},
        {"name": "  "},
        {"price_from": 5},
        "junk",
    ],
    "opening_hours": {"mon": {"opens": "9:00", "closes": "17:00"}, "tue": "closed"},
    "unexpected": True,
}

# ── Parsing ──────────────────────────────────────────────────────────


class TestParseOracleOutput:
    def test_lenient_fields(self):
        result = parse_oracle_output(json.dumps(RAW))
        assert result.name == "Salon Bella"
        assert result.phone == "608744774"
        assert result.address is None
        assert len(result.services) == 1
        service = result.services[0]
        assert (service.name, service.price_from, service.duration_minutes, service.is_core) == (
            "Střih",
            1200,
            30,
            False,
        )
        assert result.opening_hours.mon.opens == "9:00"
        assert result.opening_hours.tue is None

    def test_hours_feed_the_hours_pipeline(self):
        result = parse_oracle_output(RAW)
        assert hours_from_oracle(result.opening_hours) == [OpeningHour("mon", "09:00", "17:00")]

    def test_wrong_types_become_none(self):
        result = parse_oracle_output({"name": ["a"], "opening_hours": "24/7", "services": "many"})
        assert result.name is None
        assert result.opening_hours is None
        assert result.services == []

    def test_boolean_price_ignored(self):
        result = parse_oracle_output({"services": [{"name": "A", "price_from": True, "is_core": True}]})
        assert result.services[0].price_from is None
        assert result.services[0].is_core is True

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "null", b"\xff"])
    def test_unusable_answers(self, raw):
        with pytest.raises(ParseError):
            parse_oracle_output(raw)


# ── Input ────────────────────────────────────────────────────────────


class TestBuildOracleInput:
    def test_blocks(self):
        chunks = [
            TextChunk(url="https://salon.cz/cenik", title="Ceník", index=0, text="Střih 300 Kč", tokens=3),
            TextChunk(url="https://salon.cz/kontakt", title="", index=0, text="Tel 608 744 774", tokens=4),
        ]
        assert build_oracle_input(chunks) == "[Ceník]\nStřih 300 Kč\n\n[https://salon.cz/kontakt]\nTel 608 744 774"

    def test_cap(self):
        chunks = [TextChunk(url="u", title="t", index=0, text="x" * 100, tokens=25)]
        assert len(build_oracle_input(chunks, cap=50)) == 50

    def test_empty(self):
        assert build_oracle_input([]) == ""


# ── Implementations ──────────────────────────────────────────────────


class TestOracles:
    async def test_null_oracle(self):
        oracle = NullOracle()
        assert isinstance(oracle, Oracle)
        assert await oracle.extract("anything") == OracleExtraction()

    async def test_static_oracle_from_file(self, tmp_path):
        path = tmp_path / "answer.json"
        path.write_text(json.dumps({"name": "Cutegory", "email": "info@cutegory.cz"}), encoding="utf-8")
        result = await StaticOracle.from_file(path).extract("ignored")
        assert result.name == "Cutegory"
        assert result.email == "info@cutegory.cz"

    def test_static_oracle_missing_file(self, tmp_path):
        with pytest.raises(FetchError):
            StaticOracle.from_file(tmp_path / "missing.json")

    async def test_static_oracle_bad_json(self):
        with pytest.raises(ParseError):
            await StaticOracle("oops").extract("")
