# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Interface to the generative "oracle" that guesses a profile from page text.

The oracle itself is an external collaborator. This module owns its contract:
the input text format, the output schema, and lenient parsing of whatever
JSON comes back. Oracle values are a first-pass guess and are always
cross-checked by the reconciler.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import TextChunk
from .errors import FetchError, ParseError

logger = logging.getLogger(__name__)

MAX_ORACLE_INPUT_CHARS = 40_000
_INT_RE = re.compile(r"\d+")


def _lenient_int(value: Any) -> Any:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        m = _INT_RE.search(value.replace(" ", "").replace("\u00a0", ""))
        return int(m.group(0)) if m else None
    if isinstance(value, float):
        return round(value)
    return value


def _lenient_str(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


class DayHours(BaseModel):
    model_config = ConfigDict(extra="ignore")

    opens: str | None = None
    closes: str | None = None

    @field_validator("opens", "closes", mode="wrap")
    @classmethod
    def _time(cls, value, handler):
        try:
            return handler(_lenient_str(value))
        except ValidationError:
            return None


class WeekHours(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mon: DayHours | None = None
    tue: DayHours | None = None
    wed: DayHours | None = None
    thu: DayHours | None = None
    fri: DayHours | None = None
    sat: DayHours | None = None
    sun: DayHours | None = None

    @field_validator("mon", "tue", "wed", "thu", "fri", "sat", "sun", mode="wrap")
    @classmethod
    def _day(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None


class OracleService(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    slug: str | None = None
    description: str | None = None
    duration_minutes: int | None = None
    price_from: int | None = None
    price_to: int | None = None
    is_core: bool = False

    @field_validator("duration_minutes", "price_from", "price_to", mode="wrap")
    @classmethod
    def _number(cls, value, handler):
        try:
            return handler(_lenient_int(value))
        except ValidationError:
            return None

    @field_validator("slug", "description", mode="wrap")
    @classmethod
    def _text(cls, value, handler):
        try:
            return handler(_lenient_str(value))
        except ValidationError:
            return None

    @field_validator("is_core", mode="wrap")
    @classmethod
    def _flag(cls, value, handler):
        return value is True


class OracleExtraction(BaseModel):
    """Structured guess returned by the oracle. Every field is optional."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(None, description="Business or brand name")
    address: str | None = Field(None, description="Primary street address")
    phone: str | None = Field(None, description="Contact phone number")
    email: str | None = Field(None, description="Contact email")
    opening_hours: WeekHours | None = Field(None, description="Weekly opening hours, mon..sun")
    services: list[OracleService] = Field(default_factory=list, description="Offered services")
    notes: str | None = Field(None, description="Free-form remarks")

    @field_validator("name", "address", "phone", "email", "notes", mode="wrap")
    @classmethod
    def _text(cls, value, handler):
        try:
            return handler(_lenient_str(value))
        except ValidationError:
            return None

    @field_validator("opening_hours", mode="wrap")
    @classmethod
    def _hours(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            return None

    @field_validator("services", mode="before")
    @classmethod
    def _services(cls, value):
        if not isinstance(value, list):
            return []
        kept = []
        for item in value:
            if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"].strip():
                kept.append({**item, "name": item["name"].strip()})
        return kept


@runtime_checkable
class Oracle(Protocol):
    """Turns website text into an ``OracleExtraction``.

    Implementations raise ``FetchError`` when the backing service is
    unreachable and ``ParseError`` when its answer is unusable.
    """

    async def extract(self, website_text: str) -> OracleExtraction: ...


class NullOracle:
    """Oracle stand-in that knows nothing. Used when none is configured."""

    async def extract(self, website_text: str) -> OracleExtraction:
        return OracleExtraction()


class StaticOracle:
    """Replays a fixed raw JSON answer (recorded fixtures, offline runs)."""

    def __init__(self, raw: str | bytes) -> None:
        self.raw = raw

    @classmethod
    def from_file(cls, path: str | Path) -> StaticOracle:
        try:
            return cls(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise FetchError(f"Cannot read oracle answer {path}: {exc}") from exc

    async def extract(self, website_text: str) -> OracleExtraction:
        return parse_oracle_output(self.raw)


def build_oracle_input(chunks: list[TextChunk], cap: int = MAX_ORACLE_INPUT_CHARS) -> str:
    """``[title or url]`` headed blocks joined by blank lines, truncated to *cap* chars."""
    blocks = [f"[{chunk.title or chunk.url}]\n{chunk.text}" for chunk in chunks]
    text = "\n\n".join(blocks)
    if len(text) > cap:
        logger.debug("Oracle input truncated from %d to %d chars", len(text), cap)
        text = text[:cap]
    return text


def parse_oracle_output(raw: str | bytes | dict) -> OracleExtraction:
    """Validate a raw oracle answer.

    Unknown keys are ignored and invalid nested values become ``None``.

    Raises:
        ParseError: *raw* is not a JSON object.
    """
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            raise ParseError(f"Oracle returned invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"Oracle returned {type(data).__name__}, expected an object")
    try:
        return OracleExtraction.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Oracle output failed validation: {exc.error_count()} errors") from exc
