# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Stage timer for one website import.

Callers may pass their own timer so it outlives the import and can still
say which stage was running when an import was interrupted or failed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

_STAGE_HINTS = {
    "validate": "The URL could not be validated.",
    "load_profile": "Reading the stored profile is slow. Check the database file.",
    "crawl": "Site is slow to render or has many pages. Lower max_pages or max_depth.",
    "extract": "Pages are very large. Consider excluding heavy paths.",
    "oracle": "The oracle is slow or unreachable.",
    "reconcile": "Reconciliation is stalling on a large service list.",
    "save": "Database writes are slow or locked.",
}


@dataclass(slots=True)
class StageRecord:
    name: str
    start_ns: int
    end_ns: int = 0

    @property
    def elapsed_ms(self) -> float:
        return round((self.end_ns - self.start_ns) / 1e6, 1)


class PipelineTimer:
    """Track import stage transitions for latency reporting."""

    __slots__ = ("_stages", "_current", "_start_ns")

    def __init__(self) -> None:
        self._stages: list[StageRecord] = []
        self._current: StageRecord | None = None
        self._start_ns: int = time.monotonic_ns()

    def stage(self, name: str) -> None:
        """End previous stage + start new stage."""
        now = time.monotonic_ns()
        if self._current is not None:
            self._current.end_ns = now
            self._stages.append(self._current)
        self._current = StageRecord(name=name, start_ns=now)

    def finalize(self) -> None:
        """End current stage. Call on success or error."""
        if self._current is not None:
            self._current.end_ns = time.monotonic_ns()
            self._stages.append(self._current)
            self._current = None

    @property
    def current_stage(self) -> str | None:
        return self._current.name if self._current else None

    @property
    def last_stage(self) -> str | None:
        """Running stage, or the last completed one after ``finalize``."""
        if self._current is not None:
            return self._current.name
        return self._stages[-1].name if self._stages else None

    def total_ms(self) -> float:
        return round((time.monotonic_ns() - self._start_ns) / 1e6, 1)

    def elapsed_per_stage(self) -> dict[str, float]:
        """Return {stage_name: elapsed_ms} for all stages (including current)."""
        now = time.monotonic_ns()
        result: dict[str, float] = {s.name: s.elapsed_ms for s in self._stages}
        if self._current is not None:
            result[self._current.name] = round((now - self._current.start_ns) / 1e6, 1)
        return result

    def failure_report(self, code: str) -> dict:
        """Structured diagnostic for a failed import."""
        stage = self.last_stage or "unknown"
        return {
            "error": code,
            "completed_stages": [{"stage": s.name, "ms": s.elapsed_ms} for s in self._stages],
            "failed_at": stage,
            "total_ms": self.total_ms(),
            "hint": self.hint_for_stage(stage),
        }

    @staticmethod
    def hint_for_stage(stage: str) -> str:
        return _STAGE_HINTS.get(stage, f"Failed during '{stage}' stage.")
