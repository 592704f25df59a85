# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for siteprofile.text: cleaning, chunking, folding, sanitization."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from siteprofile.text import (
    chunk_text,
    clean_text,
    collapse_ws,
    contains_any,
    count_tokens,
    fold,
    html_to_text,
    sanitize_text,
)

# ── clean_text ──────────────────────────────────────────────────────


class TestCleanText:
    def test_non_string_returns_empty(self):
        assert clean_text(None) == ""
        assert clean_text(42) == ""

    def test_crlf_normalized(self):
        assert clean_text("a\r\nb\rc") == "a\nb\nc"

    def test_blank_line_runs_collapsed(self):
        assert clean_text("a\n\n\n\n\nb") == "a\n\nb"

    def test_horizontal_whitespace_collapsed_and_lines_trimmed(self):
        assert clean_text("  hello \t  world  \n   next ") == "hello world\nnext"


# ── chunk_text ──────────────────────────────────────────────────────


class TestChunkText:
    def test_empty(self):
        assert chunk_text("") == []
        assert chunk_text("   ") == []
        assert chunk_text(None) == []

    def test_short_text_single_chunk(self):
        assert chunk_text("  Krátký text.  ", chunk_size=100) == ["Krátký text."]

    def test_long_text_overlaps(self):
        text = " ".join(f"slovo{i}" for i in range(400))
        chunks = chunk_text(text, chunk_size=200, overlap=50)
        assert len(chunks) > 1
        assert all(len(c) <= 200 for c in chunks)
        # consecutive chunks share text
        assert chunks[0][-20:].split()[-1] in chunks[1]

    def test_prefers_sentence_boundary(self):
        first = "A" * 85 + ". "
        text = first + "Druhá věta pokračuje dál a dál bez konce " * 5
        chunks = chunk_text(text, chunk_size=100, overlap=10)
        assert chunks[0].endswith(".")

    def test_no_spaces_still_terminates(self):
        chunks = chunk_text("x" * 1000, chunk_size=100, overlap=30)
        assert chunks
        assert "".join(chunks).count("x") >= 1000

    @given(st.text(min_size=0, max_size=2000), st.integers(min_value=20, max_value=300))
    @settings(max_examples=60, deadline=None)
    def test_chunks_are_nonempty_and_bounded(self, text, size):
        overlap = size // 4
        for chunk in chunk_text(text, chunk_size=size, overlap=overlap):
            assert chunk
            assert chunk == chunk.strip()
            assert len(chunk) <= size


# ── fold / helpers ──────────────────────────────────────────────────


class TestFold:
    def test_strips_diacritics_and_lowercases(self):
        assert fold("Pánský Střih") == "pansky strih"

    def test_empty(self):
        assert fold("") == ""
        assert fold(None) == ""

    def test_contains_any_is_diacritic_insensitive(self):
        assert contains_any("Otevírací doba: Pondělí", ["pondeli"])
        assert not contains_any("Ceník", ["kontakt"])


class TestHelpers:
    def test_count_tokens(self):
        assert count_tokens("") == 0
        assert count_tokens("hello") == 1
        assert count_tokens("hello world") == 2

    def test_count_tokens_special_markers_are_text(self):
        assert count_tokens("<|endoftext|>") > 1

    def test_collapse_ws_handles_nbsp(self):
        assert collapse_ws("a\u00a0 b\n\tc") == "a b c"

    def test_html_to_text_drops_scripts_and_styles(self):
        html = "<p>Ahoj</p><script>var x = 1;</script><style>p{}</style><b>světe</b>"
        assert html_to_text(html) == "Ahoj světe"


class TestSanitizeText:
    def test_removes_control_chars_and_ansi(self):
        assert sanitize_text("Sa\u200blon\x1b[31m Bella\x07") == "Salon Bella"

    def test_truncates(self):
        assert sanitize_text("a" * 500, max_len=10) == "a" * 10

    def test_newlines_collapsed(self):
        assert sanitize_text("Hlavní 1\n\nPraha") == "Hlavní 1 Praha"

    def test_empty_passthrough(self):
        assert sanitize_text("") == ""
        assert sanitize_text(None) is None
