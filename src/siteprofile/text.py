# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text normalization: cleaning, chunking, diacritic folding, sanitization.

Leaf module. Everything here is pure and never raises on odd input:
non-string or empty values normalize to "" (or [] for chunking).
"""

from __future__ import annotations

import functools
import re
import unicodedata

import tiktoken

from .i18n import UPPER

DEFAULT_CHUNK_SIZE = 900
DEFAULT_CHUNK_OVERLAP = 150

# Unicode control characters: zero-width, bidi overrides, C0/C1 controls
_CONTROL_CHAR_RE = re.compile(
    r"[\u200B-\u200F\u202A-\u202E\u2060-\u2069\uFEFF\uFFF9-\uFFFB"
    r"\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]"
)
_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")
_MULTI_NEWLINE_RE = re.compile(r"\n{3,}")
_HSPACE_RE = re.compile(r"[ \t]+")
_SENTENCE_END_RE = re.compile(rf"[.!?]\s+[{UPPER}]")

_TAG_RE = re.compile(r"<[^>]+>")
_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Normalize line breaks and whitespace, trimming every line."""
    if not text or not isinstance(text, str):
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _MULTI_NEWLINE_RE.sub("\n\n", text)
    text = _HSPACE_RE.sub(" ", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def chunk_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP) -> list[str]:
    """Split *text* into overlapping chunks, preferring sentence then word boundaries.

    A chunk may end early at a sentence boundary found in its last 20%, or at
    the last space when that space lies beyond half the chunk. The next chunk
    starts ``overlap`` characters before the previous end, and the start always
    moves forward.
    """
    if not text or not isinstance(text, str):
        return []
    text = text.strip()
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]

    chunks: list[str] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(start + chunk_size, length)
        if end < length:
            search_start = max(start + int(chunk_size * 0.8), start)
            m = _SENTENCE_END_RE.search(text, search_start, end)
            if m:
                end = m.start() + 1
            else:
                last_space = text.rfind(" ", start, end + 1)
                if last_space > start + chunk_size * 0.5:
                    end = last_space

        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= length:
            break

        next_start = end - overlap
        start = end if next_start <= start else next_start
    return chunks


@functools.lru_cache(maxsize=1)
def _get_encoder() -> tiktoken.Encoding:
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens using cl100k_base. Stored per chunk for downstream budgets."""
    if not text:
        return 0
    return len(_get_encoder().encode(text, disallowed_special=()))


def fold(text: str) -> str:
    """Lowercase and strip diacritics: "Pánský střih" -> "pansky strih"."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def contains_any(haystack: str, needles) -> bool:
    """Diacritic-insensitive substring check."""
    h = fold(haystack)
    return any(fold(n) in h for n in needles)


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", (text or "").replace("\u00a0", " ")).strip()


def html_to_text(html: str) -> str:
    """Cheap tag strip for regex strategies (scripts and styles dropped)."""
    if not html:
        return ""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    return collapse_ws(text)


def sanitize_text(text: str, max_len: int = 256) -> str:
    """Sanitize a short extracted field (names, addresses, titles).

    - Removes ANSI escapes and Unicode control characters
    - Collapses newlines and whitespace runs
    - Truncates to max_len
    """
    if not text:
        return text
    text = _ANSI_ESCAPE_RE.sub("", text)
    text = _CONTROL_CHAR_RE.sub("", text)
    text = collapse_ws(text.replace("\n", " ").replace("\r", " "))
    if len(text) > max_len:
        text = text[:max_len]
    return text
