# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across URL normalization,
the crawl frontier, location resolution and the extractors.
"""

from __future__ import annotations

import asyncio

import pytest
from conftest import FakeRenderer, nav, page
from hypothesis import HealthCheck, example, given, settings
from hypothesis import strategies as st

from siteprofile import CrawledPage
from siteprofile.config import CrawlConfig
from siteprofile.contact import extract_from_page, normalize_phone
from siteprofile.frontier import CrawlFrontier
from siteprofile.link_classifier import normalize_url
from siteprofile.locations import extract_addresses, resolve
from siteprofile.opening_hours import extract_heuristic_hours
from siteprofile.price_list import extract_services

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

GENERAL_TEXT = st.text(min_size=0, max_size=3000)

HTML_LIKE = st.text(
    alphabet=st.characters(
        whitelist_categories=("L", "N", "P", "Z"),
        whitelist_characters="<>/=\"'&;#!.-: \n\t",
    ),
    min_size=10,
    max_size=3000,
)

VALID_URL = st.from_regex(
    r"https?://[a-z0-9\-]+(\.[a-z]{2,6}){1,2}(/[a-z0-9\-._~/?#=&]*)?",
    fullmatch=True,
)

TOWNS = ["Praha", "Brno", "Ostrava", "Plzeň", "Olomouc", "Liberec", "Pardubice", "Kladno"]

BRANCHES = st.lists(st.tuples(st.sampled_from(TOWNS), st.integers(1, 999)), min_size=0, max_size=12)

PROFILE_ADDRESS = st.one_of(st.none(), st.sampled_from(["Hlavní 1, Praha", "Praha a Brno"]))

# node -> list of linked nodes
LINK_GRAPH = st.dictionaries(
    st.integers(0, 11),
    st.lists(st.integers(0, 11), max_size=8),
    min_size=1,
    max_size=12,
)

# ---------------------------------------------------------------------------
# Shared settings
# ---------------------------------------------------------------------------

_fuzz_settings = settings(
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


# ---------------------------------------------------------------------------
# TestFuzzUrls
# ---------------------------------------------------------------------------


class TestFuzzUrls:
    @_fuzz_settings
    @given(url=VALID_URL)
    @example("https://salon.cz/kontakt/#mapa")
    def test_normalize_url_idempotent(self, url: str) -> None:
        once = normalize_url(url)
        assert normalize_url(once) == once
        assert "#" not in once

    @_fuzz_settings
    @given(raw=GENERAL_TEXT)
    @example("608 744 774")
    def test_normalize_phone_shape(self, raw: str) -> None:
        result = normalize_phone(raw)
        if result is not None:
            assert result.startswith("+")
            assert normalize_phone(result) == result


# ---------------------------------------------------------------------------
# TestFuzzFrontier
# ---------------------------------------------------------------------------


def _graph_site(graph: dict[int, list[int]]) -> dict:
    pages = {}
    for node, targets in graph.items():
        url = "https://salon.cz/" if node == 0 else f"https://salon.cz/p{node}"
        hrefs = ["/" if t == 0 else f"/p{t}" for t in targets]
        pages[url] = page(html=nav(*hrefs), title=f"p{node}")
    return pages


class TestFuzzFrontier:
    @_fuzz_settings
    @given(graph=LINK_GRAPH, max_pages=st.integers(0, 8), max_depth=st.integers(0, 3))
    def test_no_duplicates_and_budget_respected(self, graph, max_pages: int, max_depth: int) -> None:
        renderer = FakeRenderer(_graph_site(graph))
        config = CrawlConfig(max_pages=max_pages, max_depth=max_depth, use_sitemap=False, politeness_delay_s=0)
        result = asyncio.run(CrawlFrontier(config=config).crawl("https://salon.cz/", renderer))

        assert len(renderer.rendered) == len(set(renderer.rendered))
        urls = [p.url for p in result.pages]
        assert len(urls) == len(set(urls))
        assert result.pages_crawled <= max_pages
        assert all(p.depth <= max_depth for p in result.pages)
        assert renderer.exited


# ---------------------------------------------------------------------------
# TestFuzzLocations
# ---------------------------------------------------------------------------


class TestFuzzLocations:
    @_fuzz_settings
    @given(branches=BRANCHES, profile_address=PROFILE_ADDRESS)
    def test_resolve_capped(self, branches, profile_address) -> None:
        text = "\n".join(f"Pobočka Hlavní {n}, {town}" for town, n in branches)
        pages = [CrawledPage(url="https://salon.cz/", depth=0, title="", html="", visible_text=text, http_status=200)]
        locations = resolve(pages, profile_address)
        assert len(locations) <= 5

    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    def test_extract_addresses_never_raises(self, text: str) -> None:
        for address in extract_addresses(text):
            assert address


# ---------------------------------------------------------------------------
# TestFuzzExtractors
# ---------------------------------------------------------------------------


@pytest.mark.slow
class TestFuzzExtractors:
    @_fuzz_settings
    @given(html=HTML_LIKE)
    def test_contact_never_raises(self, html: str) -> None:
        result = extract_from_page(html, "https://salon.cz/kontakt")
        assert set(result.sources) <= {"phone", "email", "address"}

    @_fuzz_settings
    @given(html=HTML_LIKE)
    def test_services_always_have_numbers(self, html: str) -> None:
        assert all(s.has_numeric for s in extract_services(html))

    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    def test_hours_are_well_formed(self, text: str) -> None:
        for hour in extract_heuristic_hours(text):
            assert hour.weekday in {"mon", "tue", "wed", "thu", "fri", "sat", "sun"}
            assert len(hour.opens_at) == 5 and len(hour.closes_at) == 5
