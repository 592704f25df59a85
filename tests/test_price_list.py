# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for structured price-list scraping."""

from __future__ import annotations

import pytest

from siteprofile import ServiceCandidate
from siteprofile.i18n import EN
from siteprofile.price_list import (
    extract_if_price_list_page,
    extract_services,
    is_price_list_url,
    normalize_service_name,
    parse_duration_minutes,
    parse_price_range,
)

PRICE_LIST_HTML = """
<div class="block-listitem">
  <div class="listitem"><h4>Dámské střihy</h4></div>
  <div class="listitem">
    <h4>Klasický pánský střih *</h4>
    <p>Délka: 30 min</p>
    <p class="right"><strong>300 Kč</strong></p>
  </div>
  <div class="listitem">
    <h4>Barvení</h4>
    <p>(Délka: 1,5 hod)</p>
    <p class="right"><strong>1 200 - 1 800 Kč</strong></p>
  </div>
</div>
"""


class TestParsers:
    def test_is_price_list_url(self):
        assert is_price_list_url("https://salon.cz/cenik")
        assert is_price_list_url("https://salon.cz/Ceny-sluzeb")
        assert not is_price_list_url("https://salon.cz/kontakt")

    def test_normalize_service_name(self):
        assert normalize_service_name("  Klasický   pánský střih * ") == "pánský střih"
        assert normalize_service_name("Klasická manikúra") == "manikúra"
        assert normalize_service_name(None) == ""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("Délka: 30 min", 30), ("(Délka: 1,5 hod)", 90), ("2 hod", 120), ("zdarma", None), (None, None)],
    )
    def test_duration(self, text, expected):
        assert parse_duration_minutes(text) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("500 - 800 Kč", (500, 800)),
            ("990 Kč", (990, 990)),
            ("1 200 Kč", (1200, 1200)),
            ("1 200–1 500 Kč", (1200, 1500)),
            ("cena dohodou", (None, None)),
            ("500", (None, None)),
        ],
    )
    def test_price_range(self, text, expected):
        assert parse_price_range(text) == expected


# ── DOM extraction ───────────────────────────────────────────────────


class TestExtractServices:
    def test_headers_discarded_and_fields_parsed(self):
        services = extract_services(PRICE_LIST_HTML, "https://salon.cz/cenik")
        assert services == [
            ServiceCandidate(name="pánský střih", duration_minutes=30, price_from=300, price_to=300, is_core=True),
            ServiceCandidate(name="Barvení", duration_minutes=90, price_from=1200, price_to=1800, is_core=True),
        ]

    def test_fallback_selector(self):
        html = '<ul class="price-list"><li class="item"><h3>Foukaná</h3><span class="price">250 Kč</span></li></ul>'
        services = extract_services(html)
        assert services == [ServiceCandidate(name="Foukaná", price_from=250, price_to=250, is_core=True)]

    def test_price_found_in_item_text(self):
        html = '<div class="service-item"><h3>Melír</h3> od 900 Kč</div>'
        assert extract_services(html)[0].price_from == 900

    def test_name_in_strong_does_not_hide_price(self):
        html = '<div class="service-item"><strong>Melír</strong> 900 Kč</div>'
        assert extract_services(html) == [ServiceCandidate(name="Melír", price_from=900, price_to=900, is_core=True)]

    def test_only_on_price_list_urls(self):
        assert extract_if_price_list_page("https://salon.cz/o-nas", PRICE_LIST_HTML) == []
        assert len(extract_if_price_list_page("https://salon.cz/cenik", PRICE_LIST_HTML)) == 2

    def test_empty(self):
        assert extract_services("") == []
        assert extract_services("<p>Nic</p>") == []

    def test_english_locale(self):
        html = '<div class="listitem"><h4>Haircut</h4><p>Duration: 45 min</p><p class="right">40 USD</p></div>'
        services = extract_if_price_list_page("https://salon.com/pricing", html, EN)
        expected = ServiceCandidate(name="Haircut", duration_minutes=45, price_from=40, price_to=40, is_core=True)
        assert services == [expected]
