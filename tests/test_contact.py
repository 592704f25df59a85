# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for deterministic phone / email / address extraction."""

from __future__ import annotations

import json
from types import SimpleNamespace

import pytest

from siteprofile import ContactResult, CrawledPage
from siteprofile.contact import (
    address_from_dom,
    emails_from_text,
    extract_from_page,
    extract_from_pages,
    is_contact_page,
    merge_contact,
    normalize_phone,
    phones_from_text,
    score_address_context,
)
from siteprofile.i18n import EN


def _page(url: str, html: str) -> CrawledPage:
    return CrawledPage(url=url, depth=0, title="", html=html, visible_text="", http_status=200)


def _jsonld(data: dict) -> str:
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


# ── normalize_phone ──────────────────────────────────────────────────


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        ["608 744 774", "608-744-774", "+420 608 744 774", "420608744774", "+420608744774"],
    )
    def test_czech_forms(self, raw):
        assert normalize_phone(raw) == "+420608744774"

    @pytest.mark.parametrize("raw", ["", None, "123", "12345678901234567", "0800 12"])
    def test_rejected(self, raw):
        assert normalize_phone(raw) is None

    def test_foreign_international_kept(self):
        assert normalize_phone("+49 30 1234567") == "+49301234567"

    def test_english_locale(self):
        assert normalize_phone("(212) 555-0100", EN) == "+12125550100"


class TestTextStrategies:
    def test_phones_deduplicated_across_patterns(self):
        text = "Volejte 608 744 774 nebo +420 608 744 774."
        assert phones_from_text(text) == ["+420608744774"]

    def test_emails_filter_placeholders_and_images(self):
        text = "info@salon.cz, test@example.com, logo@2x.png, INFO@salon.cz"
        assert emails_from_text(text) == ["info@salon.cz"]

    def test_contact_page(self):
        assert is_contact_page("https://salon.cz/kontakt")
        assert is_contact_page("https://salon.cz/o-nas")
        assert not is_contact_page("https://salon.cz/cenik")
        assert not is_contact_page("")


# ── Per-page strategies ──────────────────────────────────────────────


class TestExtractFromPage:
    def test_jsonld_beats_links(self):
        html = (
            _jsonld({"@type": "HairSalon", "telephone": "+420 777 111 222", "email": "ld@salon.cz"})
            + '<a href="tel:+420608744774">Zavolejte</a><a href="mailto:info@salon.cz">Napište</a>'
        )
        result = extract_from_page(html, "https://salon.cz/")
        assert result.phone == "+420777111222"
        assert result.email == "ld@salon.cz"
        assert result.sources["phone"] == "json-ld"

    def test_tel_and_mailto_links(self):
        html = '<a href="tel:608744774">Zavolejte</a><a href="mailto:info@salon.cz?subject=Dotaz">Napište</a>'
        result = extract_from_page(html, "https://salon.cz/")
        assert result.phone == "+420608744774"
        assert result.email == "info@salon.cz"
        assert result.sources == {"phone": "tel-link", "email": "mailto-link"}

    def test_text_regex(self):
        result = extract_from_page("<p>Tel: 608 744 774, e-mail: recepce@salon.cz</p>")
        assert result.phone == "+420608744774"
        assert result.email == "recepce@salon.cz"
        assert result.sources["phone"] == "text-regex"

    def test_labeled_address(self):
        result = extract_from_page("<p>Adresa: Vinohradská 12, 120 00 Praha 2</p>")
        assert result.address == "Vinohradská 12, 120 00 Praha 2"
        assert result.sources["address"] == "dom-heuristic"

    def test_empty(self):
        assert extract_from_page("") == ContactResult()


# ── Address heuristic ────────────────────────────────────────────────


class TestAddressFromDom:
    def test_multi_city_summary(self):
        """Both cities named and no strongly labeled address: summary, not a guess."""
        pick = address_from_dom("<p>Najdete nás v Praze i Brně: Praha, Brno. Těšíme se!</p>")
        assert pick.address == "Praha a Brno"
        assert pick.reason == "multi_location_summary"
        assert pick.multi_location

    def test_legal_context_rejected(self):
        pick = address_from_dom("<p>Sídlo společnosti: Dlouhá 5, 110 00 Praha 1, IČO 12345678</p>")
        assert pick.address is None
        assert pick.reason == "rejected_low_score"

    def test_unlabeled_below_threshold(self):
        pick = address_from_dom("<p>Dlouhá 5, 110 00 Kladno</p>")
        assert pick.address is None
        assert pick.reason == "no_confident_candidate"

    def test_score_rules(self):
        assert score_address_context("Adresa salonu, mapy") == 45
        assert score_address_context("IČO 123") == -60
        assert score_address_context("nic") == 0

    def test_no_html(self):
        assert address_from_dom("").reason == "no_html"


# ── Cross-page merge ─────────────────────────────────────────────────


class TestExtractFromPages:
    def test_contact_page_wins(self):
        pages = [
            _page("https://salon.cz/", '<a href="tel:777111222">Volejte</a>'),
            _page("https://salon.cz/kontakt", '<a href="tel:608744774">Volejte</a>'),
        ]
        result = extract_from_pages(pages)
        assert result.phone == "+420608744774"
        assert result.sources["phone"] == "tel-link from https://salon.cz/kontakt"

    def test_fields_from_different_pages(self):
        pages = [
            _page("https://salon.cz/", "<p>Pište na info@salon.cz</p>"),
            _page("https://salon.cz/kontakt", '<a href="tel:608744774">Volejte</a>'),
        ]
        result = extract_from_pages(pages)
        assert result.phone == "+420608744774"
        assert result.email == "info@salon.cz"

    def test_multi_city_pages(self):
        pages = [_page("https://salon.cz/", "<p>Salony Praha, Brno</p>")]
        assert extract_from_pages(pages).address == "Praha a Brno"

    def test_no_pages(self):
        assert extract_from_pages([]) == ContactResult()


class TestMergeContact:
    def test_deterministic_wins_oracle_fills(self):
        det = ContactResult(phone="+420608744774", sources={"phone": "tel-link from x"})
        oracle = SimpleNamespace(phone="+420777111222", email="info@salon.cz", address=None)
        merged = merge_contact(det, oracle)
        assert merged.phone == "+420608744774"
        assert merged.email == "info@salon.cz"
        assert merged.sources["email"] == "oracle"
        assert merged.address is None

    def test_no_oracle(self):
        det = ContactResult(email="a@b.cz")
        assert merge_contact(det, None).email == "a@b.cz"
