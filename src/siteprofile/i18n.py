# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Internationalization: locale-tuned keyword tables and thresholds.

2-Layer architecture:
  Layer 1 (Detection): character classes and fingerprints that do not depend
      on a locale (letters with diacritics, currency-free tokens).
  Layer 2 (Locale): LocaleConfig dataclass: city lists, junk tokens, address
      and legal keywords, link-priority tables, weekday names, thresholds.

Only the relative precedence and fallback order of the extractors is fixed;
every list and number here is configuration and can be overridden from YAML
(see config.py).

Supported locales: cs (default), en
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Layer 1: Universal character classes
# ---------------------------------------------------------------------------

UPPER = "A-ZÁČĎÉĚÍŇÓŘŠŤÚŮÝŽÄÖÜ"
LOWER = "a-záčďéěíňóřšťúůýžäöüß"
LETTER = "A-Za-zÀ-ɏ"

TRADEMARK_GLYPHS = ("®", "™")

# ---------------------------------------------------------------------------
# Layer 2: Locale tables
# ---------------------------------------------------------------------------

_CS_CITY_KEYWORDS: tuple[str, ...] = (
    "praha",
    "brno",
    "ostrava",
    "plzeň",
    "plzen",
    "olomouc",
    "liberec",
    "hradec",
    "pardubice",
    "zlin",
    "ústí",
    "usti",
    "české budějovice",
    "ceske budejovice",
)

# keyword (as in city_keywords) -> display name
_CS_CITY_DISPLAY: dict[str, str] = {
    "praha": "Praha",
    "brno": "Brno",
    "ostrava": "Ostrava",
    "plzeň": "Plzeň",
    "plzen": "Plzeň",
    "olomouc": "Olomouc",
    "liberec": "Liberec",
    "hradec": "Hradec Králové",
    "pardubice": "Pardubice",
    "zlin": "Zlín",
    "ústí": "Ústí nad Labem",
    "usti": "Ústí nad Labem",
    "české budějovice": "České Budějovice",
    "ceske budejovice": "České Budějovice",
}

# Cities that get URL/heading name signals (/praha, "Brno – Za Divadlem")
_CS_SIGNAL_CITIES: tuple[str, ...] = ("Praha", "Brno", "Ostrava", "Plzeň", "Liberec", "Olomouc")

# Towns used to spot "street number, Town" fragments in free text
_CS_KNOWN_TOWNS: tuple[str, ...] = (
    "Praha",
    "Brno",
    "Ostrava",
    "Plzeň",
    "Liberec",
    "Olomouc",
    "České Budějovice",
    "Hradec Králové",
    "Ústí nad Labem",
    "Pardubice",
    "Zlín",
    "Havířov",
    "Kladno",
    "Most",
    "Opava",
    "Frýdek-Místek",
    "Jihlava",
    "Karviná",
    "Teplice",
    "Děčín",
    "Chomutov",
    "Jablonec nad Nisou",
    "Mladá Boleslav",
    "Prostějov",
    "Přerov",
    "Česká Lípa",
    "Třebíč",
    "Třinec",
    "Kroměříž",
    "Hodonín",
    "Uherské Hradiště",
    "Šumperk",
    "Vsetín",
    "Litoměřice",
    "Břeclav",
    "Klatovy",
    "Tábor",
    "Příbram",
    "Písek",
    "Kutná Hora",
    "Beroun",
    "Kolín",
    "Mělník",
    "Karlovy Vary",
    "Cheb",
    "Trutnov",
    "Náchod",
    "Chrudim",
    "Říčany",
)

_CS_JUNK_TOKENS: tuple[str, ...] = (
    "kč",
    "min",
    "%",
    "šampon",
    "masky",
    "používáme jen profesionální značky",
    "pouzivame jen profesionalni znacky",
)

_CS_ADDRESS_LABELS: tuple[str, ...] = (
    "adresa",
    "provozovna",
    "salon",
    "pobočka",
    "kde nás najdete",
    "kde nas najdete",
    "kde nás najdeš",
)

_CS_MAP_KEYWORDS: tuple[str, ...] = ("mapy", "google", "maps")

_CS_LEGAL_KEYWORDS: tuple[str, ...] = (
    "ičo",
    "ico",
    "dič",
    "dic",
    "sídlo",
    "sidlo",
    "fakturační",
    "fakturacni",
    "společnost",
    "spolecnost",
    "zapsaná",
    "zapsana",
    "obchodní rejstřík",
    "obchodni rejstrik",
    "rejstříku",
    "rejstriku",
    "s.r.o",
    "a.s",
)

_CS_PRIORITY_LINK_TEXTS: tuple[str, ...] = (
    "kontakt",
    "contact",
    "contacts",
    "kontakty",
    "rezervace",
    "rezervovat",
    "booking",
    "book now",
    "appointment",
    "reservation",
    "ceník",
    "cenník",
    "ceny",
    "price list",
    "prices",
    "menu",
    "služby",
    "services",
)

_CS_PRIORITY_HREF_PATTERNS: tuple[str, ...] = (
    r"/kontakt",
    r"/contact",
    r"/rezervace",
    r"/booking",
    r"/book",
    r"/appointment",
    r"/reservation",
    r"/cenik",
    r"/cennik",
    r"/ceny",
    r"/price",
    r"/menu",
    r"/sluzby",
    r"/services",
)

_CS_CONTACT_PAGE_PATTERNS: tuple[str, ...] = (
    r"kontakt",
    r"contact",
    r"o-nas",
    r"about",
    r"info",
    r"provozovna",
)

# most specific first; matches are normalized to one international form
_CS_PHONE_PATTERNS: tuple[str, ...] = (
    r"\+420[\s\-]?\d{3}[\s\-]?\d{3}[\s\-]?\d{3}",
    r"(?<!\d)420[\s\-]?\d{3}[\s\-]?\d{3}[\s\-]?\d{3}(?!\d)",
    r"(?<!\d)\d{3}[\s\-]?\d{3}[\s\-]?\d{3}(?!\d)",
)

_CS_PRICE_LIST_URL_KEYWORDS: tuple[str, ...] = ("cenik", "cennik", "ceny", "price", "pricelist")

_CS_DURATION_WORDS: tuple[str, ...] = ("délka", "doba", "min", "hod")

# folded weekday name -> key
_CS_WEEKDAY_NAMES: dict[str, str] = {
    "pondeli": "mon",
    "utery": "tue",
    "streda": "wed",
    "ctvrtek": "thu",
    "patek": "fri",
    "sobota": "sat",
    "nedele": "sun",
}

_CS_GENERIC_NAME_WORDS: frozenset[str] = frozenset(
    {
        "kadernictvi",
        "salon",
        "studio",
        "premiove",
        "luxusni",
        "krasa",
        "sluzby",
        "vlasy",
        "vlasu",
        "barber",
    }
)


@dataclass(frozen=True)
class LocaleConfig:
    """Locale-specific keyword tables and thresholds for the extractors."""

    code: str = "cs"

    # phone numbering plan
    country_code: str = "420"
    national_digits: int = 9
    domestic_country_names: tuple[str, ...] = ("CZ", "Česká republika", "Czech Republic")
    phone_patterns: tuple[str, ...] = _CS_PHONE_PATTERNS

    # cities
    city_keywords: tuple[str, ...] = _CS_CITY_KEYWORDS
    city_display: dict[str, str] = field(default_factory=lambda: dict(_CS_CITY_DISPLAY))
    signal_cities: tuple[str, ...] = _CS_SIGNAL_CITIES
    known_towns: tuple[str, ...] = _CS_KNOWN_TOWNS
    multi_city_keywords: tuple[str, ...] = ("praha", "brno")
    multi_city_summary: str = "Praha a Brno"
    location_fallback_name: str = "Lokace"

    # address scoring
    address_labels: tuple[str, ...] = _CS_ADDRESS_LABELS
    map_keywords: tuple[str, ...] = _CS_MAP_KEYWORDS
    legal_keywords: tuple[str, ...] = _CS_LEGAL_KEYWORDS
    junk_tokens: tuple[str, ...] = _CS_JUNK_TOKENS
    street_words: tuple[str, ...] = ("náměstí", "nám.", "ulice", "ul.", "třída", "tř.")

    # link priority
    priority_link_texts: tuple[str, ...] = _CS_PRIORITY_LINK_TEXTS
    priority_href_patterns: tuple[str, ...] = _CS_PRIORITY_HREF_PATTERNS
    contact_page_patterns: tuple[str, ...] = _CS_CONTACT_PAGE_PATTERNS
    primary_contact_token: str = "kontakt"

    # price lists
    price_list_url_keywords: tuple[str, ...] = _CS_PRICE_LIST_URL_KEYWORDS
    duration_words: tuple[str, ...] = _CS_DURATION_WORDS
    minute_tokens: tuple[str, ...] = ("min",)
    hour_tokens: tuple[str, ...] = ("hod",)
    currency_suffixes: tuple[str, ...] = ("kč",)
    generic_service_prefixes: tuple[str, ...] = (r"klasick[ýá]",)

    # opening hours
    weekday_names: dict[str, str] = field(default_factory=lambda: dict(_CS_WEEKDAY_NAMES))

    # business names
    generic_name_words: frozenset[str] = _CS_GENERIC_NAME_WORDS

    # thresholds
    address_pick_threshold: int = 15
    address_strong_threshold: int = 30
    generic_name_threshold: int = 5
    max_locations: int = 5
    location_min_len: int = 8
    location_max_len: int = 120

    def city_in(self, text: str) -> str | None:
        """Return the first city keyword contained in *text* (case-insensitive)."""
        lower = (text or "").lower()
        for city in self.city_keywords:
            if city in lower:
                return city
        return None

    def city_name(self, keyword: str) -> str:
        return self.city_display.get(keyword, keyword.title())

    def with_overrides(self, **overrides) -> LocaleConfig:
        """Return a copy with list values coerced to tuples (YAML gives lists)."""
        coerced = {}
        for key, value in overrides.items():
            if isinstance(value, list):
                value = frozenset(value) if key == "generic_name_words" else tuple(value)
            coerced[key] = value
        return dataclasses.replace(self, **coerced)


CS = LocaleConfig()

EN = LocaleConfig(
    code="en",
    country_code="1",
    national_digits=10,
    domestic_country_names=("US", "USA", "United States"),
    phone_patterns=(
        r"\+1[\s\-.]?\(?\d{3}\)?[\s\-.]?\d{3}[\s\-.]?\d{4}",
        r"(?<!\d)\(?\d{3}\)?[\s\-.]?\d{3}[\s\-.]?\d{4}(?!\d)",
    ),
    city_keywords=("new york", "brooklyn", "chicago", "boston", "seattle", "austin"),
    city_display={
        "new york": "New York",
        "brooklyn": "Brooklyn",
        "chicago": "Chicago",
        "boston": "Boston",
        "seattle": "Seattle",
        "austin": "Austin",
    },
    signal_cities=("New York", "Brooklyn", "Chicago", "Boston", "Seattle", "Austin"),
    known_towns=("New York", "Brooklyn", "Chicago", "Boston", "Seattle", "Austin"),
    multi_city_keywords=(),
    multi_city_summary="",
    location_fallback_name="Location",
    primary_contact_token="contact",
    address_labels=("address", "location", "find us", "visit us", "salon", "studio"),
    legal_keywords=("registered office", "company number", "vat", "llc", "inc."),
    junk_tokens=("$", "min", "%", "shampoo"),
    street_words=("street", "st.", "avenue", "ave.", "road", "rd."),
    price_list_url_keywords=("price", "pricing", "pricelist", "rates"),
    duration_words=("duration", "min", "hour", "hr"),
    minute_tokens=("min",),
    hour_tokens=("hour", "hr"),
    currency_suffixes=("usd",),
    generic_service_prefixes=(r"classic",),
    weekday_names={
        "monday": "mon",
        "tuesday": "tue",
        "wednesday": "wed",
        "thursday": "thu",
        "friday": "fri",
        "saturday": "sat",
        "sunday": "sun",
    },
    generic_name_words=frozenset({"salon", "studio", "barber", "hair", "beauty", "spa", "services", "premium"}),
)

_LOCALES: dict[str, LocaleConfig] = {"cs": CS, "en": EN}


def get_locale(code: str | None) -> LocaleConfig:
    """Return the locale for *code*, defaulting to Czech."""
    if not code:
        return CS
    return _LOCALES.get(code.lower().split("-")[0], CS)
