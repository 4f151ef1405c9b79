import re

import pytest

from webtracker.services.identity import (
    abbreviate,
    bare_phone,
    clean_phone,
    generate_tracking_id,
    split_syllables,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("Airwaybill", "AWB"),
        ("", "AWB"),
        ("1234", "AWB"),
        ("DHL", "DHL"),
        ("Go", "GOX"),
    ],
)
def test_abbreviate(name, expected):
    assert abbreviate(name) == expected


def test_abbreviate_is_three_uppercase_letters():
    for name in ("Speedy Logistics", "Fedex", "Cargo Express", "Zoom"):
        abbr = abbreviate(name)
        assert len(abbr) == 3
        assert abbr.isupper()


def test_split_syllables_vccv_and_vcv():
    assert split_syllables("Airwaybill") == ["Air", "way", "bill"]


def test_short_word_is_one_syllable():
    assert split_syllables("Fox") == ["Fox"]


def test_tracking_id_format():
    tracking_id = generate_tracking_id("SPX")

    assert re.fullmatch(r"SPX-\d{9}", tracking_id)


def test_tracking_id_default_prefix():
    assert generate_tracking_id("").startswith("AWB-")


def test_bare_phone():
    assert bare_phone("2348012345678:12@s.whatsapp.net") == "2348012345678"
    assert bare_phone("2348012345678@s.whatsapp.net") == "2348012345678"
    assert bare_phone("") == ""
    assert bare_phone("status@broadcast") == ""


def test_clean_phone():
    assert clean_phone(" +234-801 234 5678 ") == "2348012345678"
