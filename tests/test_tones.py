"""Tests for tone code rendering and parsing"""

import pytest

from bc125at_tones import (
    CTCSS_TONES, DCS_CODES, TONE_NO_TONE, TONE_NONE, TONE_SEARCH,
    is_known_tone, parse_tone, render_tone, tone_choices
)


def test_table_sizes():
    assert len(CTCSS_TONES) == 50
    assert min(CTCSS_TONES) == 64 and max(CTCSS_TONES) == 113
    assert len(DCS_CODES) == 104
    assert min(DCS_CODES) == 128 and max(DCS_CODES) == 231


@pytest.mark.parametrize("code, text", [
    (0, "NONE"),
    (127, "SEARCH"),
    (240, "NO_TONE"),
    (64, "67.0Hz"),
    (76, "100.0Hz"),
    (113, "254.1Hz"),
    (128, "DCS 023"),
    (231, "DCS 754"),
    (5, "UNKNOWN"),
    (239, "UNKNOWN"),
])
def test_render(code, text):
    assert render_tone(code) == text


def test_render_then_parse_returns_code_for_every_known_tone():
    codes = [TONE_NONE, TONE_SEARCH, TONE_NO_TONE]
    codes += list(CTCSS_TONES) + list(DCS_CODES)
    for code in codes:
        assert parse_tone(render_tone(code)) == code


@pytest.mark.parametrize("text, code", [
    ("67Hz", 64),            # whole-number rendering
    ("CTCSS 67.0Hz", 64),
    ("  88.5hz ", 72),
    ("88.55Hz", 72),         # float drift within tolerance
    ("dcs 754", 231),
    ("none", TONE_NONE),
    ("search", TONE_SEARCH),
])
def test_parse_variants(text, code):
    assert parse_tone(text) == code


@pytest.mark.parametrize("text", ["", None, "UNKNOWN", "68.0Hz", "DCS 999",
                                  "garbage"])
def test_parse_unrecognized_is_none(text):
    assert parse_tone(text) == TONE_NONE


def test_is_known_tone():
    assert is_known_tone(0)
    assert is_known_tone(100)
    assert is_known_tone(200)
    assert not is_known_tone(50)


def test_tone_choices_order():
    choices = tone_choices()
    assert len(choices) == 3 + 50 + 104
    assert choices[:4] == [(0, "NONE"), (127, "SEARCH"), (240, "NO_TONE"),
                           (64, "67.0Hz")]
    assert choices[-1] == (231, "DCS 754")
