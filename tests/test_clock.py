"""Tests for timeblox/clock.py: clock text codec and calendar keys."""

from datetime import date

import pytest

from timeblox.clock import (
    format_time,
    is_valid_time,
    month_key,
    month_of,
    parse_month_key,
    parse_time,
    snap,
)


def test_parse_time_basic():
    assert parse_time("9:05 AM") == 545
    assert parse_time("1:30 PM") == 810


def test_parse_time_midnight_and_noon():
    assert parse_time("12:00 AM") == 0
    assert parse_time("12:00 PM") == 720
    assert parse_time("12:45 AM") == 45


def test_parse_time_case_and_spacing():
    assert parse_time("9:00am") == 540
    assert parse_time("9:00   pm") == 1260


def test_parse_time_malformed_falls_back_to_zero():
    assert parse_time("") == 0
    assert parse_time("noon") == 0
    assert parse_time("14:00") == 0


def test_format_time():
    assert format_time(0) == "12:00 AM"
    assert format_time(545) == "9:05 AM"
    assert format_time(720) == "12:00 PM"
    assert format_time(1439) == "11:59 PM"


def test_format_time_wraps_past_midnight():
    assert format_time(1440) == "12:00 AM"
    assert format_time(1500) == "1:00 AM"


def test_round_trip_every_five_minutes():
    for m in range(0, 1440, 5):
        assert parse_time(format_time(m)) == m


def test_is_valid_time():
    assert is_valid_time("9:00 AM")
    assert is_valid_time("12:30 pm")
    assert not is_valid_time("")
    assert not is_valid_time("13:00 PM")
    assert not is_valid_time("9:60 AM")
    assert not is_valid_time("9 AM")


def test_snap():
    assert snap(542) == 540
    assert snap(543) == 545
    assert snap(547.4, 15) == 540
    assert snap(548, 15) == 555


def test_month_keys():
    assert month_key(date(2026, 3, 7)) == "2026-03"
    assert month_of("2026-03-07") == "2026-03"
    assert parse_month_key("2026-03") == (2026, 3)


@pytest.mark.parametrize("bad", ["2026", "2026-13", "2026-03-01"])
def test_parse_month_key_rejects_bad_input(bad):
    with pytest.raises(ValueError):
        parse_month_key(bad)
