"""Tests for timeblox/export.py."""

from timeblox.export import schedule_to_text


def test_schedule_to_text(day):
    assert schedule_to_text(day) == (
        "9:00 AM - 10:00 AM | Email (Work)\n"
        "10:00 AM - 11:00 AM | Deep work (Focus)\n"
        "11:00 AM - 12:00 PM | Standup (Meeting)"
    )


def test_empty_schedule_is_empty_text():
    assert schedule_to_text(()) == ""
