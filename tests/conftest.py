"""Shared test fixtures for TimeBlox tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import yaml

from timeblox.models import TimeBlock


def block(start: str, end: str, title: str = "Task", category: str = "Work", color: str = "bg-red-500") -> TimeBlock:
    return TimeBlock(start_time=start, end_time=end, title=title, category=category, color=color)


def times(schedule) -> list[tuple[str, str]]:
    return [(b.start_time, b.end_time) for b in schedule]


@pytest.fixture
def day() -> tuple[TimeBlock, ...]:
    """Three back-to-back one-hour blocks, 9 AM to noon."""
    return (
        block("9:00 AM", "10:00 AM", "Email"),
        block("10:00 AM", "11:00 AM", "Deep work", "Focus", "bg-sky-500"),
        block("11:00 AM", "12:00 PM", "Standup", "Meeting", "bg-orange-500"),
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with settings and a saved planner state."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)

    settings = {
        "show_copy_indicators": True,
        "show_today_indicator": True,
        "generator_timeout": 5,
        "default_tasks": "Write report 2h, gym 1h",
    }
    (root / "settings.yaml").write_text(
        yaml.dump(settings, default_flow_style=False), encoding="utf-8"
    )

    # Monday 2026-02-09 is a template, Tuesday 2026-02-10 a copy of it
    monday = [
        {"startTime": "9:00 AM", "endTime": "10:00 AM", "title": "Email", "category": "Work", "color": "bg-red-500"},
        {"startTime": "10:00 AM", "endTime": "11:00 AM", "title": "Deep work", "category": "Focus", "color": "bg-sky-500"},
        {"startTime": "11:00 AM", "endTime": "12:00 PM", "title": "Standup", "category": "Meeting", "color": "bg-orange-500"},
    ]
    state = {
        "allSchedules": {"2026-02-09": monday, "2026-02-10": monday},
        "copyLinks": {"2026-02-10": "2026-02-09"},
        "monthCopyLinks": {},
        "masterDays": [
            {"id": 1, "dateKey": "2026-02-09", "color": "bg-sky-500", "name": "Master 1", "colorName": "Blue"},
        ],
    }
    (root / "state.json").write_text(json.dumps(state, indent=2), encoding="utf-8")

    # Set env var
    os.environ["TIMEBLOX_ROOT"] = str(root)
    yield root
    # Cleanup
    if "TIMEBLOX_ROOT" in os.environ:
        del os.environ["TIMEBLOX_ROOT"]
