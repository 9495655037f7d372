"""Tests for timeblox/generation.py: prompt, response parsing and command backend."""

import json
import sys
from datetime import date

import pytest

from timeblox.generation import (
    FAILURE_MESSAGE,
    CommandGenerator,
    GenerationError,
    build_prompt,
    generate_day,
    parse_generated,
)
from timeblox.models import default_categories
from timeblox.planner import PlannerState, with_schedule

KEY = "2026-02-09"

GENERATED = {
    "schedule": [
        {"startTime": "10:00 AM", "endTime": "11:00 AM", "title": "Gym", "category": "Workout", "color": "bg-green-500"},
        {"startTime": "9:00 AM", "endTime": "10:00 AM", "title": "Report", "category": "Work", "color": "bg-red-500", "notes": "draft"},
    ]
}


class FakeGenerator:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def generate(self, free_text, target_date, categories):
        self.calls.append((free_text, target_date))
        if self.error is not None:
            raise self.error
        return list(parse_generated(self.result))


def test_build_prompt_mentions_date_and_categories():
    prompt = build_prompt("write report 2h", date(2026, 2, 9), default_categories())
    assert "Mon Feb 09 2026" in prompt
    assert "Work (use color 'bg-red-500')" in prompt
    assert '"write report 2h"' in prompt


def test_parse_generated_sorts():
    items = parse_generated(GENERATED)
    assert [b.title for b in items] == ["Report", "Gym"]
    assert items[0].notes == "draft"


def test_parse_generated_accepts_text():
    assert len(parse_generated(json.dumps(GENERATED))) == 2


@pytest.mark.parametrize("payload", [
    "not json",
    {"items": []},
    {"schedule": "nope"},
    {"schedule": [{"startTime": "9:00 AM", "endTime": "10:00 AM", "title": "x", "category": "Work"}]},
])
def test_parse_generated_rejects_bad_shapes(payload):
    with pytest.raises(GenerationError) as exc:
        parse_generated(payload)
    assert str(exc.value) == FAILURE_MESSAGE


def test_generate_day_replaces_schedule(day):
    state = with_schedule(PlannerState(), KEY, day)
    gen = FakeGenerator(result=GENERATED)
    new_state = generate_day(state, gen, "report, gym", KEY)
    assert [b.title for b in new_state.schedule_for(KEY)] == ["Report", "Gym"]
    assert gen.calls == [("report, gym", date(2026, 2, 9))]


def test_generate_day_failure_leaves_state(day):
    state = with_schedule(PlannerState(), KEY, day)
    gen = FakeGenerator(error=RuntimeError("backend down"))
    with pytest.raises(GenerationError):
        generate_day(state, gen, "report", KEY)
    assert state.schedule_for(KEY) == day


def test_generate_day_rejects_empty_text():
    gen = FakeGenerator(result=GENERATED)
    with pytest.raises(ValueError):
        generate_day(PlannerState(), gen, "   ", KEY)
    assert gen.calls == []


def test_command_generator_passes_context_on_stdin(tmp_path):
    # echoes the request's date back inside a one-block schedule
    script = tmp_path / "gen.py"
    script.write_text(
        "import json, sys\n"
        "ctx = json.load(sys.stdin)\n"
        "print(json.dumps({'schedule': [{'startTime': '9:00 AM', 'endTime': '10:00 AM',"
        " 'title': ctx['date'], 'category': 'Work', 'color': 'bg-red-500'}]}))\n",
        encoding="utf-8",
    )
    gen = CommandGenerator(f"{sys.executable} {script}", timeout=10)
    items = gen.generate("tasks", date(2026, 2, 9), default_categories())
    assert [b.title for b in items] == ["2026-02-09"]


def test_command_generator_failures():
    with pytest.raises(GenerationError):
        CommandGenerator("exit 3").generate("x", date(2026, 2, 9), [])
    with pytest.raises(GenerationError):
        CommandGenerator("echo not-json").generate("x", date(2026, 2, 9), [])
    with pytest.raises(GenerationError):
        CommandGenerator("sleep 5", timeout=1).generate("x", date(2026, 2, 9), [])
    with pytest.raises(GenerationError):
        CommandGenerator("").generate("x", date(2026, 2, 9), [])
