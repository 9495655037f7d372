"""Text-to-schedule generation.

A generator turns a free-text task list into candidate blocks for one day.
The bundled CommandGenerator runs a configured shell command: the request is
passed as JSON via stdin and the command must print {"schedule": [...]}.
"""

from __future__ import annotations

import json
import logging
import subprocess
from datetime import date
from pathlib import Path
from typing import Any, Protocol, Sequence

from timeblox.blocks import Schedule, sort_blocks
from timeblox.models import ActivityCategory, TimeBlock
from timeblox.planner import PlannerState, apply_generated

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
REQUIRED_KEYS = ("startTime", "endTime", "title", "category", "color")
FAILURE_MESSAGE = (
    "Failed to generate schedule. The AI might be temporarily unavailable "
    "or the input could not be processed."
)


class GenerationError(Exception):
    def __init__(self, message: str = FAILURE_MESSAGE) -> None:
        super().__init__(message)


class ScheduleGenerator(Protocol):
    def generate(
        self,
        free_text: str,
        target_date: date,
        categories: Sequence[ActivityCategory],
    ) -> list[TimeBlock]: ...


# ── Prompt ────────────────────────────────────────────────────


def build_prompt(free_text: str, target_date: date, categories: Sequence[ActivityCategory]) -> str:
    """Planner instructions handed to the backing model."""
    date_string = target_date.strftime("%a %b %d %Y")
    categories_string = ", ".join(f"{c.name} (use color '{c.color}')" for c in categories)
    return (
        "You are TimeBlox, an intelligent daily planner. Your task is to take a user's "
        "unordered list of tasks and create a clean, visually ordered schedule for the "
        f"specified date: {date_string}, using time-blocking principles.\n"
        "\n"
        "Instructions:\n"
        "1. Parse the user's input, which includes tasks, durations, optional preferred "
        "times, and workday hours.\n"
        "2. Create a coherent, non-overlapping schedule for the given date.\n"
        '3. Intelligently fill empty time slots with appropriate blocks like "Focus Time", '
        '"Lunch", "Short Break", or "Planning/Review".\n'
        "4. You must assign a category and its corresponding color for each schedule item "
        f"from the following list of available categories: [{categories_string}]. "
        "Do not invent new categories.\n"
        '5. The final output must be a valid JSON object of the form {"schedule": [...]}, '
        "each item having startTime, endTime, title, category, color and optional notes. "
        "Do not output markdown or any other format.\n"
        "\n"
        "User Input:\n"
        f'"{free_text}"\n'
    )


# ── Response parsing ──────────────────────────────────────────


def validate_generated_item(item: Any) -> list[str]:
    """Return a list of problems with one generated item."""
    if not isinstance(item, dict):
        return ["item is not an object"]
    errors = []
    for key in REQUIRED_KEYS:
        value = item.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"missing required field '{key}'")
    notes = item.get("notes")
    if notes is not None and not isinstance(notes, str):
        errors.append("'notes' must be a string")
    return errors


def parse_generated(payload: Any) -> Schedule:
    """Turn a generator response into a sorted schedule.

    Accepts the decoded JSON object or its text. Raises GenerationError when
    the shape is wrong.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise GenerationError() from e
    if not isinstance(payload, dict) or not isinstance(payload.get("schedule"), list):
        logger.warning("Generator response has no schedule array")
        raise GenerationError()

    items = []
    for i, raw in enumerate(payload["schedule"]):
        errors = validate_generated_item(raw)
        if errors:
            logger.warning("Generated item %d rejected: %s", i, "; ".join(errors))
            raise GenerationError()
        items.append(TimeBlock.from_dict(raw))
    return sort_blocks(items)


# ── Command generator ─────────────────────────────────────────


class CommandGenerator:
    """Run a shell command as the generator backend."""

    def __init__(self, command: str, timeout: int = DEFAULT_TIMEOUT, cwd: Path | None = None) -> None:
        self.command = command
        self.timeout = timeout
        self.cwd = cwd

    def generate(
        self,
        free_text: str,
        target_date: date,
        categories: Sequence[ActivityCategory],
    ) -> list[TimeBlock]:
        if not self.command:
            raise GenerationError("No generator command configured.")
        context = {
            "tasks": free_text,
            "date": target_date.isoformat(),
            "categories": [c.to_dict() for c in categories],
            "prompt": build_prompt(free_text, target_date, categories),
        }
        try:
            proc = subprocess.run(
                self.command,
                shell=True,
                input=json.dumps(context, ensure_ascii=False),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except subprocess.TimeoutExpired as e:
            raise GenerationError() from e
        if proc.returncode != 0:
            logger.warning("Generator exited with %d: %s", proc.returncode, proc.stderr[:4096])
            raise GenerationError()
        return list(parse_generated(proc.stdout))


# ── Planner integration ───────────────────────────────────────


def generate_day(
    state: PlannerState,
    generator: ScheduleGenerator,
    free_text: str,
    date_key: str,
) -> PlannerState:
    """Replace *date_key*'s schedule with a generated one.

    On any failure GenerationError is raised and *state* is left as it was.
    """
    if not free_text.strip():
        raise ValueError("Please enter some tasks to generate a schedule.")
    target = date.fromisoformat(date_key)
    try:
        generated = generator.generate(free_text, target, state.categories)
    except GenerationError:
        logger.exception("Schedule generation failed for %s", date_key)
        raise
    except Exception as e:
        logger.exception("Schedule generation failed for %s", date_key)
        raise GenerationError() from e
    logger.info("Generated %d blocks for %s", len(generated), date_key)
    return apply_generated(state, date_key, generated)
