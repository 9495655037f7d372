"""Plain-text export of a day's schedule (what the copy button puts on the clipboard)."""

from __future__ import annotations

from typing import Sequence

from timeblox.models import TimeBlock


def format_block_line(item: TimeBlock) -> str:
    return f"{item.start_time} - {item.end_time} | {item.title} ({item.category})"


def schedule_to_text(schedule: Sequence[TimeBlock]) -> str:
    return "\n".join(format_block_line(b) for b in schedule)
