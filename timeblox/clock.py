"""Clock text <-> minute-of-day conversion and calendar key helpers.

Block times are stored as 12-hour clock text ("9:05 AM"); every mutation
works on integer minutes from midnight.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
DRAG_SNAP_MINUTES = 5
NEW_BLOCK_SNAP_MINUTES = 15

_CLOCK_RE = re.compile(r"(\d+):(\d+)\s*(AM|PM)", re.IGNORECASE)
_STRICT_CLOCK_RE = re.compile(r"^\s*(1[0-2]|0?[1-9]):([0-5]\d)\s*(AM|PM)\s*$", re.IGNORECASE)


# ── Clock text ────────────────────────────────────────────────


def parse_time(text: str) -> int:
    """Parse 'H:MM AM|PM' into minutes after midnight.

    Unparsable text falls back to 0 (midnight) instead of raising.
    """
    if not text:
        return 0
    m = _CLOCK_RE.search(text)
    if not m:
        logger.debug("Unparsable clock text %r, using 0", text)
        return 0
    hours = int(m.group(1))
    minutes = int(m.group(2))
    modifier = m.group(3).upper()
    if modifier == "PM" and hours < 12:
        hours += 12
    if modifier == "AM" and hours == 12:
        hours = 0
    return hours * 60 + minutes


def format_time(total_minutes: int) -> str:
    """Render minutes as 'H:MM AM|PM', wrapping across midnight."""
    total = total_minutes % MINUTES_PER_DAY
    hours24 = total // 60
    minutes = total % 60
    hours12 = 12 if hours24 % 12 == 0 else hours24 % 12
    modifier = "PM" if hours24 >= 12 else "AM"
    return f"{hours12}:{minutes:02d} {modifier}"


def is_valid_time(text: str) -> bool:
    """True when *text* is a well-formed 12-hour clock string."""
    return bool(text) and _STRICT_CLOCK_RE.match(text) is not None


def snap(minutes: float, increment: int = DRAG_SNAP_MINUTES) -> int:
    """Round to the nearest multiple of *increment* (halves round up)."""
    return math.floor(minutes / increment + 0.5) * increment


# ── Calendar keys ─────────────────────────────────────────────


def date_key(d: date) -> str:
    return d.isoformat()


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_date_key(key: str) -> date:
    """Parse 'YYYY-MM-DD'. Raises ValueError for anything else."""
    return date.fromisoformat(key)


def parse_month_key(key: str) -> tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month)."""
    parts = key.split("-")
    if len(parts) != 2:
        raise ValueError(f"Invalid month key: {key!r}")
    year, month = int(parts[0]), int(parts[1])
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month key: {key!r}")
    return year, month


def month_of(key: str) -> str:
    """Month key of a date key."""
    return key[:7]
