"""Block store and mutation engine for a single day's schedule.

Every function takes a schedule (any sequence of TimeBlock, sorted by start)
and returns a new sorted tuple. Nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from timeblox.clock import MINUTES_PER_DAY, format_time, is_valid_time
from timeblox.models import (
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_NAME,
    MIN_BLOCK_MINUTES,
    ActivityCategory,
    TimeBlock,
    find_category,
)


Schedule = tuple[TimeBlock, ...]

MIN_FRAGMENT_MINUTES = 5
EXTEND_MINUTES = 60
SHORTEN_MINUTES = -60
NEW_BLOCK_MINUTES = 60
HANDLES = ("top", "bottom")


# ── Ordering ──────────────────────────────────────────────────


def sort_blocks(blocks: Sequence[TimeBlock]) -> Schedule:
    """Stable sort by start minute."""
    return tuple(sorted(blocks, key=lambda b: b.start_minutes))


def _check_index(schedule: Sequence[TimeBlock], index: int) -> None:
    if not 0 <= index < len(schedule):
        raise IndexError(f"Block index out of range: {index} (schedule has {len(schedule)} blocks)")


def validate_schedule(schedule: Sequence[TimeBlock]) -> list[str]:
    """Return a list of problems (empty if the schedule is well-formed)."""
    errors = []
    prev: TimeBlock | None = None
    for i, b in enumerate(schedule):
        if not is_valid_time(b.start_time):
            errors.append(f"Block {i}: invalid start time {b.start_time!r}")
        if not is_valid_time(b.end_time):
            errors.append(f"Block {i}: invalid end time {b.end_time!r}")
        if b.end_minutes <= b.start_minutes:
            errors.append(f"Block {i}: ends before it starts")
        if prev is not None:
            if b.start_minutes < prev.start_minutes:
                errors.append(f"Block {i}: out of order")
            elif b.start_minutes < prev.end_minutes:
                errors.append(f"Block {i}: overlaps block {i - 1}")
        prev = b
    return errors


def validate_block(d: dict) -> list[str]:
    """Validate a user-entered block dict (camelCase keys). Returns errors."""
    errors = []
    start = d.get("startTime", "")
    end = d.get("endTime", "")
    if not is_valid_time(str(start)):
        errors.append(f"Invalid start time: {start!r} (expected e.g. '9:00 AM')")
    if not is_valid_time(str(end)):
        errors.append(f"Invalid end time: {end!r} (expected e.g. '10:00 AM')")
    if not errors:
        item = TimeBlock.from_dict(d)
        if item.end_minutes <= item.start_minutes:
            errors.append("End time must be after start time")
    if not str(d.get("title", "")).strip():
        errors.append("Missing required field: title")
    return errors


# ── Basic edits ───────────────────────────────────────────────


def insert_block(schedule: Sequence[TimeBlock], item: TimeBlock) -> Schedule:
    """Append and re-sort. Overlaps are not checked here."""
    return sort_blocks([*schedule, item])


def edit_block(
    schedule: Sequence[TimeBlock],
    index: int,
    item: TimeBlock,
    categories: Sequence[ActivityCategory] = (),
) -> Schedule:
    """Replace the block at *index*.

    The color is taken from the category of the same name when one exists;
    otherwise the caller's color is kept.
    """
    _check_index(schedule, index)
    item = recolor(item, categories)
    blocks = list(schedule)
    blocks[index] = item
    return sort_blocks(blocks)


def recolor(item: TimeBlock, categories: Sequence[ActivityCategory]) -> TimeBlock:
    match = find_category(list(categories), item.category)
    if match is not None and match.color != item.color:
        return replace(item, color=match.color)
    return item


def delete_block(schedule: Sequence[TimeBlock], index: int) -> Schedule:
    _check_index(schedule, index)
    return sort_blocks([b for i, b in enumerate(schedule) if i != index])


def new_block_template(start_minutes: int, categories: Sequence[ActivityCategory] = ()) -> TimeBlock:
    """Default one-hour block offered when long-pressing an empty slot."""
    if categories:
        name, color = categories[0].name, categories[0].color
    else:
        name, color = DEFAULT_CATEGORY_NAME, DEFAULT_CATEGORY_COLOR
    return TimeBlock(
        start_time=format_time(start_minutes),
        end_time=format_time(start_minutes + NEW_BLOCK_MINUTES),
        title="New Task",
        category=name,
        color=color,
        notes="",
    )


# ── Collisions ────────────────────────────────────────────────


def find_collisions(schedule: Sequence[TimeBlock], index: int | None, start: int, end: int) -> list[int]:
    """Indices of blocks (other than *index*) overlapping [start, end)."""
    return [i for i, b in enumerate(schedule) if i != index and b.overlaps(start, end)]


def find_collision(schedule: Sequence[TimeBlock], index: int | None, start: int, end: int) -> int | None:
    hits = find_collisions(schedule, index, start, end)
    return hits[0] if hits else None


def clamp_start(start: int, duration: int) -> int:
    """Keep a block of *duration* inside the day."""
    return max(0, min(start, MINUTES_PER_DAY - duration))


# ── Move (drag) ───────────────────────────────────────────────


@dataclass(frozen=True)
class BreakIn:
    """Dropping block *dropped_index* onto block *target_index*."""

    dropped_index: int
    target_index: int
    new_start: int
    new_end: int


@dataclass(frozen=True)
class MoveResult:
    schedule: Schedule
    break_in: BreakIn | None = None
    rejected: bool = False

    @property
    def applied(self) -> bool:
        return self.break_in is None and not self.rejected


def move_block(schedule: Sequence[TimeBlock], index: int, new_start: int) -> MoveResult:
    """Move a block to *new_start*, keeping its duration.

    - no collision: applied, schedule re-sorted
    - exactly one collision: not applied, a BreakIn is proposed
    - several collisions: rejected, schedule unchanged
    """
    _check_index(schedule, index)
    item = schedule[index]
    duration = item.duration_minutes()
    start = clamp_start(new_start, duration)
    end = start + duration

    hits = find_collisions(schedule, index, start, end)
    current = sort_blocks(schedule)
    if len(hits) == 1:
        return MoveResult(current, break_in=BreakIn(index, hits[0], start, end))
    if hits:
        return MoveResult(current, rejected=True)

    blocks = list(schedule)
    blocks[index] = item.with_minutes(start, end)
    return MoveResult(sort_blocks(blocks))


def break_in_split(
    schedule: Sequence[TimeBlock],
    dropped_index: int,
    target_index: int,
    new_start: int,
    new_end: int,
) -> Schedule:
    """Place the dropped block at [new_start, new_end] inside the target.

    The target is replaced by the parts of itself before and after the
    dropped block; parts shorter than MIN_FRAGMENT_MINUTES are discarded.
    """
    _check_index(schedule, dropped_index)
    _check_index(schedule, target_index)
    if dropped_index == target_index:
        raise ValueError("A block cannot break into itself")
    if new_end <= new_start:
        raise ValueError(f"Invalid break-in interval: {new_start}-{new_end}")

    target = schedule[target_index]
    t_start, t_end = target.start_minutes, target.end_minutes

    fragments: list[TimeBlock] = []
    if new_start > t_start and new_start - t_start >= MIN_FRAGMENT_MINUTES:
        fragments.append(target.with_minutes(end=new_start))
    if t_end > new_end and t_end - new_end >= MIN_FRAGMENT_MINUTES:
        fragments.append(target.with_minutes(start=new_end))

    blocks: list[TimeBlock] = []
    for i, b in enumerate(schedule):
        if i == target_index:
            blocks.extend(fragments)
        elif i == dropped_index:
            blocks.append(b.with_minutes(new_start, new_end))
        else:
            blocks.append(b)
    return sort_blocks(blocks)


# ── Resize ────────────────────────────────────────────────────


def clamp_resize(schedule: Sequence[TimeBlock], index: int, handle: str, new_edge: int) -> tuple[int, int]:
    """Clamp a proposed edge so the block keeps MIN_BLOCK_MINUTES and stays
    between its neighbours. Returns the resulting (start, end)."""
    _check_index(schedule, index)
    if handle not in HANDLES:
        raise ValueError(f"Invalid resize handle: {handle!r}")
    item = schedule[index]
    start, end = item.start_minutes, item.end_minutes

    if handle == "top":
        start = min(new_edge, end - MIN_BLOCK_MINUTES)
        if index > 0:
            start = max(start, schedule[index - 1].end_minutes)
        start = max(start, 0)
    else:
        end = max(new_edge, start + MIN_BLOCK_MINUTES)
        if index < len(schedule) - 1:
            end = min(end, schedule[index + 1].start_minutes)
        end = min(end, MINUTES_PER_DAY)
    return start, end


def resize_block(schedule: Sequence[TimeBlock], index: int, handle: str, new_edge: int) -> Schedule:
    """Move only the edge under *handle* to *new_edge*, clamped."""
    start, end = clamp_resize(schedule, index, handle, new_edge)
    blocks = list(schedule)
    blocks[index] = schedule[index].with_minutes(start, end)
    return sort_blocks(blocks)


# ── Duration shift (extend / shorten) ─────────────────────────


def shift_duration(schedule: Sequence[TimeBlock], index: int, delta_minutes: int) -> Schedule:
    """Change a block's end by *delta_minutes* and ripple forward.

    Later blocks that now start before their predecessor ends are pushed
    forward by exactly the overlap, keeping their own duration. Gaps are
    never closed. Nothing runs past midnight: ends are capped at the end of
    the day, and if a pushed block would be left shorter than the minimum
    the schedule comes back unchanged.
    """
    _check_index(schedule, index)
    blocks = list(schedule)
    item = blocks[index]
    new_duration = max(MIN_BLOCK_MINUTES, item.duration_minutes() + delta_minutes)
    start = item.start_minutes
    prev_end = min(start + new_duration, MINUTES_PER_DAY)
    blocks[index] = item.with_minutes(end=prev_end)

    for i in range(index + 1, len(blocks)):
        current = blocks[i]
        cur_start = current.start_minutes
        cur_end = current.end_minutes
        if cur_start < prev_end:
            if prev_end > MINUTES_PER_DAY - MIN_BLOCK_MINUTES:
                return sort_blocks(schedule)
            duration = cur_end - cur_start
            cur_start, cur_end = prev_end, min(prev_end + duration, MINUTES_PER_DAY)
            blocks[i] = current.with_minutes(cur_start, cur_end)
        prev_end = cur_end

    return sort_blocks(blocks)
