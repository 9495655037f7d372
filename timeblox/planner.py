"""Planner state: every day's schedule plus the replication bookkeeping.

PlannerState is passed explicitly to every operation. Operations return a
new state and leave the one they were given untouched, so a caller can keep
the previous state around (undo, or simply "cancel").
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from timeblox import blocks as ops
from timeblox.blocks import BreakIn, MoveResult, Schedule
from timeblox.masters import default_master_days, find_master, normalize_master_days
from timeblox.models import ActivityCategory, MasterDay, TimeBlock, default_categories

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannerState:
    schedules: dict[str, Schedule] = field(default_factory=dict)
    copy_links: dict[str, str] = field(default_factory=dict)
    month_copy_links: dict[str, str] = field(default_factory=dict)
    master_days: tuple[MasterDay, ...] = field(default_factory=default_master_days)
    categories: tuple[ActivityCategory, ...] = field(default_factory=lambda: tuple(default_categories()))

    def schedule_for(self, date_key: str) -> Schedule:
        """The day's blocks; a date never written reads as empty."""
        return self.schedules.get(date_key, ())

    def has_schedule(self, date_key: str) -> bool:
        return len(self.schedule_for(date_key)) > 0

    def is_copy(self, date_key: str) -> bool:
        return date_key in self.copy_links

    def is_master(self, date_key: str) -> bool:
        return find_master(self.master_days, date_key) is not None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PlannerState:
        if not d or not isinstance(d, dict):
            return cls()
        schedules = {}
        for key, items in (d.get("allSchedules") or {}).items():
            if isinstance(items, list):
                schedules[key] = ops.sort_blocks([TimeBlock.from_dict(i) for i in items if isinstance(i, dict)])
        masters = [MasterDay.from_dict(m) for m in (d.get("masterDays") or []) if isinstance(m, dict)]
        categories = [ActivityCategory.from_dict(c) for c in (d.get("activityCategories") or []) if isinstance(c, dict)]
        return cls(
            schedules=schedules,
            copy_links={str(k): str(v) for k, v in (d.get("copyLinks") or {}).items()},
            month_copy_links={str(k): str(v) for k, v in (d.get("monthCopyLinks") or {}).items()},
            master_days=normalize_master_days(masters) if masters else default_master_days(),
            categories=tuple(categories) if categories else tuple(default_categories()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "allSchedules": {k: [b.to_dict() for b in v] for k, v in sorted(self.schedules.items())},
            "copyLinks": dict(sorted(self.copy_links.items())),
            "monthCopyLinks": dict(sorted(self.month_copy_links.items())),
            "masterDays": [m.to_dict() for m in self.master_days],
            "activityCategories": [c.to_dict() for c in self.categories],
        }


# ── Day-level operations ──────────────────────────────────────


def with_schedule(state: PlannerState, date_key: str, schedule: Sequence[TimeBlock]) -> PlannerState:
    """Replace one day's schedule (sorted on the way in)."""
    return replace(state, schedules={**state.schedules, date_key: ops.sort_blocks(schedule)})


def insert_item(state: PlannerState, date_key: str, item: TimeBlock) -> PlannerState:
    return with_schedule(state, date_key, ops.insert_block(state.schedule_for(date_key), item))


def save_item(state: PlannerState, date_key: str, index: int | None, item: TimeBlock) -> PlannerState:
    """Save an edited block (index given) or a new one (index None).

    Either way the block's color follows its category when the category is
    known.
    """
    schedule = state.schedule_for(date_key)
    if index is None:
        item = ops.recolor(item, state.categories)
        return with_schedule(state, date_key, ops.insert_block(schedule, item))
    return with_schedule(state, date_key, ops.edit_block(schedule, index, item, state.categories))


def delete_item(state: PlannerState, date_key: str, index: int) -> PlannerState:
    """Delete one block. An emptied day loses its copy link."""
    remaining = ops.delete_block(state.schedule_for(date_key), index)
    state = with_schedule(state, date_key, remaining)
    if not remaining and date_key in state.copy_links:
        links = {k: v for k, v in state.copy_links.items() if k != date_key}
        state = replace(state, copy_links=links)
        logger.info("Day %s emptied, dropped its copy link", date_key)
    return state


def drop_item(state: PlannerState, date_key: str, index: int, new_start: int) -> tuple[PlannerState, MoveResult]:
    """Move a block; when the move would land on another block the state is
    returned unchanged together with the proposed break-in."""
    result = ops.move_block(state.schedule_for(date_key), index, new_start)
    if not result.applied:
        return state, result
    return with_schedule(state, date_key, result.schedule), result


def confirm_break_in(state: PlannerState, date_key: str, break_in: BreakIn) -> PlannerState:
    schedule = ops.break_in_split(
        state.schedule_for(date_key),
        break_in.dropped_index,
        break_in.target_index,
        break_in.new_start,
        break_in.new_end,
    )
    return with_schedule(state, date_key, schedule)


def resize_item(state: PlannerState, date_key: str, index: int, handle: str, new_edge: int) -> PlannerState:
    return with_schedule(state, date_key, ops.resize_block(state.schedule_for(date_key), index, handle, new_edge))


def change_duration(state: PlannerState, date_key: str, index: int, delta_minutes: int) -> PlannerState:
    return with_schedule(state, date_key, ops.shift_duration(state.schedule_for(date_key), index, delta_minutes))


def apply_generated(state: PlannerState, date_key: str, generated: Sequence[TimeBlock]) -> PlannerState:
    """Install a generated schedule for a day, replacing what was there."""
    return with_schedule(state, date_key, generated)


# ── Category registry ─────────────────────────────────────────


def add_category(state: PlannerState, category: ActivityCategory) -> PlannerState:
    if any(c.id == category.id for c in state.categories):
        raise ValueError(f"Category id already exists: {category.id}")
    return replace(state, categories=(*state.categories, category))


def update_category(state: PlannerState, category_id: str, updates: dict[str, Any]) -> PlannerState:
    """Rename or recolor a category. Existing blocks keep their colors."""
    found = False
    out = []
    for c in state.categories:
        if c.id == category_id:
            found = True
            merged = {**c.to_dict(), **updates, "id": c.id}
            c = ActivityCategory.from_dict(merged)
        out.append(c)
    if not found:
        raise KeyError(f"Category not found: {category_id}")
    return replace(state, categories=tuple(out))


def delete_category(state: PlannerState, category_id: str) -> PlannerState:
    """Remove a category. Blocks that used it keep their stale color."""
    remaining = tuple(c for c in state.categories if c.id != category_id)
    if len(remaining) == len(state.categories):
        raise KeyError(f"Category not found: {category_id}")
    return replace(state, categories=remaining)
