"""Two-step confirmation for actions that overwrite or split existing data.

A request_* function either applies a harmless action right away or returns
the unchanged state together with a Proposal. Applying the proposal is the
"confirm" step; dropping it is "cancel" and leaves the state as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from timeblox import planner, replication
from timeblox.blocks import BreakIn, new_block_template
from timeblox.clock import NEW_BLOCK_SNAP_MINUTES, format_time, parse_month_key, snap
from timeblox.masters import find_slot
from timeblox.models import TimeBlock
from timeblox.planner import PlannerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Proposal:
    title: str
    message: str
    confirm_text: str

    @property
    def kind(self) -> str:
        return type(self).__name__

    def apply(self, state: PlannerState) -> PlannerState:
        raise NotImplementedError

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "confirmText": self.confirm_text,
        }


Request = tuple[PlannerState, Proposal | None]


def confirm(state: PlannerState, proposal: Proposal) -> PlannerState:
    logger.debug("Confirmed %s", proposal.kind)
    return proposal.apply(state)


# ── Proposals ─────────────────────────────────────────────────


@dataclass(frozen=True)
class BreakInProposal(Proposal):
    date_key: str = ""
    break_in: BreakIn | None = None

    def apply(self, state: PlannerState) -> PlannerState:
        if self.break_in is None:
            raise ValueError("Break-in proposal without a break-in")
        return planner.confirm_break_in(state, self.date_key, self.break_in)


@dataclass(frozen=True)
class OverrideProposal(Proposal):
    source: str = ""
    target: str = ""

    def apply(self, state: PlannerState) -> PlannerState:
        return replication.copy_day(state, self.source, self.target)


@dataclass(frozen=True)
class MonthPasteProposal(Proposal):
    source_month: str = ""
    dest_month: str = ""

    def apply(self, state: PlannerState) -> PlannerState:
        return replication.paste_month(state, self.source_month, self.dest_month)


@dataclass(frozen=True)
class ClearDayProposal(Proposal):
    date_key: str = ""

    def apply(self, state: PlannerState) -> PlannerState:
        return replication.clear_day_and_links(state, self.date_key)


@dataclass(frozen=True)
class DeleteMasterProposal(Proposal):
    slot_id: int = 0

    def apply(self, state: PlannerState) -> PlannerState:
        return replication.delete_master(state, self.slot_id)


@dataclass(frozen=True)
class DeleteBlockProposal(Proposal):
    date_key: str = ""
    index: int = 0

    def apply(self, state: PlannerState) -> PlannerState:
        return planner.delete_item(state, self.date_key, self.index)


@dataclass(frozen=True)
class NewBlockProposal(Proposal):
    date_key: str = ""
    item: TimeBlock | None = None

    def apply(self, state: PlannerState) -> PlannerState:
        if self.item is None:
            raise ValueError("New block proposal without a block")
        return planner.save_item(state, self.date_key, None, self.item)


# ── Requests ──────────────────────────────────────────────────


def _month_name(key: str) -> str:
    year, month = parse_month_key(key)
    return date(year, month, 1).strftime("%B %Y")


def _day_name(key: str) -> str:
    d = date.fromisoformat(key)
    return f"{d.strftime('%B')} {d.day}"


def request_drop(state: PlannerState, date_key: str, index: int, new_start: int) -> Request:
    """Drop a dragged block at *new_start*."""
    new_state, result = planner.drop_item(state, date_key, index, new_start)
    if result.break_in is None:
        return new_state, None
    target = state.schedule_for(date_key)[result.break_in.target_index]
    return state, BreakInProposal(
        title="Modify Schedule?",
        message=f'Are you sure you want to place this block here? It will adjust "{target.title}".',
        confirm_text="Yes, Adjust",
        date_key=date_key,
        break_in=result.break_in,
    )


def request_copy_day(state: PlannerState, source: str, target: str) -> Request:
    """Copy a day, asking first when the target is a non-empty copy."""
    if source == target or not state.has_schedule(source):
        return state, None
    if replication.needs_override_confirmation(state, target):
        return state, OverrideProposal(
            title="Override Schedule?",
            message="This day already has a color-coded schedule. Are you sure you want to override it?",
            confirm_text="Yes, Override",
            source=source,
            target=target,
        )
    return replication.copy_day(state, source, target), None


def request_paste_month(state: PlannerState, source_month: str, dest_month: str) -> Request:
    if source_month == dest_month:
        return state, None
    return state, MonthPasteProposal(
        title="Paste Month Schedule?",
        message=(
            f"Paste the schedule from {_month_name(source_month)} to {_month_name(dest_month)}? "
            "This will override all existing events in the destination month."
        ),
        confirm_text="Yes, Paste & Override",
        source_month=source_month,
        dest_month=dest_month,
    )


def request_clear_day(state: PlannerState, date_key: str) -> Request:
    return state, ClearDayProposal(
        title="Clear Entire Day?",
        message=(
            f"Are you sure you want to delete all events for {_day_name(date_key)}? "
            "This will also clear any template status and unlink all copies."
        ),
        confirm_text="Yes, Clear Day",
        date_key=date_key,
    )


def request_delete_master(state: PlannerState, slot_id: int) -> Request:
    find_slot(state.master_days, slot_id)
    return state, DeleteMasterProposal(
        title="Delete Master Template?",
        message=(
            "Are you sure you want to delete this master template? The schedule for this day "
            "will be cleared and all copies will be unlinked."
        ),
        confirm_text="Yes, Delete",
        slot_id=slot_id,
    )


def request_delete_block(state: PlannerState, date_key: str, index: int) -> Request:
    schedule = state.schedule_for(date_key)
    if not 0 <= index < len(schedule):
        raise IndexError(f"Block index out of range: {index}")
    return state, DeleteBlockProposal(
        title="Confirm Deletion",
        message=f'Are you sure you want to delete "{schedule[index].title}"? This action cannot be undone.',
        confirm_text="Yes, Delete",
        date_key=date_key,
        index=index,
    )


def request_new_block(state: PlannerState, date_key: str, at_minutes: float) -> Request:
    """Long-press on an empty slot: offer a new block at the nearest quarter hour."""
    start = snap(at_minutes, NEW_BLOCK_SNAP_MINUTES)
    item = new_block_template(start, state.categories)
    return state, NewBlockProposal(
        title="Add A Time Blox?",
        message=f"Do you want to add a new time block at {format_time(start)}?",
        confirm_text="Yes, Add",
        date_key=date_key,
        item=item,
    )
