"""Calendar replication: day copies, month pastes and master promotion.

The copy-link graph maps a copied date to the date it came from. Links are
always flattened to the ultimate source, so a date that other dates point
at is never itself a copy.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import replace
from datetime import date

from timeblox.clock import month_of, parse_date_key, parse_month_key
from timeblox.masters import find_master, find_slot, first_free_slot, assign_slot, release_date
from timeblox.planner import PlannerState

logger = logging.getLogger(__name__)

DEFAULT_COPY_COLOR = "bg-sky-400"
MASTER_INDICATOR = "master"


# ── Graph queries ─────────────────────────────────────────────


def ultimate_source(copy_links: dict[str, str], date_key: str) -> str:
    """The non-copy date at the root of *date_key*'s copy chain."""
    seen = {date_key}
    current = date_key
    while current in copy_links:
        current = copy_links[current]
        if current in seen:
            break
        seen.add(current)
    return current


def copies_of(copy_links: dict[str, str], date_key: str) -> list[str]:
    return sorted(k for k, v in copy_links.items() if v == date_key)


def copy_indicator(state: PlannerState, date_key: str) -> str | None:
    """Calendar badge for a day.

    MASTER_INDICATOR for template days, the color of the source's master slot
    for copies (DEFAULT_COPY_COLOR when the source is not a template), and
    None for plain or empty days.
    """
    if not state.has_schedule(date_key):
        return None
    if state.is_master(date_key):
        return MASTER_INDICATOR
    source = state.copy_links.get(date_key)
    if source is None:
        return None
    master = find_master(state.master_days, source)
    return master.color if master else DEFAULT_COPY_COLOR


# ── Master promotion ──────────────────────────────────────────


def promote_to_master(state: PlannerState, date_key: str) -> PlannerState:
    """Give a free template slot to a non-empty, unlinked, untemplated day.

    When every slot is taken the state is returned unchanged.
    """
    if not state.has_schedule(date_key) or state.is_copy(date_key) or state.is_master(date_key):
        return state
    slot = first_free_slot(state.master_days)
    if slot is None:
        logger.info("No free master slot for %s", date_key)
        return state
    logger.info("Promoted %s to %s", date_key, slot.name)
    return replace(state, master_days=assign_slot(state.master_days, slot.id, date_key))


def begin_day_drag(state: PlannerState, date_key: str) -> PlannerState:
    """Hook run when a calendar day starts being dragged."""
    if not state.has_schedule(date_key):
        return state
    return promote_to_master(state, date_key)


# ── Clearing ──────────────────────────────────────────────────


def clear_day_and_links(state: PlannerState, date_key: str) -> PlannerState:
    """Empty a day and cut it out of the replication graph.

    The day loses its own link and its template slot; days that were copies
    of it are orphaned (not re-linked to its former source).
    """
    links = {k: v for k, v in state.copy_links.items() if k != date_key and v != date_key}
    orphaned = copies_of(state.copy_links, date_key)
    if orphaned:
        logger.info("Unlinked %d copies of %s", len(orphaned), date_key)
    logger.info("Cleared %s", date_key)
    return replace(
        state,
        schedules={**state.schedules, date_key: ()},
        copy_links=links,
        master_days=release_date(state.master_days, date_key),
    )


def delete_master(state: PlannerState, slot_id: int) -> PlannerState:
    """Delete a template: the slot's day is cleared exactly like clear_day_and_links."""
    slot = find_slot(state.master_days, slot_id)
    if slot.date_key is None:
        return state
    return clear_day_and_links(state, slot.date_key)


# ── Day copy ──────────────────────────────────────────────────


def needs_override_confirmation(state: PlannerState, target: str) -> bool:
    """Copying onto a non-empty day that is itself a copy must be confirmed."""
    return state.has_schedule(target) and state.is_copy(target)


def copy_day(state: PlannerState, source: str, target: str) -> PlannerState:
    """Copy *source*'s blocks onto *target* and link it to the ultimate source.

    Copying a day onto itself, or copying an empty day, changes nothing.
    """
    if source == target or not state.has_schedule(source):
        return state

    root = ultimate_source(state.copy_links, source)
    schedules = {**state.schedules, target: tuple(state.schedule_for(source))}
    if root == target:
        # copying one of target's own copies back onto it: target stays the root
        logger.info("Copied %s back onto its source %s", source, target)
        return replace(state, schedules=schedules)

    # target's old content is gone, so its own copies and template slot go too
    links = {k: v for k, v in state.copy_links.items() if v != target}
    links[target] = root
    logger.info("Copied %s onto %s (source %s)", source, target, root)
    return replace(
        state,
        schedules=schedules,
        copy_links=links,
        master_days=release_date(state.master_days, target),
    )


# ── Month paste ───────────────────────────────────────────────


def weekday_occurrence(d: date) -> int:
    """1-based count of d's weekday within its month (2 for '2nd Friday')."""
    return (d.day - 1) // 7 + 1


def matching_day(d: date, year: int, month: int) -> date | None:
    """The date in (year, month) with d's weekday and occurrence, or None
    when that month has no such occurrence."""
    first_weekday = date(year, month, 1).weekday()
    offset = (d.weekday() - first_weekday) % 7
    day = 1 + offset + (weekday_occurrence(d) - 1) * 7
    if day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def paste_month(state: PlannerState, source_month: str, dest_month: str) -> PlannerState:
    """Replicate a month onto another by weekday occurrence.

    The destination month is wiped first. Each non-empty source day lands on
    the destination day with the same weekday and occurrence; source days
    with no such destination day (a 5th Tuesday, say) are skipped.
    """
    if source_month == dest_month:
        raise ValueError("Cannot paste a month onto itself")
    dest_year, dest_mon = parse_month_key(dest_month)
    parse_month_key(source_month)

    removed = {k for k in state.schedules if month_of(k) == dest_month}
    removed |= {k for k in state.copy_links if month_of(k) == dest_month}

    schedules = {k: v for k, v in state.schedules.items() if k not in removed}
    links = {k: v for k, v in state.copy_links.items() if k not in removed and v not in removed}
    masters = state.master_days
    for key in removed:
        masters = release_date(masters, key)

    pasted = 0
    for key in sorted(state.schedules):
        if month_of(key) != source_month or not state.schedules[key]:
            continue
        target = matching_day(parse_date_key(key), dest_year, dest_mon)
        if target is None:
            logger.debug("No matching day in %s for %s, skipped", dest_month, key)
            continue
        dest_key = target.isoformat()
        schedules[dest_key] = tuple(state.schedules[key])
        root = ultimate_source(state.copy_links, key)
        if root in removed or root == dest_key:
            # the root was wiped above and key lost its link, so key is the source now
            root = key
        links[dest_key] = root
        pasted += 1

    logger.info("Pasted %d days from %s onto %s", pasted, source_month, dest_month)
    return replace(
        state,
        schedules=schedules,
        copy_links=links,
        month_copy_links={**state.month_copy_links, dest_month: source_month},
        master_days=masters,
    )
