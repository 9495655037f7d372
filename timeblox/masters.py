"""Master day template slots.

A fixed table of MASTER_SLOTS templates. A date occupies at most one slot;
free slots have date_key None and are filled in ascending id order.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from timeblox.models import MasterDay


MASTER_SLOTS = 5


def default_master_days() -> tuple[MasterDay, ...]:
    return (
        MasterDay(1, None, "bg-sky-500", "Master 1", "Blue"),
        MasterDay(2, None, "bg-yellow-400", "Master 2", "Yellow"),
        MasterDay(3, None, "bg-orange-500", "Master 3", "Orange"),
        MasterDay(4, None, "bg-green-500", "Master 4", "Green"),
        MasterDay(5, None, "bg-red-500", "Master 5", "Red"),
    )


def normalize_master_days(days: Sequence[MasterDay]) -> tuple[MasterDay, ...]:
    """Fill missing slots from the defaults and order by id.

    Settings may name or recolor slots; any extra slots beyond the table
    size are dropped.
    """
    by_id = {d.id: d for d in days}
    out = []
    for default in default_master_days():
        out.append(by_id.get(default.id, default))
    return tuple(out)


def find_master(days: Sequence[MasterDay], date_key: str) -> MasterDay | None:
    for d in days:
        if d.date_key == date_key:
            return d
    return None


def find_slot(days: Sequence[MasterDay], slot_id: int) -> MasterDay:
    for d in days:
        if d.id == slot_id:
            return d
    raise KeyError(f"No master slot with id {slot_id}")


def first_free_slot(days: Sequence[MasterDay]) -> MasterDay | None:
    for d in sorted(days, key=lambda d: d.id):
        if d.date_key is None:
            return d
    return None


def assign_slot(days: Sequence[MasterDay], slot_id: int, date_key: str) -> tuple[MasterDay, ...]:
    """Point slot *slot_id* at *date_key*. Raises if the date already has a slot."""
    if find_master(days, date_key) is not None:
        raise ValueError(f"{date_key} is already a master day")
    find_slot(days, slot_id)
    return tuple(replace(d, date_key=date_key) if d.id == slot_id else d for d in days)


def release_date(days: Sequence[MasterDay], date_key: str) -> tuple[MasterDay, ...]:
    """Null every slot referencing *date_key*."""
    return tuple(replace(d, date_key=None) if d.date_key == date_key else d for d in days)
