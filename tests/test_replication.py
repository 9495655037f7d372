"""Tests for timeblox/replication.py and timeblox/masters.py."""

from datetime import date

import pytest

from conftest import block
from timeblox.masters import assign_slot, default_master_days, find_master, first_free_slot, release_date
from timeblox.planner import PlannerState, delete_item, with_schedule
from timeblox.replication import (
    DEFAULT_COPY_COLOR,
    MASTER_INDICATOR,
    begin_day_drag,
    clear_day_and_links,
    copy_day,
    copy_indicator,
    delete_master,
    matching_day,
    needs_override_confirmation,
    paste_month,
    promote_to_master,
    ultimate_source,
    weekday_occurrence,
)


def _state(**days) -> PlannerState:
    state = PlannerState()
    for key, schedule in days.items():
        state = with_schedule(state, key.replace("_", "-"), schedule)
    return state


@pytest.fixture
def one_day(day) -> PlannerState:
    return _state(**{"2026_02_09": day})


# ── Masters ───────────────────────────────────────────────────


def test_default_master_slots():
    slots = default_master_days()
    assert [s.color_name for s in slots] == ["Blue", "Yellow", "Orange", "Green", "Red"]
    assert all(s.date_key is None for s in slots)


def test_assign_and_release():
    slots = assign_slot(default_master_days(), 1, "2026-02-09")
    assert find_master(slots, "2026-02-09").id == 1
    assert first_free_slot(slots).id == 2
    with pytest.raises(ValueError):
        assign_slot(slots, 2, "2026-02-09")
    assert find_master(release_date(slots, "2026-02-09"), "2026-02-09") is None


def test_promote_takes_first_free_slot(one_day):
    state = promote_to_master(one_day, "2026-02-09")
    assert find_master(state.master_days, "2026-02-09").id == 1
    assert copy_indicator(state, "2026-02-09") == MASTER_INDICATOR
    # promoting again is a no-op
    assert promote_to_master(state, "2026-02-09") is state


def test_promote_skips_empty_copies_and_full_table(day):
    state = _state(**{"2026_02_09": day})
    assert promote_to_master(state, "2026-02-20") is state

    copied = copy_day(state, "2026-02-09", "2026-02-10")
    assert promote_to_master(copied, "2026-02-10") is copied

    full = state
    for i in range(1, 6):
        key = f"2026-03-0{i}"
        full = promote_to_master(with_schedule(full, key, day), key)
    extra = with_schedule(full, "2026-03-09", day)
    assert promote_to_master(extra, "2026-03-09") is extra


def test_begin_day_drag_promotes(one_day):
    state = begin_day_drag(one_day, "2026-02-09")
    assert state.is_master("2026-02-09")
    assert begin_day_drag(one_day, "2026-02-15") is one_day


# ── Day copy ──────────────────────────────────────────────────


def test_copy_day_links_to_source(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    assert state.schedule_for("2026-02-10") == state.schedule_for("2026-02-09")
    assert state.copy_links == {"2026-02-10": "2026-02-09"}
    assert copy_indicator(state, "2026-02-10") == DEFAULT_COPY_COLOR


def test_copy_indicator_uses_master_color(one_day):
    state = promote_to_master(one_day, "2026-02-09")
    state = copy_day(state, "2026-02-09", "2026-02-10")
    assert copy_indicator(state, "2026-02-10") == "bg-sky-500"
    assert copy_indicator(state, "2026-02-11") is None


def test_copy_chain_is_flattened(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    state = copy_day(state, "2026-02-10", "2026-02-11")
    assert state.copy_links["2026-02-11"] == "2026-02-09"
    assert "2026-02-09" not in state.copy_links
    assert ultimate_source(state.copy_links, "2026-02-11") == "2026-02-09"


def test_copy_is_a_value_copy(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    state = delete_item(state, "2026-02-10", 0)
    assert len(state.schedule_for("2026-02-09")) == 3
    assert len(state.schedule_for("2026-02-10")) == 2


def test_copy_empty_source_or_self_is_noop(one_day):
    assert copy_day(one_day, "2026-02-20", "2026-02-10") is one_day
    assert copy_day(one_day, "2026-02-09", "2026-02-09") is one_day


def test_copy_onto_a_source_orphans_its_copies(day):
    state = _state(**{"2026_02_09": day, "2026_02_12": day[:1]})
    state = promote_to_master(state, "2026-02-09")
    state = copy_day(state, "2026-02-09", "2026-02-10")
    state = copy_day(state, "2026-02-12", "2026-02-09")
    assert state.copy_links == {"2026-02-09": "2026-02-12"}
    assert not state.is_master("2026-02-09")


def test_copy_back_onto_own_source_keeps_root(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    state = delete_item(state, "2026-02-10", 0)
    state = copy_day(state, "2026-02-10", "2026-02-09")
    assert len(state.schedule_for("2026-02-09")) == 2
    assert state.copy_links == {"2026-02-10": "2026-02-09"}


def test_override_confirmation_only_for_non_empty_copies(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    assert needs_override_confirmation(state, "2026-02-10")
    assert not needs_override_confirmation(state, "2026-02-09")
    assert not needs_override_confirmation(state, "2026-02-11")


def test_emptying_a_copy_drops_its_link(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    for _ in range(3):
        state = delete_item(state, "2026-02-10", 0)
    assert state.copy_links == {}


# ── Clearing ──────────────────────────────────────────────────


def test_clear_day_cascade(day):
    state = _state(**{"2026_02_09": day})
    state = promote_to_master(state, "2026-02-09")
    state = copy_day(state, "2026-02-09", "2026-02-10")
    state = copy_day(state, "2026-02-09", "2026-02-11")

    cleared = clear_day_and_links(state, "2026-02-09")
    assert cleared.schedule_for("2026-02-09") == ()
    assert cleared.copy_links == {}
    assert not cleared.is_master("2026-02-09")
    # copies keep their blocks, they are only unlinked
    assert len(cleared.schedule_for("2026-02-10")) == 3
    # the input state is untouched
    assert state.copy_links == {"2026-02-10": "2026-02-09", "2026-02-11": "2026-02-09"}


def test_clear_copy_only_drops_own_link(one_day):
    state = copy_day(one_day, "2026-02-09", "2026-02-10")
    state = copy_day(state, "2026-02-09", "2026-02-11")
    cleared = clear_day_and_links(state, "2026-02-10")
    assert cleared.copy_links == {"2026-02-11": "2026-02-09"}


def test_delete_master(one_day):
    state = promote_to_master(one_day, "2026-02-09")
    state = copy_day(state, "2026-02-09", "2026-02-10")
    state = delete_master(state, 1)
    assert not state.has_schedule("2026-02-09")
    assert state.copy_links == {}
    assert find_master(state.master_days, "2026-02-09") is None
    assert delete_master(state, 1) is state
    with pytest.raises(KeyError):
        delete_master(state, 9)


# ── Month paste ───────────────────────────────────────────────


def test_weekday_occurrence():
    assert weekday_occurrence(date(2026, 2, 13)) == 2
    assert weekday_occurrence(date(2026, 3, 31)) == 5


def test_matching_day():
    # 2nd Friday of February 2026 -> 2nd Friday of March 2026
    assert matching_day(date(2026, 2, 13), 2026, 3) == date(2026, 3, 13)
    # 5th Tuesday of March 2026 has no April counterpart
    assert matching_day(date(2026, 3, 31), 2026, 4) is None


def test_paste_month_maps_by_weekday_occurrence(day):
    state = _state(**{"2026_02_13": day})
    pasted = paste_month(state, "2026-02", "2026-03")
    assert pasted.schedule_for("2026-03-13") == day
    assert pasted.copy_links["2026-03-13"] == "2026-02-13"
    assert pasted.month_copy_links == {"2026-03": "2026-02"}


def test_paste_month_skips_overflow(day):
    state = _state(**{"2026_03_31": day, "2026_03_03": day})
    pasted = paste_month(state, "2026-03", "2026-04")
    assert pasted.has_schedule("2026-04-07")
    assert [k for k in pasted.schedules if k.startswith("2026-04")] == ["2026-04-07"]


def test_paste_month_overwrites_destination(day):
    state = _state(**{"2026_02_13": day, "2026_03_20": day[:1]})
    state = promote_to_master(state, "2026-03-20")
    pasted = paste_month(state, "2026-02", "2026-03")
    assert not pasted.has_schedule("2026-03-20")
    assert not pasted.is_master("2026-03-20")


def test_paste_month_links_to_ultimate_source(day):
    state = _state(**{"2026_01_05": day})
    state = copy_day(state, "2026-01-05", "2026-02-02")
    pasted = paste_month(state, "2026-02", "2026-03")
    assert pasted.copy_links["2026-03-02"] == "2026-01-05"


def test_paste_month_onto_own_source_does_not_self_link(day):
    state = _state(**{"2026_02_02": day})
    state = copy_day(state, "2026-02-02", "2026-01-05")
    pasted = paste_month(state, "2026-01", "2026-02")
    assert pasted.copy_links == {"2026-02-02": "2026-01-05"}
    assert pasted.schedule_for("2026-02-02") == day
    assert copy_indicator(pasted, "2026-01-05") is None


def test_paste_month_relinks_when_source_was_wiped(day):
    # 2026-01-06 is a copy of 2026-02-04, which the paste wipes
    state = _state(**{"2026_02_04": day})
    state = copy_day(state, "2026-02-04", "2026-01-06")
    pasted = paste_month(state, "2026-01", "2026-02")
    assert not pasted.has_schedule("2026-02-04")
    assert pasted.copy_links == {"2026-02-03": "2026-01-06"}
    assert ultimate_source(pasted.copy_links, "2026-02-03") == "2026-01-06"


def test_paste_month_onto_itself_raises(one_day):
    with pytest.raises(ValueError):
        paste_month(one_day, "2026-02", "2026-02")
