"""Tests for timeblox/proposals.py: two-step confirmation flows."""

import pytest

from timeblox.planner import PlannerState, with_schedule
from timeblox.proposals import (
    BreakInProposal,
    ClearDayProposal,
    DeleteBlockProposal,
    DeleteMasterProposal,
    MonthPasteProposal,
    NewBlockProposal,
    OverrideProposal,
    confirm,
    request_clear_day,
    request_copy_day,
    request_delete_block,
    request_delete_master,
    request_drop,
    request_new_block,
    request_paste_month,
)
from timeblox.replication import copy_day, promote_to_master

KEY = "2026-02-09"


@pytest.fixture
def state(day) -> PlannerState:
    return with_schedule(PlannerState(), KEY, day)


def test_drop_without_collision_applies(state):
    new_state, proposal = request_drop(state, KEY, 2, 780)
    assert proposal is None
    assert new_state.schedule_for(KEY)[2].start_time == "1:00 PM"


def test_drop_on_block_asks_first(state):
    same, proposal = request_drop(state, KEY, 2, 615)
    assert same is state
    assert isinstance(proposal, BreakInProposal)
    assert proposal.title == "Modify Schedule?"
    assert '"Deep work"' in proposal.message

    confirmed = confirm(state, proposal)
    schedule = confirmed.schedule_for(KEY)
    assert [b.title for b in schedule] == ["Email", "Deep work", "Standup"]
    assert (schedule[1].start_time, schedule[1].end_time) == ("10:00 AM", "10:15 AM")
    assert (schedule[2].start_time, schedule[2].end_time) == ("10:15 AM", "11:15 AM")
    # cancelling is dropping the proposal: the original state is unchanged
    assert len(state.schedule_for(KEY)) == 3


def test_copy_onto_plain_day_applies_directly(state):
    new_state, proposal = request_copy_day(state, KEY, "2026-02-10")
    assert proposal is None
    assert new_state.copy_links == {"2026-02-10": KEY}


def test_copy_onto_existing_copy_asks_first(state):
    state = copy_day(state, KEY, "2026-02-10")
    state = with_schedule(state, "2026-02-11", state.schedule_for(KEY)[:1])
    same, proposal = request_copy_day(state, "2026-02-11", "2026-02-10")
    assert same is state
    assert isinstance(proposal, OverrideProposal)
    assert proposal.confirm_text == "Yes, Override"
    assert confirm(state, proposal).copy_links["2026-02-10"] == "2026-02-11"


def test_paste_month_always_asks(state):
    same, proposal = request_paste_month(state, "2026-02", "2026-03")
    assert same is state
    assert isinstance(proposal, MonthPasteProposal)
    assert "February 2026" in proposal.message
    assert "March 2026" in proposal.message
    assert confirm(state, proposal).month_copy_links == {"2026-03": "2026-02"}


def test_paste_month_onto_same_month_is_ignored(state):
    assert request_paste_month(state, "2026-02", "2026-02") == (state, None)


def test_clear_day_asks(state):
    _, proposal = request_clear_day(state, KEY)
    assert isinstance(proposal, ClearDayProposal)
    assert "February 9" in proposal.message
    assert confirm(state, proposal).schedule_for(KEY) == ()


def test_delete_master_asks(state):
    state = promote_to_master(state, KEY)
    _, proposal = request_delete_master(state, 1)
    assert isinstance(proposal, DeleteMasterProposal)
    cleared = confirm(state, proposal)
    assert not cleared.is_master(KEY)
    with pytest.raises(KeyError):
        request_delete_master(state, 7)


def test_delete_block_asks(state):
    _, proposal = request_delete_block(state, KEY, 1)
    assert isinstance(proposal, DeleteBlockProposal)
    assert proposal.message.startswith('Are you sure you want to delete "Deep work"?')
    assert [b.title for b in confirm(state, proposal).schedule_for(KEY)] == ["Email", "Standup"]
    with pytest.raises(IndexError):
        request_delete_block(state, KEY, 5)


def test_new_block_snaps_to_quarter_hour(state):
    _, proposal = request_new_block(state, "2026-02-10", 13 * 60 + 8)
    assert isinstance(proposal, NewBlockProposal)
    assert proposal.item.start_time == "1:15 PM"
    assert proposal.message == "Do you want to add a new time block at 1:15 PM?"
    added = confirm(state, proposal)
    assert added.schedule_for("2026-02-10")[0].title == "New Task"


def test_proposal_to_dict(state):
    _, proposal = request_clear_day(state, KEY)
    d = proposal.to_dict()
    assert d["kind"] == "ClearDayProposal"
    assert d["confirmText"] == "Yes, Clear Day"
