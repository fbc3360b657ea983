from datetime import datetime, timezone

import pytest

from contest_core import (
    Contest,
    advance_status,
    build_schedule,
    reschedule,
    transition_status,
)

UTC = timezone.utc


def _utc(*args):
    return datetime(*args, tzinfo=UTC)


def _contest(status="active", voting_start=None):
    return Contest(
        id="c1",
        status=status,
        schedule=build_schedule(_utc(2025, 1, 1), _utc(2025, 1, 10), voting_start_at=voting_start),
    )


@pytest.mark.parametrize(
    "current,target",
    [("draft", "active"), ("draft", "archived"), ("active", "ended"), ("ended", "archived")],
)
def test_allowed_transitions(current, target):
    assert transition_status(current, target) is None


@pytest.mark.parametrize(
    "current,target",
    [("active", "draft"), ("ended", "active"), ("archived", "draft"), ("draft", "ended")],
)
def test_rejected_transitions(current, target):
    error = transition_status(current, target)
    assert error.kind == "invalid_transition"


def test_unknown_status():
    assert transition_status("paused", "active").kind == "unknown_status"


def test_advance_status_auto_activates_draft():
    contest = _contest(status="draft")
    assert advance_status(contest, _utc(2024, 12, 31)) == "draft"
    assert advance_status(contest, _utc(2025, 1, 2)) == "active"
    assert advance_status(contest, _utc(2025, 1, 2), auto_activate=False) == "draft"


def test_advance_status_ends_active_contest():
    contest = _contest(status="active")
    assert advance_status(contest, _utc(2025, 1, 9)) == "active"
    assert advance_status(contest, _utc(2025, 1, 10)) == "ended"
    assert advance_status(contest.with_status("archived"), _utc(2025, 1, 11)) == "archived"


def test_schedule_locked_once_voting_started():
    contest = _contest(voting_start=_utc(2025, 1, 2))
    proposed = build_schedule(_utc(2025, 1, 1), _utc(2025, 1, 12), voting_start_at=_utc(2025, 1, 2))

    outcome = reschedule(contest, proposed, _utc(2025, 1, 5))
    assert outcome.schedule is None
    assert [e.kind for e in outcome.errors] == ["schedule_locked"]

    admin = reschedule(contest, proposed, _utc(2025, 1, 5), admin=True)
    assert admin.ok
    assert admin.schedule.voting_end_at == _utc(2025, 1, 12)


def test_admin_cannot_move_end_into_the_past():
    contest = _contest(voting_start=_utc(2025, 1, 2))
    proposed = build_schedule(_utc(2025, 1, 1), _utc(2025, 1, 4), voting_start_at=_utc(2025, 1, 2))
    outcome = reschedule(contest, proposed, _utc(2025, 1, 5), admin=True)
    assert not outcome.ok
    assert "anchor_in_past" in [e.kind for e in outcome.errors]


def test_running_contest_is_edited_in_live_mode():
    contest = _contest(status="active", voting_start=_utc(2025, 1, 6))
    now = _utc(2025, 1, 3)

    # Voting start before contest start would fail a strict check.
    relaxed = build_schedule(_utc(2025, 1, 4), _utc(2025, 1, 15), voting_start_at=_utc(2025, 1, 3))
    assert reschedule(contest, relaxed, now).ok

    contradictory = build_schedule(
        _utc(2025, 1, 1),
        _utc(2025, 1, 8),
        submission_end_at=_utc(2025, 1, 9),
        voting_start_at=_utc(2025, 1, 6),
    )
    outcome = reschedule(contest, contradictory, now)
    assert [e.kind for e in outcome.errors] == ["deadline_after_voting_end"]


def test_draft_before_start_is_edited_strictly():
    contest = _contest(status="draft", voting_start=_utc(2025, 1, 2))
    broken = build_schedule(_utc(2025, 1, 4), _utc(2025, 1, 15), voting_start_at=_utc(2025, 1, 3))
    outcome = reschedule(contest, broken, _utc(2024, 12, 1))
    assert [e.kind for e in outcome.errors] == ["voting_before_start"]
