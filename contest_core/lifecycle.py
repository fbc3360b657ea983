"""Contest status lifecycle (pure).

    draft -> active -> ended -> archived
    draft -> archived

`active` is entered by an admin or, when the caller opts in, automatically
once start_at elapses. `ended` follows voting_end_at. `archived` is terminal.
"""
from __future__ import annotations

import logging
from datetime import datetime

from .errors import ValidationError
from .models import Contest
from .schedule import (
    ContestSchedule,
    ScheduleOutcome,
    ValidationMode,
    anchors_locked,
    select_validation_mode,
    validate_admin_edit,
    validate_schedule,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"active", "archived"}),
    "active": frozenset({"ended"}),
    "ended": frozenset({"archived"}),
    "archived": frozenset(),
}


def transition_status(current: str, target: str) -> ValidationError | None:
    """Check a status change; returns None when allowed."""
    if current not in ALLOWED_TRANSITIONS:
        return ValidationError(kind="unknown_status", message=f"Unknown contest status: {current}")
    if target not in ALLOWED_TRANSITIONS:
        return ValidationError(kind="unknown_status", message=f"Unknown contest status: {target}")
    if target not in ALLOWED_TRANSITIONS[current]:
        return ValidationError(
            kind="invalid_transition",
            message=f"Contest cannot move from {current} to {target}",
        )
    return None


def advance_status(contest: Contest, now: datetime, *, auto_activate: bool = True) -> str:
    """Status the contest should have at `now`.

    Draft contests are only promoted when auto_activate is set; a draft whose
    voting already ended stays draft (an admin has to decide).
    """
    status = contest.status
    schedule = contest.schedule
    if status == "draft" and auto_activate and schedule.has_started(now) and not schedule.has_ended(now):
        status = "active"
    if status == "active" and schedule.has_ended(now):
        status = "ended"
    if status != contest.status:
        logger.info(f"Contest {contest.id}: {contest.status} -> {status}")
    return status


def reschedule(contest: Contest, proposed: ContestSchedule, now: datetime, *, admin: bool = False) -> ScheduleOutcome:
    """Validate a schedule edit for a contest.

    - Once voting has started only an admin edit may move anchors; it is
      re-validated strictly and changed anchors may not land in the past.
    - Otherwise the mode follows the contest: LIVE_EDIT for running
      contests, STRICT before start.
    """
    if anchors_locked(contest.schedule, now):
        if not admin:
            return ScheduleOutcome(
                schedule=None,
                errors=[
                    ValidationError(
                        kind="schedule_locked",
                        message="Schedule cannot be changed after voting has started",
                    )
                ],
            )
        errors = validate_admin_edit(contest.schedule, proposed, now)
    else:
        mode = select_validation_mode(contest.status, contest.schedule.start_at, now)
        errors = validate_schedule(proposed, mode)
        if mode is ValidationMode.LIVE_EDIT:
            logger.debug(f"Contest {contest.id}: live edit, ordering checks relaxed")
    if errors:
        return ScheduleOutcome(schedule=None, errors=errors)
    return ScheduleOutcome(schedule=proposed, errors=[])
