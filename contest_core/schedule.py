"""Contest schedule resolution and phase queries (pure, no FastAPI/DB).

A contest is governed by four anchors:
- start_at: submissions open
- submission_end_at: submissions close (defaults to voting_end_at)
- voting_start_at: voting opens (defaults to start_at)
- voting_end_at: the contest fully closes

Strict ordering:
    start_at < submission_end_at <= voting_end_at
    start_at <= voting_start_at < voting_end_at

Validation never raises: resolve_schedule() turns form input (including
malformed dates) into a ScheduleOutcome carrying either a ContestSchedule or
the full list of violated rules.

Modes:
- STRICT: every ordering rule, used when authoring a contest
- LIVE_EDIT: only rejects internally contradictory anchors
  (submission_end_at > voting_end_at); used when a running contest is edited
  so windows can be extended or shrunk without tripping over stale anchors

Phase queries take the caller's `now`, so nothing here reads the wall clock.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .validation import (
    DEFAULT_END_TIME,
    DEFAULT_START_TIME,
    ScheduleForm,
    ensure_utc,
)

logger = logging.getLogger(__name__)

Phase = Literal["upcoming", "submissions", "voting", "ended"]

ANCHOR_NAMES = ("start_at", "submission_end_at", "voting_start_at", "voting_end_at")


class ValidationMode(str, Enum):
    STRICT = "strict"
    LIVE_EDIT = "live_edit"


@dataclass(frozen=True)
class ContestSchedule:
    start_at: datetime
    submission_end_at: datetime
    voting_start_at: datetime
    voting_end_at: datetime
    # True when submission_end_at came from an explicit deadline override.
    custom_submission_deadline: bool = False

    def is_accepting_submissions(self, now: datetime) -> bool:
        now = ensure_utc(now)
        return self.start_at <= now < self.submission_end_at

    def is_voting_open(self, now: datetime) -> bool:
        now = ensure_utc(now)
        return self.voting_start_at <= now < self.voting_end_at

    def has_ended(self, now: datetime) -> bool:
        return ensure_utc(now) >= self.voting_end_at

    def has_started(self, now: datetime) -> bool:
        return ensure_utc(now) >= self.start_at

    def phase(self, now: datetime) -> Phase:
        if self.has_ended(now):
            return "ended"
        if self.is_accepting_submissions(now):
            return "submissions"
        if self.is_voting_open(now):
            return "voting"
        return "upcoming"

    def anchors(self) -> dict[str, datetime]:
        return {name: getattr(self, name) for name in ANCHOR_NAMES}

    def to_record(self) -> dict[str, str]:
        return {
            "startAt": self.start_at.isoformat(),
            "submissionEndAt": self.submission_end_at.isoformat(),
            "votingStartAt": self.voting_start_at.isoformat(),
            "votingEndAt": self.voting_end_at.isoformat(),
            "endAt": self.voting_end_at.isoformat(),
        }


@dataclass
class ScheduleOutcome:
    """Result of resolving and validating a schedule."""

    schedule: ContestSchedule | None
    errors: list[ValidationError]

    @property
    def ok(self) -> bool:
        return self.schedule is not None and not self.errors


def build_schedule(
    start_at: datetime,
    voting_end_at: datetime,
    *,
    submission_end_at: datetime | None = None,
    voting_start_at: datetime | None = None,
) -> ContestSchedule:
    """Assemble a schedule from instants, applying the anchor defaults.

    Does not validate; pass the result to validate_schedule().
    """
    start = ensure_utc(start_at)
    end = ensure_utc(voting_end_at)
    return ContestSchedule(
        start_at=start,
        submission_end_at=ensure_utc(submission_end_at) if submission_end_at else end,
        voting_start_at=ensure_utc(voting_start_at) if voting_start_at else start,
        voting_end_at=end,
        custom_submission_deadline=submission_end_at is not None,
    )


def validate_schedule(
    schedule: ContestSchedule,
    mode: ValidationMode = ValidationMode.STRICT,
) -> list[ValidationError]:
    """Check anchor ordering; returns one error per violated rule."""
    errors: list[ValidationError] = []
    start = schedule.start_at
    sub_end = schedule.submission_end_at
    vote_start = schedule.voting_start_at
    vote_end = schedule.voting_end_at

    if mode is ValidationMode.STRICT:
        if start >= vote_end:
            errors.append(
                ValidationError(
                    kind="start_after_voting_end",
                    message="Contest start time must be before voting end time",
                    field="start_at",
                )
            )
        if vote_start < start:
            errors.append(
                ValidationError(
                    kind="voting_before_start",
                    message="Voting cannot start before the contest starts",
                    field="voting_start_at",
                )
            )
        if vote_start >= vote_end:
            errors.append(
                ValidationError(
                    kind="voting_start_after_end",
                    message="Voting start time must be before voting end time",
                    field="voting_start_at",
                )
            )
        # Without an override submission_end_at == voting_end_at, already
        # covered by the start/voting-end rule above.
        if schedule.custom_submission_deadline and sub_end <= start:
            errors.append(
                ValidationError(
                    kind="deadline_before_start",
                    message="Submission deadline must be after contest start time",
                    field="submission_end_at",
                )
            )

    if sub_end > vote_end:
        errors.append(
            ValidationError(
                kind="deadline_after_voting_end",
                message="Submission deadline cannot be after voting end time",
                field="submission_end_at",
            )
        )
    return errors


def select_validation_mode(status: str, start_at: datetime | None, now: datetime) -> ValidationMode:
    """Pick the mode for an edit: live contests get LIVE_EDIT."""
    if status == "active":
        return ValidationMode.LIVE_EDIT
    if start_at is not None and ensure_utc(now) >= ensure_utc(start_at):
        return ValidationMode.LIVE_EDIT
    return ValidationMode.STRICT


def _form_errors(exc: PydanticValidationError) -> list[ValidationError]:
    errors: list[ValidationError] = []
    for item in exc.errors():
        loc = ".".join(str(part) for part in item.get("loc", ())) or None
        errors.append(
            ValidationError(
                kind="invalid_field",
                message=f"{loc or 'form'}: {item.get('msg', 'invalid value')}",
                field=loc,
            )
        )
    return errors


def _missing_field_errors(form: ScheduleForm) -> list[ValidationError]:
    errors: list[ValidationError] = []
    if form.start_date_option != "now" and form.start_date is None:
        errors.append(
            ValidationError(kind="missing_field", message="Start date is required", field="startDate")
        )
    if form.voting_end_date is None:
        errors.append(
            ValidationError(
                kind="missing_field", message="Voting end date is required", field="votingEndDate"
            )
        )
    if form.enable_submission_deadline and form.submission_deadline is None:
        errors.append(
            ValidationError(
                kind="missing_field",
                message="Submission deadline is required when enabled",
                field="submissionDeadline",
            )
        )
    return errors


def resolve_schedule(
    form: ScheduleForm | Mapping[str, Any],
    now: datetime,
    mode: ValidationMode = ValidationMode.STRICT,
) -> ScheduleOutcome:
    """Resolve the four anchors from authoring input and validate them.

    Args:
        form: ScheduleForm or a raw dict of form fields (camelCase or snake_case)
        now: instant used for the "now" shortcuts
        mode: STRICT for new contests, LIVE_EDIT for running ones

    Returns:
        ScheduleOutcome with the schedule, or the list of every violated rule.
        Malformed input is reported as errors, never raised.
    """
    if not isinstance(form, ScheduleForm):
        try:
            form = ScheduleForm.model_validate(dict(form))
        except PydanticValidationError as e:
            logger.warning(f"Schedule form rejected: {e.error_count()} invalid field(s)")
            return ScheduleOutcome(schedule=None, errors=_form_errors(e))
        except (TypeError, ValueError) as e:
            return ScheduleOutcome(
                schedule=None,
                errors=[ValidationError(kind="invalid_form", message=f"Invalid schedule form: {e}")],
            )

    missing = _missing_field_errors(form)
    if missing:
        return ScheduleOutcome(schedule=None, errors=missing)

    now = ensure_utc(now)
    range_errors: list[ValidationError] = []

    def combine(field: str, day: date, clock: time | None, default: time) -> datetime | None:
        try:
            return form.combine(day, clock, default)
        except OverflowError:
            range_errors.append(
                ValidationError(
                    kind="invalid_field",
                    message=f"{field}: date is out of the supported range",
                    field=field,
                )
            )
            return None

    if form.start_date_option == "now":
        start_at = now
    else:
        start_at = combine("startDate", form.start_date, form.start_time, DEFAULT_START_TIME)

    voting_end_at = combine(
        "votingEndDate", form.voting_end_date, form.voting_end_time, DEFAULT_END_TIME
    )

    submission_end_at = None
    if form.enable_submission_deadline:
        submission_end_at = combine(
            "submissionDeadline",
            form.submission_deadline,
            form.submission_deadline_time,
            DEFAULT_END_TIME,
        )

    if form.voting_start_option == "now":
        voting_start_at = now
    elif form.voting_start_date is not None:
        voting_start_at = combine("votingStartDate", form.voting_start_date, None, DEFAULT_START_TIME)
    else:
        voting_start_at = None

    if range_errors:
        logger.warning(f"Schedule rejected: {len(range_errors)} date(s) out of range")
        return ScheduleOutcome(schedule=None, errors=range_errors)

    schedule = build_schedule(
        start_at,
        voting_end_at,
        submission_end_at=submission_end_at,
        voting_start_at=voting_start_at,
    )
    errors = validate_schedule(schedule, mode)
    if errors:
        logger.warning(f"Schedule rejected ({mode.value}): {[e.kind for e in errors]}")
        return ScheduleOutcome(schedule=None, errors=errors)

    logger.debug(
        f"Resolved schedule: start={schedule.start_at.isoformat()} "
        f"submissions_end={schedule.submission_end_at.isoformat()} "
        f"voting={schedule.voting_start_at.isoformat()}..{schedule.voting_end_at.isoformat()}"
    )
    return ScheduleOutcome(schedule=schedule, errors=[])


def anchors_locked(schedule: ContestSchedule, now: datetime) -> bool:
    """Anchors may only change through the admin edit path once voting opened."""
    return ensure_utc(now) >= schedule.voting_start_at


def validate_admin_edit(
    current: ContestSchedule,
    proposed: ContestSchedule,
    now: datetime,
) -> list[ValidationError]:
    """Validate an admin edit of a contest schedule.

    Re-runs every strict ordering rule on the proposed anchors and rejects
    any anchor that changed and would now lie before `now`. Unchanged
    anchors may stay in the past.
    """
    now = ensure_utc(now)
    errors = validate_schedule(proposed, ValidationMode.STRICT)
    for name in ANCHOR_NAMES:
        old_value = getattr(current, name)
        new_value = getattr(proposed, name)
        if new_value != old_value and new_value < now:
            errors.append(
                ValidationError(
                    kind="anchor_in_past",
                    message=f"{name} cannot be moved before the current time",
                    field=name,
                )
            )
    return errors
