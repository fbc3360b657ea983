"""Domain records: contest, submission, vote and per-voter entitlement state."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .errors import messages
from .schedule import ContestSchedule, ValidationMode, build_schedule, validate_schedule
from .validation import (
    ContestConfig,
    ContestRecordIn,
    SubmissionRecordIn,
    ensure_utc,
    parse_contest_record,
    parse_submission_record,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Voter:
    """Caller identity supplied by the auth layer.

    Anonymous voters (public voting) carry an id chosen by the caller,
    e.g. "anonymous:<ip>", and authenticated=False.
    """

    id: str
    authenticated: bool = True


@dataclass(frozen=True)
class Contest:
    id: str
    schedule: ContestSchedule
    config: ContestConfig = field(default_factory=ContestConfig)
    title: str = ""
    description: str = ""
    status: str = "draft"

    @classmethod
    def from_record(cls, record: dict | ContestRecordIn) -> "Contest":
        """Build a contest from an API record; raises ValueError on bad data."""
        parsed = record if isinstance(record, ContestRecordIn) else parse_contest_record(record)
        cfg = parsed.config
        voting_end_at = cfg.voting_end_at or parsed.end_at
        submission_end_at = cfg.submission_end_at
        # A stored deadline equal to voting end is the default, not an override.
        if submission_end_at is not None and submission_end_at == voting_end_at:
            submission_end_at = None
        schedule = build_schedule(
            parsed.start_at,
            voting_end_at,
            submission_end_at=submission_end_at,
            voting_start_at=cfg.voting_start_at,
        )
        errors = validate_schedule(schedule, ValidationMode.STRICT)
        if errors:
            logger.warning(f"Contest record {parsed.id} has an invalid schedule: {[e.kind for e in errors]}")
            raise ValueError(f"Invalid contest record: {'; '.join(messages(errors))}")
        config = ContestConfig.model_validate(
            cfg.model_dump(
                by_alias=True,
                exclude={"submission_end_at", "voting_start_at", "voting_end_at"},
            )
        )
        return cls(
            id=parsed.id,
            title=parsed.title,
            description=parsed.description,
            status=parsed.status,
            schedule=schedule,
            config=config,
        )

    def to_record(self) -> dict[str, Any]:
        anchors = self.schedule.to_record()
        config = self.config.to_record()
        config.update(
            {
                "submissionEndAt": anchors["submissionEndAt"],
                "votingStartAt": anchors["votingStartAt"],
                "votingEndAt": anchors["votingEndAt"],
            }
        )
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "startAt": anchors["startAt"],
            "endAt": anchors["endAt"],
            "config": config,
        }

    def with_status(self, status: str) -> "Contest":
        return replace(self, status=status)


@dataclass
class Submission:
    id: str
    contest_id: str
    user_id: str
    created_at: datetime
    status: str = "pending"
    votes_count: int = 0

    def __post_init__(self) -> None:
        self.created_at = ensure_utc(self.created_at)

    @classmethod
    def from_record(cls, record: dict | SubmissionRecordIn) -> "Submission":
        parsed = (
            record if isinstance(record, SubmissionRecordIn) else parse_submission_record(record)
        )
        return cls(
            id=parsed.id,
            contest_id=parsed.contest_id,
            user_id=parsed.user_id,
            created_at=parsed.created_at,
            status=parsed.status,
            votes_count=parsed.votes_count,
        )

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


@dataclass(frozen=True)
class Vote:
    voter_id: str
    submission_id: str
    contest_id: str
    cast_at: datetime


@dataclass(frozen=True)
class EntitlementState:
    """Per (voter, contest) quota counters; replaced, never mutated in place."""

    voter_id: str
    contest_id: str
    period_window_start: datetime
    votes_in_current_period: int = 0
    lifetime_votes_used: int = 0
