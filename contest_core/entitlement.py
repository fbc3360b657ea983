"""Vote entitlement engine: who may cast one more vote, and when.

Checks run in a fixed order and stop at the first failure:
  contest_not_found / submission_not_eligible (lookups)
  1. voting_closed          voting window not open at `now`
  2. already_voted          one vote per (voter, submission), always
  3. self_vote              authors cannot vote for their own entry
  4. method_not_permitted   no enabled voting method admits the voter
  5. period roll-over       counters reset when a new period began
  6. lifetime_quota_exceeded
  7. period_quota_exceeded

The lifetime cap is checked before the period quota: once a voter has used
every lifetime vote the answer must stay lifetime_quota_exceeded whatever the
current period looks like.

Periods are fixed-length windows anchored at voting_start_at, so every voter
shares the same boundaries:
    window_start = voting_start_at + k * period   (largest k with window_start <= now)

evaluate_vote() is pure. VoteEntitlementEngine wraps it with a VoteLedger
that serialises the read-check-write per (voter, contest) and commits the
vote plus the votes_count increment atomically.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import ContextManager, Literal, Protocol

from .errors import DuplicateVoteError
from .models import Contest, EntitlementState, Submission, Vote, Voter
from .validation import ContestConfig, ensure_utc

logger = logging.getLogger(__name__)

RejectionReason = Literal[
    "contest_not_found",
    "submission_not_eligible",
    "voting_closed",
    "already_voted",
    "self_vote",
    "method_not_permitted",
    "period_quota_exceeded",
    "lifetime_quota_exceeded",
]


class VoteLedger(Protocol):
    """Persistence seam used by the engine.

    commit_vote() must insert the vote, increment the submission's
    votes_count and store the entitlement state as one atomic unit, and
    raise DuplicateVoteError if the (voter, submission) pair already exists.
    """

    def get_contest(self, contest_id: str) -> Contest | None:
        ...

    def get_submission(self, submission_id: str) -> Submission | None:
        ...

    def list_submissions(self, contest_id: str) -> list[Submission]:
        ...

    def has_vote(self, voter_id: str, submission_id: str) -> bool:
        ...

    def entitlement_lock(self, voter_id: str, contest_id: str) -> ContextManager[None]:
        ...

    def load_entitlement(self, voter_id: str, contest_id: str) -> EntitlementState | None:
        ...

    def save_entitlement(self, state: EntitlementState) -> None:
        ...

    def commit_vote(self, vote: Vote, state: EntitlementState) -> int:
        ...


@dataclass(frozen=True)
class EntitlementDecision:
    reason: RejectionReason | None
    # Counters after roll-over (and after the vote, when allowed).
    state: EntitlementState | None

    @property
    def allowed(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Advisory quota numbers for display ("X of Y votes left")."""

    votes_in_current_period: int
    lifetime_votes_used: int
    remaining_period_votes: int | None  # None = no per-period cap
    remaining_total_votes: int | None  # None = unlimited
    period_window_start: datetime
    next_period_at: datetime


@dataclass(frozen=True)
class VoteOutcome:
    """Result of one vote attempt: accepted, or a single rejection reason."""

    accepted: bool
    reason: RejectionReason | None = None
    message: str | None = None
    vote: Vote | None = None
    votes_count: int | None = None
    entitlement: EntitlementSnapshot | None = None


def period_window_start(voting_start_at: datetime, period_hours: int, now: datetime) -> datetime:
    """Start of the period containing `now` (voting_start_at before voting opens)."""
    now = ensure_utc(now)
    if now <= voting_start_at:
        return voting_start_at
    period = timedelta(hours=period_hours)
    elapsed_periods = (now - voting_start_at) // period
    return voting_start_at + elapsed_periods * period


def roll_period(state: EntitlementState, window_start: datetime) -> EntitlementState:
    """Reset the period counter when `window_start` is a later period."""
    if window_start > state.period_window_start:
        return replace(state, period_window_start=window_start, votes_in_current_period=0)
    return state


def method_permits(voter: Voter, config: ContestConfig) -> bool:
    """True if any enabled voting method admits the voter."""
    for method in config.voting_methods:
        if method == "public":
            return True
        if method == "logged_users" and voter.authenticated:
            return True
        if method == "jury" and voter.authenticated and voter.id in config.jury_members:
            return True
    return False


def check_quota(state: EntitlementState, config: ContestConfig) -> RejectionReason | None:
    if config.total_votes_per_user > 0 and state.lifetime_votes_used >= config.total_votes_per_user:
        return "lifetime_quota_exceeded"
    if (
        config.votes_per_user_per_period > 0
        and state.votes_in_current_period >= config.votes_per_user_per_period
    ):
        return "period_quota_exceeded"
    return None


def evaluate_vote(
    *,
    voter: Voter,
    contest: Contest,
    submission: Submission,
    already_voted: bool,
    state: EntitlementState | None,
    now: datetime,
) -> EntitlementDecision:
    """Pure entitlement decision for one vote attempt.

    Args:
        voter: caller identity
        contest: contest the submission belongs to
        submission: target submission
        already_voted: whether a (voter, submission) vote already exists
        state: stored counters, or None on the voter's first attempt
        now: decision instant

    Returns:
        EntitlementDecision; when allowed, `state` already counts this vote.
    """
    now = ensure_utc(now)
    if submission.contest_id != contest.id or not submission.is_approved:
        return EntitlementDecision(reason="submission_not_eligible", state=state)
    if not contest.schedule.is_voting_open(now):
        return EntitlementDecision(reason="voting_closed", state=state)
    if already_voted:
        return EntitlementDecision(reason="already_voted", state=state)
    if submission.user_id == voter.id:
        return EntitlementDecision(reason="self_vote", state=state)
    if not method_permits(voter, contest.config):
        return EntitlementDecision(reason="method_not_permitted", state=state)

    config = contest.config
    window_start = period_window_start(
        contest.schedule.voting_start_at, config.period_duration_hours, now
    )
    if state is None:
        # Lazily created on the first attempt that reaches the quota checks.
        state = EntitlementState(
            voter_id=voter.id, contest_id=contest.id, period_window_start=window_start
        )
    state = roll_period(state, window_start)

    reason = check_quota(state, config)
    if reason is not None:
        return EntitlementDecision(reason=reason, state=state)

    return EntitlementDecision(
        reason=None,
        state=replace(
            state,
            votes_in_current_period=state.votes_in_current_period + 1,
            lifetime_votes_used=state.lifetime_votes_used + 1,
        ),
    )


def describe_entitlement(
    state: EntitlementState | None,
    config: ContestConfig,
    voting_start_at: datetime,
    now: datetime,
) -> EntitlementSnapshot:
    """Advisory quota summary; the accept/reject decision never uses it."""
    window_start = period_window_start(voting_start_at, config.period_duration_hours, now)
    in_period = 0
    lifetime = 0
    if state is not None:
        rolled = roll_period(state, window_start)
        in_period = rolled.votes_in_current_period
        lifetime = rolled.lifetime_votes_used

    remaining_period = None
    if config.votes_per_user_per_period > 0:
        remaining_period = max(0, config.votes_per_user_per_period - in_period)
    remaining_total = None
    if config.total_votes_per_user > 0:
        remaining_total = max(0, config.total_votes_per_user - lifetime)
        if remaining_period is not None:
            remaining_period = min(remaining_period, remaining_total)

    return EntitlementSnapshot(
        votes_in_current_period=in_period,
        lifetime_votes_used=lifetime,
        remaining_period_votes=remaining_period,
        remaining_total_votes=remaining_total,
        period_window_start=window_start,
        next_period_at=window_start + timedelta(hours=config.period_duration_hours),
    )


def rejection_message(
    reason: RejectionReason, voter: Voter, config: ContestConfig | None = None
) -> str:
    """User-displayable text for a rejection reason."""
    if reason == "contest_not_found":
        return "Contest not found"
    if reason == "submission_not_eligible":
        return "Cannot vote on this submission"
    if reason == "voting_closed":
        return "Voting is not open for this contest"
    if reason == "already_voted":
        return "You have already voted for this submission"
    if reason == "self_vote":
        return "Cannot vote for your own submission"
    if reason == "method_not_permitted":
        if not voter.authenticated:
            return "This contest requires authentication to vote"
        if config is not None and config.voting_methods == ("jury",):
            return "Only jury members can vote in this contest"
        return "You are not authorized to vote in this contest"
    if reason == "period_quota_exceeded" and config is not None:
        return (
            f"You can only vote {config.votes_per_user_per_period} time(s) in this contest "
            f"every {config.period_duration_hours} hours"
        )
    if reason == "lifetime_quota_exceeded" and config is not None:
        return f"You have reached the maximum of {config.total_votes_per_user} votes for this contest"
    return "Vote rejected"


class VoteEntitlementEngine:
    """Authoritative accept/reject for votes, backed by a VoteLedger."""

    def __init__(self, ledger: VoteLedger):
        self.ledger = ledger

    def _reject(
        self,
        reason: RejectionReason,
        voter: Voter,
        contest: Contest | None = None,
        state: EntitlementState | None = None,
        now: datetime | None = None,
    ) -> VoteOutcome:
        config = contest.config if contest is not None else None
        snapshot = None
        if contest is not None and now is not None:
            snapshot = describe_entitlement(
                state, contest.config, contest.schedule.voting_start_at, now
            )
        logger.debug(f"Vote rejected for {voter.id}: {reason}")
        return VoteOutcome(
            accepted=False,
            reason=reason,
            message=rejection_message(reason, voter, config),
            entitlement=snapshot,
        )

    def try_cast_vote(
        self,
        voter: Voter | str,
        contest_id: str,
        submission_id: str,
        now: datetime,
    ) -> VoteOutcome:
        """Decide and, when allowed, record one vote.

        A plain string voter is treated as an authenticated user id.
        """
        if isinstance(voter, str):
            voter = Voter(id=voter)
        now = ensure_utc(now)

        contest = self.ledger.get_contest(contest_id)
        if contest is None:
            return self._reject("contest_not_found", voter)
        submission = self.ledger.get_submission(submission_id)
        if submission is None:
            return self._reject("submission_not_eligible", voter, contest)

        with self.ledger.entitlement_lock(voter.id, contest.id):
            stored = self.ledger.load_entitlement(voter.id, contest.id)
            decision = evaluate_vote(
                voter=voter,
                contest=contest,
                submission=submission,
                already_voted=self.ledger.has_vote(voter.id, submission.id),
                state=stored,
                now=now,
            )
            if not decision.allowed:
                if decision.state is not None and decision.state != stored:
                    self.ledger.save_entitlement(decision.state)
                return self._reject(decision.reason, voter, contest, decision.state, now)

            vote = Vote(
                voter_id=voter.id,
                submission_id=submission.id,
                contest_id=contest.id,
                cast_at=now,
            )
            try:
                votes_count = self.ledger.commit_vote(vote, decision.state)
            except DuplicateVoteError:
                return self._reject("already_voted", voter, contest, stored, now)

        logger.debug(
            f"Vote accepted: voter={voter.id} submission={submission.id} votes={votes_count}"
        )
        return VoteOutcome(
            accepted=True,
            vote=vote,
            votes_count=votes_count,
            entitlement=describe_entitlement(
                decision.state, contest.config, contest.schedule.voting_start_at, now
            ),
        )

    def entitlement_for(self, voter_id: str, contest_id: str, now: datetime) -> EntitlementSnapshot | None:
        """Advisory summary for a voter; None if the contest is unknown."""
        contest = self.ledger.get_contest(contest_id)
        if contest is None:
            return None
        return describe_entitlement(
            self.ledger.load_entitlement(voter_id, contest_id),
            contest.config,
            contest.schedule.voting_start_at,
            now,
        )
