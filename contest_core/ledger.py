"""In-memory, thread-safe VoteLedger.

Reference implementation of the persistence seam used by
VoteEntitlementEngine. A database-backed ledger gets the same guarantees from
a row lock on the entitlement row and an atomic
``UPDATE submissions SET votes_count = votes_count + 1``.

Locking:
- entitlement_lock(voter, contest): one lock per key, serialises the
  read-check-write of a voter's quota counters
- _write_lock: guards vote insertion, the votes_count increment and the
  entitlement write so they land together
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, List, Tuple

from .errors import DuplicateVoteError
from .models import Contest, EntitlementState, Submission, Vote


class InMemoryVoteLedger:
    def __init__(self) -> None:
        self._contests: Dict[str, Contest] = {}
        self._submissions: Dict[str, Submission] = {}
        self._votes: Dict[Tuple[str, str], Vote] = {}
        self._entitlements: Dict[Tuple[str, str], EntitlementState] = {}
        self._key_locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._key_locks_guard = threading.Lock()
        self._write_lock = threading.RLock()

    # Contests and submissions

    def add_contest(self, contest: Contest) -> None:
        with self._write_lock:
            self._contests[contest.id] = contest

    def get_contest(self, contest_id: str) -> Contest | None:
        with self._write_lock:
            return self._contests.get(contest_id)

    def add_submission(self, submission: Submission) -> None:
        with self._write_lock:
            self._submissions[submission.id] = replace(submission)

    def set_submission_status(self, submission_id: str, status: str) -> None:
        with self._write_lock:
            submission = self._submissions.get(submission_id)
            if submission is None:
                raise KeyError(submission_id)
            submission.status = status

    def get_submission(self, submission_id: str) -> Submission | None:
        # Copies keep callers from racing on votes_count.
        with self._write_lock:
            submission = self._submissions.get(submission_id)
            return replace(submission) if submission is not None else None

    def list_submissions(self, contest_id: str) -> List[Submission]:
        with self._write_lock:
            return [
                replace(sub) for sub in self._submissions.values() if sub.contest_id == contest_id
            ]

    # Votes and entitlements

    def has_vote(self, voter_id: str, submission_id: str) -> bool:
        with self._write_lock:
            return (voter_id, submission_id) in self._votes

    def votes_by(self, voter_id: str, contest_id: str) -> List[Vote]:
        with self._write_lock:
            return [
                vote
                for (vid, _), vote in self._votes.items()
                if vid == voter_id and vote.contest_id == contest_id
            ]

    @contextmanager
    def entitlement_lock(self, voter_id: str, contest_id: str) -> Iterator[None]:
        key = (voter_id, contest_id)
        with self._key_locks_guard:
            lock = self._key_locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def load_entitlement(self, voter_id: str, contest_id: str) -> EntitlementState | None:
        with self._write_lock:
            return self._entitlements.get((voter_id, contest_id))

    def save_entitlement(self, state: EntitlementState) -> None:
        with self._write_lock:
            self._entitlements[(state.voter_id, state.contest_id)] = state

    def commit_vote(self, vote: Vote, state: EntitlementState) -> int:
        """Insert the vote, bump votes_count and store counters atomically."""
        key = (vote.voter_id, vote.submission_id)
        with self._write_lock:
            if key in self._votes:
                raise DuplicateVoteError(vote.voter_id, vote.submission_id)
            submission = self._submissions.get(vote.submission_id)
            if submission is None:
                raise KeyError(vote.submission_id)
            self._votes[key] = vote
            submission.votes_count += 1
            self._entitlements[(state.voter_id, state.contest_id)] = state
            return submission.votes_count
