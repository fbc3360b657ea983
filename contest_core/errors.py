"""Structured, user-displayable error values shared by the pure core."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationError:
    """Represents a non-transport validation failure (pure core).

    Validators return lists of these instead of raising, so a form can show
    every violated rule at once.
    """

    kind: str
    message: str
    field: str | None = None


class DuplicateVoteError(Exception):
    """Raised by a ledger when a (voter, submission) vote already exists."""

    def __init__(self, voter_id: str, submission_id: str):
        super().__init__(f"vote already recorded for {voter_id} on {submission_id}")
        self.voter_id = voter_id
        self.submission_id = submission_id


def messages(errors: list[ValidationError]) -> list[str]:
    """Flatten validation errors to their display messages."""
    return [err.message for err in errors]
