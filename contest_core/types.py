"""Type definitions for the records exchanged with the API layer."""
from __future__ import annotations

from typing import List, Optional, TypedDict


class PrizePlaceRecord(TypedDict):
    """One funded place in a prize breakdown."""
    place: int
    value: float


class ContestConfigRecord(TypedDict, total=False):
    """
    TypedDict representing the ``config`` object of a contest record.

    All fields are optional (total=False); missing ones take the named
    defaults of ``ContestConfig`` when parsed.
    """
    # Schedule anchors (ISO-8601 instants)
    submissionEndAt: Optional[str]
    votingStartAt: Optional[str]
    votingEndAt: str

    # Voting rules
    votingMethods: List[str]  # 'public' | 'logged_users' | 'jury'
    juryMembers: List[str]
    votesPerUserPerPeriod: int  # 0 = no per-period cap
    periodDurationHours: int  # 1..168
    totalVotesPerUser: int  # 0 = unlimited

    # Prizes
    prizeDistribution: List[PrizePlaceRecord]
    currency: str  # 'GLORY' | 'SOL' | 'USDC'

    # Authoring fields passed through untouched
    eligibility: Optional[str]
    maxSubmissions: Optional[int]
    allowedMediaTypes: List[str]
    fileSizeLimit: Optional[int]
    nsfwAllowed: bool
    entryFee: bool
    entryFeeAmount: Optional[float]

    configVersion: int


class ContestRecord(TypedDict, total=False):
    """Contest as persisted by the authoring and admin edit screens."""
    id: str
    title: str
    description: str
    status: str  # 'draft' | 'active' | 'ended' | 'archived'
    startAt: str
    endAt: str  # mirrors config.votingEndAt
    config: ContestConfigRecord


class SubmissionRecord(TypedDict):
    """Submission as read by the core (never written by it)."""
    id: str
    contestId: str
    userId: str
    status: str  # 'pending' | 'approved' | 'rejected'
    votesCount: int
    createdAt: str


class VoteRequest(TypedDict, total=False):
    """Vote request body; the caller identity comes from the auth layer."""
    submissionId: str
