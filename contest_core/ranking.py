"""Contest ranking by vote count (single source of truth for prizes and badges).

- Only approved submissions are ranked.
- Order: votes_count desc, then created_at asc (first submitted wins a tie),
  then submission id as a last deterministic fallback.
- Ranks are 1-based positions; tied vote counts never share a rank because
  prize money follows the rank.
- The prize-eligible band is the number of funded places in the contest's
  prize distribution, not a fixed podium size.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from .models import Contest, Submission


class SubmissionSource(Protocol):
    def get_contest(self, contest_id: str) -> Contest | None:
        ...

    def list_submissions(self, contest_id: str) -> list[Submission]:
        ...


@dataclass(frozen=True)
class RankingRow:
    submission_id: str
    user_id: str
    rank: int
    votes_count: int
    created_at: datetime
    prize_eligible: bool
    label: str


@dataclass(frozen=True)
class ContestRanking:
    rows: tuple[RankingRow, ...]
    prize_places: int
    # False while voting can still change the order.
    is_final: bool

    def rank_of(self, submission_id: str) -> int | None:
        for row in self.rows:
            if row.submission_id == submission_id:
                return row.rank
        return None

    def row_for(self, submission_id: str) -> RankingRow | None:
        for row in self.rows:
            if row.submission_id == submission_id:
                return row
        return None

    @property
    def prize_rows(self) -> tuple[RankingRow, ...]:
        return tuple(row for row in self.rows if row.prize_eligible)


def rank_suffix(rank: int) -> str:
    """English ordinal suffix: 1 -> st, 2 -> nd, 11 -> th, 21 -> st."""
    if 10 <= rank % 100 <= 20:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")


def ordinal_label(rank: int) -> str:
    return f"{rank}{rank_suffix(rank)}"


def _ranking_sort_key(submission: Submission) -> tuple[int, datetime, str]:
    return (-int(submission.votes_count), submission.created_at, submission.id)


def compute_contest_ranking(
    submissions: Iterable[Submission],
    prize_places: int = 0,
    *,
    is_final: bool = False,
) -> ContestRanking:
    """
    Rank the approved submissions of one contest.

    Args:
      submissions: submissions of a single contest (any status).
      prize_places: number of funded places (len of the prize distribution).
      is_final: mark the ranking final (voting closed).
    """
    prize_places = max(0, int(prize_places or 0))
    approved = sorted((sub for sub in submissions if sub.is_approved), key=_ranking_sort_key)
    rows = tuple(
        RankingRow(
            submission_id=sub.id,
            user_id=sub.user_id,
            rank=position,
            votes_count=int(sub.votes_count),
            created_at=sub.created_at,
            prize_eligible=position <= prize_places,
            label=ordinal_label(position),
        )
        for position, sub in enumerate(approved, start=1)
    )
    return ContestRanking(rows=rows, prize_places=prize_places, is_final=is_final)


def rank_contest(contest: Contest, submissions: Iterable[Submission], now: datetime) -> ContestRanking:
    """Ranking for a contest at `now`; final once voting has ended."""
    return compute_contest_ranking(
        [sub for sub in submissions if sub.contest_id == contest.id],
        contest.config.prize_places,
        is_final=contest.schedule.has_ended(now),
    )


def rank_submission(
    source: SubmissionSource,
    contest_id: str,
    submission_id: str,
    now: datetime,
) -> int | None:
    """Rank of a submission in its contest, or None if unknown/not approved."""
    contest = source.get_contest(contest_id)
    if contest is None:
        return None
    return rank_contest(contest, source.list_submissions(contest_id), now).rank_of(submission_id)
