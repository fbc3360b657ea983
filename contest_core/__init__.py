from .entitlement import (
    EntitlementDecision,
    EntitlementSnapshot,
    RejectionReason,
    VoteEntitlementEngine,
    VoteLedger,
    VoteOutcome,
    describe_entitlement,
    evaluate_vote,
    period_window_start,
)
from .errors import DuplicateVoteError, ValidationError
from .ledger import InMemoryVoteLedger
from .lifecycle import advance_status, reschedule, transition_status
from .models import Contest, EntitlementState, Submission, Vote, Voter
from .prizes import (
    PrizeAward,
    allocate_prizes,
    default_prize_distribution,
    validate_prize_distribution,
)
from .ranking import (
    ContestRanking,
    RankingRow,
    compute_contest_ranking,
    ordinal_label,
    rank_contest,
    rank_submission,
)
from .schedule import (
    ContestSchedule,
    ScheduleOutcome,
    ValidationMode,
    anchors_locked,
    build_schedule,
    resolve_schedule,
    select_validation_mode,
    validate_admin_edit,
    validate_schedule,
)
from .types import ContestConfigRecord, ContestRecord, SubmissionRecord, VoteRequest
from .validation import ContestConfig, Currency, PrizePlace, ScheduleForm

__all__ = [
    "Contest",
    "ContestConfig",
    "ContestConfigRecord",
    "ContestRanking",
    "ContestRecord",
    "ContestSchedule",
    "Currency",
    "DuplicateVoteError",
    "EntitlementDecision",
    "EntitlementSnapshot",
    "EntitlementState",
    "InMemoryVoteLedger",
    "PrizeAward",
    "PrizePlace",
    "RankingRow",
    "RejectionReason",
    "ScheduleForm",
    "ScheduleOutcome",
    "Submission",
    "SubmissionRecord",
    "ValidationError",
    "ValidationMode",
    "Vote",
    "VoteEntitlementEngine",
    "VoteLedger",
    "VoteOutcome",
    "VoteRequest",
    "Voter",
    "advance_status",
    "allocate_prizes",
    "anchors_locked",
    "build_schedule",
    "compute_contest_ranking",
    "default_prize_distribution",
    "describe_entitlement",
    "evaluate_vote",
    "ordinal_label",
    "period_window_start",
    "rank_contest",
    "rank_submission",
    "reschedule",
    "resolve_schedule",
    "select_validation_mode",
    "transition_status",
    "validate_admin_edit",
    "validate_prize_distribution",
    "validate_schedule",
]
