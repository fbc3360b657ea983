from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from contest_core import (
    Contest,
    ContestConfig,
    InMemoryVoteLedger,
    Submission,
    VoteEntitlementEngine,
    Voter,
    build_schedule,
    describe_entitlement,
    evaluate_vote,
    period_window_start,
)

UTC = timezone.utc
VOTING_START = datetime(2025, 1, 1, tzinfo=UTC)
VOTING_END = datetime(2025, 1, 8, tzinfo=UTC)


def _contest(contest_id: str = "c1", **config) -> Contest:
    return Contest(
        id=contest_id,
        status="active",
        schedule=build_schedule(VOTING_START, VOTING_END, voting_start_at=VOTING_START),
        config=ContestConfig(**config),
    )


def _engine(contest: Contest, submissions: int = 5):
    ledger = InMemoryVoteLedger()
    ledger.add_contest(contest)
    for i in range(submissions):
        ledger.add_submission(
            Submission(
                id=f"s{i}",
                contest_id=contest.id,
                user_id=f"author{i}",
                created_at=VOTING_START,
                status="approved",
            )
        )
    return VoteEntitlementEngine(ledger), ledger


def _at(hours: float) -> datetime:
    return VOTING_START + timedelta(hours=hours)


def test_voting_twice_for_same_submission_counts_once():
    engine, ledger = _engine(_contest(votes_per_user_per_period=0))

    first = engine.try_cast_vote("v1", "c1", "s0", _at(1))
    second = engine.try_cast_vote("v1", "c1", "s0", _at(2))

    assert first.accepted is True
    assert first.votes_count == 1
    assert second.accepted is False
    assert second.reason == "already_voted"
    assert ledger.get_submission("s0").votes_count == 1


def test_unlimited_period_still_allows_distinct_submissions():
    engine, ledger = _engine(_contest(votes_per_user_per_period=0))
    for i in range(5):
        assert engine.try_cast_vote("v1", "c1", f"s{i}", _at(1)).accepted
    assert len(ledger.votes_by("v1", "c1")) == 5


def test_period_quota_and_rollover():
    engine, _ = _engine(_contest(votes_per_user_per_period=2, period_duration_hours=24))

    assert engine.try_cast_vote("v1", "c1", "s0", _at(1)).accepted
    second = engine.try_cast_vote("v1", "c1", "s1", _at(5))
    assert second.accepted
    assert second.entitlement.remaining_period_votes == 0
    assert second.entitlement.next_period_at == _at(24)

    third = engine.try_cast_vote("v1", "c1", "s2", _at(23.9))
    assert third.reason == "period_quota_exceeded"
    assert third.message == "You can only vote 2 time(s) in this contest every 24 hours"

    after_rollover = engine.try_cast_vote("v1", "c1", "s2", _at(24.5))
    assert after_rollover.accepted
    assert after_rollover.entitlement.votes_in_current_period == 1
    assert after_rollover.entitlement.lifetime_votes_used == 3


def test_lifetime_cap_applies_regardless_of_period_state():
    engine, _ = _engine(
        _contest(votes_per_user_per_period=2, period_duration_hours=24, total_votes_per_user=3)
    )

    assert engine.try_cast_vote("v1", "c1", "s0", _at(1)).accepted
    assert engine.try_cast_vote("v1", "c1", "s1", _at(25)).accepted
    assert engine.try_cast_vote("v1", "c1", "s2", _at(26)).accepted

    # Period quota is also exhausted here, the lifetime reason still wins.
    same_period = engine.try_cast_vote("v1", "c1", "s3", _at(27))
    assert same_period.reason == "lifetime_quota_exceeded"
    assert same_period.message == "You have reached the maximum of 3 votes for this contest"

    fresh_period = engine.try_cast_vote("v1", "c1", "s3", _at(50))
    assert fresh_period.reason == "lifetime_quota_exceeded"
    assert fresh_period.entitlement.remaining_total_votes == 0


def test_voting_closed_outside_window():
    contest = Contest(
        id="c1",
        status="active",
        schedule=build_schedule(
            VOTING_START, VOTING_END, voting_start_at=VOTING_START + timedelta(days=2)
        ),
    )
    engine, _ = _engine(contest)

    before = engine.try_cast_vote("v1", "c1", "s0", _at(1))
    assert before.reason == "voting_closed"

    after = engine.try_cast_vote("v1", "c1", "s0", datetime(2025, 1, 8, 0, 1, tzinfo=UTC))
    assert after.reason == "voting_closed"


def test_voting_closed_is_checked_before_already_voted():
    engine, _ = _engine(_contest())
    assert engine.try_cast_vote("v1", "c1", "s0", _at(1)).accepted
    late = engine.try_cast_vote("v1", "c1", "s0", VOTING_END)
    assert late.reason == "voting_closed"


def test_self_vote_rejected():
    engine, ledger = _engine(_contest())
    outcome = engine.try_cast_vote("author0", "c1", "s0", _at(1))
    assert outcome.reason == "self_vote"
    assert ledger.get_submission("s0").votes_count == 0


def test_logged_users_method_requires_authentication():
    engine, _ = _engine(_contest(voting_methods=["logged_users"]))
    anonymous = Voter(id="anonymous:10.0.0.1", authenticated=False)

    rejected = engine.try_cast_vote(anonymous, "c1", "s0", _at(1))
    assert rejected.reason == "method_not_permitted"
    assert rejected.message == "This contest requires authentication to vote"

    assert engine.try_cast_vote(Voter(id="u1"), "c1", "s0", _at(1)).accepted


def test_public_method_admits_anonymous_voters():
    engine, _ = _engine(_contest(voting_methods=["public"]))
    anonymous = Voter(id="anonymous:10.0.0.1", authenticated=False)
    assert engine.try_cast_vote(anonymous, "c1", "s0", _at(1)).accepted


def test_jury_only_admits_listed_members():
    engine, _ = _engine(_contest(voting_methods=["jury"], jury_members=["judge"]))

    outsider = engine.try_cast_vote("u1", "c1", "s0", _at(1))
    assert outsider.reason == "method_not_permitted"
    assert outsider.message == "Only jury members can vote in this contest"

    assert engine.try_cast_vote("judge", "c1", "s0", _at(1)).accepted


def test_any_enabled_method_is_enough():
    engine, _ = _engine(_contest(voting_methods=["jury", "logged_users"], jury_members=["judge"]))
    assert engine.try_cast_vote("u1", "c1", "s0", _at(1)).accepted
    assert engine.try_cast_vote("judge", "c1", "s0", _at(1)).accepted


def test_lookup_failures():
    engine, ledger = _engine(_contest())
    ledger.add_contest(_contest("c2"))
    ledger.add_submission(
        Submission(id="other", contest_id="c2", user_id="a", created_at=VOTING_START, status="approved")
    )
    ledger.add_submission(
        Submission(id="pending", contest_id="c1", user_id="a", created_at=VOTING_START)
    )

    assert engine.try_cast_vote("v1", "missing", "s0", _at(1)).reason == "contest_not_found"
    assert engine.try_cast_vote("v1", "c1", "missing", _at(1)).reason == "submission_not_eligible"
    assert engine.try_cast_vote("v1", "c1", "other", _at(1)).reason == "submission_not_eligible"
    assert engine.try_cast_vote("v1", "c1", "pending", _at(1)).reason == "submission_not_eligible"


def test_period_windows_are_anchored_to_voting_start():
    assert period_window_start(VOTING_START, 24, _at(50)) == _at(48)
    assert period_window_start(VOTING_START, 24, _at(24)) == _at(24)
    assert period_window_start(VOTING_START, 6, _at(5.9)) == VOTING_START
    assert period_window_start(VOTING_START, 24, VOTING_START - timedelta(hours=3)) == VOTING_START


def test_evaluate_vote_creates_state_lazily():
    contest = _contest(votes_per_user_per_period=3)
    submission = Submission(
        id="s0", contest_id="c1", user_id="a", created_at=VOTING_START, status="approved"
    )
    decision = evaluate_vote(
        voter=Voter(id="v1"),
        contest=contest,
        submission=submission,
        already_voted=False,
        state=None,
        now=_at(30),
    )
    assert decision.allowed
    assert decision.state.period_window_start == _at(24)
    assert decision.state.votes_in_current_period == 1
    assert decision.state.lifetime_votes_used == 1


def test_quota_rejection_keeps_rolled_state():
    engine, ledger = _engine(_contest(votes_per_user_per_period=1))
    assert engine.try_cast_vote("v1", "c1", "s0", _at(1)).accepted
    assert engine.try_cast_vote("v1", "c1", "s1", _at(2)).reason == "period_quota_exceeded"
    state = ledger.load_entitlement("v1", "c1")
    assert state.votes_in_current_period == 1
    assert state.lifetime_votes_used == 1


def test_describe_entitlement_is_advisory():
    config = ContestConfig(votes_per_user_per_period=2, total_votes_per_user=5)
    snapshot = describe_entitlement(None, config, VOTING_START, _at(1))
    assert snapshot.remaining_period_votes == 2
    assert snapshot.remaining_total_votes == 5
    assert snapshot.period_window_start == VOTING_START

    unlimited = describe_entitlement(None, ContestConfig(votes_per_user_per_period=0), VOTING_START, _at(1))
    assert unlimited.remaining_period_votes is None
    assert unlimited.remaining_total_votes is None


def test_engine_entitlement_for_unknown_contest():
    engine, _ = _engine(_contest())
    assert engine.entitlement_for("v1", "nope", _at(1)) is None
    assert engine.entitlement_for("v1", "c1", _at(1)).lifetime_votes_used == 0


def test_concurrent_votes_on_one_submission_are_all_counted():
    engine, ledger = _engine(_contest(), submissions=1)

    def cast(i):
        return engine.try_cast_vote(f"voter{i}", "c1", "s0", _at(1))

    with ThreadPoolExecutor(max_workers=16) as pool:
        outcomes = list(pool.map(cast, range(200)))

    assert all(o.accepted for o in outcomes)
    assert ledger.get_submission("s0").votes_count == 200


def test_concurrent_votes_by_one_voter_respect_quota():
    engine, ledger = _engine(_contest(votes_per_user_per_period=3), submissions=20)

    def cast(i):
        return engine.try_cast_vote("v1", "c1", f"s{i}", _at(1))

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(cast, range(20)))

    assert sum(1 for o in outcomes if o.accepted) == 3
    assert {o.reason for o in outcomes if not o.accepted} == {"period_quota_exceeded"}
    assert ledger.load_entitlement("v1", "c1").lifetime_votes_used == 3


def test_concurrent_duplicate_votes_count_once():
    engine, ledger = _engine(_contest(votes_per_user_per_period=0), submissions=1)

    def cast(_):
        return engine.try_cast_vote("v1", "c1", "s0", _at(1))

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(cast, range(10)))

    assert sum(1 for o in outcomes if o.accepted) == 1
    assert ledger.get_submission("s0").votes_count == 1
