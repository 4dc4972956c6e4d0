"""Economy facade scenario tests."""

from __future__ import annotations

import httpx
import pytest
from postgrest import APIError

from points_engine.engine.catalog import Reward, RewardPlan
from points_engine.services.economy_service import EconomyService
from points_engine.services.ledger_service import LedgerService
from points_engine.services.quota_service import QuotaTracker
from points_engine.utils.errors import (
    ConflictError,
    InvalidInputError,
    NotConfiguredError,
    QuotaExhaustedError,
    VerificationFailedError,
)
from tests.fakes import FakeSupabase, FakeVerifier, FixedRandom

ACCOUNT = "5b0f6c1e-0000-4000-8000-000000000001"
STARTER_REWARD = Reward("starter_pack", "Starter Pack", "test", (RewardPlan("1 Week", 120),))


@pytest.fixture
def economy(db: FakeSupabase, quota: QuotaTracker) -> EconomyService:
    return EconomyService(db, quota=quota, rewards=(STARTER_REWARD,))


def test_signup_spin_and_redeem(db: FakeSupabase, economy: EconomyService) -> None:
    """New account: 0 -> bonus 100 -> spin wins 50 -> redeem 120 leaves 30."""
    session = economy.sign_in(ACCOUNT, "Player@Example.com", "Player One")
    assert session["created"] is True
    assert session["bonus"] == "granted"
    assert session["account"]["points"] == 100

    result = economy.spin(ACCOUNT, rng=FixedRandom(0.6))
    assert result["prize"] == {"label": "50 Points", "points": 50, "big_win": False}
    assert result["account"]["points"] == 150
    assert result["quota"]["remaining"] == 2

    redemption = economy.redeem(ACCOUNT, "starter_pack", "1 Week", "player@example.com", "IN")
    assert redemption["account"]["points"] == 30
    assert redemption["request"]["status"] == "pending"

    account = db.account(ACCOUNT)
    assert account["total_earned"] == 150
    assert LedgerService(db).verify_balance(account)["consistent"]
    assert [row["task_type"] for row in db.rows("transactions")] == [
        "signup",
        "spin_win",
        "redemption",
    ]


def test_second_sign_in_does_not_grant_again(economy: EconomyService) -> None:
    """Every sign-in checks the bonus but only the first one pays."""
    economy.sign_in(ACCOUNT, "player@example.com")

    again = economy.sign_in(ACCOUNT, "player@example.com")

    assert again["created"] is False
    assert again["bonus"] == "already_granted"
    assert again["account"]["points"] == 100


def test_fourth_spin_is_refused_without_a_ledger_write(
    db: FakeSupabase, economy: EconomyService
) -> None:
    """Quota is checked before the prize is drawn and recorded."""
    db.add_account(ACCOUNT)
    for _ in range(3):
        economy.spin(ACCOUNT, rng=FixedRandom(0.0))

    with pytest.raises(QuotaExhaustedError):
        economy.spin(ACCOUNT, rng=FixedRandom(0.0))

    assert len(db.rows("transactions", task_type="spin_win")) == 3
    assert db.account(ACCOUNT)["points"] == 30


def test_scratch_uses_its_own_quota(db: FakeSupabase, economy: EconomyService) -> None:
    """Scratch credits its prize under its own source tag."""
    db.add_account(ACCOUNT)
    for _ in range(3):
        economy.spin(ACCOUNT, rng=FixedRandom(0.0))

    result = economy.scratch(ACCOUNT, rng=FixedRandom(0.95))

    assert result["prize"]["points"] == 100
    assert result["prize"]["big_win"] is True
    assert result["entry"]["task_type"] == "scratch_earn"


def test_play_rejects_non_games(db: FakeSupabase, economy: EconomyService) -> None:
    """Only spin and scratch draw prizes."""
    with pytest.raises(InvalidInputError):
        economy.play(ACCOUNT, "quiz")


def test_quiz_credits_per_correct_answer(db: FakeSupabase, economy: EconomyService) -> None:
    """Medium quizzes pay 20 points per correct answer."""
    db.add_account(ACCOUNT)

    result = economy.complete_quiz(ACCOUNT, "medium", 4, 5)

    assert result["points"] == 80
    assert result["account"]["points"] == 80
    assert result["quota"]["remaining"] == 2


def test_quiz_with_no_correct_answers_still_uses_an_attempt(
    db: FakeSupabase, economy: EconomyService
) -> None:
    """A zero-score quiz writes no entry but consumes quota."""
    db.add_account(ACCOUNT)

    result = economy.complete_quiz(ACCOUNT, "hard", 0, 5)

    assert result["entry"] is None
    assert db.rows("transactions") == []
    assert result["quota"]["remaining"] == 2


def test_task_pays_out_once(db: FakeSupabase, economy: EconomyService) -> None:
    """A social task credits its points once and is then marked completed."""
    db.add_account(ACCOUNT)

    economy.complete_task(ACCOUNT, "youtube_subscribe")
    with pytest.raises(ConflictError) as exc_info:
        economy.complete_task(ACCOUNT, "youtube_subscribe")

    assert exc_info.value.code == "TASK_ALREADY_COMPLETED"
    assert db.account(ACCOUNT)["points"] == 150
    tasks = {task["id"]: task["completed"] for task in economy.list_tasks(ACCOUNT)}
    assert tasks["youtube_subscribe"] is True
    assert tasks["telegram_join"] is False


def test_quota_status_lists_every_activity(economy: EconomyService) -> None:
    """Status covers spin, scratch and quiz."""
    statuses = economy.quota_status(ACCOUNT)

    assert [s["activity"] for s in statuses] == ["spin", "scratch", "quiz"]
    assert all(s["remaining"] == 3 and not s["offline"] for s in statuses)


def test_limited_mode_rejects_writes_but_reports_quota(quota: QuotaTracker) -> None:
    """Without a backend, earning is refused and quotas come from local state."""
    limited = EconomyService(None, quota=QuotaTracker(None, quota.local, clock=quota.clock))

    with pytest.raises(NotConfiguredError):
        limited.spin(ACCOUNT)
    assert all(s["offline"] for s in limited.quota_status(ACCOUNT))


def test_task_stays_completed_when_the_task_row_write_fails(
    db: FakeSupabase, economy: EconomyService
) -> None:
    """The ledger entry is the record of completion; the task row is best-effort."""
    db.add_account(ACCOUNT)
    db.fail("tasks", httpx.ConnectError("connection reset"))

    result = economy.complete_task(ACCOUNT, "instagram_follow")

    assert result["account"]["points"] == 120
    assert db.rows("tasks") == []
    tasks = {task["id"]: task["completed"] for task in economy.list_tasks(ACCOUNT)}
    assert tasks["instagram_follow"] is True
    with pytest.raises(ConflictError):
        economy.complete_task(ACCOUNT, "instagram_follow")


def test_quota_failure_after_payout_still_returns_the_payout(
    db: FakeSupabase, economy: EconomyService
) -> None:
    """A quota error after the ledger write reports the quota as unknown."""
    db.add_account(ACCOUNT)
    db.fail("increment_daily_quota", APIError({"message": "permission denied", "code": "42501"}))

    result = economy.spin(ACCOUNT, rng=FixedRandom(0.6))

    assert result["entry"]["points"] == 50
    assert result["account"]["points"] == 50
    assert result["quota"]["unknown"] is True
    assert result["quota"]["remaining"] is None


def test_local_state_write_failure_after_payout_is_not_an_error(
    db: FakeSupabase, economy: EconomyService, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A full disk while stamping the last action does not hide the credited quiz."""
    db.add_account(ACCOUNT)

    def disk_full(*args) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(economy.quota.local, "record_last_action", disk_full)

    result = economy.complete_quiz(ACCOUNT, "easy", 5, 5)

    assert result["points"] == 50
    assert result["account"]["points"] == 50
    assert result["quota"]["unknown"] is True


def test_plays_are_logged_per_game(db: FakeSupabase, economy: EconomyService) -> None:
    """Spins and quizzes leave history rows, newest first."""
    db.add_account(ACCOUNT)
    economy.spin(ACCOUNT, rng=FixedRandom(0.0))
    economy.spin(ACCOUNT, rng=FixedRandom(0.6))
    economy.complete_quiz(ACCOUNT, "hard", 2, 5, time_taken=95, category="science")

    spins = economy.history(ACCOUNT, "spin")
    quizzes = economy.history(ACCOUNT, "quiz")

    assert [row["prize_label"] for row in spins] == ["50 Points", "10 Points"]
    assert quizzes[0]["score"] == 60
    assert quizzes[0]["time_taken"] == 95
    assert quizzes[0]["category"] == "science"


def test_history_write_failure_keeps_the_prize(db: FakeSupabase, economy: EconomyService) -> None:
    """A lost history row never fails the play."""
    db.add_account(ACCOUNT)
    db.fail("scratch_history", httpx.ReadTimeout("slow insert"))

    result = economy.scratch(ACCOUNT, rng=FixedRandom(0.95))

    assert result["account"]["points"] == 100
    assert db.rows("scratch_history") == []


def test_big_wins_lists_only_large_prizes(db: FakeSupabase, economy: EconomyService) -> None:
    """The feed shows prizes of 100 points or more across accounts."""
    other = db.add_account()
    db.add_account(ACCOUNT)
    economy.spin(ACCOUNT, rng=FixedRandom(0.95))
    economy.spin(other, rng=FixedRandom(0.0))

    wins = economy.big_wins("spin")

    assert [row["points_won"] for row in wins] == [100]
    with pytest.raises(InvalidInputError):
        economy.big_wins("quiz")


def test_telegram_task_pays_only_verified_members(db: FakeSupabase, quota: QuotaTracker) -> None:
    """The join task checks channel membership before paying."""
    verifier = FakeVerifier("424242")
    economy = EconomyService(db, quota=quota, verifiers={"telegram": verifier})
    db.add_account(ACCOUNT)

    with pytest.raises(InvalidInputError):
        economy.complete_task(ACCOUNT, "telegram_join")
    with pytest.raises(VerificationFailedError):
        economy.complete_task(ACCOUNT, "telegram_join", member_id="1")
    assert db.rows("transactions") == []

    economy.complete_task(ACCOUNT, "telegram_join", member_id="424242")

    assert db.account(ACCOUNT)["points"] == 100
    assert verifier.checked == ["1", "424242"]


def test_verified_task_without_a_verifier_is_not_configured(
    db: FakeSupabase, quota: QuotaTracker
) -> None:
    """Missing verification setup refuses the payout instead of skipping the check."""
    economy = EconomyService(db, quota=quota, verifiers={})
    db.add_account(ACCOUNT)

    with pytest.raises(NotConfiguredError):
        economy.complete_task(ACCOUNT, "telegram_join", member_id="424242")
