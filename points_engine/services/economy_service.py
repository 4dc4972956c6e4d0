"""Economy facade called by the HTTP routes.

Earning flow: quota check -> prize selection -> ledger record -> quota
consume -> history row -> fresh account read. Results always carry the
account as read after the write; cached balances elsewhere are advisory.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from points_engine.engine.catalog import (
    QUIZ,
    QUOTA_ACTIVITIES,
    REWARDS,
    SCRATCH,
    SOURCE_QUIZ,
    SOURCE_SCRATCH,
    SOURCE_SPIN,
    SPIN,
    TASKS,
    Reward,
    get_task,
    quiz_points,
    task_source,
)
from points_engine.engine.prizes import PRIZE_TABLES, RandomSource, is_big_win
from points_engine.services.account_service import AccountService
from points_engine.services.bonus_service import BonusOutcome, BonusService
from points_engine.services.common import SupabaseService
from points_engine.services.history_service import HistoryService
from points_engine.services.ledger_service import EARN, LedgerService
from points_engine.services.quota_service import QuotaDecision, QuotaTracker, build_quota_tracker
from points_engine.services.redemption_service import RedemptionService
from points_engine.services.task_verification import MembershipVerifier, default_verifiers
from points_engine.utils.errors import (
    AppError,
    ConflictError,
    InvalidInputError,
    NotConfiguredError,
    QuotaExhaustedError,
    VerificationFailedError,
)
from points_engine.utils.time import now_utc
from supabase import Client

logger = logging.getLogger(__name__)

_GAME_SOURCES = {SPIN: SOURCE_SPIN, SCRATCH: SOURCE_SCRATCH}
_GAME_TITLES = {SPIN: "Spin & Win", SCRATCH: "Scratch & Earn"}


def _quota_payload(decision: QuotaDecision) -> dict[str, Any]:
    status = decision.status
    return {
        "activity": status.activity,
        "remaining": status.remaining,
        "allowance": status.allowance,
        "offline": status.offline,
    }


def _unknown_quota(activity: str, allowance: int) -> dict[str, Any]:
    """Quota payload for a play whose attempt could not be counted."""
    return {
        "activity": activity,
        "remaining": None,
        "allowance": allowance,
        "offline": False,
        "unknown": True,
    }


class EconomyService:
    """Single entry point for earning and redemption actions."""

    def __init__(
        self,
        client: Client | None,
        quota: QuotaTracker | None = None,
        rng: RandomSource | None = None,
        rewards: Sequence[Reward] = REWARDS,
        verifiers: Mapping[str, MembershipVerifier] | None = None,
    ) -> None:
        self.client = client
        self.quota = quota or build_quota_tracker(client)
        self.rng = rng
        self.rewards = rewards
        self.verifiers = default_verifiers() if verifiers is None else verifiers
        self.bonus = BonusService(client)

    def _backend(self, feature: str) -> Client:
        if self.client is None:
            raise NotConfiguredError(feature)
        return self.client

    def _ensure_quota(self, account_id: str, activity: str) -> None:
        if self.quota.remaining(account_id, activity) <= 0:
            raise QuotaExhaustedError(activity)

    def _consume(self, account_id: str, activity: str) -> dict[str, Any]:
        """Count one attempt after the ledger write.

        Failures are logged and reported as an unknown quota; the recorded
        points stand.
        """
        try:
            decision = self.quota.consume(account_id, activity)
        except (AppError, OSError):
            logger.exception(
                "Quota for %s was not counted after points were recorded for account %s",
                activity,
                account_id,
            )
            return _unknown_quota(activity, self.quota.allowance)
        if not decision.granted:
            # Another session used the last attempt between check and consume.
            logger.warning(
                "Quota for %s closed after points were recorded for account %s",
                activity,
                account_id,
            )
        return _quota_payload(decision)

    def sign_in(
        self,
        account_id: str,
        email: str,
        display_name: str | None = None,
    ) -> dict[str, Any]:
        """Ensure the profile exists and issue a missing signup bonus."""
        accounts = AccountService(self._backend("Sign-in"))
        account, created = accounts.ensure_account(account_id, email, display_name)
        bonus = self.bonus.issue_signup_bonus_if_missing(account_id)
        if bonus is BonusOutcome.GRANTED:
            account = accounts.get_account(account_id)
        return {"account": account, "created": created, "bonus": bonus.value}

    def claim_signup_bonus(self, account_id: str) -> dict[str, Any]:
        """Explicit user-initiated retry of the signup bonus."""
        client = self._backend("Signup bonus")
        bonus = self.bonus.issue_signup_bonus_if_missing(account_id)
        return {"bonus": bonus.value, "account": AccountService(client).get_account(account_id)}

    def get_account(self, account_id: str) -> dict[str, Any]:
        return AccountService(self._backend("Account")).get_account(account_id)

    def quota_status(self, account_id: str) -> list[dict[str, Any]]:
        """Return today's remaining attempts for every quota-limited activity."""
        statuses = []
        for activity in QUOTA_ACTIVITIES:
            status = self.quota.status(account_id, activity)
            statuses.append(
                {
                    "activity": activity,
                    "remaining": status.remaining,
                    "allowance": status.allowance,
                    "offline": status.offline,
                    "day_key": status.day_key,
                }
            )
        return statuses

    def play(
        self,
        account_id: str,
        activity: str,
        rng: RandomSource | None = None,
    ) -> dict[str, Any]:
        """Run one spin or scratch and credit the prize."""
        if activity not in _GAME_SOURCES:
            raise InvalidInputError(f"{activity!r} is not a prize game")
        client = self._backend(_GAME_TITLES[activity])
        self._ensure_quota(account_id, activity)

        prize = PRIZE_TABLES[activity].select(rng or self.rng)
        entry = LedgerService(client).record(
            account_id,
            EARN,
            prize.points,
            _GAME_SOURCES[activity],
            f"{_GAME_TITLES[activity]}: {prize.label}",
        )
        quota = self._consume(account_id, activity)
        HistoryService(client).record_prize(account_id, activity, prize.label, prize.points)
        return {
            "prize": {"label": prize.label, "points": prize.points, "big_win": is_big_win(prize)},
            "entry": entry,
            "quota": quota,
            "account": AccountService(client).get_account(account_id),
        }

    def spin(self, account_id: str, rng: RandomSource | None = None) -> dict[str, Any]:
        return self.play(account_id, SPIN, rng)

    def scratch(self, account_id: str, rng: RandomSource | None = None) -> dict[str, Any]:
        return self.play(account_id, SCRATCH, rng)

    def complete_quiz(
        self,
        account_id: str,
        difficulty: str,
        correct_answers: int,
        total_questions: int,
        time_taken: int | None = None,
        category: str | None = None,
    ) -> dict[str, Any]:
        """Credit a finished trivia quiz and use one quiz attempt."""
        points = quiz_points(difficulty, correct_answers, total_questions)
        client = self._backend("Trivia quiz")
        self._ensure_quota(account_id, QUIZ)

        entry = None
        if points > 0:
            entry = LedgerService(client).record(
                account_id,
                EARN,
                points,
                SOURCE_QUIZ,
                f"Trivia Quiz ({difficulty}): {correct_answers}/{total_questions} correct",
            )
        quota = self._consume(account_id, QUIZ)
        HistoryService(client).record_quiz(
            account_id,
            difficulty,
            correct_answers,
            total_questions,
            points,
            time_taken=time_taken,
            category=category,
        )
        return {
            "points": points,
            "entry": entry,
            "quota": quota,
            "account": AccountService(client).get_account(account_id),
        }

    def history(self, account_id: str, activity: str) -> list[dict[str, Any]]:
        """Return the account's most recent plays of one game."""
        return HistoryService(self._backend("Game history")).recent(account_id, activity)

    def big_wins(self, activity: str) -> list[dict[str, Any]]:
        return HistoryService(self._backend("Game history")).big_wins(activity)

    def list_tasks(self, account_id: str) -> list[dict[str, Any]]:
        """Return the social task catalog with the account's completion flags.

        Completion comes from ``task:<id>`` ledger entries, the same record
        that blocks a second payout.
        """
        db = SupabaseService(self._backend("Tasks"))
        rows = db.execute(
            db.client.table("transactions")
            .select("task_type")
            .eq("user_id", account_id)
            .like("task_type", "task:%"),
            default=[],
            operation="Task completion lookup",
        )
        completed = {str(row["task_type"]) for row in rows}
        return [
            {
                "id": task.id,
                "title": task.title,
                "type": task.task_type,
                "points": task.points,
                "action_url": task.action_url,
                "requires_verification": task.verification is not None,
                "completed": task_source(task.id) in completed,
            }
            for task in TASKS
        ]

    def _verify_task(self, task_id: str, verification: str, member_id: str | None) -> None:
        verifier = self.verifiers.get(verification)
        if verifier is None:
            raise NotConfiguredError(f"{verification.title()} verification")
        if not member_id:
            raise InvalidInputError(f"A {verification} user id is required for this task")
        if not verifier.is_member(member_id):
            logger.info("Membership check for task %s failed for %s", task_id, member_id)
            raise VerificationFailedError(
                f"{verification.title()} membership could not be verified"
            )

    def complete_task(
        self,
        account_id: str,
        task_id: str,
        member_id: str | None = None,
    ) -> dict[str, Any]:
        """Pay out a social task once per account.

        Tasks with a membership check need ``member_id`` (for Telegram, the
        numeric user id) and pay only when the check passes.
        """
        task = get_task(task_id)
        client = self._backend("Tasks")
        ledger = LedgerService(client)
        source = task_source(task.id)
        if ledger.has_entry_with_source(account_id, source):
            raise ConflictError("Task already completed", code="TASK_ALREADY_COMPLETED")
        if task.verification:
            self._verify_task(task.id, task.verification, member_id)

        # A unique index on (user_id, task_type) for task sources rejects a racing duplicate.
        entry = ledger.record(
            account_id, EARN, task.points, source, f"Task Completed: {task.title}"
        )
        try:
            SupabaseService(client).upsert_one(
                "tasks",
                {
                    "user_id": account_id,
                    "task_type": task.task_type,
                    "task_id": task.id,
                    "completed": True,
                    "points_earned": task.points,
                    "completed_at": now_utc().isoformat(),
                },
                on_conflict="user_id,task_type,task_id",
            )
        except AppError as exc:
            logger.warning(
                "Task row for %s was not saved for account %s: %s",
                task.id,
                account_id,
                exc.message,
            )
        return {"entry": entry, "account": AccountService(client).get_account(account_id)}

    def redeem(
        self,
        account_id: str,
        reward_id: str,
        duration: str,
        email: str,
        country: str,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Submit a redemption request; the cost is debited immediately."""
        client = self._backend("Redemption")
        request = RedemptionService(client, self.rewards).create(
            account_id, reward_id, duration, email, country, notes
        )
        return {"request": request, "account": AccountService(client).get_account(account_id)}
