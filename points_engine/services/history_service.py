"""Per-game play history behind the "recent wins" views.

History rows are a display log; the ledger stays the record of what was
paid. A failed history write never undoes or hides a ledger entry.
"""

from __future__ import annotations

import logging
from typing import Any

from points_engine.config import settings
from points_engine.engine.catalog import QUIZ, SCRATCH, SPIN
from points_engine.engine.prizes import BIG_WIN_THRESHOLD
from points_engine.services.common import SupabaseService
from points_engine.utils.errors import AppError, InvalidInputError
from supabase import Client

logger = logging.getLogger(__name__)

HISTORY_TABLES = {
    SPIN: "spin_history",
    SCRATCH: "scratch_history",
    QUIZ: "quiz_history",
}


def history_table(activity: str) -> str:
    table = HISTORY_TABLES.get(activity)
    if table is None:
        raise InvalidInputError(f"No history is kept for {activity!r}")
    return table


class HistoryService:
    """Write and read per-game history rows."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def _write(self, activity: str, payload: dict[str, Any]) -> bool:
        try:
            self.db.insert_one(history_table(activity), payload)
        except AppError as exc:
            logger.warning(
                "%s history row for account %s was not saved: %s",
                activity,
                payload.get("user_id"),
                exc.message,
            )
            return False
        return True

    def record_prize(self, account_id: str, activity: str, label: str, points: int) -> bool:
        """Log one spin or scratch result; returns False when the write failed."""
        return self._write(
            activity,
            {"user_id": account_id, "prize_label": label, "points_won": points},
        )

    def record_quiz(
        self,
        account_id: str,
        difficulty: str,
        correct_answers: int,
        total_questions: int,
        score: int,
        time_taken: int | None = None,
        category: str | None = None,
    ) -> bool:
        return self._write(
            QUIZ,
            {
                "user_id": account_id,
                "difficulty": difficulty,
                "correct_answers": correct_answers,
                "total_questions": total_questions,
                "score": score,
                "time_taken": time_taken,
                "category": category,
            },
        )

    def recent(
        self, account_id: str, activity: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Return the account's latest rows for one game, newest first."""
        return self.db.select_many(
            history_table(activity),
            filters={"user_id": account_id},
            order_by="created_at",
            descending=True,
            limit=limit or settings.history_page_size,
        )

    def big_wins(self, activity: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Return the latest wins of at least ``BIG_WIN_THRESHOLD`` across all players."""
        if activity not in (SPIN, SCRATCH):
            raise InvalidInputError(f"{activity!r} has no prizes")
        return self.db.execute(
            self.db.client.table(history_table(activity))
            .select("prize_label,points_won,created_at")
            .gte("points_won", BIG_WIN_THRESHOLD)
            .order("created_at", desc=True)
            .limit(limit or settings.big_win_feed_size),
            default=[],
            operation="Big wins lookup",
        )
