"""Ledger writer and ledger queries.

Every balance change goes through the ``record_ledger_entry`` Postgres
function, which inserts the transaction row and adjusts ``points`` and
``total_earned`` inside one database transaction. A failed call leaves the
balance untouched; a timed-out call has an unknown outcome and must not be
re-issued blindly.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from points_engine.config import settings
from points_engine.engine.catalog import SOURCE_ADMIN_ADJUSTMENT
from points_engine.services.common import SupabaseService, first_row
from points_engine.utils.errors import InsufficientPointsError, InvalidInputError, NotFoundError
from points_engine.utils.time import days_ago, now_utc, parse_timestamp, start_of_day_utc
from supabase import Client

logger = logging.getLogger(__name__)

EARN = "earn"
REDEEM = "redeem"
ENTRY_KINDS = (EARN, REDEEM)


def _validate_entry(kind: str, amount: int) -> None:
    if kind not in ENTRY_KINDS:
        raise InvalidInputError(f"Ledger entry kind must be one of {', '.join(ENTRY_KINDS)}")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInputError("Ledger entry amount must be a positive integer")


class LedgerService:
    """Append ledger entries and query an account's history."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def record(
        self,
        account_id: str,
        kind: str,
        amount: int,
        source: str | None,
        description: str,
    ) -> dict[str, Any]:
        """Insert one entry and apply it to the account balance atomically."""
        _validate_entry(kind, amount)
        payload = first_row(
            self.db.rpc(
                "record_ledger_entry",
                {
                    "p_user_id": account_id,
                    "p_kind": kind,
                    "p_amount": amount,
                    "p_source": source,
                    "p_description": description,
                },
            )
        )
        if not payload:
            raise InvalidInputError("Ledger write failed")
        if not payload.get("success"):
            self._raise_for_reason(str(payload.get("reason") or ""), amount, payload)

        logger.info(
            "Ledger %s of %s for account %s (source=%s)", kind, amount, account_id, source
        )
        return {
            "id": payload["entry_id"],
            "user_id": account_id,
            "type": kind,
            "points": amount,
            "description": description,
            "task_type": source,
            "created_at": payload.get("created_at"),
            "balance_after": payload.get("points"),
        }

    @staticmethod
    def _raise_for_reason(reason: str, amount: int, payload: dict[str, Any]) -> None:
        if reason == "account_not_found":
            raise NotFoundError("Account")
        if reason == "insufficient_points":
            available = int(payload.get("points") or 0)
            raise InsufficientPointsError(required=amount, available=available)
        if reason == "invalid_amount":
            raise InvalidInputError("Ledger entry amount must be a positive integer")
        raise InvalidInputError("Ledger write failed")

    def has_entry_with_source(self, account_id: str, source: str) -> bool:
        """Return True when the account has at least one entry tagged ``source``."""
        rows = self.db.execute(
            self.db.client.table("transactions")
            .select("id")
            .eq("user_id", account_id)
            .eq("task_type", source)
            .limit(1),
            default=[],
            operation="Ledger lookup",
        )
        return bool(rows)

    def list_entries(
        self,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
        kind: str | None = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """Return ledger entries, newest first, with total count for pagination."""
        filters: dict[str, Any] = {"user_id": account_id}
        if kind:
            if kind not in ENTRY_KINDS:
                raise InvalidInputError(f"Unknown entry kind {kind!r}")
            filters["type"] = kind
        rows = self.db.select_many(
            "transactions",
            filters=filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        total = self.db.count("transactions", filters)
        return rows, total

    def _amounts(self, account_id: str) -> list[dict[str, Any]]:
        return self.db.select_all(
            "transactions",
            filters={"user_id": account_id},
            columns="id,type,points,created_at",
        )

    def summary(self, account_id: str, now: datetime | None = None) -> dict[str, int]:
        """Return earned today / this week and all-time totals from one read."""
        moment = now or now_utc()
        today_start = start_of_day_utc(moment, settings.timezone)
        week_start = days_ago(today_start, 6)

        rows = self._amounts(account_id)
        earned_today = 0
        earned_this_week = 0
        total_earned = 0
        total_redeemed = 0
        for row in rows:
            points = int(row["points"])
            if row["type"] != EARN:
                total_redeemed += points
                continue
            total_earned += points
            created_at = parse_timestamp(row["created_at"])
            if created_at >= week_start:
                earned_this_week += points
            if created_at >= today_start:
                earned_today += points

        return {
            "earned_today": earned_today,
            "earned_this_week": earned_this_week,
            "total_earned": total_earned,
            "total_redeemed": total_redeemed,
            "transaction_count": len(rows),
        }

    def verify_balance(self, account: dict[str, Any]) -> dict[str, Any]:
        """Check ``points == earned - redeemed`` and ``total_earned == earned``."""
        rows = self._amounts(str(account["id"]))
        earned = sum(int(r["points"]) for r in rows if r["type"] == EARN)
        redeemed = sum(int(r["points"]) for r in rows if r["type"] == REDEEM)
        expected_points = earned - redeemed
        stored_points = int(account.get("points") or 0)
        stored_total = int(account.get("total_earned") or 0)
        return {
            "account_id": str(account["id"]),
            "expected_points": expected_points,
            "stored_points": stored_points,
            "expected_total_earned": earned,
            "stored_total_earned": stored_total,
            "consistent": expected_points == stored_points and earned == stored_total,
        }

    def adjust(
        self,
        account_id: str,
        amount: int,
        reason: str,
        actor: str | None = None,
    ) -> dict[str, Any]:
        """Apply an operator correction as an ordinary ledger entry.

        Positive amounts are recorded as earnings, negative amounts as
        redemptions. A debit larger than the balance is refused with
        ``InsufficientPointsError``; nothing is ever written to ``points``
        directly.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
            raise InvalidInputError("Adjustment amount must be a non-zero integer")
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError("Adjustment reason is required")

        kind = EARN if amount > 0 else REDEEM
        description = f"Admin adjustment: {reason}"
        if actor:
            description = f"Admin adjustment by {actor}: {reason}"
        entry = self.record(account_id, kind, abs(amount), SOURCE_ADMIN_ADJUSTMENT, description)
        logger.warning(
            "Manual adjustment of %+d for account %s by %s: %s",
            amount,
            account_id,
            actor or "unknown operator",
            reason,
        )
        return entry
