"""Operator dashboard aggregates."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from points_engine.config import settings
from points_engine.services.common import SupabaseService
from points_engine.services.ledger_service import EARN
from points_engine.services.redemption_service import COMPLETED, PENDING
from points_engine.utils.time import days_ago, now_utc, start_of_day_utc
from supabase import Client

ACTIVE_WINDOW_DAYS = 30
PENDING_WARNING = 20
PENDING_CRITICAL = 50


def system_health(pending_redemptions: int) -> str:
    """Grade the fulfilment backlog."""
    if pending_redemptions > PENDING_CRITICAL:
        return "critical"
    if pending_redemptions > PENDING_WARNING:
        return "warning"
    return "good"


class AdminService:
    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def dashboard_stats(self, now: datetime | None = None) -> dict[str, Any]:
        """Counts and point totals for the operator dashboard.

        "Active" users are accounts created within the last 30 days. Point
        sums page through every row, so they stay exact past the max-rows cap.
        """
        moment = now or now_utc()
        today = start_of_day_utc(moment, settings.timezone).isoformat()
        active_since = days_ago(moment, ACTIVE_WINDOW_DAYS).isoformat()

        balances = self.db.select_all("profiles", columns="id,points")
        todays_earnings = self.db.select_all(
            "transactions", filters={"type": EARN}, columns="id,points", since=today
        )
        pending = self.db.count("redemption_requests", {"status": PENDING})

        return {
            "total_users": len(balances),
            "active_users": self.db.count("profiles", since=active_since),
            "total_transactions": self.db.count("transactions"),
            "total_points": sum(int(row["points"] or 0) for row in balances),
            "pending_redemptions": pending,
            "completed_redemptions": self.db.count("redemption_requests", {"status": COMPLETED}),
            "today_signups": self.db.count("profiles", since=today),
            "today_earnings": sum(int(row["points"]) for row in todays_earnings),
            "total_spins": self.db.count("spin_history"),
            "total_scratches": self.db.count("scratch_history"),
            "total_tasks": self.db.count("tasks", {"completed": True}),
            "system_health": system_health(pending),
        }
