"""Operator dashboard aggregate tests."""

from __future__ import annotations

import pytest

from points_engine.services.admin_service import AdminService, system_health
from points_engine.services.ledger_service import EARN, LedgerService
from tests.fakes import FakeSupabase


@pytest.mark.parametrize(
    "pending,expected",
    [(0, "good"), (20, "good"), (21, "warning"), (50, "warning"), (51, "critical")],
)
def test_system_health_tracks_the_redemption_backlog(pending: int, expected: str) -> None:
    assert system_health(pending) == expected


def test_point_totals_are_exact_past_the_row_cap() -> None:
    """Balances and today's earnings are summed over every page."""
    db = FakeSupabase(max_rows=2)
    ledger = LedgerService(db)
    accounts = [db.add_account() for _ in range(5)]
    for account_id in accounts:
        ledger.record(account_id, EARN, 10, "quiz", "Quiz")

    stats = AdminService(db).dashboard_stats()

    assert stats["total_users"] == 5
    assert stats["total_points"] == 50
    assert stats["today_earnings"] == 50
    assert stats["today_signups"] == 5
    assert stats["active_users"] == 5
    assert stats["total_transactions"] == 5
    assert stats["pending_redemptions"] == 0
    assert stats["system_health"] == "good"
