"""Reward redemption requests and their fulfillment lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta
from typing import Any

from points_engine.config import settings
from points_engine.engine.catalog import REWARDS, SOURCE_REDEMPTION, Reward, get_reward
from points_engine.services.account_service import AccountService
from points_engine.services.common import SupabaseService, first_row
from points_engine.utils.errors import (
    ConflictError,
    InsufficientPointsError,
    InvalidInputError,
    NotFoundError,
)
from points_engine.utils.time import now_utc
from supabase import Client

logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
CANCELLED = "cancelled"
STATUSES = (PENDING, PROCESSING, COMPLETED, FAILED, CANCELLED)
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED, CANCELLED})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({PROCESSING, CANCELLED}),
    PROCESSING: frozenset({COMPLETED, FAILED}),
    COMPLETED: frozenset(),
    FAILED: frozenset(),
    CANCELLED: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True when ``current -> new`` is a legal lifecycle move."""
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


class RedemptionService:
    """Create redemption requests and expose their fulfillment state."""

    def __init__(self, client: Client, rewards: Sequence[Reward] = REWARDS) -> None:
        self.db = SupabaseService(client)
        self.accounts = AccountService(client)
        self.rewards = rewards

    def create(
        self,
        account_id: str,
        reward_id: str,
        duration: str,
        email: str,
        country: str,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Submit a request and debit its cost in the same server transaction."""
        reward = get_reward(reward_id, self.rewards)
        plan = reward.plan(duration)
        contact_email = (email or "").strip().lower()
        contact_country = (country or "").strip()
        if not contact_email or not contact_country:
            raise InvalidInputError("Email and country are required")

        account = self.accounts.get_account(account_id)
        available = int(account.get("points") or 0)
        if available < plan.points:
            raise InsufficientPointsError(required=plan.points, available=available)

        payload = first_row(
            self.db.rpc(
                "create_redemption_request",
                {
                    "p_user_id": account_id,
                    "p_subscription_id": reward.id,
                    "p_subscription_name": reward.name,
                    "p_duration": plan.duration,
                    "p_points_cost": plan.points,
                    "p_user_email": contact_email,
                    "p_user_country": contact_country,
                    "p_user_notes": (notes or "").strip() or None,
                    "p_source": SOURCE_REDEMPTION,
                    "p_description": f"Redeemed: {reward.name} ({plan.duration})",
                },
            )
        )
        if not payload:
            raise InvalidInputError("Redemption request failed")
        if not payload.get("success"):
            reason = str(payload.get("reason") or "")
            if reason == "insufficient_points":
                raise InsufficientPointsError(
                    required=plan.points, available=int(payload.get("points") or 0)
                )
            if reason == "account_not_found":
                raise NotFoundError("Account")
            raise InvalidInputError("Redemption request failed")

        logger.info(
            "Redemption %s created for account %s: %s (%s) for %s points",
            payload["request_id"],
            account_id,
            reward.id,
            plan.duration,
            plan.points,
        )
        return self.get_request(account_id, str(payload["request_id"]))

    def list_requests(self, account_id: str) -> list[dict[str, Any]]:
        """Return an account's requests, newest first."""
        return self.db.select_many(
            "redemption_requests",
            filters={"user_id": account_id},
            order_by="created_at",
            descending=True,
        )

    def get_request(self, account_id: str, request_id: str) -> dict[str, Any]:
        """Return one of the account's requests."""
        return self.db.select_one(
            "redemption_requests",
            {"id": request_id, "user_id": account_id},
            not_found_label="Redemption request",
        )

    def update_status(
        self,
        request_id: str,
        status: str,
        activation_code: str | None = None,
        instructions: str | None = None,
    ) -> dict[str, Any]:
        """Move a request along its lifecycle (operations console only).

        Points are not returned on ``failed`` or ``cancelled``; corrections are
        made manually by operations.
        """
        if status not in STATUSES:
            raise InvalidInputError(f"Unknown redemption status {status!r}")

        request = self.db.select_one(
            "redemption_requests", {"id": request_id}, not_found_label="Redemption request"
        )
        current = str(request["status"])
        if not can_transition(current, status):
            raise ConflictError(
                f"Cannot move a {current} request to {status}", code="INVALID_TRANSITION"
            )

        now = now_utc()
        payload: dict[str, Any] = {"status": status}
        if activation_code:
            payload["activation_code"] = activation_code
        if instructions:
            payload["instructions"] = instructions
        if status == COMPLETED:
            payload["expires_at"] = (
                now + timedelta(days=settings.redemption_code_validity_days)
            ).isoformat()
        if status in TERMINAL_STATUSES:
            payload["completed_at"] = now.isoformat()

        # Guarded on the status we read so concurrent operators cannot both win.
        rows = self.db.update(
            "redemption_requests",
            {"id": request_id, "status": current},
            payload,
        )
        if not rows:
            raise ConflictError("Redemption request changed concurrently; reload and retry")
        logger.info("Redemption %s moved %s -> %s", request_id, current, status)
        return rows[0]
