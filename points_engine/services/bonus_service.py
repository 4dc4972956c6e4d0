"""Signup bonus issuance.

Every trigger (first sign-in, the profile-creation fallback, the explicit
"claim missing bonus" action) calls :meth:`BonusService.issue_signup_bonus_if_missing`.
Nothing else may write a ``signup`` ledger entry.
"""

from __future__ import annotations

import logging
from enum import Enum

from points_engine.config import settings
from points_engine.engine.catalog import SOURCE_SIGNUP
from points_engine.services.common import SupabaseService
from points_engine.services.ledger_service import LedgerService
from points_engine.utils.errors import (
    NotConfiguredError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from supabase import Client

logger = logging.getLogger(__name__)


class BonusOutcome(str, Enum):
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"
    DEFERRED = "deferred"


class BonusService:
    """Idempotent one-time signup bonus."""

    def __init__(self, client: Client | None, amount: int | None = None) -> None:
        self.client = client
        self.amount = amount if amount is not None else settings.signup_bonus_points

    def issue_signup_bonus_if_missing(self, account_id: str) -> BonusOutcome:
        """Grant the signup bonus once; DEFERRED means try again later."""
        if self.client is None:
            logger.warning("Signup bonus for %s deferred: backend not configured", account_id)
            return BonusOutcome.DEFERRED

        try:
            if LedgerService(self.client).has_entry_with_source(account_id, SOURCE_SIGNUP):
                return BonusOutcome.ALREADY_GRANTED

            # Check-and-insert happens inside one server-side transaction.
            granted = SupabaseService(self.client).rpc(
                "grant_signup_bonus_if_missing",
                {"p_user_id": account_id, "p_amount": self.amount},
            )
        except (NotConfiguredError, RemoteTimeoutError, RemoteUnavailableError) as exc:
            logger.warning("Signup bonus for %s deferred: %s", account_id, exc)
            return BonusOutcome.DEFERRED

        if granted is True:
            logger.info("Signup bonus of %s granted to %s", self.amount, account_id)
            return BonusOutcome.GRANTED
        return BonusOutcome.ALREADY_GRANTED
