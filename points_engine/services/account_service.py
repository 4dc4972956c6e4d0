"""Account (profile) reads and the profile-creation fallback."""

from __future__ import annotations

import logging
from typing import Any

from points_engine.services.common import SupabaseService
from supabase import Client

logger = logging.getLogger(__name__)


class AccountService:
    """Read accounts; balances are only ever changed by the ledger functions."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def get_account(self, account_id: str) -> dict[str, Any]:
        """Return the account row with its current balance."""
        return self.db.select_one("profiles", {"id": account_id}, not_found_label="Account")

    def find_account(self, account_id: str) -> dict[str, Any] | None:
        """Return the account row, or None when it has not been created yet."""
        rows = self.db.select_many("profiles", filters={"id": account_id}, limit=1)
        return rows[0] if rows else None

    def ensure_account(
        self,
        account_id: str,
        email: str,
        display_name: str | None = None,
    ) -> tuple[dict[str, Any], bool]:
        """Create the profile row if the signup trigger did not, return (account, created)."""
        existing = self.find_account(account_id)
        if existing:
            return existing, False

        self.db.execute(
            self.db.client.table("profiles").upsert(
                {
                    "id": account_id,
                    "email": email.strip().lower(),
                    "full_name": display_name,
                    "points": 0,
                    "total_earned": 0,
                },
                on_conflict="id",
                ignore_duplicates=True,
            ),
            default=[],
        )
        logger.info("Created missing profile for account %s", account_id)
        return self.get_account(account_id), True

    def list_account_ids(self) -> list[str]:
        """Return every account id, for reconciliation runs."""
        rows = self.db.select_all("profiles", columns="id")
        return [str(row["id"]) for row in rows]
