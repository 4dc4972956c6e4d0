"""Ledger schemas."""

from datetime import datetime

from pydantic import BaseModel


class LedgerEntryResponse(BaseModel):
    """A single ledger entry."""

    id: str
    user_id: str
    type: str
    points: int
    description: str
    task_type: str | None = None
    created_at: datetime | None = None


class LedgerSummary(BaseModel):
    """Pre-computed ledger summary stats."""

    earned_today: int = 0
    earned_this_week: int = 0
    total_earned: int = 0
    total_redeemed: int = 0
    transaction_count: int = 0


class LedgerPage(BaseModel):
    """One page of ledger entries."""

    entries: list[LedgerEntryResponse]
    total: int
