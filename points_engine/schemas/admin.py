"""Operator schemas."""

from pydantic import BaseModel, Field

from points_engine.schemas.account import AccountResponse
from points_engine.schemas.ledger import LedgerEntryResponse


class AdjustmentCreate(BaseModel):
    """Manual correction; negative amounts debit the account."""

    amount: int = Field(..., description="Non-zero points to credit (positive) or debit")
    reason: str = Field(..., min_length=3, max_length=500)


class AdjustmentResponse(BaseModel):
    entry: LedgerEntryResponse
    account: AccountResponse


class DashboardStats(BaseModel):
    total_users: int
    active_users: int
    total_transactions: int
    total_points: int
    pending_redemptions: int
    completed_redemptions: int
    today_signups: int
    today_earnings: int
    total_spins: int
    total_scratches: int
    total_tasks: int
    system_health: str
