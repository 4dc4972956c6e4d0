"""Account schemas."""

from datetime import datetime

from pydantic import BaseModel


class AccountResponse(BaseModel):
    """Public account representation with its current balance."""

    id: str
    email: str
    full_name: str | None = None
    points: int
    total_earned: int
    created_at: datetime | None = None


class SessionResponse(BaseModel):
    """Result of the post sign-in hook."""

    account: AccountResponse
    created: bool
    bonus: str


class BonusClaimResponse(BaseModel):
    """Result of an explicit signup bonus claim."""

    bonus: str
    account: AccountResponse
