"""Reward catalog and redemption schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from points_engine.schemas.account import AccountResponse


class RewardPlanResponse(BaseModel):
    duration: str
    points: int


class RewardResponse(BaseModel):
    """A redeemable subscription."""

    id: str
    name: str
    category: str
    plans: list[RewardPlanResponse]


class RedemptionCreate(BaseModel):
    """Request body for submitting a redemption."""

    reward_id: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    country: str = Field(..., min_length=2, max_length=100)
    notes: str | None = Field(default=None, max_length=1000)


class RedemptionResponse(BaseModel):
    """Redemption request representation."""

    id: str
    user_id: str
    subscription_id: str
    subscription_name: str
    duration: str
    points_cost: int
    status: str
    user_email: str
    user_country: str
    user_notes: str | None = None
    activation_code: str | None = None
    instructions: str | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class RedemptionCreatedResponse(BaseModel):
    request: RedemptionResponse
    account: AccountResponse


class RedemptionStatusUpdate(BaseModel):
    """Request body for the operations console."""

    status: str = Field(..., pattern="^(processing|completed|failed|cancelled)$")
    activation_code: str | None = None
    instructions: str | None = None
