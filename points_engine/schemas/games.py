"""Game, quiz and task schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from points_engine.schemas.account import AccountResponse
from points_engine.schemas.ledger import LedgerEntryResponse


class QuotaResponse(BaseModel):
    """Remaining attempts for one activity today."""

    activity: str
    # None when the attempt could not be counted; re-read /games/quota
    remaining: int | None
    allowance: int
    offline: bool = False
    unknown: bool = False
    day_key: str | None = None


class PrizeResponse(BaseModel):
    label: str
    points: int
    big_win: bool = False


class PrizeTableEntryResponse(BaseModel):
    label: str
    points: int
    probability: float


class PlayResponse(BaseModel):
    """Result of one spin or scratch."""

    prize: PrizeResponse
    entry: LedgerEntryResponse
    quota: QuotaResponse
    account: AccountResponse


class QuizCompletion(BaseModel):
    """Request body for submitting a finished quiz."""

    difficulty: str = Field(..., pattern="^(easy|medium|hard)$")
    correct_answers: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=1, le=50)
    time_taken: int | None = Field(None, ge=0, description="Seconds spent on the quiz")
    category: str | None = Field(None, max_length=50)


class QuizResponse(BaseModel):
    points: int
    entry: LedgerEntryResponse | None = None
    quota: QuotaResponse
    account: AccountResponse


class TaskResponse(BaseModel):
    id: str
    title: str
    type: str
    points: int
    action_url: str | None = None
    requires_verification: bool = False
    completed: bool = False


class TaskCompletionRequest(BaseModel):
    """Optional proof for tasks with a membership check."""

    telegram_user_id: str | None = Field(None, pattern=r"^\d{1,20}$")


class TaskCompletionResponse(BaseModel):
    entry: LedgerEntryResponse
    account: AccountResponse


class PrizeHistoryResponse(BaseModel):
    """One spin or scratch result."""

    id: str | None = None
    prize_label: str
    points_won: int
    created_at: datetime | None = None


class QuizHistoryResponse(BaseModel):
    id: str | None = None
    difficulty: str
    correct_answers: int
    total_questions: int
    score: int
    time_taken: int | None = None
    category: str | None = None
    created_at: datetime | None = None
