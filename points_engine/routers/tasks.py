"""Social task endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_economy_service,
)
from points_engine.schemas.games import (
    TaskCompletionRequest,
    TaskCompletionResponse,
    TaskResponse,
)
from points_engine.services.economy_service import EconomyService

router = APIRouter()


@router.get("", response_model=list[TaskResponse])
def list_tasks(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> list[dict]:
    """Return available tasks with the caller's completion state."""
    return economy.list_tasks(get_current_user_id(user))


@router.post("/{task_id}/complete", response_model=TaskCompletionResponse)
def complete_task(
    task_id: str,
    payload: TaskCompletionRequest | None = Body(None),
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Pay out a task once; the Telegram task checks channel membership first."""
    member_id = payload.telegram_user_id if payload else None
    return economy.complete_task(get_current_user_id(user), task_id, member_id=member_id)
