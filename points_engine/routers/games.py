"""Spin, scratch and trivia quiz endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_economy_service,
    get_quota_user,
)
from points_engine.engine.prizes import PRIZE_TABLES
from points_engine.schemas.games import (
    PlayResponse,
    PrizeHistoryResponse,
    PrizeTableEntryResponse,
    QuizCompletion,
    QuizHistoryResponse,
    QuizResponse,
    QuotaResponse,
)
from points_engine.services.economy_service import EconomyService
from points_engine.utils.errors import NotFoundError

router = APIRouter()


@router.get("/quota", response_model=list[QuotaResponse])
def get_quota(
    user: Any = Depends(get_quota_user),
    economy: EconomyService = Depends(get_economy_service),
) -> list[dict]:
    """Return today's remaining attempts for spin, scratch and quiz.

    Answers from local state when no backend is configured.
    """
    return economy.quota_status(get_current_user_id(user))


@router.get("/prizes/{activity}", response_model=list[PrizeTableEntryResponse])
def get_prize_table(activity: str) -> list[dict]:
    """Return the published odds for a prize game."""
    table = PRIZE_TABLES.get(activity)
    if table is None:
        raise NotFoundError("Prize table")
    return [
        {"label": entry.label, "points": entry.points, "probability": entry.weight}
        for entry in table.entries
    ]


@router.post("/spin", response_model=PlayResponse)
def spin(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Spin the wheel once."""
    return economy.spin(get_current_user_id(user))


@router.post("/scratch", response_model=PlayResponse)
def scratch(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Scratch one card."""
    return economy.scratch(get_current_user_id(user))


@router.post("/quiz", response_model=QuizResponse)
def complete_quiz(
    payload: QuizCompletion,
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Submit a finished quiz and credit its score."""
    return economy.complete_quiz(
        get_current_user_id(user),
        difficulty=payload.difficulty,
        correct_answers=payload.correct_answers,
        total_questions=payload.total_questions,
        time_taken=payload.time_taken,
        category=payload.category,
    )


@router.get(
    "/history/{activity}",
    response_model=list[PrizeHistoryResponse | QuizHistoryResponse],
)
def get_history(
    activity: str,
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> list[dict]:
    """Return the caller's latest plays of one game, newest first."""
    return economy.history(get_current_user_id(user), activity)


@router.get("/big-wins/{activity}", response_model=list[PrizeHistoryResponse])
def get_big_wins(
    activity: str,
    _: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> list[dict]:
    """Return the latest big wins across all players."""
    return economy.big_wins(activity)
