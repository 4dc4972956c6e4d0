"""Account endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_economy_service,
)
from points_engine.schemas.account import AccountResponse, BonusClaimResponse
from points_engine.services.economy_service import EconomyService

router = APIRouter()


@router.get("", response_model=AccountResponse)
def get_account(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Return the current account and balance, read fresh from the backend."""
    return economy.get_account(get_current_user_id(user))


@router.post("/bonus/claim", response_model=BonusClaimResponse)
def claim_bonus(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Claim a signup bonus that was deferred earlier. Safe to repeat."""
    return economy.claim_signup_bonus(get_current_user_id(user))
