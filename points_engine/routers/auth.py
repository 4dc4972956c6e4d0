"""Authentication endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_display_name,
    get_current_user_email,
    get_current_user_id,
    get_economy_service,
)
from points_engine.schemas.account import SessionResponse
from points_engine.services.economy_service import EconomyService

router = APIRouter()


@router.post("/session", response_model=SessionResponse)
def auth_session(
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Post sign-in hook: ensure the account exists and issue a missing signup bonus."""
    return economy.sign_in(
        account_id=get_current_user_id(user),
        email=get_current_user_email(user),
        display_name=get_current_user_display_name(user),
    )


@router.post("/signout")
def auth_signout() -> dict:
    """Return success for stateless sign-out handling."""
    return {"success": True}
