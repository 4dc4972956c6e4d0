"""Reward catalog and redemption endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_economy_service,
    get_required_db_client,
)
from points_engine.engine.catalog import REWARDS
from points_engine.schemas.rewards import (
    RedemptionCreate,
    RedemptionCreatedResponse,
    RedemptionResponse,
    RewardResponse,
)
from points_engine.services.economy_service import EconomyService
from points_engine.services.redemption_service import RedemptionService
from supabase import Client

router = APIRouter()


@router.get("", response_model=list[RewardResponse])
def list_rewards() -> list[dict]:
    """Return the redeemable subscription catalog."""
    return [
        {
            "id": reward.id,
            "name": reward.name,
            "category": reward.category,
            "plans": [{"duration": p.duration, "points": p.points} for p in reward.plans],
        }
        for reward in REWARDS
    ]


@router.post("/redemptions", response_model=RedemptionCreatedResponse, status_code=201)
def create_redemption(
    payload: RedemptionCreate,
    user: Any = Depends(get_authenticated_user),
    economy: EconomyService = Depends(get_economy_service),
) -> dict:
    """Submit a redemption request; points are debited immediately."""
    return economy.redeem(
        get_current_user_id(user),
        reward_id=payload.reward_id,
        duration=payload.duration,
        email=payload.email,
        country=payload.country,
        notes=payload.notes,
    )


@router.get("/redemptions", response_model=list[RedemptionResponse])
def list_redemptions(
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_required_db_client),
) -> list[dict]:
    """Return the caller's redemption history."""
    return RedemptionService(client).list_requests(get_current_user_id(user))


@router.get("/redemptions/{request_id}", response_model=RedemptionResponse)
def get_redemption(
    request_id: str,
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Return one redemption with any fulfillment details."""
    return RedemptionService(client).get_request(get_current_user_id(user), request_id)
