"""Operations endpoints: fulfillment, corrections and dashboard figures."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from points_engine.dependencies import (
    get_current_user_email,
    get_required_db_client,
    require_admin,
)
from points_engine.schemas.admin import AdjustmentCreate, AdjustmentResponse, DashboardStats
from points_engine.schemas.rewards import RedemptionResponse, RedemptionStatusUpdate
from points_engine.services.account_service import AccountService
from points_engine.services.admin_service import AdminService
from points_engine.services.ledger_service import LedgerService
from points_engine.services.redemption_service import RedemptionService
from supabase import Client

router = APIRouter()


@router.patch("/redemptions/{request_id}", response_model=RedemptionResponse)
def update_redemption(
    request_id: str,
    payload: RedemptionStatusUpdate,
    _: Any = Depends(require_admin),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Advance a redemption request through its lifecycle."""
    return RedemptionService(client).update_status(
        request_id,
        payload.status,
        activation_code=payload.activation_code,
        instructions=payload.instructions,
    )


@router.post(
    "/accounts/{account_id}/adjustments",
    response_model=AdjustmentResponse,
    status_code=201,
)
def adjust_points(
    account_id: str,
    payload: AdjustmentCreate,
    operator: Any = Depends(require_admin),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Credit or debit an account through the ledger, e.g. to refund a failed redemption."""
    entry = LedgerService(client).adjust(
        account_id,
        payload.amount,
        payload.reason,
        actor=get_current_user_email(operator),
    )
    return {"entry": entry, "account": AccountService(client).get_account(account_id)}


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(
    _: Any = Depends(require_admin),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Return headline counts for the operator dashboard."""
    return AdminService(client).dashboard_stats()
