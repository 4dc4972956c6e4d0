"""Ledger endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from points_engine.dependencies import (
    get_authenticated_user,
    get_current_user_id,
    get_required_db_client,
)
from points_engine.schemas.ledger import LedgerPage, LedgerSummary
from points_engine.services.ledger_service import LedgerService
from supabase import Client

router = APIRouter()


@router.get("", response_model=LedgerPage)
def get_ledger(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    kind: str | None = Query(default=None, pattern="^(earn|redeem)$"),
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Return the current user's ledger entries, newest first."""
    entries, total = LedgerService(client).list_entries(
        get_current_user_id(user), limit=limit, offset=offset, kind=kind
    )
    return {"entries": entries, "total": total}


@router.get("/summary", response_model=LedgerSummary)
def get_summary(
    user: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_required_db_client),
) -> dict:
    """Return earned today / this week and all-time totals."""
    return LedgerService(client).summary(get_current_user_id(user))
