"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "AccountService": "points_engine.services.account_service",
    "AdminService": "points_engine.services.admin_service",
    "BonusOutcome": "points_engine.services.bonus_service",
    "BonusService": "points_engine.services.bonus_service",
    "EconomyService": "points_engine.services.economy_service",
    "HistoryService": "points_engine.services.history_service",
    "LedgerService": "points_engine.services.ledger_service",
    "LocalQuotaStore": "points_engine.services.quota_service",
    "QuotaTracker": "points_engine.services.quota_service",
    "RedemptionService": "points_engine.services.redemption_service",
    "RemoteQuotaBackend": "points_engine.services.quota_service",
    "SupabaseService": "points_engine.services.common",
    "TelegramMembershipVerifier": "points_engine.services.task_verification",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
