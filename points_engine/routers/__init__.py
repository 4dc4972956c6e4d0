"""API router package."""

from points_engine.routers import account, admin, auth, games, ledger, rewards, tasks

__all__ = [
    "account",
    "admin",
    "auth",
    "games",
    "ledger",
    "rewards",
    "tasks",
]
