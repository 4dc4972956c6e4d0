"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "")
    os.environ.setdefault("SUPABASE_ANON_KEY", "")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "")
    os.environ.setdefault("SUPABASE_JWT_SECRET", "")
    os.environ.setdefault("ENABLE_SCHEDULER", "false")
    os.environ.setdefault("ADMIN_EMAILS", "ops@example.com")


_set_default_env()

from points_engine.services.quota_service import (  # noqa: E402
    LocalQuotaStore,
    QuotaTracker,
    RemoteQuotaBackend,
)
from tests.fakes import FakeClock, FakeSupabase  # noqa: E402


@pytest.fixture
def db() -> FakeSupabase:
    """Empty in-memory Supabase."""
    return FakeSupabase()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 30, tzinfo=UTC))


@pytest.fixture
def local_store(tmp_path) -> LocalQuotaStore:
    """Local quota state backed by a file in the test's temp directory."""
    return LocalQuotaStore(tmp_path / "local_state.json")


@pytest.fixture
def quota(db: FakeSupabase, local_store: LocalQuotaStore, clock: FakeClock) -> QuotaTracker:
    """Remote-first tracker with a three-per-day allowance."""
    return QuotaTracker(RemoteQuotaBackend(db), local_store, allowance=3, clock=clock)


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a FastAPI test client."""
    from points_engine.main import app

    return TestClient(app)
