"""Supabase client singletons (anon + service-role)."""

from functools import lru_cache

import httpx
from supabase.lib.client_options import SyncClientOptions

from points_engine.config import settings
from points_engine.utils.errors import NotConfiguredError
from supabase import Client, create_client


def _build_sync_options() -> SyncClientOptions:
    max_connections = max(10, settings.supabase_http_max_connections)
    max_keepalive_connections = max(
        5,
        min(max_connections, settings.supabase_http_max_keepalive_connections),
    )
    # A hung call surfaces as a timeout instead of holding the request.
    timeout_seconds = max(1.0, settings.remote_timeout_seconds)

    httpx_client = httpx.Client(
        timeout=httpx.Timeout(timeout_seconds),
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
        ),
    )

    return SyncClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=timeout_seconds,
        storage_client_timeout=int(timeout_seconds),
        function_client_timeout=int(timeout_seconds),
        httpx_client=httpx_client,
    )


def _ensure_configured() -> None:
    if not settings.is_supabase_configured:
        raise NotConfiguredError("Points backend")


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Return the anon-key Supabase client used for token validation."""
    _ensure_configured()
    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=_build_sync_options(),
    )


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Return the service-role Supabase client (bypasses RLS).

    Every engine write goes through this client and the server-side
    functions in ``supabase/migrations``.
    """
    _ensure_configured()
    return create_client(
        settings.supabase_url,
        settings.supabase_service_key,
        options=_build_sync_options(),
    )


def get_optional_service_client() -> Client | None:
    """Return the service client, or None when running without a backend."""
    if not settings.is_supabase_configured:
        return None
    return get_service_client()
