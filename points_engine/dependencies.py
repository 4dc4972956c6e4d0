"""FastAPI dependency injection helpers."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any

import httpx
import jwt
from fastapi import Depends, Header
from jwt.exceptions import InvalidTokenError

from points_engine.config import settings
from points_engine.services.economy_service import EconomyService
from points_engine.services.quota_service import QuotaTracker, build_quota_tracker
from points_engine.services.task_verification import MembershipVerifier, default_verifiers
from points_engine.utils.errors import (
    ForbiddenError,
    NotConfiguredError,
    RemoteTimeoutError,
    RemoteUnavailableError,
    UnauthorizedError,
)
from points_engine.utils.supabase_client import get_optional_service_client, get_supabase_client
from supabase import Client

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"

_token_cache: dict[str, tuple[float, Any]] = {}
_cache_lock = threading.Lock()


def _cache_get(cache: dict[Any, tuple[float, Any]], key: Any) -> Any | None:
    """Return a cache value when present and not expired."""
    now = time.monotonic()
    with _cache_lock:
        entry = cache.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if expires_at <= now:
            cache.pop(key, None)
            return None
        return value


def _cache_set(
    cache: dict[Any, tuple[float, Any]],
    key: Any,
    value: Any,
    ttl_seconds: int,
    max_entries: int,
) -> None:
    """Store a bounded cache value with TTL."""
    if ttl_seconds <= 0:
        return

    with _cache_lock:
        bounded_max_entries = max(1, max_entries)
        if len(cache) >= bounded_max_entries:
            oldest_key = next(iter(cache))
            cache.pop(oldest_key, None)
        cache[key] = (time.monotonic() + ttl_seconds, value)


def _transport_cause(exc: BaseException) -> httpx.HTTPError | None:
    """Return the network error behind an auth client exception, if any.

    The auth client may re-raise transport failures as its own error types,
    so the exception chain is searched. HTTP status errors are answers from
    the auth API, not transport failures.
    """
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, httpx.HTTPError) and not isinstance(
            current, httpx.HTTPStatusError
        ):
            return current
        current = current.__cause__ or current.__context__
    return None


def get_authenticated_user(authorization: str = Header(None)) -> Any:
    """Extract and validate a Supabase JWT from the Authorization header.

    Raises:
        UnauthorizedError: 401 if the header is missing, malformed, or
            the token cannot be validated.
        NotConfiguredError: 503 when no Supabase project is configured.
        RemoteTimeoutError: 504 when the auth API does not answer in time.
        RemoteUnavailableError: 503 when the auth API cannot be reached.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authorization header")

    token = authorization.split(" ", 1)[1]
    cached_user = _cache_get(_token_cache, token)
    if cached_user is not None:
        return cached_user

    supabase = get_supabase_client()

    try:
        response = supabase.auth.get_user(token)
        if not response or not response.user:
            raise UnauthorizedError("Invalid token")
        _cache_set(
            _token_cache,
            token,
            response.user,
            settings.auth_token_cache_ttl_seconds,
            settings.auth_token_cache_max_entries,
        )
        return response.user
    except UnauthorizedError:
        raise
    except Exception as exc:
        cause = _transport_cause(exc)
        if isinstance(cause, httpx.TimeoutException):
            logger.warning("Token validation timed out")
            raise RemoteTimeoutError("Token validation") from exc
        if cause is not None:
            logger.warning("Token validation could not reach the auth API: %s", cause)
            raise RemoteUnavailableError("Authentication service is unreachable") from exc
        raise UnauthorizedError("Invalid or expired token") from exc


def _decode_token_claims(token: str) -> dict[str, Any]:
    """Read the claims of a Supabase access token without calling the auth API.

    The signature is checked when SUPABASE_JWT_SECRET is set; otherwise the
    claims are trusted as-is.
    """
    try:
        if settings.supabase_jwt_secret:
            return jwt.decode(
                token,
                settings.supabase_jwt_secret,
                algorithms=[JWT_ALGORITHM],
                audience=JWT_AUDIENCE,
            )
        return jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError as exc:
        raise UnauthorizedError("Invalid or expired token") from exc


def get_quota_user(authorization: str = Header(None)) -> Any:
    """Identify the caller of quota reads.

    With a backend configured this is ``get_authenticated_user``. In limited
    mode the user id comes from the token's ``sub`` claim so quota reads can
    still answer from local state. Use it only on read-only routes.
    """
    if settings.is_supabase_configured:
        return get_authenticated_user(authorization)
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing authorization header")

    claims = _decode_token_claims(authorization.split(" ", 1)[1])
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthorizedError("Token has no subject")
    return SimpleNamespace(
        id=subject,
        email=claims.get("email"),
        user_metadata=claims.get("user_metadata") or {},
    )


def get_current_user_id(user: Any) -> str:
    """Extract a stable user id string from the Supabase user object."""
    return str(user.id)


def get_current_user_email(user: Any) -> str:
    """Extract and normalize the authenticated user's email."""
    raw_email = getattr(user, "email", None)
    if not isinstance(raw_email, str) or not raw_email.strip():
        raise UnauthorizedError("Authenticated user email is required")
    return raw_email.strip().lower()


def get_current_user_display_name(user: Any) -> str | None:
    """Return the display name captured at sign-up, if any."""
    metadata = getattr(user, "user_metadata", None) or {}
    name = metadata.get("full_name") if isinstance(metadata, dict) else None
    return name.strip() if isinstance(name, str) and name.strip() else None


def require_admin(user: Any = Depends(get_authenticated_user)) -> Any:
    """Allow only operators listed in ADMIN_EMAILS."""
    if get_current_user_email(user) not in settings.admin_email_set:
        raise ForbiddenError("Admin access required")
    return user


def get_db_client() -> Client | None:
    """Return the privileged Supabase client, or None in limited mode."""
    return get_optional_service_client()


def get_required_db_client(client: Client | None = Depends(get_db_client)) -> Client:
    """Return the Supabase client for routes that cannot run in limited mode."""
    if client is None:
        raise NotConfiguredError("This feature")
    return client


def get_quota_tracker(client: Client | None = Depends(get_db_client)) -> QuotaTracker:
    """Return a quota tracker sharing the process-wide local state file."""
    return build_quota_tracker(client)


def get_task_verifiers() -> Mapping[str, MembershipVerifier]:
    """Return the membership checks used by social tasks."""
    return default_verifiers()


def get_economy_service(
    client: Client | None = Depends(get_db_client),
    quota: QuotaTracker = Depends(get_quota_tracker),
    verifiers: Mapping[str, MembershipVerifier] = Depends(get_task_verifiers),
) -> EconomyService:
    """Return the economy facade for one request."""
    return EconomyService(client, quota=quota, verifiers=verifiers)
