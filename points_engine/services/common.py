"""Shared Supabase data access helpers."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from postgrest import APIError

from points_engine.config import settings
from points_engine.utils.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from supabase import Client

logger = logging.getLogger(__name__)


class SupabaseService:
    """Thin helper wrapper around a Supabase client."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def execute(self, query, default: Any = None, operation: str = "Remote request") -> Any:
        """Execute a Supabase query and normalize API and transport errors.

        Timeouts become ``RemoteTimeoutError`` (unknown outcome), other
        transport failures ``RemoteUnavailableError``, and PostgREST errors
        ``InvalidInputError``.
        """
        started = time.perf_counter()
        try:
            response = query.execute()
        except APIError as exc:
            message = getattr(exc, "message", "Database request failed")
            if is_unique_violation(exc):
                raise ConflictError(str(message), code="DUPLICATE") from exc
            raise InvalidInputError(str(message)) from exc
        except httpx.TimeoutException as exc:
            logger.warning("%s timed out after %.1fms", operation, _elapsed_ms(started))
            raise RemoteTimeoutError(operation) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s failed: %s", operation, exc)
            raise RemoteUnavailableError() from exc

        elapsed_ms = _elapsed_ms(started)
        threshold_ms = settings.slow_query_log_threshold_ms
        if threshold_ms > 0 and elapsed_ms >= threshold_ms:
            logger.warning("Slow Supabase query %.1fms", elapsed_ms)
        data = response.data
        return default if data is None and default is not None else data

    def rpc(self, function: str, params: dict[str, Any], default: Any = None) -> Any:
        """Call a Postgres function through PostgREST."""
        return self.execute(self.client.rpc(function, params), default=default, operation=function)

    def select_one(
        self,
        table: str,
        filters: dict[str, Any],
        columns: str = "*",
        not_found_label: str | None = None,
    ) -> dict[str, Any]:
        """Select a single row and raise NotFoundError when missing."""
        query = self.client.table(table).select(columns)
        for key, value in filters.items():
            query = query.eq(key, value)
        rows = self.execute(query.limit(1), default=[])
        if not rows:
            label = not_found_label or table
            raise NotFoundError(label)
        return rows[0]

    def select_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select many rows from a table with optional filters and paging."""
        query = self.client.table(table).select(columns)
        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return self.execute(query, default=[])

    def select_all(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        since: str | None = None,
        order_by: str = "id",
    ) -> list[dict[str, Any]]:
        """Select every matching row, paging past the PostgREST max-rows cap.

        Pages advance by the number of rows actually returned and stop on an
        empty page, so a server cap smaller than ``supabase_max_rows`` still
        yields every row.
        """
        page_size = max(1, settings.supabase_max_rows)
        rows: list[dict[str, Any]] = []
        start = 0
        while True:
            query = self.client.table(table).select(columns)
            for key, value in (filters or {}).items():
                query = query.eq(key, value)
            if since is not None:
                query = query.gte("created_at", since)
            query = query.order(order_by).range(start, start + page_size - 1)
            page = self.execute(query, default=[], operation=f"Paged read of {table}")
            if not page:
                return rows
            rows.extend(page)
            start += len(page)

    def count(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        since: str | None = None,
    ) -> int:
        """Count rows with optional equality filters and a ``created_at`` lower bound."""
        query = self.client.table(table).select("*", count="exact", head=True)
        if filters:
            for key, value in filters.items():
                query = query.eq(key, value)
        if since is not None:
            query = query.gte("created_at", since)
        started = time.perf_counter()
        try:
            response = query.execute()
            return response.count or 0
        except APIError as exc:
            message = getattr(exc, "message", "Database request failed")
            raise InvalidInputError(str(message)) from exc
        except httpx.TimeoutException as exc:
            logger.warning("Count on %s timed out after %.1fms", table, _elapsed_ms(started))
            raise RemoteTimeoutError(f"Count on {table}") from exc
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError() from exc

    def insert_one(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return the created object."""
        rows = self.execute(self.client.table(table).insert(payload), default=[])
        if not rows:
            raise InvalidInputError(f"Failed to insert into {table}")
        return rows[0]

    def upsert_one(
        self,
        table: str,
        payload: dict[str, Any],
        on_conflict: str,
    ) -> dict[str, Any]:
        """Insert or update one row keyed by ``on_conflict`` columns."""
        rows = self.execute(
            self.client.table(table).upsert(payload, on_conflict=on_conflict),
            default=[],
        )
        if not rows:
            raise InvalidInputError(f"Failed to upsert into {table}")
        return rows[0]

    def update(
        self,
        table: str,
        filters: dict[str, Any],
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Update rows by equality filters and return the updated rows."""
        query = self.client.table(table).update(payload)
        for key, value in filters.items():
            query = query.eq(key, value)
        return self.execute(query, default=[])


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def is_unique_violation(exc: APIError) -> bool:
    """Return True when a write failed on a unique constraint."""
    message = str(getattr(exc, "message", "")).lower()
    code = str(getattr(exc, "code", "")).lower()
    return "duplicate key value" in message or code == "23505"


def first_row(payload: Any) -> dict[str, Any] | None:
    """Normalize an RPC result that may be a row, a list of rows, or empty."""
    if isinstance(payload, list):
        return payload[0] if payload else None
    if isinstance(payload, dict):
        return payload
    return None
