"""In-memory stand-in for the Supabase client used by service tests.

Supports the query-builder calls the services make and mirrors the four
Postgres functions from ``supabase/migrations`` closely enough to test the
ledger, quota, bonus and redemption rules, including one-time-source
uniqueness and simulated outages.
"""

from __future__ import annotations

import copy
import itertools
import re
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from postgrest import APIError

_UNIQUE_KEYS = {
    "profiles": ("id",),
    "daily_quota_usage": ("user_id", "activity", "day_key"),
    "tasks": ("user_id", "task_type", "task_id"),
}


def _one_time_source(source: Any) -> bool:
    return isinstance(source, str) and (source == "signup" or source.startswith("task:"))


def _duplicate() -> APIError:
    return APIError(
        {
            "message": "duplicate key value violates unique constraint",
            "code": "23505",
            "hint": None,
            "details": None,
        }
    )


def _matches(row: dict[str, Any], op: str, column: str, value: Any) -> bool:
    current = row.get(column)
    if op == "eq":
        if isinstance(value, bool) or isinstance(current, bool):
            return current is value
        return str(current) == str(value)
    if op == "in":
        return str(current) in {str(v) for v in value}
    if op == "like":
        pattern = ".*".join(re.escape(part) for part in str(value).split("%"))
        return current is not None and re.fullmatch(pattern, str(current)) is not None
    if current is None:
        return False
    if op == "gte":
        return current >= value
    if op == "lt":
        return current < value
    raise ValueError(f"unsupported filter {op}")


@dataclass
class FakeResponse:
    data: Any
    count: int | None = None


class FakeQuery:
    """Chainable query builder recorded and evaluated on ``execute``."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.columns = "*"
        self.count_mode: str | None = None
        self.head = False
        self.filters: list[tuple[str, str, Any]] = []
        self.order_by: str | None = None
        self.descending = False
        self.limit_value: int | None = None
        self.offset_value = 0
        self.on_conflict = "id"
        self.ignore_duplicates = False

    def select(self, columns: str = "*", count: str | None = None, head: bool = False):
        self.columns = columns
        self.count_mode = count
        self.head = head
        return self

    def insert(self, payload: Any):
        self.action = "insert"
        self.payload = payload
        return self

    def upsert(self, payload: Any, on_conflict: str = "id", ignore_duplicates: bool = False):
        self.action = "upsert"
        self.payload = payload
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def update(self, payload: dict[str, Any]):
        self.action = "update"
        self.payload = payload
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(("eq", column, value))
        return self

    def gte(self, column: str, value: Any):
        self.filters.append(("gte", column, value))
        return self

    def lt(self, column: str, value: Any):
        self.filters.append(("lt", column, value))
        return self

    def in_(self, column: str, values: list[Any]):
        self.filters.append(("in", column, values))
        return self

    def like(self, column: str, pattern: str):
        self.filters.append(("like", column, pattern))
        return self

    def order(self, column: str, desc: bool = False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, size: int):
        self.limit_value = size
        return self

    def offset(self, size: int):
        self.offset_value = size
        return self

    def range(self, start: int, end: int):
        self.offset_value = start
        self.limit_value = end - start + 1
        return self

    def execute(self) -> FakeResponse:
        return self.db.run_query(self)


class FakeRpc:
    def __init__(self, db: FakeSupabase, function: str, params: dict[str, Any]) -> None:
        self.db = db
        self.function = function
        self.params = params

    def execute(self) -> FakeResponse:
        return self.db.run_rpc(self.function, self.params)


class FakeSupabase:
    """Tables held as lists of dicts; writes serialized by one lock.

    ``max_rows`` caps every select the way PostgREST's ``db-max-rows`` does.
    """

    def __init__(self, max_rows: int | None = None) -> None:
        self.max_rows = max_rows
        self.tables: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.lock = threading.RLock()
        self.calls: list[str] = []
        self._failures: dict[str, list[Any]] = {}
        self._ticks = itertools.count(1)
        self._epoch = datetime.now(tz=UTC)

    # Test helpers

    def add_account(
        self,
        account_id: str | None = None,
        points: int = 0,
        total_earned: int | None = None,
        email: str = "player@example.com",
    ) -> str:
        account_id = account_id or str(uuid.uuid4())
        self._insert_row(
            "profiles",
            {
                "id": account_id,
                "email": email,
                "full_name": None,
                "points": points,
                "total_earned": points if total_earned is None else total_earned,
            },
        )
        return account_id

    def account(self, account_id: str) -> dict[str, Any]:
        return next(row for row in self.tables["profiles"] if row["id"] == account_id)

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        return [
            row
            for row in self.tables[table]
            if all(_matches(row, "eq", column, value) for column, value in filters.items())
        ]

    def fail(self, target: str, exc: Exception, times: int | None = 1) -> None:
        """Raise ``exc`` on the next ``times`` calls to a table or function.

        ``target`` is a table name, an RPC function name, or ``"*"`` for every
        call; ``times=None`` keeps failing until :meth:`recover`.
        """
        self._failures[target] = [exc, times]

    def recover(self, target: str | None = None) -> None:
        if target is None:
            self._failures.clear()
        else:
            self._failures.pop(target, None)

    def _maybe_fail(self, target: str) -> None:
        for key in (target, "*"):
            failure = self._failures.get(key)
            if failure is None:
                continue
            exc, remaining = failure
            if remaining is not None:
                if remaining <= 1:
                    self._failures.pop(key)
                else:
                    failure[1] = remaining - 1
            raise exc

    def _timestamp(self) -> str:
        return (self._epoch + timedelta(microseconds=next(self._ticks))).isoformat()

    # Supabase client surface

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, function: str, params: dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, function, params)

    # Query evaluation

    def _find_conflict(self, table: str, row: dict[str, Any], keys: tuple[str, ...]):
        for existing in self.tables[table]:
            if all(str(existing.get(k)) == str(row.get(k)) for k in keys):
                return existing
        return None

    def _insert_row(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        row = copy.deepcopy(payload)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self._timestamp())
        if table == "redemption_requests":
            row.setdefault("status", "pending")
        keys = _UNIQUE_KEYS.get(table)
        if keys and self._find_conflict(table, row, keys) is not None:
            raise _duplicate()
        if table == "transactions" and _one_time_source(row.get("task_type")):
            if self._find_conflict(table, row, ("user_id", "task_type")) is not None:
                raise _duplicate()
        self.tables[table].append(row)
        return row

    def _project(self, row: dict[str, Any], columns: str) -> dict[str, Any]:
        if columns.strip() == "*":
            return copy.deepcopy(row)
        return {c.strip(): copy.deepcopy(row.get(c.strip())) for c in columns.split(",")}

    def run_query(self, query: FakeQuery) -> FakeResponse:
        self.calls.append(f"{query.action}:{query.table}")
        self._maybe_fail(query.table)
        with self.lock:
            if query.action == "insert":
                payloads = query.payload if isinstance(query.payload, list) else [query.payload]
                rows = [self._insert_row(query.table, p) for p in payloads]
                return FakeResponse(copy.deepcopy(rows))

            if query.action == "upsert":
                keys = tuple(k.strip() for k in query.on_conflict.split(","))
                existing = self._find_conflict(query.table, query.payload, keys)
                if existing is None:
                    row = self._insert_row(query.table, query.payload)
                    return FakeResponse([copy.deepcopy(row)])
                if query.ignore_duplicates:
                    return FakeResponse([])
                existing.update(copy.deepcopy(query.payload))
                return FakeResponse([copy.deepcopy(existing)])

            matched = [
                row
                for row in self.tables[query.table]
                if all(_matches(row, op, col, val) for op, col, val in query.filters)
            ]

            if query.action == "update":
                for row in matched:
                    row.update(copy.deepcopy(query.payload))
                return FakeResponse(copy.deepcopy(matched))

            if query.order_by:
                matched.sort(key=lambda r: str(r.get(query.order_by)), reverse=query.descending)
            total = len(matched)
            page = matched[query.offset_value :]
            if query.limit_value is not None:
                page = page[: query.limit_value]
            if self.max_rows is not None:
                page = page[: self.max_rows]
            count = total if query.count_mode else None
            if query.head:
                return FakeResponse([], count)
            return FakeResponse([self._project(row, query.columns) for row in page], count)

    def run_rpc(self, function: str, params: dict[str, Any]) -> FakeResponse:
        self.calls.append(f"rpc:{function}")
        self._maybe_fail(function)
        handler = getattr(self, f"_rpc_{function}")
        with self.lock:
            return FakeResponse(handler(**params))

    # Postgres functions

    def _profile(self, account_id: str) -> dict[str, Any] | None:
        return next((r for r in self.tables["profiles"] if r["id"] == account_id), None)

    def _rpc_record_ledger_entry(
        self, p_user_id, p_kind, p_amount, p_source, p_description
    ) -> list[dict[str, Any]]:
        def failure(reason: str, points=None, total=None) -> list[dict[str, Any]]:
            return [
                {
                    "success": False,
                    "reason": reason,
                    "entry_id": None,
                    "points": points,
                    "total_earned": total,
                    "created_at": None,
                }
            ]

        if p_amount is None or p_amount <= 0 or p_kind not in ("earn", "redeem"):
            return failure("invalid_amount")
        profile = self._profile(p_user_id)
        if profile is None:
            return failure("account_not_found")
        if p_kind == "redeem" and profile["points"] < p_amount:
            return failure("insufficient_points", profile["points"], profile["total_earned"])

        entry = self._insert_row(
            "transactions",
            {
                "user_id": p_user_id,
                "type": p_kind,
                "points": p_amount,
                "description": p_description,
                "task_type": p_source,
            },
        )
        if p_kind == "earn":
            profile["points"] += p_amount
            profile["total_earned"] += p_amount
        else:
            profile["points"] -= p_amount
        return [
            {
                "success": True,
                "reason": None,
                "entry_id": entry["id"],
                "points": profile["points"],
                "total_earned": profile["total_earned"],
                "created_at": entry["created_at"],
            }
        ]

    def _rpc_grant_signup_bonus_if_missing(self, p_user_id, p_amount=100) -> bool:
        if self._find_conflict(
            "transactions", {"user_id": p_user_id, "task_type": "signup"}, ("user_id", "task_type")
        ):
            return False
        profile = self._profile(p_user_id)
        if profile is None:
            raise APIError({"message": f"account {p_user_id} not found", "code": "P0001"})
        self._insert_row(
            "transactions",
            {
                "user_id": p_user_id,
                "type": "earn",
                "points": p_amount,
                "description": "Welcome bonus",
                "task_type": "signup",
            },
        )
        profile["points"] += p_amount
        profile["total_earned"] += p_amount
        return True

    def _rpc_increment_daily_quota(self, p_user_id, p_activity, p_day_key, p_allowance):
        key = {"user_id": p_user_id, "activity": p_activity, "day_key": p_day_key}
        row = self._find_conflict("daily_quota_usage", key, tuple(key))
        if row is None:
            self._insert_row("daily_quota_usage", {**key, "used": 1})
            return 1
        if row["used"] >= p_allowance:
            return None
        row["used"] += 1
        return row["used"]

    def _rpc_create_redemption_request(
        self,
        p_user_id,
        p_subscription_id,
        p_subscription_name,
        p_duration,
        p_points_cost,
        p_user_email,
        p_user_country,
        p_user_notes,
        p_source,
        p_description,
    ) -> list[dict[str, Any]]:
        profile = self._profile(p_user_id)
        if profile is None:
            return [
                {
                    "success": False,
                    "reason": "account_not_found",
                    "request_id": None,
                    "points": None,
                }
            ]
        if profile["points"] < p_points_cost:
            return [
                {
                    "success": False,
                    "reason": "insufficient_points",
                    "request_id": None,
                    "points": profile["points"],
                }
            ]
        request = self._insert_row(
            "redemption_requests",
            {
                "user_id": p_user_id,
                "subscription_id": p_subscription_id,
                "subscription_name": p_subscription_name,
                "duration": p_duration,
                "points_cost": p_points_cost,
                "status": "pending",
                "user_email": p_user_email,
                "user_country": p_user_country,
                "user_notes": p_user_notes,
                "activation_code": None,
                "instructions": None,
                "expires_at": None,
                "completed_at": None,
            },
        )
        self._insert_row(
            "transactions",
            {
                "user_id": p_user_id,
                "type": "redeem",
                "points": p_points_cost,
                "description": p_description,
                "task_type": p_source,
            },
        )
        profile["points"] -= p_points_cost
        return [
            {
                "success": True,
                "reason": None,
                "request_id": request["id"],
                "points": profile["points"],
            }
        ]


class FakeClock:
    """Settable clock for day-rollover tests."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


class FixedRandom:
    """Random source that always returns the same draw."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


class FakeVerifier:
    """Membership check that passes only for the given member ids."""

    def __init__(self, *members: str) -> None:
        self.members = set(members)
        self.checked: list[str] = []

    def is_member(self, member_id: str) -> bool:
        self.checked.append(member_id)
        return member_id in self.members
