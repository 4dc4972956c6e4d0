"""Daily quota tracking for spin, scratch and quiz.

Counters are partitioned by ``(account, activity, day_key)`` so a new
calendar day starts at zero without any reset job. Two tiers answer quota
questions: the Supabase ``daily_quota_usage`` table (authoritative, atomic
capped increments) and a local JSON file (best-effort, used only for the
calls where the remote tier is unreachable). Their counts are never merged.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any

from points_engine.config import settings
from points_engine.engine.catalog import ensure_activity
from points_engine.services.common import SupabaseService
from points_engine.utils.errors import (
    NotConfiguredError,
    RemoteTimeoutError,
    RemoteUnavailableError,
)
from points_engine.utils.time import day_key, now_utc, parse_day_key
from supabase import Client

logger = logging.getLogger(__name__)

REMOTE = "remote"
LOCAL = "local"
_UNREACHABLE = (NotConfiguredError, RemoteTimeoutError, RemoteUnavailableError)


@dataclass(frozen=True)
class QuotaStatus:
    activity: str
    day_key: str
    allowance: int
    used: int
    source: str

    @property
    def remaining(self) -> int:
        return max(0, self.allowance - self.used)

    @property
    def offline(self) -> bool:
        return self.source == LOCAL


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of one ``consume`` call."""

    granted: bool
    status: QuotaStatus

    @property
    def remaining(self) -> int:
        return self.status.remaining


class RemoteQuotaBackend:
    """Authoritative counters stored in Supabase."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def get_used(self, account_id: str, activity: str, key: str) -> int:
        rows = self.db.execute(
            self.db.client.table("daily_quota_usage")
            .select("used")
            .eq("user_id", account_id)
            .eq("activity", activity)
            .eq("day_key", key)
            .limit(1),
            default=[],
            operation="Quota lookup",
        )
        return int(rows[0]["used"]) if rows else 0

    def increment(self, account_id: str, activity: str, key: str, allowance: int) -> int | None:
        """Atomically increment below the cap; None means the cap was already reached."""
        used = self.db.rpc(
            "increment_daily_quota",
            {
                "p_user_id": account_id,
                "p_activity": activity,
                "p_day_key": key,
                "p_allowance": allowance,
            },
        )
        return None if used is None else int(used)


class LocalQuotaStore:
    """Best-effort counters persisted to a JSON file on this host.

    Keys look like ``quota:<account>:<activity>:<day_key>`` and
    ``last_action:<account>:<activity>``. Every operation re-reads the file
    so uvicorn workers sharing ``LOCAL_STATE_PATH`` see each other's counts;
    only writes within one process are serialized, so two workers writing in
    the same instant can still lose an increment.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    @staticmethod
    def quota_key(account_id: str, activity: str, key: str) -> str:
        return f"quota:{account_id}:{activity}:{key}"

    def _load(self) -> dict[str, Any]:
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Local quota state at %s is unreadable; starting empty", self.path)
            return {}

    def _flush(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        tmp_path.write_text(json.dumps(data, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get_used(self, account_id: str, activity: str, key: str) -> int:
        with self._lock:
            return int(self._load().get(self.quota_key(account_id, activity, key), 0))

    def increment(self, account_id: str, activity: str, key: str, allowance: int) -> int | None:
        with self._lock:
            data = self._load()
            quota_key = self.quota_key(account_id, activity, key)
            used = int(data.get(quota_key, 0))
            if used >= allowance:
                return None
            data[quota_key] = used + 1
            self._flush(data)
            return used + 1

    def record_last_action(self, account_id: str, activity: str, when: datetime) -> None:
        with self._lock:
            data = self._load()
            data[f"last_action:{account_id}:{activity}"] = when.isoformat()
            self._flush(data)

    def last_action(self, account_id: str, activity: str) -> str | None:
        with self._lock:
            return self._load().get(f"last_action:{account_id}:{activity}")

    def prune(self, oldest_kept_day: str) -> int:
        """Drop quota keys for days before ``oldest_kept_day``; return how many."""
        cutoff = parse_day_key(oldest_kept_day)
        with self._lock:
            data = self._load()
            stale = [
                key
                for key in data
                if key.startswith("quota:") and parse_day_key(key.rsplit(":", 1)[1]) < cutoff
            ]
            for key in stale:
                del data[key]
            if stale:
                self._flush(data)
            return len(stale)


class QuotaTracker:
    """Remote-first, local-fallback view of daily quotas."""

    def __init__(
        self,
        remote: RemoteQuotaBackend | None,
        local: LocalQuotaStore,
        allowance: int = 3,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.remote = remote
        self.local = local
        self.allowance = allowance
        self.timezone = timezone
        self.clock = clock

    def current_day_key(self) -> str:
        """Recomputed on every call so midnight and clock changes apply at once."""
        return day_key(self.clock(), self.timezone)

    def _call_remote(self, call: Callable[[RemoteQuotaBackend], Any]) -> Any:
        if self.remote is None:
            raise NotConfiguredError("Quota tracking")
        return call(self.remote)

    def status(self, account_id: str, activity: str) -> QuotaStatus:
        """Return today's usage for one activity."""
        ensure_activity(activity)
        key = self.current_day_key()
        try:
            used = self._call_remote(lambda r: r.get_used(account_id, activity, key))
            source = REMOTE
        except _UNREACHABLE as exc:
            logger.warning("Quota lookup for %s fell back to local state: %s", activity, exc)
            used = self.local.get_used(account_id, activity, key)
            source = LOCAL
        return QuotaStatus(activity, key, self.allowance, min(used, self.allowance), source)

    def remaining(self, account_id: str, activity: str) -> int:
        """Return how many attempts of ``activity`` are left today."""
        return self.status(account_id, activity).remaining

    def consume(self, account_id: str, activity: str) -> QuotaDecision:
        """Use one attempt; denied when the allowance is already spent."""
        ensure_activity(activity)
        key = self.current_day_key()
        try:
            used = self._call_remote(
                lambda r: r.increment(account_id, activity, key, self.allowance)
            )
            source = REMOTE
        except _UNREACHABLE as exc:
            logger.warning("Quota consume for %s fell back to local state: %s", activity, exc)
            used = self.local.increment(account_id, activity, key, self.allowance)
            source = LOCAL

        if used is None:
            logger.info("Quota denied: account=%s activity=%s day=%s", account_id, activity, key)
            exhausted = QuotaStatus(activity, key, self.allowance, self.allowance, source)
            return QuotaDecision(False, exhausted)

        self.local.record_last_action(account_id, activity, self.clock())
        return QuotaDecision(True, QuotaStatus(activity, key, self.allowance, used, source))


@lru_cache(maxsize=1)
def get_local_store() -> LocalQuotaStore:
    """Return the process-wide local state store."""
    return LocalQuotaStore(settings.local_state_path)


def build_quota_tracker(client: Client | None) -> QuotaTracker:
    """Return a tracker wired to the configured backend and local state file."""
    return QuotaTracker(
        remote=RemoteQuotaBackend(client) if client is not None else None,
        local=get_local_store(),
        allowance=settings.daily_allowance,
        timezone=settings.timezone,
    )
