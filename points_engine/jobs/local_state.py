"""Local fallback state housekeeping job."""

from __future__ import annotations

import logging

from points_engine.config import settings
from points_engine.services.quota_service import LocalQuotaStore, get_local_store
from points_engine.utils.time import day_key, days_ago, now_utc

logger = logging.getLogger(__name__)


async def prune_local_state(store: LocalQuotaStore | None = None) -> int:
    """Drop local quota counters older than the retention window.

    Quota reset never depends on this job; a new day key always starts at zero.
    """
    target = store or get_local_store()
    retention = max(1, settings.local_state_retention_days)
    oldest_kept = day_key(days_ago(now_utc(), retention), settings.timezone)
    removed = target.prune(oldest_kept)
    logger.info("prune_local_state removed %s stale quota keys", removed)
    return removed
