"""APScheduler setup and job registration."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from points_engine.config import settings
from points_engine.jobs.local_state import prune_local_state

scheduler = AsyncIOScheduler(timezone=settings.timezone)


def register_jobs() -> None:
    """Register all periodic jobs if not already present."""
    if scheduler.get_job("prune_local_state") is None:
        scheduler.add_job(
            prune_local_state,
            CronTrigger(hour=0, minute=15, timezone=settings.timezone),
            id="prune_local_state",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
