"""Background job modules for periodic housekeeping."""

from points_engine.jobs.local_state import prune_local_state

__all__ = ["prune_local_state"]
