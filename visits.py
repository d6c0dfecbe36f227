"""
Visit counter backed by the document store, standing in for a Redis INCR.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from database import DocumentStore, Increment, ServerTimestamp, TransientStoreError, collection_path
from schemas import VisitStats

logger = logging.getLogger(__name__)

STATS_COLLECTION = "simulated_redis_stats"
STATS_KEY = "global_stats"

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_visit_time(value: datetime) -> str:
    """Display string for a visit timestamp, in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.strftime(DISPLAY_FORMAT)


class VisitCounter:
    """Increments the global visit record and reads it back."""

    def __init__(self, store: DocumentStore, app_id: str):
        self.store = store
        self.path = collection_path(app_id, STATS_COLLECTION)
        self.last_stats = VisitStats()
        self.stale = False

    def record_visit(self) -> VisitStats:
        """
        One atomic merge-write (increment + server timestamp), then one read.

        On a store failure the previously returned stats are kept and
        ``stale`` is set; nothing is retried.
        """
        try:
            self.store.set(
                self.path,
                STATS_KEY,
                {"totalVisits": Increment(1), "lastVisitTime": ServerTimestamp()},
                merge=True,
            )
            doc = self.store.get(self.path, STATS_KEY)
        except TransientStoreError:
            logger.exception("Error updating visit stats")
            self.stale = True
            return self.last_stats

        if doc is not None:
            stats = VisitStats.model_validate(doc)
            # the read follows our own increment, so an empty counter still counts this visit;
            # the timestamp only ever comes from the store clock
            self.last_stats = VisitStats(
                total_visits=stats.total_visits or 1,
                last_visit_time=stats.last_visit_time,
            )
        self.stale = False
        return self.last_stats

    def display(self, stats: Optional[VisitStats] = None) -> dict:
        stats = stats or self.last_stats
        return {
            "total_visits": stats.total_visits,
            "last_visit": format_visit_time(stats.last_visit_time) if stats.last_visit_time else None,
        }
