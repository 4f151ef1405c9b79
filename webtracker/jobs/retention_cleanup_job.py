"""
Retention cleanup job.

Removes delivered shipments after the delivered-retention window and every
shipment older than the maximum retention age.
"""

from datetime import datetime

from webtracker.db.helpers import utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.repositories import Store

logger = get_logger(__name__)


class RetentionCleanupJob:
    def __init__(self, store: Store, delivered_retention_hours: int = 48, max_retention_days: int = 7):
        self.store = store
        self.delivered_retention_hours = delivered_retention_hours
        self.max_retention_days = max_retention_days
        self.is_running = False
        self.last_run_time: datetime | None = None

    async def run_once(self, now: datetime | None = None) -> dict:
        if self.is_running:
            logger.warning("Retention cleanup job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        try:
            now = now or utc_now()
            logger.info(
                "Starting retention cleanup",
                delivered_retention_hours=self.delivered_retention_hours,
                max_retention_days=self.max_retention_days,
            )
            removed = await self.store.shipments.prune_aged(
                now,
                delivered_retention_hours=self.delivered_retention_hours,
                max_retention_days=self.max_retention_days,
            )
            self.last_run_time = now
            return removed
        finally:
            self.is_running = False
