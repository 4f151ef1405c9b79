"""
Daily report: shipments created and delivered in the last 24 hours, sent to
the bot owner's direct chat.
"""

from datetime import datetime, timedelta

from webtracker.db.helpers import utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.repositories import Store
from webtracker.services.transport import Sender, user_chat_id

logger = get_logger(__name__)

REPORT_WINDOW = timedelta(hours=24)

REPORT_MESSAGE = (
    "📊 *DAILY REPORT* (Last 24h)\n\n"
    "📦 *New Shipments:* {created}\n"
    "✅ *Delivered:* {delivered}\n\n"
    "_System is running smoothly._"
)


class DailyReportJob:
    def __init__(self, store: Store, sender: Sender | None, owner_phone: str):
        self.store = store
        self.sender = sender
        self.owner_phone = owner_phone
        self.is_running = False

    async def run_once(self, now: datetime | None = None) -> dict:
        if self.is_running:
            logger.warning("Daily report job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        try:
            now = now or utc_now()
            created, delivered = await self.store.shipments.count_daily(now - REPORT_WINDOW)
            metrics = {"created": created, "delivered": delivered, "sent": False}

            if not self.owner_phone:
                logger.warning("Daily report skipped: no owner phone configured")
                return metrics
            if self.sender is None or not self.sender.is_connected():
                logger.warning("Daily report skipped: chat transport not connected")
                return metrics

            metrics["sent"] = await self.sender.send(
                user_chat_id(self.owner_phone),
                REPORT_MESSAGE.format(created=created, delivered=delivered),
            )
            logger.info("Daily report completed", **metrics)
            return metrics
        finally:
            self.is_running = False
