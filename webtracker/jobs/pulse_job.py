"""
Pulse job: advances shipments whose scheduled instant has passed and notifies
the chat that registered them.

Phases run in order (pending -> intransit -> outfordelivery -> delivered), so an
overdue shipment can move through several of them in one run. Every step is
conditional on the current status, so a second instance cannot repeat it.
"""

from datetime import datetime

from webtracker.db.helpers import DatabaseError, utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.infrastructure.observability.vitals import vitals
from webtracker.models.domain.shipment_domain import (
    STATUS_DELIVERED,
    STATUS_INTRANSIT,
    STATUS_OUT_FOR_DELIVERY,
)
from webtracker.repositories import Store
from webtracker.repositories.shipment_repository import TRANSITIONS
from webtracker.services.transport import Sender, is_chat_address

logger = get_logger(__name__)

PULSE_INTERVAL_SECONDS = 120

STATUS_ALERTS = {
    STATUS_INTRANSIT: (
        "🚚 *Status Update*\nID: *{tracking_id}*\n\n"
        "Your package is now *IN TRANSIT*. Our team is handling it at the origin center."
    ),
    STATUS_OUT_FOR_DELIVERY: (
        "📦 *Status Update*\nID: *{tracking_id}*\n\n"
        "Your package is *OUT FOR DELIVERY*! Our local agent will contact you shortly."
    ),
    STATUS_DELIVERED: (
        "✅ *Package Delivered*\nID: *{tracking_id}*\n\n"
        "Your shipment has arrived at the destination. Thank you for choosing our service!"
    ),
}


class PulseJob:
    def __init__(self, store: Store, sender: Sender | None = None):
        self.store = store
        self.sender = sender
        self.is_running = False
        self.last_run_time: datetime | None = None

    async def run_once(self, now: datetime | None = None) -> dict:
        if self.is_running:
            logger.warning("Pulse job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        now = now or utc_now()
        metrics = {"advanced": 0, "notified": 0, "errors": 0}
        try:
            for status, (_, next_status) in TRANSITIONS.items():
                await self._advance_phase(status, next_status, now, metrics)
            self.last_run_time = now
            if metrics["advanced"]:
                logger.info("Pulse job completed", **metrics)
            return metrics
        finally:
            self.is_running = False

    async def _advance_phase(self, status: str, next_status: str, now: datetime, metrics: dict) -> None:
        try:
            due = await self.store.shipments.ready_for_transition(status, now)
        except DatabaseError as e:
            metrics["errors"] += 1
            logger.error("Pulse query failed", status=status, error=str(e))
            return

        for tracking_id in due:
            try:
                advanced = await self.store.shipments.advance_status(tracking_id, status, next_status)
            except DatabaseError as e:
                metrics["errors"] += 1
                logger.error("Status transition failed", tracking_id=tracking_id, error=str(e))
                continue
            if not advanced:
                continue

            vitals.inc_transition()
            metrics["advanced"] += 1
            logger.info("Shipment advanced", tracking_id=tracking_id, status=next_status)

            if await self._notify(tracking_id, next_status):
                metrics["notified"] += 1

    async def _notify(self, tracking_id: str, status: str) -> bool:
        if self.sender is None:
            return False
        if not self.sender.is_connected():
            logger.info("Transport disconnected, skipping notification", tracking_id=tracking_id)
            return False
        try:
            shipment = await self.store.shipments.get(tracking_id)
        except DatabaseError as e:
            logger.error("Could not load shipment for alert", tracking_id=tracking_id, error=str(e))
            return False
        # Shipments created over HTTP have no chat to notify
        if shipment is None or not is_chat_address(shipment.user_jid):
            return False
        return await self.sender.send(
            shipment.user_jid, STATUS_ALERTS[status].format(tracking_id=tracking_id)
        )
