"""
Shipment creation shared by the chat workers and the admin API.
"""

from datetime import datetime, timedelta

from webtracker.db.helpers import utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.domain.manifest_domain import Manifest
from webtracker.models.domain.shipment_domain import FIXED_WEIGHT_KG, STATUS_PENDING, Shipment
from webtracker.repositories.shipment_repository import ShipmentRepository
from webtracker.services.identity import generate_tracking_id
from webtracker.services.schedule_service import compute_schedule

logger = get_logger(__name__)

MAX_ID_ATTEMPTS = 5

# Owner of shipments created over HTTP
DASHBOARD_USER = "admin-ui"
DASHBOARD_DEDUPE_WINDOW = timedelta(seconds=120)


class ShipmentService:
    def __init__(self, shipments: ShipmentRepository, prefix: str):
        self.shipments = shipments
        self.prefix = prefix

    async def _unused_tracking_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            tracking_id = generate_tracking_id(self.prefix)
            if await self.shipments.get(tracking_id) is None:
                return tracking_id
        logger.warning("Tracking id collisions exhausted attempts", prefix=self.prefix)
        return generate_tracking_id(self.prefix)

    async def create_from_manifest(
        self,
        manifest: Manifest,
        user_jid: str,
        sender_phone: str = "",
        now: datetime | None = None,
    ) -> Shipment:
        """Schedule, persist and return a new pending shipment."""
        now = now or utc_now()
        schedule = compute_schedule(now, manifest.sender_country, manifest.receiver_country)

        shipment = Shipment(
            tracking_id=await self._unused_tracking_id(),
            user_jid=user_jid,
            status=STATUS_PENDING,
            created_at=now,
            scheduled_transit_time=schedule.scheduled_transit_time,
            out_for_delivery_time=schedule.out_for_delivery_time,
            expected_delivery_time=schedule.expected_delivery_time,
            sender_timezone=schedule.sender_timezone,
            recipient_timezone=schedule.recipient_timezone,
            sender_name=manifest.sender_name,
            sender_phone=sender_phone,
            origin=manifest.sender_country,
            recipient_name=manifest.receiver_name,
            recipient_phone=manifest.receiver_phone,
            recipient_email=manifest.receiver_email,
            recipient_id=manifest.receiver_id,
            recipient_address=manifest.receiver_address,
            destination=manifest.receiver_country,
            cargo_type=manifest.cargo_type,
            weight=FIXED_WEIGHT_KG,
        )
        await self.shipments.create(shipment)
        return shipment

    # =================================================================
    # DASHBOARD
    # =================================================================

    async def _recent_dashboard_duplicate(self, manifest: Manifest, now: datetime) -> str | None:
        existing_id = await self.shipments.find_similar(DASHBOARD_USER, manifest.receiver_phone)
        if not existing_id:
            return None
        existing = await self.shipments.get(existing_id)
        if existing is None or now - existing.created_at >= DASHBOARD_DEDUPE_WINDOW:
            return None
        if existing.sender_name != manifest.sender_name or existing.recipient_name != manifest.receiver_name:
            return None
        return existing_id

    async def create_from_dashboard(self, manifest: Manifest, now: datetime | None = None) -> str:
        """
        Create a shipment for the admin dashboard.

        A resubmission with the same names and receiver phone inside the dedupe
        window returns the earlier tracking id instead of creating a new row.
        """
        now = now or utc_now()
        existing_id = await self._recent_dashboard_duplicate(manifest, now)
        if existing_id:
            logger.info(
                "Prevented duplicate dashboard shipment",
                tracking_id=existing_id,
                sender=manifest.sender_name,
                receiver=manifest.receiver_name,
            )
            return existing_id

        shipment = await self.create_from_manifest(manifest, user_jid=DASHBOARD_USER, now=now)
        return shipment.tracking_id

    async def apply_update(self, tracking_id: str, changes: dict) -> Shipment | None:
        """Overwrite the non-empty fields in `changes`; None when the id is unknown."""
        shipment = await self.shipments.get(tracking_id)
        if shipment is None:
            return None

        updates = {key: value for key, value in changes.items() if value}
        updates.pop("weight", None)
        if not updates:
            return shipment

        updated = shipment.model_copy(update=updates)
        await self.shipments.update(updated)
        logger.info("Shipment updated", tracking_id=tracking_id, fields=sorted(updates))
        return updated
