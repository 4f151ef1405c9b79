"""
Public tracking view: name masking and the derived three-step timeline.
"""

from datetime import datetime

from webtracker.db.helpers import utc_now
from webtracker.models.api.shipment_response import TrackResponse
from webtracker.models.domain.shipment_domain import (
    STATUS_DELIVERED,
    STATUS_INTRANSIT,
    STATUS_OUT_FOR_DELIVERY,
    Shipment,
    TimelineEvent,
)

ADDRESS_NOTICE = "Redacted for privacy"


def redact_name(name: str) -> str:
    """First two characters of the first word, then a mask."""
    if not name:
        return "N/A"
    first = name.split(" ")[0]
    if len(first) <= 2:
        return first + "***"
    return first[:2] + "******"


def build_timeline(shipment: Shipment, now: datetime | None = None) -> list[TimelineEvent]:
    now = now or utc_now()

    in_transit_done = now > shipment.scheduled_transit_time or shipment.status in (
        STATUS_INTRANSIT,
        STATUS_OUT_FOR_DELIVERY,
        STATUS_DELIVERED,
    )
    delivered_done = now > shipment.expected_delivery_time or shipment.status == STATUS_DELIVERED

    return [
        TimelineEvent(
            status="Order Placed",
            timestamp=shipment.created_at,
            description=f"Shipment registered at {shipment.origin}",
            is_completed=True,
        ),
        TimelineEvent(
            status="In Transit",
            timestamp=shipment.scheduled_transit_time,
            description="Package has left the origin facility and is on its way",
            is_completed=in_transit_done,
        ),
        TimelineEvent(
            status="Delivered",
            timestamp=shipment.expected_delivery_time,
            description="Package has arrived at the destination",
            is_completed=delivered_done,
        ),
    ]


def public_view(shipment: Shipment, now: datetime | None = None) -> TrackResponse:
    return TrackResponse(
        tracking_id=shipment.tracking_id,
        status=shipment.status,
        origin=shipment.origin,
        destination=shipment.destination,
        recipient_country=shipment.destination,
        timeline=build_timeline(shipment, now),
        weight=shipment.weight,
        sender_name=redact_name(shipment.sender_name),
        recipient_name=redact_name(shipment.recipient_name),
        recipient_address=ADDRESS_NOTICE,
        expected_delivery_time=shipment.expected_delivery_time,
    )
