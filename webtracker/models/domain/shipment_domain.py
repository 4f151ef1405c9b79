from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

STATUS_PENDING = "pending"
STATUS_INTRANSIT = "intransit"
STATUS_OUT_FOR_DELIVERY = "outfordelivery"
STATUS_DELIVERED = "delivered"
STATUS_CANCELED = "canceled"

ShipmentStatus = Literal["pending", "intransit", "outfordelivery", "delivered", "canceled"]

ALL_STATUSES: tuple[str, ...] = (
    STATUS_PENDING,
    STATUS_INTRANSIT,
    STATUS_OUT_FOR_DELIVERY,
    STATUS_DELIVERED,
    STATUS_CANCELED,
)

# Every stored shipment weighs exactly this much.
FIXED_WEIGHT_KG = 15.0


class Shipment(BaseModel):
    """A tracked package with its precomputed lifecycle instants (all UTC)."""

    tracking_id: str
    user_jid: str = Field(default="", exclude=True)
    status: ShipmentStatus = STATUS_PENDING

    created_at: datetime
    scheduled_transit_time: datetime
    out_for_delivery_time: datetime
    expected_delivery_time: datetime
    updated_at: datetime | None = None

    sender_timezone: str = "UTC"
    recipient_timezone: str = "UTC"

    sender_name: str = ""
    sender_phone: str = ""
    origin: str = ""
    recipient_name: str = ""
    recipient_phone: str = ""
    recipient_email: str = ""
    recipient_id: str = ""
    recipient_address: str = ""
    destination: str = ""

    cargo_type: str = ""
    weight: float = FIXED_WEIGHT_KG
    cost: float = 0.0


class TimelineEvent(BaseModel):
    """One derived tracking step; never persisted."""

    status: str
    timestamp: datetime
    description: str
    is_completed: bool
