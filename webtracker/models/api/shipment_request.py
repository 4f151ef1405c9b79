from pydantic import BaseModel, ConfigDict, Field

from webtracker.models.domain.shipment_domain import ShipmentStatus


class ShipmentCreateRequest(BaseModel):
    """Body of POST /api/shipments as sent by the admin dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    sender_name: str = Field(default="", alias="senderName")
    sender_country: str = Field(default="", alias="senderCountry")
    receiver_name: str = Field(default="", alias="receiverName")
    receiver_country: str = Field(default="", alias="receiverCountry")
    receiver_phone: str = Field(default="", alias="number")
    receiver_email: str = Field(default="", alias="email")
    receiver_address: str = Field(default="", alias="address")
    cargo_type: str = Field(default="", alias="cargoType")
    # Accepted for compatibility; stored weight is always fixed
    weight: float = 0.0


class ShipmentUpdateRequest(BaseModel):
    """Partial update; empty or missing fields leave the stored value alone."""

    status: ShipmentStatus | None = None
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


class ParseRequest(BaseModel):
    text: str = ""
