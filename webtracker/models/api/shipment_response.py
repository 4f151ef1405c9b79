from datetime import datetime

from pydantic import BaseModel

from webtracker.models.domain.shipment_domain import TimelineEvent


class TrackingIdResponse(BaseModel):
    tracking_id: str


class TrackResponse(BaseModel):
    """Public tracking view; party names are masked and the address hidden."""

    tracking_id: str
    status: str
    origin: str
    destination: str
    recipient_country: str
    timeline: list[TimelineEvent]
    weight: float
    sender_name: str
    recipient_name: str
    recipient_address: str
    expected_delivery_time: datetime


class StatsResponse(BaseModel):
    total: int = 0
    pending: int = 0
    intransit: int = 0
    outfordelivery: int = 0
    delivered: int = 0
    canceled: int = 0


class ServiceStatusResponse(BaseModel):
    status: str
    service: str
