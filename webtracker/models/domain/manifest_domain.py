from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# (attribute, label shown to users) in reporting order
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("receiver_name", "Receiver Name"),
    ("receiver_phone", "Receiver Phone"),
    ("receiver_address", "Receiver Address"),
    ("receiver_country", "Receiver Country"),
    ("sender_name", "Sender Name"),
    ("sender_country", "Sender Country"),
)

MERGEABLE_FIELDS = (
    "receiver_name",
    "receiver_address",
    "receiver_phone",
    "receiver_country",
    "receiver_email",
    "receiver_id",
    "sender_name",
    "sender_country",
    "cargo_type",
)


class Manifest(BaseModel):
    """Structured party/cargo record parsed from one chat message."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    receiver_name: str = Field(default="", alias="receiverName")
    receiver_address: str = Field(default="", alias="receiverAddress")
    receiver_phone: str = Field(default="", alias="receiverPhone")
    receiver_country: str = Field(default="", alias="receiverCountry")
    receiver_email: str = Field(default="", alias="receiverEmail")
    receiver_id: str = Field(default="", alias="receiverID")
    sender_name: str = Field(default="", alias="senderName")
    sender_country: str = Field(default="", alias="senderCountry")
    cargo_type: str = Field(default="", alias="cargoType")
    weight: float = 0.0
    missing_fields: list[str] = Field(default_factory=list, exclude=True)

    @field_validator(*MERGEABLE_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("weight", mode="before")
    @classmethod
    def _coerce_weight(cls, value: Any) -> float:
        try:
            return float(value or 0)
        except (TypeError, ValueError):
            return 0.0

    def merge(self, other: "Manifest") -> None:
        """Fill only the empty fields of this manifest from `other`."""
        for name in MERGEABLE_FIELDS:
            if not getattr(self, name) and getattr(other, name):
                setattr(self, name, getattr(other, name))
        if self.weight == 0 and other.weight > 0:
            self.weight = other.weight

    def check_required(self) -> list[str]:
        """Recompute and return the labels of missing required fields."""
        self.missing_fields = [label for attr, label in REQUIRED_FIELDS if not getattr(self, attr)]
        return self.missing_fields

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields


@dataclass(slots=True)
class Job:
    """One admitted inbound message waiting for a worker."""

    chat_id: str
    sender_id: str
    message_id: str
    text: str
    sender_phone: str
    is_admin: bool = False
