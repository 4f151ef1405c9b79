"""
Receipts for new shipments.

Image rendering is an external capability; the text waybill below is always
available and is what the bot sends when no renderer is configured or the
renderer fails.
"""

from functools import partial
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from webtracker.models.domain.shipment_domain import Shipment
from webtracker.services.i18n import date_format, translate

BORDER = "================================="
LABEL_WIDTH = 17


@runtime_checkable
class ReceiptRenderer(Protocol):
    def render(self, shipment: Shipment, company: str, language: str) -> bytes: ...


def _local_date(shipment: Shipment, value, language: str) -> str:
    try:
        zone = ZoneInfo(shipment.sender_timezone or "UTC")
    except ZoneInfoNotFoundError:
        zone = ZoneInfo("UTC")
    return value.astimezone(zone).strftime(date_format(language))


def _line(label: str, value: str) -> str:
    return f"{(label + ':').ljust(LABEL_WIDTH)} {value or '-'}"


def waybill(shipment: Shipment, company: str, language: str = "en") -> str:
    """Fixed-width text waybill with localised labels."""
    t = partial(translate, language)

    lines = [
        BORDER,
        f"{company.upper()} LOGISTICS".center(len(BORDER)).rstrip(),
        BORDER,
        "",
        _line("TRACKING", shipment.tracking_id),
        _line("STATUS", shipment.status.upper()),
        _line(t("receipt_dep_date"), _local_date(shipment, shipment.scheduled_transit_time, language)),
        _line(t("receipt_arr_date"), _local_date(shipment, shipment.expected_delivery_time, language)),
        "",
        f"--- {t('receipt_sender')} ---",
        _line("NAME", shipment.sender_name),
        _line(t("receipt_origin"), shipment.origin),
        "",
        f"--- {t('receipt_receiver')} ---",
        _line("NAME", shipment.recipient_name),
        _line(t("receipt_phone"), shipment.recipient_phone),
        _line(t("receipt_email"), shipment.recipient_email),
        _line(t("receipt_address"), shipment.recipient_address),
        _line(t("receipt_destination"), shipment.destination),
        "",
        _line(t("receipt_content"), shipment.cargo_type),
        _line(t("receipt_weight"), f"{shipment.weight:g} KG"),
        BORDER,
        "THANK YOU FOR SHIPPING!".center(len(BORDER)).rstrip(),
        BORDER,
    ]
    return "\n".join(lines)
