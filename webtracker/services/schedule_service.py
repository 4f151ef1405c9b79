"""
Shipment lifecycle schedule.

All three lifecycle instants are computed in the origin country's local time and
returned in UTC.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

COUNTRY_TIMEZONES = {
    "nigeria": "Africa/Lagos",
    "usa": "America/New_York",
    "uk": "Europe/London",
    "united kingdom": "Europe/London",
    "china": "Asia/Shanghai",
    "dubai": "Asia/Dubai",
    "uae": "Asia/Dubai",
}
DEFAULT_TIMEZONE = "UTC"

BUSINESS_DAY_START = 8
LAST_SAME_DAY_HOUR = 21
DELIVERY_HOUR = 10
OUT_FOR_DELIVERY_HOUR = 8
TRANSIT_DURATION = timedelta(hours=24)
SAME_DAY_DELAY = timedelta(hours=1)


@dataclass(slots=True)
class ShipmentSchedule:
    scheduled_transit_time: datetime
    out_for_delivery_time: datetime
    expected_delivery_time: datetime
    sender_timezone: str
    recipient_timezone: str


def resolve_timezone(country: str) -> str:
    return COUNTRY_TIMEZONES.get(country.strip().lower(), DEFAULT_TIMEZONE)


def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone, using UTC", timezone=name)
        return ZoneInfo(DEFAULT_TIMEZONE)


def _at(day, hour: int, zone: ZoneInfo) -> datetime:
    return datetime.combine(day, time(hour=hour), tzinfo=zone)


def compute_schedule(now_utc: datetime, origin: str, destination: str) -> ShipmentSchedule:
    """
    Transit starts at 08:00 local when created before 08:00, at 08:00 the next day
    when created at or after 21:00, and one hour after creation otherwise.
    Delivery is 10:00 local on the day 24 hours after transit start; out for
    delivery is 08:00 local on that same day.
    """
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=UTC)

    origin_tz = resolve_timezone(origin)
    zone = _load_zone(origin_tz)
    local_now = now_utc.astimezone(zone)

    if local_now.hour < BUSINESS_DAY_START:
        transit_start = _at(local_now.date(), BUSINESS_DAY_START, zone)
    elif local_now.hour >= LAST_SAME_DAY_HOUR:
        transit_start = _at(local_now.date() + timedelta(days=1), BUSINESS_DAY_START, zone)
    else:
        transit_start = (now_utc + SAME_DAY_DELAY).astimezone(zone)

    delivery_day = (transit_start.astimezone(UTC) + TRANSIT_DURATION).astimezone(zone).date()
    delivery = _at(delivery_day, DELIVERY_HOUR, zone)
    out_for_delivery = _at(delivery_day, OUT_FOR_DELIVERY_HOUR, zone)

    return ShipmentSchedule(
        scheduled_transit_time=transit_start.astimezone(UTC),
        out_for_delivery_time=out_for_delivery.astimezone(UTC),
        expected_delivery_time=delivery.astimezone(UTC),
        sender_timezone=origin_tz,
        recipient_timezone=resolve_timezone(destination),
    )
