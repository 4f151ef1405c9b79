from datetime import timedelta

from tests.support import make_shipment
from webtracker.db.helpers import utc_now
from webtracker.services.tracking_service import build_timeline, public_view, redact_name


def test_redact_name():
    assert redact_name("Jane Smith") == "Ja******"
    assert redact_name("Al Green") == "Al***"
    assert redact_name("") == "N/A"


def test_public_view_hides_personal_data():
    view = public_view(make_shipment(sender_name="John Doe", recipient_name="Jane Smith"))

    assert view.sender_name == "Jo******"
    assert view.recipient_name == "Ja******"
    assert view.recipient_address == "Redacted for privacy"
    assert view.recipient_country == "Nigeria"
    assert view.weight == 15.0
    assert "recipient_phone" not in view.model_dump()


def test_timeline_for_new_shipment():
    shipment = make_shipment()

    events = build_timeline(shipment, now=shipment.created_at)

    assert [e.status for e in events] == ["Order Placed", "In Transit", "Delivered"]
    assert [e.is_completed for e in events] == [True, False, False]
    assert events[0].description == "Shipment registered at UK"


def test_timeline_after_scheduled_transit():
    shipment = make_shipment()

    events = build_timeline(shipment, now=shipment.scheduled_transit_time + timedelta(minutes=1))

    assert [e.is_completed for e in events] == [True, True, False]


def test_timeline_follows_status_even_before_schedule():
    shipment = make_shipment(status="delivered")

    events = build_timeline(shipment, now=utc_now() - timedelta(days=1))

    assert [e.is_completed for e in events] == [True, True, True]
