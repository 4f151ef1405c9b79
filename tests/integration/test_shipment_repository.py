from datetime import timedelta

import pytest

from tests.support import ADMIN_PHONE, make_shipment
from webtracker.db.helpers import utc_now
from webtracker.repositories.shipment_repository import ShipmentRepositoryError

USER = f"{ADMIN_PHONE}@s.whatsapp.net"


@pytest.mark.asyncio
async def test_create_and_get_roundtrip(store):
    shipment = make_shipment(weight=99.0)

    await store.shipments.create(shipment)
    loaded = await store.shipments.get(shipment.tracking_id)

    assert loaded is not None
    assert loaded.user_jid == USER
    assert loaded.recipient_name == "Jane Smith"
    assert loaded.weight == 15.0
    assert loaded.scheduled_transit_time == shipment.scheduled_transit_time
    assert loaded.updated_at is not None


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.shipments.get("AWB-000000000") is None


@pytest.mark.asyncio
async def test_advance_status_is_conditional(store):
    await store.shipments.create(make_shipment())

    assert await store.shipments.advance_status("AWB-100000001", "pending", "intransit") is True
    assert await store.shipments.advance_status("AWB-100000001", "pending", "intransit") is False

    loaded = await store.shipments.get("AWB-100000001")
    assert loaded.status == "intransit"


@pytest.mark.asyncio
async def test_update_field_allow_list(store):
    await store.shipments.create(make_shipment())

    assert await store.shipments.update_field("AWB-100000001", "recipient_name", "Ada Obi") is True
    assert (await store.shipments.get("AWB-100000001")).recipient_name == "Ada Obi"

    with pytest.raises(ShipmentRepositoryError):
        await store.shipments.update_field("AWB-100000001", "weight", "20")


@pytest.mark.asyncio
async def test_ready_for_transition_respects_due_instant(store):
    now = utc_now()
    await store.shipments.create(make_shipment("AWB-100000001", now=now - timedelta(hours=2)))
    await store.shipments.create(make_shipment("AWB-100000002", now=now))

    ready = await store.shipments.ready_for_transition("pending", now)

    assert ready == ["AWB-100000001"]
    assert await store.shipments.ready_for_transition("intransit", now) == []


@pytest.mark.asyncio
async def test_ready_for_transition_rejects_terminal_status(store):
    with pytest.raises(ShipmentRepositoryError):
        await store.shipments.ready_for_transition("delivered", utc_now())


@pytest.mark.asyncio
async def test_find_similar_and_last_tracking(store):
    now = utc_now()
    await store.shipments.create(make_shipment("AWB-100000001", now=now - timedelta(minutes=5)))
    await store.shipments.create(make_shipment("AWB-100000002", now=now))

    assert await store.shipments.find_similar(USER, "+234 800 123 4567") == "AWB-100000002"
    assert await store.shipments.find_similar(USER, "+234 800 000 0000") is None
    assert await store.shipments.find_similar("other@s.whatsapp.net", "+234 800 123 4567") is None
    assert await store.shipments.last_tracking_for(USER) == "AWB-100000002"


@pytest.mark.asyncio
async def test_count_by_status(store):
    await store.shipments.create(make_shipment("AWB-100000001"))
    await store.shipments.create(make_shipment("AWB-100000002", status="delivered"))
    await store.shipments.create(make_shipment("AWB-100000003", status="delivered"))

    counts = await store.shipments.count_by_status()

    assert counts["pending"] == 1
    assert counts["delivered"] == 2
    assert counts["intransit"] == 0
    assert counts["total"] == 3


@pytest.mark.asyncio
async def test_prune_removes_old_delivered_and_aged(store):
    now = utc_now()
    await store.shipments.create(make_shipment("AWB-100000001", status="delivered"))
    await store.shipments.create(make_shipment("AWB-100000002"))
    await store.shipments.create(make_shipment("AWB-100000003", now=now - timedelta(days=8)))

    result = await store.shipments.prune_aged(now=now + timedelta(hours=49))

    assert result == {"delivered": 1, "aged": 1, "total": 2}
    assert await store.shipments.get("AWB-100000002") is not None


@pytest.mark.asyncio
async def test_prune_keeps_recent_delivered(store):
    await store.shipments.create(make_shipment(status="delivered"))

    result = await store.shipments.prune_aged()

    assert result["total"] == 0


@pytest.mark.asyncio
async def test_preferences_and_system_config(store):
    assert await store.preferences.get_language(USER) == "en"
    await store.preferences.set_language(USER, "pt")
    assert await store.preferences.get_language(USER) == "pt"

    assert await store.system_config.get("bot_lid") == ""
    await store.system_config.set("bot_lid", "12345@lid")
    assert await store.system_config.get("bot_lid") == "12345@lid"
