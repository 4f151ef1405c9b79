import pytest

from tests.support import BOT_PHONE, FakeTransport, StubGemini
from webtracker.config import Settings
from webtracker.runtime import Application
from webtracker.services.transport import MessageEvent

CUSTOMER_CHAT = "2348000000777@s.whatsapp.net"

MANIFEST = """Sender Name: John Doe
Sender Country: UK
Receiver Name: Jane Smith
Receiver Phone: +234 800 123 4567
Receiver Address: 12 Marina Road, Lagos
Receiver Country: Nigeria"""


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_PATH": str(tmp_path / "runtime.db"),
        "WHATSAPP_PAIRING_PHONE": f"+{BOT_PHONE}",
        "TRACKING_BASE_URL": "https://track.example/",
        "WORKER_POOL_SIZE": 2,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.mark.asyncio
async def test_api_only_without_transport(tmp_path):
    gemini = StubGemini()
    app = Application(make_settings(tmp_path), gemini=gemini)

    await app.start()
    try:
        assert app.bot_enabled is False
        assert app.bot_state() == {"enabled": False, "connected": False}
        assert app.shipments is not None
        assert app.pool is None
    finally:
        await app.shutdown()

    assert gemini.closed is True
    assert app.started is False


@pytest.mark.asyncio
async def test_unpaired_transport_requests_pairing_code(tmp_path):
    transport = FakeTransport(own_id="", connected=False)
    app = Application(make_settings(tmp_path), transport=transport, gemini=StubGemini(), sender_jitter=(0, 0))

    await app.start()
    try:
        assert transport.connected is True
        assert transport.paired_with == BOT_PHONE
        assert transport.handlers == [app.ingress.handle]
        assert app.bot_state()["paired"] is False
    finally:
        await app.shutdown()

    assert transport.connected is False


@pytest.mark.asyncio
async def test_message_flows_from_transport_to_receipt(tmp_path):
    transport = FakeTransport()
    app = Application(make_settings(tmp_path), transport=transport, gemini=StubGemini(), sender_jitter=(0, 0))

    await app.start()
    try:
        handler = transport.handlers[0]
        await handler(
            MessageEvent(
                chat_id=CUSTOMER_CHAT,
                sender_id=CUSTOMER_CHAT,
                message_id="m1",
                text=MANIFEST,
            )
        )
        await app.queue.join()

        shipments = await app.store.shipments.list_all()
        assert len(shipments) == 1
        tracking_id = shipments[0].tracking_id
        texts = transport.texts(CUSTOMER_CHAT)
        assert "Manifest Created" in texts[0]
        assert f"https://track.example/?id={tracking_id}" in texts[1]
    finally:
        await app.shutdown()


@pytest.mark.asyncio
async def test_scheduler_registers_core_tasks(tmp_path):
    app = Application(make_settings(tmp_path, HEALTHCHECK_URL="https://hc.example/ping"), gemini=StubGemini())

    await app.start()
    try:
        assert set(app.scheduler.tasks) == {"pulse", "daily_report", "retention_cleanup", "heartbeat"}
    finally:
        await app.shutdown()
