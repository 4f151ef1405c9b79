import pytest
import pytest_asyncio

from tests.support import OWNER_PHONE, FakeTransport
from webtracker.commands import CommandDispatcher, CommandServices
from webtracker.db.pool import DatabaseManager
from webtracker.repositories import Store
from webtracker.services.command_rate_limiter import CommandRateLimiter
from webtracker.services.transport import Sender


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def sender(fake_transport):
    return Sender(fake_transport, jitter=(0, 0))


@pytest_asyncio.fixture
async def store(tmp_path):
    store = Store(DatabaseManager(str(tmp_path / "webtracker-test.db")))
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def command_services(store, sender):
    return CommandServices(
        store=store,
        sender=sender,
        company_name="Airwaybill",
        company_prefix="AWB",
        owner_phone=OWNER_PHONE,
        admin_timezone="Africa/Lagos",
    )


@pytest.fixture
def dispatcher(command_services):
    return CommandDispatcher(command_services, limiter=CommandRateLimiter(limit=5, window_seconds=60))
