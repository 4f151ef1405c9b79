import asyncio

import pytest

from tests.support import ADMIN_PHONE, BOT_PHONE, GROUP, FakeTransport
from webtracker.ingress.event_handler import IngressHandler
from webtracker.services.authority_cache import AuthorityCache
from webtracker.services.transport import (
    ConnectedEvent,
    JoinedGroupEvent,
    LoggedOutEvent,
    MessageEvent,
)

MEMBER_PHONE = "2348000000777"
PRIVATE_CHAT = f"{MEMBER_PHONE}@s.whatsapp.net"


def message(text: str, sender: str = MEMBER_PHONE, chat: str = GROUP, from_me: bool = False):
    return MessageEvent(
        chat_id=chat,
        sender_id=f"{sender}@s.whatsapp.net",
        message_id="m1",
        text=text,
        is_from_me=from_me,
    )


@pytest.fixture
def transport():
    transport = FakeTransport()
    transport.add_group(GROUP, bot_admin=True, admins=(ADMIN_PHONE,))
    return transport


@pytest.fixture
def make_handler(transport, store):
    def build(allow_private_chat: bool = False) -> IngressHandler:
        return IngressHandler(
            asyncio.Queue(maxsize=10),
            AuthorityCache(transport, store),
            asyncio.Event(),
            allow_private_chat=allow_private_chat,
        )

    return build


@pytest.mark.asyncio
async def test_blank_message_dropped(make_handler):
    assert await make_handler().admit(message("   ")) is None


@pytest.mark.asyncio
async def test_group_message_admitted_as_non_admin(make_handler):
    job = await make_handler().admit(message("  Sender Name: John  "))

    assert job is not None
    assert job.text == "Sender Name: John"
    assert job.sender_phone == MEMBER_PHONE
    assert job.is_admin is False


@pytest.mark.asyncio
async def test_group_command_from_admin(make_handler):
    job = await make_handler().admit(message("!stats", sender=ADMIN_PHONE))

    assert job.is_admin is True


@pytest.mark.asyncio
async def test_group_command_from_member(make_handler):
    job = await make_handler().admit(message("!stats"))

    assert job.is_admin is False


@pytest.mark.asyncio
async def test_group_where_bot_is_not_admin_is_ignored(transport, make_handler):
    transport.add_group(GROUP, bot_admin=False)

    assert await make_handler().admit(message("hello")) is None


@pytest.mark.asyncio
async def test_unknown_group_is_ignored(make_handler):
    assert await make_handler().admit(message("hello", chat="999@g.us")) is None


@pytest.mark.asyncio
async def test_own_message_is_admin(make_handler):
    job = await make_handler().admit(message("!help", sender=BOT_PHONE, from_me=True))

    assert job.is_admin is True
    assert job.sender_phone == BOT_PHONE


@pytest.mark.asyncio
async def test_private_chat_allowed_before_any_group(make_handler):
    job = await make_handler().admit(message("hello", chat=PRIVATE_CHAT))

    assert job is not None
    assert job.is_admin is False


@pytest.mark.asyncio
async def test_private_chat_blocked_once_a_group_is_authorized(make_handler):
    handler = make_handler()
    await handler.authority.verify(GROUP)

    assert await handler.admit(message("hello", chat=PRIVATE_CHAT)) is None
    assert await make_handler(allow_private_chat=True).admit(message("hi", chat=PRIVATE_CHAT))


@pytest.mark.asyncio
async def test_handle_enqueues_admitted_jobs(make_handler):
    handler = make_handler()

    await handler.handle(message("Receiver Name: Jane"))
    await handler.handle(message(""))

    assert handler.queue.qsize() == 1


@pytest.mark.asyncio
async def test_lifecycle_events(transport, make_handler):
    handler = make_handler()

    await handler.handle(ConnectedEvent())
    assert handler.connected.is_set()

    await handler.handle(JoinedGroupEvent(chat_id=GROUP))
    assert await handler.authority.is_authorized(GROUP) is True

    await handler.handle(LoggedOutEvent(reason="device removed"))
    assert handler.stop_event.is_set()
    assert not handler.connected.is_set()
