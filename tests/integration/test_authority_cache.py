from datetime import timedelta

import pytest

from tests.support import ADMIN_PHONE, GROUP, OWNER_PHONE, FakeTransport
from webtracker.db.helpers import utc_now
from webtracker.services.authority_cache import AuthorityCache


@pytest.fixture
def transport():
    transport = FakeTransport()
    transport.add_group(GROUP, bot_admin=True, admins=(ADMIN_PHONE,))
    return transport


@pytest.fixture
def cache(transport, store):
    return AuthorityCache(transport, store)


@pytest.mark.asyncio
async def test_verify_marks_admin_bot_authorized(cache, store):
    assert await cache.verify(GROUP) is True

    assert await cache.is_authorized(GROUP) is True
    assert await store.authorities.get(GROUP) is True
    assert cache.group_admins(GROUP) == {"2348000000001", ADMIN_PHONE, OWNER_PHONE}


@pytest.mark.asyncio
async def test_verify_rejects_non_admin_bot(transport, cache):
    transport.add_group(GROUP, bot_admin=False)

    assert await cache.verify(GROUP) is False
    assert await cache.is_authorized(GROUP) is False


@pytest.mark.asyncio
async def test_owner_bot_is_authorized(store):
    transport = FakeTransport(own_id=f"{OWNER_PHONE}@s.whatsapp.net")
    transport.add_group(GROUP, bot_admin=False)

    assert await AuthorityCache(transport, store).verify(GROUP) is True


@pytest.mark.asyncio
async def test_unknown_group_is_none(cache):
    assert await cache.is_authorized("999@g.us") is None


@pytest.mark.asyncio
async def test_fetch_failure_returns_false_without_caching(cache):
    assert await cache.verify("999@g.us") is False
    assert await cache.is_authorized("999@g.us") is None


@pytest.mark.asyncio
async def test_memory_miss_falls_back_to_store(transport, store):
    first = AuthorityCache(transport, store)
    await first.verify(GROUP)

    second = AuthorityCache(transport, store)
    calls = transport.group_info_calls

    assert await second.is_authorized(GROUP) is True
    assert transport.group_info_calls == calls


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(cache):
    await cache.verify(GROUP)

    assert await cache.is_authorized(GROUP, now=utc_now() + timedelta(hours=2)) is None


@pytest.mark.asyncio
async def test_check_sender_reports_admin(cache):
    await cache.verify(GROUP)

    check = await cache.check_sender(GROUP, ADMIN_PHONE)

    assert check.bot_authorized is True
    assert check.sender_is_admin is True
    assert (await cache.check_sender(GROUP, "2348000000777")).sender_is_admin is False


@pytest.mark.asyncio
async def test_check_sender_demotes_bot(transport, cache):
    await cache.verify(GROUP)
    transport.add_group(GROUP, bot_admin=False, admins=(ADMIN_PHONE,))

    check = await cache.check_sender(GROUP, ADMIN_PHONE)

    assert check.bot_authorized is False
    assert await cache.is_authorized(GROUP) is False


@pytest.mark.asyncio
async def test_check_sender_fetch_failure(cache):
    assert await cache.check_sender("999@g.us", ADMIN_PHONE) is None


@pytest.mark.asyncio
async def test_remember_alt_id_persists(cache, store):
    await cache.remember_alt_id("55501@lid")

    assert await store.system_config.get("bot_lid") == "55501@lid"
    assert cache.identity.matches("55501@lid")
