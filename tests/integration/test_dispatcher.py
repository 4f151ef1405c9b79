import pytest

from tests.support import ADMIN_PHONE, GROUP, OWNER_PHONE, make_shipment
from webtracker.commands.base import CommandContext

ADMIN_JID = f"{ADMIN_PHONE}@s.whatsapp.net"


def admin_ctx(**overrides) -> CommandContext:
    values = {"chat_id": GROUP, "sender_id": ADMIN_JID, "sender_phone": ADMIN_PHONE, "is_admin": True}
    values.update(overrides)
    return CommandContext(**values)


def member_ctx() -> CommandContext:
    return CommandContext(
        chat_id=GROUP,
        sender_id="2348000000777@s.whatsapp.net",
        sender_phone="2348000000777",
        is_admin=False,
    )


def owner_ctx() -> CommandContext:
    return CommandContext(
        chat_id=GROUP,
        sender_id=f"{OWNER_PHONE}@s.whatsapp.net",
        sender_phone=OWNER_PHONE,
        is_admin=True,
    )


@pytest.mark.asyncio
async def test_non_command_text_is_ignored(dispatcher):
    assert await dispatcher.dispatch(admin_ctx(), "hello there") is None
    assert await dispatcher.dispatch(admin_ctx(), "!") is None
    assert await dispatcher.dispatch(admin_ctx(), "!unknown") is None


@pytest.mark.asyncio
async def test_public_help_for_members(dispatcher):
    result = await dispatcher.dispatch(member_ctx(), "#help")

    assert "CUSTOMER SERVICE" in result.message
    assert "AIRWAYBILL" in result.message


@pytest.mark.asyncio
async def test_admin_command_denied_for_members(dispatcher):
    result = await dispatcher.dispatch(member_ctx(), "!stats")

    assert "ACCESS DENIED" in result.message


@pytest.mark.asyncio
async def test_owner_command_denied_for_admins(dispatcher):
    result = await dispatcher.dispatch(admin_ctx(), "!broadcast hello")

    assert "OWNER ACCESS ONLY" in result.message


@pytest.mark.asyncio
async def test_rate_limit_after_five_commands(dispatcher):
    for _ in range(5):
        result = await dispatcher.dispatch(member_ctx(), "!help")
        assert "RATE LIMIT" not in result.message

    result = await dispatcher.dispatch(member_ctx(), "!help")

    assert "RATE LIMIT REACHED" in result.message


@pytest.mark.asyncio
async def test_owner_is_not_rate_limited(dispatcher):
    for _ in range(7):
        result = await dispatcher.dispatch(owner_ctx(), "!help")

    assert "ADMIN CONTROL PANEL" in result.message


@pytest.mark.asyncio
async def test_stats_counts_today(dispatcher, store):
    await store.shipments.create(make_shipment("AWB-100000001"))
    await store.shipments.create(make_shipment("AWB-100000002", status="intransit"))

    result = await dispatcher.dispatch(admin_ctx(), "!stats")

    assert "PENDING:    *1*" in result.message
    assert "IN TRANSIT: *1*" in result.message
    assert "TOTAL:      *2*" in result.message


@pytest.mark.asyncio
async def test_stats_rejects_arguments(dispatcher):
    result = await dispatcher.dispatch(admin_ctx(), "!stats now")

    assert "INCORRECT USAGE" in result.message


@pytest.mark.asyncio
async def test_info_lookup(dispatcher, store):
    await store.shipments.create(make_shipment())

    found = await dispatcher.dispatch(member_ctx(), "!info awb-100000001")
    missing = await dispatcher.dispatch(member_ctx(), "!info AWB-999999999")

    assert "AWB-100000001" in found.message
    assert found.message.startswith("```")
    assert "NOT FOUND" in missing.message


@pytest.mark.asyncio
async def test_lang_persists_preference(dispatcher, store):
    result = await dispatcher.dispatch(admin_ctx(), "!lang PT")

    assert "*PT*" in result.message
    assert await store.preferences.get_language(ADMIN_JID) == "pt"

    result = await dispatcher.dispatch(admin_ctx(), "!lang fr")
    assert "UNSUPPORTED LANGUAGE" in result.message


@pytest.mark.asyncio
async def test_edit_last_shipment(dispatcher, store):
    await store.shipments.create(make_shipment())

    result = await dispatcher.dispatch(admin_ctx(), "!edit name Ada Obi")

    assert "INFORMATION UPDATED" in result.message
    assert result.edit_id == "AWB-100000001"
    assert (await store.shipments.get("AWB-100000001")).recipient_name == "Ada Obi"


@pytest.mark.asyncio
async def test_edit_specific_id(dispatcher, store):
    await store.shipments.create(make_shipment())

    result = await dispatcher.dispatch(admin_ctx(), "!edit AWB-100000001 origin Ghana")

    assert result.edit_id == "AWB-100000001"
    assert (await store.shipments.get("AWB-100000001")).origin == "Ghana"


@pytest.mark.asyncio
async def test_edit_hyphenated_field_targets_last_shipment(dispatcher, store):
    await store.shipments.create(make_shipment())

    result = await dispatcher.dispatch(admin_ctx(), "!edit e-mail ada@example.com")

    assert "INFORMATION UPDATED" in result.message
    assert result.edit_id == "AWB-100000001"
    assert (await store.shipments.get("AWB-100000001")).recipient_email == "ada@example.com"


@pytest.mark.asyncio
async def test_edit_refusals(dispatcher, store):
    await store.shipments.create(make_shipment())

    weight = await dispatcher.dispatch(admin_ctx(), "!edit weight 20")
    unknown = await dispatcher.dispatch(admin_ctx(), "!edit colour blue")
    phone = await dispatcher.dispatch(admin_ctx(), "!edit phone 12")
    email = await dispatcher.dispatch(admin_ctx(), "!edit email not-an-email")

    assert "FIELD LOCKED" in weight.message
    assert "UNKNOWN FIELD" in unknown.message
    assert "INVALID PHONE" in phone.message
    assert "INVALID EMAIL" in email.message
    assert weight.edit_id == ""


@pytest.mark.asyncio
async def test_edit_without_history(dispatcher):
    result = await dispatcher.dispatch(admin_ctx(), "!edit name Ada")

    assert "NO RECORD FOUND" in result.message


@pytest.mark.asyncio
async def test_delete(dispatcher, store):
    await store.shipments.create(make_shipment())

    result = await dispatcher.dispatch(admin_ctx(), "!delete AWB-100000001")

    assert "SHIPMENT DELETED" in result.message
    assert await store.shipments.get("AWB-100000001") is None


@pytest.mark.asyncio
async def test_broadcast_to_authorized_groups(dispatcher, store, fake_transport):
    await store.authorities.set(GROUP, True)
    await store.authorities.set("120363000000000002@g.us", False)

    result = await dispatcher.dispatch(owner_ctx(), "!broadcast Office closed today")

    assert "Sent to: *1*" in result.message
    texts = fake_transport.texts(GROUP)
    assert len(texts) == 1
    assert "Office closed today" in texts[0]


@pytest.mark.asyncio
async def test_status_for_owner(dispatcher):
    result = await dispatcher.dispatch(owner_ctx(), "!status")

    assert "SYSTEM DASHBOARD" in result.message
    assert "ONLINE" in result.message
    assert "PEAK MEM:" in result.message
