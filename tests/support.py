"""Fakes and builders shared by the test suites."""

from datetime import timedelta

from webtracker.db.helpers import utc_now
from webtracker.models.domain.manifest_domain import Manifest
from webtracker.models.domain.shipment_domain import Shipment
from webtracker.services.gemini_service import GeminiResponseError
from webtracker.services.transport import GroupInfo, OutgoingMessage, Participant, TransportError

BOT_PHONE = "2348000000001"
OWNER_PHONE = "2348000000099"
ADMIN_PHONE = "2348000000050"
GROUP = "120363000000000001@g.us"


class FakeTransport:
    """Records outgoing traffic and serves configurable group metadata."""

    def __init__(self, own_id: str = f"{BOT_PHONE}@s.whatsapp.net", connected: bool = True):
        self._own_id = own_id
        self.connected = connected
        self.sent: list[tuple[str, OutgoingMessage]] = []
        self.uploads: list[bytes] = []
        self.groups: dict[str, GroupInfo] = {}
        self.handlers = []
        self.fail_sends = False
        self.group_info_calls = 0
        self.paired_with: str | None = None

    @property
    def own_id(self) -> str:
        return self._own_id

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def add_event_handler(self, handler) -> None:
        self.handlers.append(handler)

    async def get_group_info(self, chat_id: str) -> GroupInfo:
        self.group_info_calls += 1
        if chat_id not in self.groups:
            raise TransportError(f"group not found: {chat_id}")
        return self.groups[chat_id]

    async def send_message(self, chat_id: str, content: OutgoingMessage) -> str:
        if self.fail_sends:
            raise TransportError("socket closed")
        self.sent.append((chat_id, content))
        return f"msg-{len(self.sent)}"

    async def upload_image(self, data: bytes):
        self.uploads.append(data)
        return {"url": f"https://media.example/{len(self.uploads)}"}

    async def pair_phone(self, phone: str) -> str:
        self.paired_with = phone
        return "ABCD-EFGH"

    def texts(self, chat_id: str | None = None) -> list[str]:
        return [content.text for chat, content in self.sent if chat_id is None or chat == chat_id]

    def add_group(self, jid: str = GROUP, bot_admin: bool = True, admins: tuple[str, ...] = ()) -> None:
        participants = [Participant(jid=f"{BOT_PHONE}@s.whatsapp.net", is_admin=bot_admin)]
        participants += [Participant(jid=f"{phone}@s.whatsapp.net", is_admin=True) for phone in admins]
        self.groups[jid] = GroupInfo(jid=jid, owner=f"{OWNER_PHONE}@s.whatsapp.net", participants=participants)


def make_shipment(tracking_id: str = "AWB-100000001", **overrides) -> Shipment:
    now = overrides.pop("now", None) or utc_now()
    values = {
        "tracking_id": tracking_id,
        "user_jid": f"{ADMIN_PHONE}@s.whatsapp.net",
        "created_at": now,
        "scheduled_transit_time": now + timedelta(hours=1),
        "out_for_delivery_time": now + timedelta(hours=22),
        "expected_delivery_time": now + timedelta(hours=24),
        "sender_timezone": "Europe/London",
        "recipient_timezone": "Africa/Lagos",
        "sender_name": "John Doe",
        "origin": "UK",
        "recipient_name": "Jane Smith",
        "recipient_phone": "+234 800 123 4567",
        "recipient_address": "12 Marina Road, Lagos",
        "destination": "Nigeria",
        "cargo_type": "Documents",
    }
    values.update(overrides)
    return Shipment(**values)




class StubGemini:
    """Stands in for the Gemini client; `fail` makes extraction raise."""

    is_configured = True

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False

    async def extract(self, text: str) -> Manifest:
        if self.fail:
            raise GeminiResponseError("Gemini returned 500", status_code=500, recoverable=True)
        return Manifest(receiver_name="Jane Smith", receiver_phone="08001234567")

    async def close(self) -> None:
        self.closed = True
