"""
Chat transport capability and the outbound sender built on it.

The concrete chat client (session login, frames, group RPC) lives outside this
package. It is loaded at startup from a "package.module:factory" path and must
satisfy `ChatTransport`.
"""

import asyncio
import importlib
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from webtracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

GROUP_SUFFIX = "@g.us"
USER_SUFFIX = "@s.whatsapp.net"
BOT_FOOTER = "\n\n_🤖Bot_"
DEFAULT_JITTER = (0.5, 2.5)


class TransportError(Exception):
    """Raised by transports when a call to the chat network fails."""


def is_group_chat(chat_id: str) -> bool:
    return chat_id.endswith(GROUP_SUFFIX)


def is_chat_address(value: str) -> bool:
    return "@" in value


def user_chat_id(phone: str) -> str:
    """Direct-chat address for a bare phone."""
    return f"{phone}{USER_SUFFIX}"


# =================================================================
# GROUP METADATA AND EVENTS
# =================================================================


@dataclass(slots=True)
class Participant:
    jid: str
    is_admin: bool = False
    is_super_admin: bool = False


@dataclass(slots=True)
class GroupInfo:
    jid: str
    owner: str
    participants: list[Participant] = field(default_factory=list)


@dataclass(slots=True)
class MessageEvent:
    chat_id: str
    sender_id: str
    message_id: str
    text: str
    is_from_me: bool = False


@dataclass(slots=True)
class JoinedGroupEvent:
    chat_id: str


@dataclass(slots=True)
class GroupInfoEvent:
    chat_id: str


@dataclass(slots=True)
class ConnectedEvent:
    pass


@dataclass(slots=True)
class LoggedOutEvent:
    reason: str = ""


TransportEvent = MessageEvent | JoinedGroupEvent | GroupInfoEvent | ConnectedEvent | LoggedOutEvent
EventHandler = Callable[[TransportEvent], Awaitable[None]]


@dataclass(slots=True)
class OutgoingMessage:
    """Content of one outbound message: text, or an uploaded image with caption."""

    text: str = ""
    quoted_id: str = ""
    quoted_sender: str = ""
    image: Any = None


@runtime_checkable
class ChatTransport(Protocol):
    @property
    def own_id(self) -> str:
        """The bot's own account identity; empty until paired."""
        ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    def is_connected(self) -> bool: ...

    def add_event_handler(self, handler: EventHandler) -> None: ...

    async def get_group_info(self, chat_id: str) -> GroupInfo: ...

    async def send_message(self, chat_id: str, content: OutgoingMessage) -> str: ...

    async def upload_image(self, data: bytes) -> Any: ...

    async def pair_phone(self, phone: str) -> str: ...


TransportFactory = Callable[..., ChatTransport]


def load_factory(path: str) -> Callable[..., Any]:
    """Resolve a "package.module:attribute" path to a callable."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'module:factory', got {path!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attribute)


# =================================================================
# SENDER
# =================================================================


class Sender:
    """
    Outbound messages with the bot footer and an anti-spam pause.

    Every send sleeps a random jitter first. Failures are logged and never
    retried; a lost notification is preferred over a duplicate one.
    """

    def __init__(self, transport: ChatTransport, jitter: tuple[float, float] = DEFAULT_JITTER):
        self.transport = transport
        self.jitter = jitter

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    async def _pause(self) -> None:
        low, high = self.jitter
        if high <= 0:
            return
        await asyncio.sleep(random.uniform(low, high))

    async def _deliver(self, chat_id: str, content: OutgoingMessage) -> bool:
        await self._pause()
        try:
            message_id = await self.transport.send_message(chat_id, content)
        except TransportError as e:
            logger.error("Failed to send chat message", chat=chat_id, error=str(e))
            return False
        logger.debug("Message sent", chat=chat_id, message_id=message_id)
        return True

    async def reply(self, chat_id: str, sender_id: str, text: str, quoted_id: str = "") -> bool:
        content = OutgoingMessage(text=text + BOT_FOOTER)
        if quoted_id:
            content.quoted_id = quoted_id
            content.quoted_sender = sender_id
        return await self._deliver(chat_id, content)

    async def send(self, chat_id: str, text: str) -> bool:
        return await self._deliver(chat_id, OutgoingMessage(text=text + BOT_FOOTER))

    async def send_image(
        self,
        chat_id: str,
        image: bytes,
        caption: str = "",
        sender_id: str = "",
        quoted_id: str = "",
    ) -> bool:
        try:
            upload = await self.transport.upload_image(image)
        except TransportError as e:
            logger.error("Failed to upload image", chat=chat_id, error=str(e))
            return False

        content = OutgoingMessage(text=caption, image=upload)
        if quoted_id:
            content.quoted_id = quoted_id
            content.quoted_sender = sender_id
        return await self._deliver(chat_id, content)
