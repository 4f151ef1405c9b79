"""
Ingress filter for transport events.

Messages that pass the admissibility rules become Jobs on the bounded queue.
Membership events refresh the authority cache; a logout sets the stop event.
"""

import asyncio

from webtracker.commands.base import presents_as_command
from webtracker.db.helpers import DatabaseError
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.domain.manifest_domain import Job
from webtracker.services.authority_cache import AuthorityCache
from webtracker.services.identity import bare_phone
from webtracker.services.transport import (
    ConnectedEvent,
    GroupInfoEvent,
    JoinedGroupEvent,
    LoggedOutEvent,
    MessageEvent,
    TransportEvent,
    is_group_chat,
)

logger = get_logger(__name__)


class IngressHandler:
    def __init__(
        self,
        queue: asyncio.Queue,
        authority: AuthorityCache,
        stop_event: asyncio.Event,
        allow_private_chat: bool = False,
    ):
        self.queue = queue
        self.authority = authority
        self.stop_event = stop_event
        self.allow_private_chat = allow_private_chat
        self.connected = asyncio.Event()

    async def handle(self, event: TransportEvent) -> None:
        """Entry point registered with the transport."""
        if isinstance(event, MessageEvent):
            job = await self.admit(event)
            if job is not None:
                # Blocks while the queue is full
                await self.queue.put(job)
        elif isinstance(event, JoinedGroupEvent):
            logger.info("Joined group, re-verifying authority", group=event.chat_id)
            await self.authority.verify(event.chat_id)
        elif isinstance(event, GroupInfoEvent):
            logger.info("Group info updated, re-verifying authority", group=event.chat_id)
            await self.authority.verify(event.chat_id)
        elif isinstance(event, ConnectedEvent):
            logger.info("Chat transport connected")
            self.connected.set()
        elif isinstance(event, LoggedOutEvent):
            logger.warning("Chat transport logged out, shutting down", reason=event.reason)
            self.connected.clear()
            self.stop_event.set()

    async def admit(self, event: MessageEvent) -> Job | None:
        """Apply the admissibility rules to one message; None means drop."""
        text = event.text.strip()
        if not text:
            return None

        identity = await self.authority.load_identity()
        sender_phone = bare_phone(event.sender_id)

        if event.is_from_me:
            await self.authority.remember_alt_id(sender_phone)
            sender_phone = identity.phone or sender_phone

        is_sender_admin = False
        if is_group_chat(event.chat_id):
            authorized = await self._group_authorized(event, text, sender_phone)
            if authorized is None:
                return None
            is_sender_admin = authorized
        else:
            if not await self._private_chat_allowed(event.chat_id):
                logger.debug("Private chat ignored", chat=event.chat_id)
                return None
            if identity.matches(sender_phone):
                is_sender_admin = True

        if event.is_from_me:
            is_sender_admin = True

        is_admin = is_sender_admin or identity.matches(sender_phone)
        if is_admin:
            logger.info("Sender identified as admin", sender=sender_phone)

        return Job(
            chat_id=event.chat_id,
            sender_id=event.sender_id,
            message_id=event.message_id,
            text=text,
            sender_phone=sender_phone,
            is_admin=is_admin,
        )

    async def _group_authorized(
        self, event: MessageEvent, text: str, sender_phone: str
    ) -> bool | None:
        """
        None when the bot may not act in this group; otherwise whether the sender
        is a group admin.
        """
        chat_id = event.chat_id
        try:
            authorized = await self.authority.is_authorized(chat_id)
        except DatabaseError as e:
            logger.error("Authority lookup failed", group=chat_id, error=str(e))
            authorized = None

        # Miss, or the bot itself speaks in a chat it thinks it cannot act in
        if authorized is None or (not authorized and event.is_from_me):
            authorized = await self.authority.verify(chat_id)
        elif not authorized and presents_as_command(text):
            authorized = await self.authority.verify(chat_id)

        if not authorized:
            logger.debug("Group ignored: bot is not admin or owner", group=chat_id)
            return None

        if event.is_from_me:
            return True
        if not presents_as_command(text):
            return False

        check = await self.authority.check_sender(chat_id, sender_phone)
        if check is None:
            return False
        if not check.bot_authorized:
            return None
        return check.sender_is_admin

    async def _private_chat_allowed(self, chat_id: str) -> bool:
        if self.allow_private_chat:
            return True
        try:
            return not await self.authority.has_authorized_groups()
        except DatabaseError as e:
            logger.error("Authorized group lookup failed", chat=chat_id, error=str(e))
            return False
