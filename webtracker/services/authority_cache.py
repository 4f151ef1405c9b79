"""
Group authority cache.

Tracks, per group chat, whether the bot itself is owner/admin there (and so may
act in it) and which participants are admins. Entries expire after the TTL.
Every write goes to memory and to the store in the same call; on a memory miss
the store is consulted before asking the transport.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from webtracker.db.helpers import DatabaseError, utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.repositories import Store
from webtracker.repositories.group_authority_repository import AUTHORITY_TTL
from webtracker.repositories.system_config_repository import BOT_ALT_ID_KEY
from webtracker.services.identity import bare_phone
from webtracker.services.transport import ChatTransport, GroupInfo, TransportError

logger = get_logger(__name__)


@dataclass(slots=True)
class AuthorityEntry:
    authorized: bool
    updated_at: datetime


@dataclass(slots=True)
class SenderCheck:
    bot_authorized: bool
    sender_is_admin: bool


@dataclass
class BotIdentity:
    """The bot's phone identity and its alternate (linked-device) identity."""

    phone: str = ""
    alt_id: str = ""

    def matches(self, user: str) -> bool:
        if not user:
            return False
        return (self.phone != "" and user == self.phone) or (self.alt_id != "" and user == self.alt_id)


class AuthorityCache:
    def __init__(self, transport: ChatTransport, store: Store, ttl: timedelta = AUTHORITY_TTL):
        self.transport = transport
        self.store = store
        self.ttl = ttl
        self.identity = BotIdentity()
        self._entries: dict[str, AuthorityEntry] = {}
        self._admins: dict[str, set[str]] = {}

    # =================================================================
    # BOT IDENTITY
    # =================================================================

    async def load_identity(self) -> BotIdentity:
        """Fill in whichever half of the bot identity is still unknown."""
        if not self.identity.phone:
            self.identity.phone = bare_phone(self.transport.own_id)
        if not self.identity.alt_id:
            self.identity.alt_id = await self.store.system_config.get(BOT_ALT_ID_KEY)
        return self.identity

    async def remember_alt_id(self, alt_id: str) -> None:
        """Persist a newly observed alternate identity for the bot."""
        if not alt_id or alt_id == self.identity.alt_id:
            return
        self.identity.alt_id = alt_id
        try:
            await self.store.system_config.set(BOT_ALT_ID_KEY, alt_id)
            logger.info("Bot alternate identity updated", alt_id=alt_id)
        except DatabaseError as e:
            logger.error("Failed to persist bot alternate identity", error=str(e))

    # =================================================================
    # CACHE
    # =================================================================

    def _fresh(self, entry: AuthorityEntry, now: datetime) -> bool:
        return now - entry.updated_at <= self.ttl

    async def is_authorized(self, chat_id: str, now: datetime | None = None) -> bool | None:
        """Known authority for a group, or None when it must be re-verified."""
        now = now or utc_now()
        entry = self._entries.get(chat_id)
        if entry is not None:
            if self._fresh(entry, now):
                return entry.authorized
            del self._entries[chat_id]

        stored = await self.store.authorities.get_entry(chat_id, now=now)
        if stored is None:
            return None
        authorized, updated_at = stored
        self._entries[chat_id] = AuthorityEntry(authorized, updated_at)
        return authorized

    async def mark(self, chat_id: str, authorized: bool) -> None:
        self._entries[chat_id] = AuthorityEntry(authorized, utc_now())
        try:
            await self.store.authorities.set(chat_id, authorized)
        except DatabaseError as e:
            logger.error("Failed to persist group authority", group=chat_id, error=str(e))

    def group_admins(self, chat_id: str) -> set[str]:
        return set(self._admins.get(chat_id, ()))

    # =================================================================
    # VERIFICATION
    # =================================================================

    def _bot_authorized_in(self, info: GroupInfo) -> bool:
        if self.identity.matches(bare_phone(info.owner)):
            return True
        for participant in info.participants:
            if self.identity.matches(bare_phone(participant.jid)):
                return participant.is_admin or participant.is_super_admin
        return False

    def _capture_admins(self, info: GroupInfo) -> set[str]:
        owner = bare_phone(info.owner)
        admins = {
            bare_phone(p.jid) for p in info.participants if p.is_admin or p.is_super_admin
        }
        if owner:
            admins.add(owner)
        admins.discard("")
        self._admins[info.jid] = admins
        return admins

    async def _fetch(self, chat_id: str) -> GroupInfo | None:
        try:
            info = await self.transport.get_group_info(chat_id)
        except TransportError as e:
            logger.error("Failed to fetch group info", group=chat_id, error=str(e))
            return None
        if not info.jid:
            info.jid = chat_id
        return info

    async def verify(self, chat_id: str) -> bool:
        """
        Ask the transport who runs the group and store the result.

        On a fetch failure the cached value is left untouched and False is
        returned so the caller drops the message.
        """
        await self.load_identity()
        info = await self._fetch(chat_id)
        if info is None:
            return False

        authorized = self._bot_authorized_in(info)
        self._capture_admins(info)
        await self.mark(chat_id, authorized)
        logger.info("Group authority synchronized", group=chat_id, is_authorized=authorized)
        return authorized

    async def check_sender(self, chat_id: str, sender_phone: str) -> SenderCheck | None:
        """
        Refresh group metadata for a command and report whether the sender is an
        admin. If the bot is no longer owner/admin it demotes itself in the cache.
        Returns None when the metadata could not be fetched.
        """
        info = await self._fetch(chat_id)
        if info is None:
            return None

        admins = self._capture_admins(info)
        bot_authorized = self._bot_authorized_in(info)
        if not bot_authorized:
            logger.info("Bot is no longer admin or owner, demoting", group=chat_id)
            await self.mark(chat_id, False)

        return SenderCheck(bot_authorized=bot_authorized, sender_is_admin=sender_phone in admins)

    async def count_authorized(self) -> int:
        return await self.store.authorities.count_authorized()

    async def has_authorized_groups(self) -> bool:
        return await self.store.authorities.has_authorized()
