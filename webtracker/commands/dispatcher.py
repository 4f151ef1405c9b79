"""
Command dispatcher.

Recognises `!cmd` / `#cmd` messages, applies the per-sender rate limit and the
access class of the command, then runs it.

Access classes:
- public: info, help
- admin: everything else; the ingress filter decides `is_admin`
- owner: broadcast, status; sender phone must equal the configured owner
"""

from dataclasses import dataclass

from webtracker.commands.base import (
    Command,
    CommandContext,
    CommandResult,
    presents_as_command,
)
from webtracker.commands.handlers import DEFAULT_COMMANDS
from webtracker.db.helpers import DatabaseError
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.repositories import Store
from webtracker.services.command_rate_limiter import CommandRateLimiter
from webtracker.services.transport import Sender

logger = get_logger(__name__)

OWNER_ONLY_MESSAGE = (
    "🚫 *OWNER ACCESS ONLY*\n\n_This command is restricted to the bot owner only._"
)
ACCESS_DENIED_MESSAGE = (
    "🚫 *ACCESS DENIED*\n\n_This command is restricted to the bot owner or group admins._"
    "\n\n💡 You can use `!info [ID]` to track packages."
)
RATE_LIMIT_MESSAGE = (
    "⏳ *RATE LIMIT REACHED*\n\n_Please wait {seconds} seconds before sending another command._"
)


@dataclass
class CommandServices:
    """Collaborators and settings the commands read."""

    store: Store
    sender: Sender | None = None
    company_name: str = ""
    company_prefix: str = "AWB"
    owner_phone: str = ""
    admin_timezone: str = "Africa/Lagos"


class CommandDispatcher:
    def __init__(
        self,
        services: CommandServices,
        limiter: CommandRateLimiter | None = None,
        commands: tuple[type[Command], ...] = DEFAULT_COMMANDS,
    ):
        self.services = services
        self.limiter = limiter or CommandRateLimiter()
        self.commands: dict[str, Command] = {cls.name: cls(services) for cls in commands}

    def is_owner(self, sender_phone: str) -> bool:
        return bool(self.services.owner_phone) and sender_phone == self.services.owner_phone

    async def dispatch(self, ctx: CommandContext, text: str) -> CommandResult | None:
        """
        Run the command in `text`.

        Returns:
            The reply, or None when `text` is not a known command
        """
        if not presents_as_command(text):
            return None

        parts = text.split()
        if not parts:
            return None
        name = parts[0][1:].lower()
        args = parts[1:]

        command = self.commands.get(name)
        if command is None:
            return None

        is_owner = self.is_owner(ctx.sender_phone)
        if not is_owner:
            allowed, retry_in = self.limiter.allow(ctx.sender_phone)
            if not allowed:
                return CommandResult(RATE_LIMIT_MESSAGE.format(seconds=retry_in))

        if command.access == "owner" and not is_owner:
            logger.warning("Owner-only command blocked", cmd=name, sender=ctx.sender_phone)
            return CommandResult(OWNER_ONLY_MESSAGE)

        if command.access == "admin" and not ctx.is_admin:
            logger.warning("Command blocked: sender is not authorized", cmd=name, sender=ctx.sender_phone)
            return CommandResult(ACCESS_DENIED_MESSAGE)

        try:
            ctx.language = await self.services.store.preferences.get_language(ctx.sender_id)
        except DatabaseError as e:
            logger.warning("Language lookup failed, using default", error=str(e))

        logger.info("Executing command", cmd=name, sender=ctx.sender_phone, is_admin=ctx.is_admin)
        result = await command.execute(ctx, args)

        if result.language:
            try:
                await self.services.store.preferences.set_language(ctx.sender_id, result.language)
            except DatabaseError as e:
                logger.error("Failed to save language preference", error=str(e))
                result.error = e

        if result.error is not None:
            logger.error("Command failed", cmd=name, error=str(result.error))
        return result
