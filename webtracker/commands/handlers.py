"""
Chat command implementations.

Each command returns the reply text; the dispatcher handles access checks,
rate limiting and language persistence.
"""

import re
import resource
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from webtracker.commands.base import Command, CommandContext, CommandResult
from webtracker.db.helpers import DatabaseError, utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.infrastructure.observability.vitals import vitals
from webtracker.models.domain.shipment_domain import STATUS_INTRANSIT, STATUS_PENDING
from webtracker.repositories.preference_repository import SUPPORTED_LANGUAGES
from webtracker.services.label_parser import clean_text, validate_email, validate_phone
from webtracker.services.receipt import waybill

logger = get_logger(__name__)

DIVIDER = "━━━━━━━━━━━━━━━━━━━━━━━"

# editable column -> accepted aliases
_ALIAS_GROUPS: dict[str, tuple[str, ...]] = {
    "recipient_name": (
        "name", "names", "receiver", "receivers", "receivername", "receiver_name",
        "recipient", "recipientname", "reciever", "recievers", "recieve",
    ),
    "sender_name": ("sender", "senders", "sendername", "sender_name"),
    "recipient_phone": (
        "phone", "phones", "receiverphone", "receiver_phone", "recipient_phone",
        "mobile", "mobiles", "number", "numbers", "receivernumber", "cell", "contact",
    ),
    "recipient_email": (
        "email", "emails", "e-mail", "mail", "mails",
        "receiveremail", "receiver_email", "recipient_email",
    ),
    "destination": (
        "country", "countries", "receivercountry", "receiver_country",
        "dest", "destination", "destinations", "location",
    ),
    "recipient_address": (
        "address", "addresses", "addr", "receiveraddress", "receiver_address", "recipient_address",
    ),
    "origin": ("sendercountry", "sender_country", "origin", "origins", "from", "source"),
    "sender_phone": ("senderphone", "sender_phone", "sendernumber", "sender_number"),
    "cargo_type": ("type", "types", "cargotype", "cargo_type", "cargo", "content", "contents"),
    "recipient_id": ("id", "passport", "receiverid", "receiver_id", "recipient_id"),
}
FIELD_ALIASES = {alias: column for column, aliases in _ALIAS_GROUPS.items() for alias in aliases}

WEIGHT_ALIASES = frozenset({"weight", "weights", "kg", "kgs"})

TRACKING_ID_PATTERN = re.compile(r"[A-Z]+-\d+")


def _company_title(name: str, default: str) -> str:
    return name.upper() if name else default


class StatsCommand(Command):
    name = "stats"
    access = "admin"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if args:
            return CommandResult(
                "⚠️ *INCORRECT USAGE*\n_Please send only `!stats` without any extra text._"
            )

        try:
            zone = ZoneInfo(self.services.admin_timezone)
        except ZoneInfoNotFoundError:
            zone = ZoneInfo("UTC")
        local_now = utc_now().astimezone(zone)
        since = datetime.combine(local_now.date(), datetime.min.time(), tzinfo=zone)

        try:
            counts = await self.services.store.shipments.count_created_by_status(since)
        except DatabaseError as e:
            return CommandResult(
                "❌ *SYSTEM ERROR*\n_Could not fetch statistics._", error=e
            )

        pending = counts.get(STATUS_PENDING, 0)
        transit = counts.get(STATUS_INTRANSIT, 0)
        company = _company_title(self.services.company_name, "LOGISTICS")
        message = (
            f"📊 *{company} VITAL STATS*\n\n"
            f"{DIVIDER}\n"
            f"📦 PENDING:    *{pending}*\n"
            f"🚚 IN TRANSIT: *{transit}*\n"
            f"📊 TOTAL:      *{pending + transit}*\n"
            f"{DIVIDER}\n\n"
            "_Total operations recorded today._"
        )
        return CommandResult(message)


class InfoCommand(Command):
    name = "info"
    access = "public"

    def _menu(self, is_admin: bool) -> str:
        company = _company_title(self.services.company_name, "COMMAND")
        message = f"🚀 *{company} COMMAND CENTER*\n\n{DIVIDER}\n"
        if is_admin:
            message += "1️⃣ `!stats` - Daily Operations Summary\n"
        message += (
            "2️⃣ `!info [TrackingID]` - Shipment Information Tracker\n"
            f"{DIVIDER}\n\n"
            "*PRO TIP:*\n"
            f"_Use `!info {self.services.company_prefix}-123456789` for full details._"
        )
        return message

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if not args:
            return CommandResult(self._menu(ctx.is_admin))

        tracking_id = args[0].upper()
        try:
            shipment = await self.services.store.shipments.get(tracking_id)
        except DatabaseError as e:
            return CommandResult(
                "❌ *DATABASE ERROR*\n_Lookup failed. Please try again later._", error=e
            )

        if shipment is None:
            return CommandResult(
                f"🔍 *NOT FOUND*\n_No shipment matches *{tracking_id}*. Please check the ID._"
            )

        text = waybill(shipment, self.services.company_name, ctx.language)
        return CommandResult(f"```\n{text}\n```")


class HelpCommand(Command):
    name = "help"
    access = "public"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        company = _company_title(self.services.company_name, "LOGISTICS")
        if ctx.is_admin:
            message = (
                f"🛠️ *{company} - ADMIN CONTROL PANEL*\n\n"
                "━━━━ MANAGEMENT ━━━━\n"
                "📊 `!stats` - Daily Operations\n"
                "📢 `!broadcast [msg]` - Global Update\n"
                "🖥️ `!status` - System Health/Groups\n"
                "📝 `!edit [field] [value]` - Fix shipment mistakes\n"
                "🗑️ `!delete [ID]` - Permanently remove shipment\n"
                "━━━━ GENERAL ━━━━\n"
                "🔍 `!info [ID]` - Check shipment status\n"
                "🌐 `!lang [code]` - Switch language (en, pt, es, de)\n"
                "❓ `!help` - Show this admin menu\n"
                "━━━━━━━━━━━━━━━━━━━\n\n"
                "*🛠️ HOW TO EDIT:*\n"
                "`!edit name Jane Doe` (Fixes last shipment)\n"
                f"`!edit {self.services.company_prefix}-123 name Jane Doe` (Fixes specific ID)\n"
                "_Fields: name, phone, address, country, email, id, sender, origin_"
            )
        else:
            message = (
                f"📖 *{company} - CUSTOMER SERVICE*\n\n"
                "━━━━ AVAILABLE COMMANDS ━━━━\n"
                "🔍 `!info [ID]` - Track your shipment\n"
                "❓ `!help` - Show this instructions menu\n"
                "━━━━━━━━━━━━━━━━━━━━━━━━━━\n\n"
                "*📦 HOW TO REGISTER SHIPMENT:*\n"
                "_Send a message with these details:_\n\n"
                "Sender: John Doe\n"
                "Receiver Name: Jane Smith\n"
                "Receiver Phone: +234 800 123 4567\n"
                "Receiver Address: 123 Main St, Lagos\n\n"
                "*PRO TIP:* _You can use shortcuts like #info or #help._"
            )
        return CommandResult(message)


class LangCommand(Command):
    name = "lang"
    access = "admin"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if not args:
            return CommandResult(
                "🌐 *LANGUAGE MENU*\n\nUsage: `!lang [en|pt|es|de]`\n\n"
                "Example: `!lang pt` para Português"
            )

        language = args[0].lower()
        if language not in SUPPORTED_LANGUAGES:
            return CommandResult("❌ *UNSUPPORTED LANGUAGE*\n\nAvailable: `en`, `pt`, `es`, `de`")

        return CommandResult(
            f"🌐 *LANGUAGE UPDATED*\n\nYour language is now set to *{language.upper()}*.",
            language=language,
        )


class EditCommand(Command):
    name = "edit"
    access = "admin"

    USAGE = (
        "📝 *EDIT SHIPMENT INFORMATION*\n\nUsage:\n`!edit [field] [new_value]`\n\n"
        "Fields: `name`, `phone`, `address`, `country`, `email`, `id`, `sender`, `origin`"
    )

    async def _resolve_target(self, ctx: CommandContext, args: list[str]):
        """(tracking_id, field, value) for either argument shape; tracking_id is None if unknown."""
        if TRACKING_ID_PATTERN.fullmatch(args[0].upper()):
            return args[0].upper(), args[1], " ".join(args[2:])

        tracking_id = await self.services.store.shipments.last_tracking_for(ctx.sender_id)
        return tracking_id, args[0], " ".join(args[1:])

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if len(args) < 2:
            return CommandResult(self.USAGE)

        try:
            tracking_id, raw_field, value = await self._resolve_target(ctx, args)
        except DatabaseError as e:
            return CommandResult(f"❌ *UPDATE FAILED*\n_{e}_", error=e)

        if not tracking_id:
            return CommandResult(
                "⚠️ *NO RECORD FOUND*\n"
                "_I couldn't find your last shipment. Please provide the tracking ID._"
            )
        if not value.strip():
            return CommandResult(
                "⚠️ *MISSING VALUE*\n_Please provide the new information for the field._"
            )

        alias = raw_field.lower()
        if alias in WEIGHT_ALIASES:
            return CommandResult(
                "⚠️ *FIELD LOCKED*\n_Weight is fixed at 15 KG and cannot be edited._"
            )
        column = FIELD_ALIASES.get(alias)
        if column is None:
            return CommandResult(
                f"⚠️ *UNKNOWN FIELD*\n_`{raw_field}` cannot be edited._\n\n{self.USAGE}"
            )

        if "email" in column and not validate_email(value):
            return CommandResult(
                "⚠️ *INVALID EMAIL format*\n"
                "_Please provide a valid email address (e.g., name@domain.com)._"
            )
        if "phone" in column and not validate_phone(value):
            return CommandResult(
                "⚠️ *INVALID PHONE FORMAT*\n_Phone numbers must contain at least 5 digits._"
            )

        value = clean_text(value).strip()
        try:
            updated = await self.services.store.shipments.update_field(tracking_id, column, value)
        except DatabaseError as e:
            return CommandResult(f"❌ *UPDATE FAILED*\n_{e}_", error=e)

        if not updated:
            return CommandResult(f"❌ *UPDATE FAILED*\n_No shipment found with ID {tracking_id}_")

        logger.info("Shipment field edited", tracking_id=tracking_id, field=column)
        return CommandResult(
            "✅ *INFORMATION UPDATED*\n\n"
            f"{DIVIDER}\n"
            f"ID: *{tracking_id}*\n"
            f"Field: *{column.upper()}*\n"
            f"New Value: *{value}*\n"
            f"{DIVIDER}\n\n"
            "_Generating your updated receipt..._",
            edit_id=tracking_id,
        )


class DeleteCommand(Command):
    name = "delete"
    access = "admin"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if not args:
            return CommandResult("🗑️ *DELETE SHIPMENT*\n\nUsage: `!delete [TrackingID]`")

        tracking_id = args[0].upper()
        try:
            deleted = await self.services.store.shipments.delete(tracking_id)
        except DatabaseError as e:
            return CommandResult(f"❌ *DELETE FAILED*\n_{e}_", error=e)

        if not deleted:
            return CommandResult(f"❌ *DELETE FAILED*\n_No shipment found with ID {tracking_id}_")

        logger.info("Shipment deleted by command", tracking_id=tracking_id, sender=ctx.sender_phone)
        return CommandResult(
            f"🗑️ *SHIPMENT DELETED*\n\nThe shipment *{tracking_id}* has been permanently removed."
        )


class BroadcastCommand(Command):
    name = "broadcast"
    access = "owner"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        if not args:
            return CommandResult(
                "📣 *GLOBAL BROADCAST*\n\nUsage: `!broadcast [your message]`\n\n"
                "_This sends a message to ALL authorized groups._"
            )

        sender = self.services.sender
        if sender is None or not sender.is_connected():
            return CommandResult("❌ *FAILED*\n_WhatsApp is currently disconnected._")

        try:
            groups = await self.services.store.authorities.list_authorized()
        except DatabaseError as e:
            return CommandResult(
                "❌ *DATABASE ERROR*\n_Failed to fetch target groups._", error=e
            )

        text = "📢 *OFFICIAL UPDATE FROM LOGISTICS*\n\n" + " ".join(args)
        sent = 0
        for group in groups:
            if await sender.send(group, text):
                sent += 1

        logger.info("Broadcast finished", groups=len(groups), sent=sent)
        return CommandResult(f"✅ *BROADCAST COMPLETE*\n\nSent to: *{sent}* groups.")


def _format_uptime(seconds: float) -> str:
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}h{minutes}m{seconds}s"


def _peak_memory_mb() -> int:
    # ru_maxrss is the peak resident set, in kilobytes on Linux
    return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss // 1024


class StatusCommand(Command):
    name = "status"
    access = "owner"

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        health = await self.services.store.db.health_check()
        db_status = "🟢 ONLINE (SQLite)" if health.get("healthy") else "🔴 OFFLINE (SQLite)"

        try:
            groups = await self.services.store.authorities.count_authorized()
        except DatabaseError:
            groups = 0

        counters = vitals.snapshot()
        message = (
            "🖥️ *SYSTEM DASHBOARD*\n\n"
            f"📊 UPTIME:    *{_format_uptime(vitals.uptime())}*\n"
            f"🔋 PEAK MEM:  *{_peak_memory_mb()} MB* / 1024 MB\n"
            f"🗄️ DATABASE:  *{db_status}*\n"
            f"👥 GROUPS:    *{groups} authorized*\n"
            f"📦 PROCESSED: *{counters['jobs_processed']} jobs* "
            f"({counters['parse_success']} success)\n\n"
            "_System is running within safe 1GB RAM margins._"
        )
        return CommandResult(message)


DEFAULT_COMMANDS: tuple[type[Command], ...] = (
    StatsCommand,
    InfoCommand,
    HelpCommand,
    LangCommand,
    EditCommand,
    DeleteCommand,
    BroadcastCommand,
    StatusCommand,
)
