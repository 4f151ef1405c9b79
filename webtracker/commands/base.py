from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from webtracker.commands.dispatcher import CommandServices

CommandAccess = Literal["public", "admin", "owner"]

COMMAND_PREFIXES = ("!", "#")


@dataclass(slots=True)
class CommandContext:
    """Who issued a command and where."""

    chat_id: str
    sender_id: str
    sender_phone: str
    is_admin: bool = False
    language: str = "en"


@dataclass(slots=True)
class CommandResult:
    message: str
    language: str = ""
    # Tracking id whose receipt must be re-rendered after an edit
    edit_id: str = ""
    error: Exception | None = field(default=None, repr=False)


class Command:
    """Base class for chat commands. Subclasses set `name`/`access` and implement `execute`."""

    name: str = ""
    access: CommandAccess = "admin"

    def __init__(self, services: "CommandServices"):
        self.services = services

    async def execute(self, ctx: CommandContext, args: list[str]) -> CommandResult:
        raise NotImplementedError


def presents_as_command(text: str) -> bool:
    return len(text) > 1 and text[0] in COMMAND_PREFIXES
