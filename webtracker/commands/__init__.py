from webtracker.commands.base import CommandContext, CommandResult, presents_as_command
from webtracker.commands.dispatcher import CommandDispatcher, CommandServices

__all__ = [
    "CommandContext",
    "CommandDispatcher",
    "CommandResult",
    "CommandServices",
    "presents_as_command",
]
