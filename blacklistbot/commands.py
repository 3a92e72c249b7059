"""Chat commands available to room staff."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from .actions import RoomContext

if TYPE_CHECKING:
    from .moderation import ModerationEngine

CommandCallback = Callable[[str, RoomContext], None]

BAN_COMMANDS = ("ban", "blacklist", "ab", "autoban")
UNBAN_COMMANDS = ("unban", "unblacklist", "unab", "unautoban")


class CommandHandler:
    """Maps command names (case-sensitive) to moderation actions."""

    def __init__(self, moderation: ModerationEngine) -> None:
        table: dict[str, CommandCallback] = {}
        for name in BAN_COMMANDS:
            table[name] = moderation.ban
        for name in UNBAN_COMMANDS:
            table[name] = moderation.unban
        self._commands = table

    def handle_command(self, command: str, argument: str, room: RoomContext) -> bool:
        """Run a command.

        Returns True if it was recognized. Unknown commands are ignored so
        ordinary chat that happens to start with the prefix passes through.
        """
        callback = self._commands.get(command)
        if callback is None:
            return False
        callback(argument, room)
        return True
