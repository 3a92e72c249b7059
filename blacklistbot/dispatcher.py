from __future__ import annotations

import enum
import logging

from .actions import RoomContext
from .commands import CommandHandler
from .config import BotRuntimeConfig
from .constants import (
    ACT_JOIN,
    ACT_PM,
    PM_REPLY_LINES,
    POPUP_SEPARATOR,
    ROOM_AUTH_PREFIX,
    ROOM_AUTH_SEPARATOR,
    TAG_CHAT,
    TAG_CHAT_TS,
    TAG_JOIN,
    TAG_JOIN_QUIET,
    TAG_PM,
    TAG_POPUP,
    UNPRIVILEGED_RANKS,
)
from .moderation import ModerationEngine
from .util import to_id


class EventKind(enum.Enum):
    CHAT_LINE = "chat-line"
    JOIN = "join"
    ROOM_POPUP = "room-popup"
    PRIVATE_MESSAGE = "private-message"

    @classmethod
    def from_tag(cls, tag: str) -> EventKind | None:
        return _KIND_BY_TAG.get(tag)


_KIND_BY_TAG: dict[str, EventKind] = {
    TAG_CHAT: EventKind.CHAT_LINE,
    TAG_CHAT_TS: EventKind.CHAT_LINE,
    TAG_JOIN: EventKind.JOIN,
    TAG_JOIN_QUIET: EventKind.JOIN,
    TAG_POPUP: EventKind.ROOM_POPUP,
    TAG_PM: EventKind.PRIVATE_MESSAGE,
}


class EventDispatcher:
    """
    Routes one inbound event to exactly one handler.

    Handlers run synchronously on the caller's thread. The only state they
    touch is the BanStore behind the moderation engine, so events from
    different rooms may be dispatched concurrently.

    A payload that does not have the shape its tag promises is a transport
    bug; the handler raises and the caller decides what to log.
    """

    def __init__(
        self,
        config: BotRuntimeConfig,
        moderation: ModerationEngine,
        commands: CommandHandler | None = None,
    ) -> None:
        self.config = config
        self.moderation = moderation
        self.commands = commands or CommandHandler(moderation)
        self.log = logging.getLogger("blacklistbot.dispatch")

        self._own_id = to_id(config.nickname)
        self._exempt = frozenset(to_id(u) for u in config.exempt_users)

        self._handlers = {
            EventKind.CHAT_LINE: self.on_chat_line,
            EventKind.JOIN: self.on_join,
            EventKind.ROOM_POPUP: self.on_popup,
            EventKind.PRIVATE_MESSAGE: self.on_private_message,
        }
        missing = set(EventKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"no handler for event kinds {sorted(k.value for k in missing)}")

    def dispatch(self, tag: str, payload: str, room: RoomContext) -> bool:
        """Handle one event. Returns False if the tag is not one we act on."""
        kind = EventKind.from_tag(tag)
        if kind is None:
            return False

        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("Dispatch kind=%s room=%s payload=%r", kind.value, room.id, payload)
        self._handlers[kind](payload, room)
        return True

    def on_chat_line(self, payload: str, room: RoomContext) -> None:
        parts = payload.split("|", 2)
        sender = parts[1]
        body = parts[2]

        if sender[:1] in UNPRIVILEGED_RANKS and to_id(sender) not in self._exempt:
            # Regular users talking is as good a sighting as a join.
            self.moderation.join_check(sender, room)
            return

        prefix = self.config.command_prefix
        if not prefix or not body.startswith(prefix):
            return

        command, _, argument = body[len(prefix):].partition(" ")
        if not self.commands.handle_command(command, argument, room):
            self.log.debug("Ignoring unknown command %r in %s", command, room.id)

    def on_join(self, payload: str, room: RoomContext) -> None:
        self.moderation.join_check(payload, room)

    def on_popup(self, payload: str, room: RoomContext) -> None:
        for line in payload.split(POPUP_SEPARATOR):
            if not line.startswith(ROOM_AUTH_PREFIX):
                continue
            for entry in line[len(ROOM_AUTH_PREFIX):].split(ROOM_AUTH_SEPARATOR):
                if entry[:1] in self.config.owner_symbols:
                    target = entry[1:]
                    self.log.info("Joining owned room %s", target)
                    room.send(ACT_JOIN, target)

    def on_private_message(self, payload: str, room: RoomContext) -> None:
        sender = payload.split("|", 2)[0]
        sender_id = to_id(sender)
        if sender_id == self._own_id:
            return
        for line in PM_REPLY_LINES:
            room.send(ACT_PM, f"{sender_id}, {line}")
