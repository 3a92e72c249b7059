"""Blacklist moderation: ban, unban and enforcement on join."""

from __future__ import annotations

import logging

from .actions import RoomContext
from .banstore import BanStore
from .constants import (
    ACT_ROOMBAN,
    ACT_ROOMUNBAN,
    BAN_REASON,
    REPLY_BANNED,
    REPLY_NOT_BANNED,
    REPLY_UNBANNED,
)
from .util import to_id


class ModerationEngine:
    """Applies blacklist changes to a BanStore and enforces them in rooms."""

    def __init__(self, store: BanStore) -> None:
        self.store = store
        self.log = logging.getLogger("blacklistbot.moderation")

    def ban(self, name: str, room: RoomContext) -> None:
        user_id = to_id(name)
        self.store.ban(user_id, room.id)
        self.log.info("Blacklisted %s in %s", user_id, room.id)
        room.reply(REPLY_BANNED)
        # The user may be in the room right now.
        self.join_check(name, room)

    def unban(self, name: str, room: RoomContext) -> None:
        user_id = to_id(name)
        if not self.store.unban(user_id, room.id):
            room.reply(REPLY_NOT_BANNED)
            return

        self.log.info("Unblacklisted %s in %s", user_id, room.id)
        room.reply(REPLY_UNBANNED)
        room.send(ACT_ROOMUNBAN, user_id)

    def join_check(self, name: str, room: RoomContext) -> bool:
        """Room-ban ``name`` if blacklisted in ``room``. Returns True if enforced."""
        user_id = to_id(name)
        if not self.store.is_banned(user_id, room.id):
            return False

        self.log.info("Enforcing blacklist on %s in %s", user_id, room.id)
        room.send(ACT_ROOMBAN, f"{user_id}, {BAN_REASON}")
        return True
