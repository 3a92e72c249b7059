"""Per-room blacklist storage.

The store is the only shared mutable state in the bot: the event loop reads
and mutates it while the flush thread takes snapshots of it. All access goes
through one shared/exclusive lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass


@dataclass(frozen=True)
class BannedUser:
    user: str
    room: str


class _SharedExclusiveLock:
    """Many concurrent readers or a single writer.

    Waiting writers block new readers, so a steady stream of join checks
    cannot starve a ban or unban.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class BanStore:
    """Set of (user, room) blacklist entries safe for concurrent use."""

    def __init__(self) -> None:
        self.log = logging.getLogger("blacklistbot.store")
        self._lock = _SharedExclusiveLock()
        self._entries: set[BannedUser] = set()

    def __len__(self) -> int:
        with self._lock.shared():
            return len(self._entries)

    def is_banned(self, user: str, room: str) -> bool:
        with self._lock.shared():
            return BannedUser(user, room) in self._entries

    def ban(self, user: str, room: str) -> None:
        entry = BannedUser(user, room)
        with self._lock.exclusive():
            self._entries.add(entry)

    def unban(self, user: str, room: str) -> bool:
        """Remove an entry. Returns True if it was present."""
        entry = BannedUser(user, room)
        with self._lock.exclusive():
            if entry not in self._entries:
                return False
            self._entries.discard(entry)
            return True

    def snapshot(self) -> list[BannedUser]:
        """Point-in-time copy, safe to serialize after the call returns."""
        with self._lock.shared():
            return list(self._entries)

    def load_from(self, users: Iterable[BannedUser]) -> None:
        entries = set(users)
        with self._lock.exclusive():
            self._entries = entries
        self.log.info("Loaded %d blacklist entries", len(entries))
