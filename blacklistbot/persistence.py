"""Durable storage of the blacklist.

The ban list is read once at startup and rewritten in full on a fixed
interval. Anything added between two flushes is lost if the process dies.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from .banstore import BannedUser, BanStore
from .codec import decode, encode
from .util import expand_path


class BanlistError(RuntimeError):
    """The ban list file is missing, unreadable or undecodable."""


class FlushError(RuntimeError):
    """Writing a snapshot of the ban list failed."""


class BanlistFile:
    def __init__(self, path: str) -> None:
        self.path = Path(expand_path(path))
        self.log = logging.getLogger("blacklistbot.persistence")

    def load(self) -> list[BannedUser]:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError as e:
            raise BanlistError(f"ban list {self.path} not found") from e
        except OSError as e:
            raise BanlistError(f"cannot read ban list {self.path}: {e}") from e

        try:
            return decode(data)
        except Exception as e:
            raise BanlistError(f"malformed ban list {self.path}: {e}") from e

    def save(self, users: list[BannedUser]) -> None:
        """Replace the file contents with ``users``.

        Written to a temporary sibling first so a crash mid-write leaves the
        previous snapshot in place.
        """
        payload = encode(users)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            raise FlushError(f"cannot write ban list {self.path}: {e}") from e

        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass


class Flusher:
    """Background thread snapshotting a BanStore to a BanlistFile."""

    def __init__(
        self,
        store: BanStore,
        banlist: BanlistFile,
        interval_s: float,
        *,
        on_fatal: Callable[[FlushError], None] | None = None,
    ) -> None:
        self.store = store
        self.banlist = banlist
        self.interval_s = float(interval_s)
        self.on_fatal = on_fatal
        self.log = logging.getLogger("blacklistbot.persistence")

        self._shutdown = threading.Event()
        self._thread: threading.Thread | None = None

    def flush(self) -> int:
        users = self.store.snapshot()
        self.banlist.save(users)
        self.log.info("Flushed %d blacklist entries to %s", len(users), self.banlist.path)
        return len(users)

    def start(self) -> None:
        if self.interval_s <= 0:
            raise ValueError("flush interval must be positive")
        self._thread = threading.Thread(
            target=self._flush_loop, name="blacklistbot-flush", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._shutdown.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()

    def _flush_loop(self) -> None:
        # Event.wait doubles as the sleep so stop() does not wait a full interval.
        while not self._shutdown.wait(self.interval_s):
            try:
                self.flush()
            except FlushError as e:
                self.log.critical("Flush failed: %s", e)
                if self.on_fatal is not None:
                    self.on_fatal(e)
                return
