from __future__ import annotations

import logging
import signal
import threading
import time

from . import __version__
from .banstore import BanStore
from .commands import CommandHandler
from .config import BotRuntimeConfig
from .constants import ACT_USERAUTH
from .dispatcher import EventDispatcher
from .moderation import ModerationEngine
from .persistence import BanlistFile, Flusher, FlushError
from .showdown import ShowdownClient


class StartupInterrupted(RuntimeError):
    """A stop signal arrived before the bot finished starting."""


class BotService:
    def __init__(self, config: BotRuntimeConfig, *, client: ShowdownClient | None = None) -> None:
        self.config = config
        self.log = logging.getLogger("blacklistbot.bot")

        if not config.banlist_path:
            raise RuntimeError("banlist_path is not set")

        self._shutdown = threading.Event()
        self.fatal_error: Exception | None = None

        self.store = BanStore()
        self.banlist = BanlistFile(config.banlist_path)
        self.moderation = ModerationEngine(self.store)
        self.command_handler = CommandHandler(self.moderation)
        self.dispatcher = EventDispatcher(config, self.moderation, self.command_handler)
        self.flusher = Flusher(
            self.store,
            self.banlist,
            config.flush_interval_s,
            on_fatal=self._on_flush_failed,
        )
        self.client = client or ShowdownClient(config)

        self._events_thread: threading.Thread | None = None

    def start(self) -> None:
        self.log.info("Starting blacklistbot %s", __version__)

        # Must complete before any event is consumed.
        self.store.load_from(self.banlist.load())

        self.client.connect()
        # The popup answer lists every room we have auth in.
        self.client.send_command("", ACT_USERAUTH)

        self.flusher.start()

        self._events_thread = threading.Thread(
            target=self._event_loop, name="blacklistbot-events", daemon=True
        )
        self._events_thread.start()

        self.log.info(
            "Bot running nickname=%s rooms=%s entries=%d flush_interval_s=%s",
            self.config.nickname,
            ",".join(self.config.rooms),
            len(self.store),
            self.config.flush_interval_s,
        )

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._on_signal)
        signal.signal(signal.SIGTERM, self._on_signal)

    def run_forever(self) -> None:
        if self._events_thread is None:
            self.install_signal_handlers()
            self.start()

        while not self._shutdown.is_set():
            time.sleep(0.25)

        self._finish()

    def stop(self) -> None:
        self._shutdown.set()

    def _on_signal(self, signum, frame) -> None:
        self.stop()
        if self._events_thread is None:
            # Still loading or logging in; unwind start().
            raise StartupInterrupted(f"interrupted by {signal.Signals(signum).name} during startup")

    def handle_event(self, tag: str, payload: str, room_id: str) -> None:
        room = self.client.room(room_id)
        try:
            self.dispatcher.dispatch(tag, payload, room)
        except Exception:
            self.log.exception("Handler failed tag=%s room=%s payload=%r", tag, room_id, payload)

    def _event_loop(self) -> None:
        try:
            for event in self.client.events():
                if self._shutdown.is_set():
                    break
                self.handle_event(event.tag, event.payload, event.room)
        finally:
            self._shutdown.set()

    def _on_flush_failed(self, exc: FlushError) -> None:
        self.fatal_error = exc
        self._shutdown.set()

    def _finish(self) -> None:
        self.log.info("Shutting down")
        self.flusher.stop()
        try:
            self.client.close()
        except Exception:
            self.log.exception("Closing connection failed")

        # Let the event currently being handled land in the store before the
        # final snapshot.
        if self._events_thread is not None and self._events_thread is not threading.current_thread():
            self._events_thread.join(timeout=5.0)
            if self._events_thread.is_alive():
                self.log.warning("Event thread still running at shutdown")

        if self.fatal_error is not None or not self.config.flush_on_exit:
            return
        try:
            self.flusher.flush()
        except FlushError as e:
            self.log.critical("Final flush failed: %s", e)
            self.fatal_error = e
