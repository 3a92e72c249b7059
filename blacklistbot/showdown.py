"""Websocket client for Pokemon Showdown compatible chat servers.

Only what the bot needs: log in, join rooms, turn server frames into
``(tag, payload, room)`` events and send room or global commands.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass

import requests
from websockets.exceptions import ConnectionClosed
from websockets.sync.client import ClientConnection, connect

from .config import BotRuntimeConfig
from .constants import (
    ACT_JOIN,
    ACT_TRN,
    TAG_CHALLSTR,
    TAG_CHAT,
    TAG_CHAT_TS,
    TAG_UPDATEUSER,
)
from .util import to_id


class LoginError(RuntimeError):
    """The login server refused the credentials or answered nonsense."""


@dataclass(frozen=True)
class InboundEvent:
    tag: str
    payload: str
    room: str


def parse_frame(frame: str) -> tuple[str, list[tuple[str, str]]]:
    """Split a server frame into its room and ``(tag, rest)`` lines.

    Frames optionally start with ``>roomid``; without it they belong to the
    global scope ``""``. Lines not starting with ``|`` are plain room log
    text and are dropped.
    """
    lines = frame.split("\n")
    room = ""
    if lines and lines[0].startswith(">"):
        room = lines[0][1:].strip()
        lines = lines[1:]

    out: list[tuple[str, str]] = []
    for line in lines:
        if not line.startswith("|"):
            continue
        tag, _, rest = line[1:].partition("|")
        out.append((tag, rest))
    return room, out


def event_payload(tag: str, rest: str) -> str:
    """Reshape a protocol line body into the payload handlers expect.

    Chat lines become ``|sender|body`` with any timestamp removed.
    """
    if tag == TAG_CHAT_TS:
        _, _, rest = rest.partition("|")
        return "|" + rest
    if tag == TAG_CHAT:
        return "|" + rest
    return rest


def parse_login_response(text: str) -> str:
    """Extract the assertion from a login server answer.

    Successful answers are ``]`` followed by a JSON object.
    """
    if not text.startswith("]"):
        raise LoginError(f"unexpected login response: {text[:80]!r}")
    try:
        data = json.loads(text[1:])
    except ValueError as e:
        raise LoginError(f"login response is not JSON: {e}") from e

    assertion = data.get("assertion") if isinstance(data, dict) else None
    if not isinstance(assertion, str) or not assertion:
        raise LoginError("login response carries no assertion")
    if assertion.startswith(";;"):
        raise LoginError(assertion[2:] or "login rejected")
    return assertion


class ShowdownRoom:
    """RoomContext bound to one room of a live connection."""

    def __init__(self, client: ShowdownClient, room_id: str) -> None:
        self.client = client
        self.id = room_id

    def send(self, action: str, payload: str) -> None:
        self.client.send_command(self.id, action, payload)

    def reply(self, text: str) -> None:
        self.client.send_raw(f"{self.id}|{text}")

    def __repr__(self) -> str:
        return f"ShowdownRoom({self.id!r})"


class ShowdownClient:
    def __init__(self, config: BotRuntimeConfig, *, http: requests.Session | None = None) -> None:
        self.config = config
        self.log = logging.getLogger("blacklistbot.showdown")
        self.http = http or requests.Session()

        self._ws: ClientConnection | None = None
        self._ready = False
        self._pending: list[InboundEvent] = []

    @property
    def ready(self) -> bool:
        return self._ready

    def room(self, room_id: str) -> ShowdownRoom:
        return ShowdownRoom(self, room_id)

    def connect(self) -> None:
        """Open the websocket and block until logged in and rooms are joined."""
        timeout = float(self.config.connect_timeout_s)
        self.log.info("Connecting to %s", self.config.server_url)
        self._ws = connect(self.config.server_url, open_timeout=timeout)

        deadline = time.monotonic() + timeout
        while not self._ready:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError(f"not logged in after {timeout:.0f}s")
            try:
                frame = self._ws.recv(timeout=remaining)
            except ConnectionClosed as e:
                raise ConnectionError(f"server closed the connection during login: {e}") from e
            if isinstance(frame, bytes):
                frame = frame.decode("utf-8", "replace")
            # Events seen before login completes are replayed by events().
            self._pending.extend(self._handle_frame(frame))

        for room_id in self.config.rooms:
            self.send_command("", ACT_JOIN, room_id)
        self.log.info("Logged in as %s", self.config.nickname)

    def close(self) -> None:
        ws = self._ws
        if ws is not None:
            ws.close()

    def events(self) -> Iterator[InboundEvent]:
        """Yield events until the server closes the connection."""
        if self._ws is None:
            raise RuntimeError("not connected")

        pending, self._pending = self._pending, []
        yield from pending

        try:
            for frame in self._ws:
                if isinstance(frame, bytes):
                    frame = frame.decode("utf-8", "replace")
                yield from self._handle_frame(frame)
        except ConnectionClosed as e:
            self.log.warning("Connection closed: %s", e)
        self.log.info("Event stream ended")

    def send_raw(self, text: str) -> None:
        if self._ws is None:
            raise RuntimeError("not connected")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(">> %r", text)
        try:
            self._ws.send(text)
        except ConnectionClosed as e:
            self.log.warning("Dropped outbound %r: %s", text[:80], e)

    def send_command(self, room_id: str, action: str, payload: str = "") -> None:
        cmd = f"/{action} {payload}" if payload else f"/{action}"
        self.send_raw(f"{room_id}|{cmd}")

    def _handle_frame(self, frame: str) -> list[InboundEvent]:
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("<< %r", frame[:500])

        room, lines = parse_frame(frame)
        # Room initialization frames replay chat backlog; acting on it would
        # re-run old commands.
        if any(tag == "init" for tag, _ in lines):
            return []

        events: list[InboundEvent] = []
        for tag, rest in lines:
            if tag == TAG_CHALLSTR:
                self._login(rest)
            elif tag == TAG_UPDATEUSER:
                self._on_updateuser(rest)
            else:
                events.append(InboundEvent(tag, event_payload(tag, rest), room))
        return events

    def _login(self, challstr: str) -> None:
        if not self.config.nickname:
            raise LoginError("nickname is not set")
        try:
            resp = self.http.post(
                self.config.login_url,
                data={
                    "act": "login",
                    "name": self.config.nickname,
                    "pass": self.config.password,
                    "challstr": challstr,
                },
                timeout=float(self.config.connect_timeout_s),
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise LoginError(f"login request failed: {e}") from e

        assertion = parse_login_response(resp.text)
        self.send_command("", ACT_TRN, f"{self.config.nickname},0,{assertion}")

    def _on_updateuser(self, rest: str) -> None:
        fields = rest.split("|")
        name = fields[0]
        named = fields[1] if len(fields) > 1 else "0"
        if named == "1" and to_id(name) == to_id(self.config.nickname):
            self._ready = True
