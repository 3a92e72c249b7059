"""Outbound capability handed to event handlers."""

from __future__ import annotations

from typing import Protocol


class RoomContext(Protocol):
    """The room an event arrived on, and the only way handlers talk back.

    Both methods are fire-and-forget: they queue text on the connection and
    return without waiting for the server.
    """

    id: str

    def send(self, action: str, payload: str) -> None:
        """Issue ``/action payload`` scoped to this room."""

    def reply(self, text: str) -> None:
        """Say ``text`` in this room."""
