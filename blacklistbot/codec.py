from __future__ import annotations

import cbor2

from .banstore import BannedUser


def encode(users) -> bytes:
    """Encode ban entries as a CBOR array of ``[user, room]`` pairs."""
    return cbor2.dumps([[u.user, u.room] for u in users])


def decode(b: bytes) -> list[BannedUser]:
    if not b:
        return []

    items = cbor2.loads(b)
    if items is None:
        return []
    if not isinstance(items, list):
        raise TypeError("ban list must be a CBOR array")

    users: list[BannedUser] = []
    for item in items:
        if not isinstance(item, list) or len(item) != 2:
            raise ValueError("ban list entries must be [user, room] pairs")
        user, room = item
        if not isinstance(user, str) or not isinstance(room, str):
            raise TypeError("ban list user and room must be strings")
        users.append(BannedUser(user, room))
    return users
