from __future__ import annotations

import os
import re

_NON_ID_CHARS = re.compile(r"[^a-z0-9]+")


def expand_path(p: str) -> str:
    return os.path.expanduser(os.path.expandvars(p))


def to_id(name) -> str:
    """Normalize a display name the way the chat server compares users.

    Rank prefixes, spaces and punctuation disappear and case is folded, so
    ``" Guest 1"``, ``"+guest1"`` and ``"GUEST-1"`` all become ``"guest1"``.
    """
    if not isinstance(name, str):
        return ""
    return _NON_ID_CHARS.sub("", name.lower())
