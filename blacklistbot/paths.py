from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "blacklistbot.toml"
BANLIST_FILENAME = "blacklist.cbor"


def home_dir() -> Path:
    """Directory holding the config and ban list, ``$BLACKLISTBOT_HOME`` if set."""
    override = os.environ.get("BLACKLISTBOT_HOME")
    return Path(override) if override else Path.home() / ".blacklistbot"


def default_config_path() -> Path:
    return home_dir() / CONFIG_FILENAME


def default_banlist_path() -> Path:
    return home_dir() / BANLIST_FILENAME


def ensure_private_parent(file_path: str | Path) -> None:
    """Create the directory ``file_path`` lives in, readable by the owner only.

    The config holds the account password, so the directory is tightened to
    0700 where the filesystem allows it.
    """
    parent = Path(file_path).parent
    parent.mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(parent, 0o700)
    except OSError:
        pass
