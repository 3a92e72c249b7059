from __future__ import annotations

import argparse
import os
import sys
import tomllib
from dataclasses import asdict, replace

from websockets.exceptions import WebSocketException

from .banstore import BannedUser
from .config import BotRuntimeConfig
from .logging_config import configure_logging
from .paths import default_banlist_path, default_config_path, ensure_private_parent
from .persistence import BanlistError, BanlistFile, FlushError
from .service import BotService, StartupInterrupted
from .showdown import LoginError

_TUPLE_KEYS = ("rooms", "exempt_users", "owner_symbols")


def _load_toml(path: str) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _apply_config_data(cfg: BotRuntimeConfig, data: dict) -> BotRuntimeConfig:
    bot = data.get("bot") if isinstance(data, dict) else None
    if isinstance(bot, dict):
        data = {**data, **bot}

    log_table = data.get("logging") if isinstance(data, dict) else None
    if isinstance(log_table, dict):
        mapped: dict[str, object] = {}
        for key in ("level", "ws_level", "console", "file", "format", "datefmt"):
            if key in log_table:
                mapped[f"log_{key}"] = log_table.get(key)
        data = {**data, **mapped}

    allowed = set(asdict(cfg).keys())
    # This identifies where the file came from; do not let the file override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    for list_key in _TUPLE_KEYS:
        if list_key in updates and isinstance(updates[list_key], list):
            updates[list_key] = tuple(str(x) for x in updates[list_key])

    for optional_key in ("banlist_path", "log_file", "log_datefmt"):
        if optional_key in updates and updates[optional_key] == "":
            updates[optional_key] = None
    return replace(cfg, **updates) if updates else cfg


def _apply_config_file(cfg: BotRuntimeConfig, path: str) -> BotRuntimeConfig:
    return _apply_config_data(cfg, _load_toml(path))


def _apply_env(cfg: BotRuntimeConfig, environ=None) -> BotRuntimeConfig:
    env = os.environ if environ is None else environ
    updates: dict[str, str] = {}
    nickname = env.get("BLACKLISTBOT_NICKNAME")
    if nickname:
        updates["nickname"] = nickname
    password = env.get("BLACKLISTBOT_PASSWORD")
    if password is not None:
        updates["password"] = password
    return replace(cfg, **updates) if updates else cfg


def _write_default_config(config_path: str, banlist_path: str) -> None:
    ensure_private_parent(config_path)

    content = f"""# blacklistbot configuration (TOML)
#
# This file was created on first run.
# Edit it, then start blacklistbot again.

[bot]

# Account the bot logs in as. Both may instead come from the
# BLACKLISTBOT_NICKNAME and BLACKLISTBOT_PASSWORD environment variables.
nickname = ""
password = ""

# Rooms joined right after login. Rooms where the account is room owner are
# discovered and joined automatically.
rooms = ["joim"]

# Chat server websocket and login endpoint.
server_url = "wss://sim3.psim.us/showdown/websocket"
login_url = "https://play.pokemonshowdown.com/~~showdown/action.php"
connect_timeout_s = 30.0

# Commands look like ".ab Guest 1" / ".unab Guest 1".
command_prefix = "."

# Accounts whose chat lines are always read as commands, whatever their rank.
exempt_users = ["xfix"]

# Rank symbols in the auth listing that mean the bot owns the room.
owner_symbols = ["*"]

# Blacklist storage. The file is rewritten every flush_interval_s seconds;
# bans made since the last flush are lost if the process dies.
banlist_path = {banlist_path!r}
flush_interval_s = 1800.0
flush_on_exit = true

[logging]

# Log level for blacklistbot itself.
level = "INFO"

# Log level for the websocket and HTTP libraries.
ws_level = "WARNING"

# Log to stderr (systemd/journald friendly).
console = true

# Optional file path for logs (leave empty to disable).
file = ""

# Log format and optional date format.
format = "%(asctime)s %(levelname)s %(name)s[%(threadName)s]: %(message)s"
datefmt = ""
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)
    try:
        # May hold the account password.
        os.chmod(config_path, 0o600)
    except OSError:
        pass


def _ensure_first_run_files(config_path: str, banlist_path: str) -> bool:
    created_any = False

    if not os.path.exists(config_path):
        _write_default_config(config_path, banlist_path)
        created_any = True

    banlist = BanlistFile(banlist_path)
    if not banlist.path.exists():
        ensure_private_parent(banlist.path)
        empty: list[BannedUser] = []
        banlist.save(empty)
        created_any = True

    return created_any


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="blacklistbot", description="Enforce per-room blacklists in chat rooms"
    )

    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to a TOML config file (created on first run)",
    )
    p.add_argument(
        "--banlist",
        default=None,
        help="Path to the blacklist file (default comes from config)",
    )
    p.add_argument("--nickname", default=None, help="Account to log in as")
    p.add_argument(
        "--room",
        action="append",
        default=None,
        help="Room to join after login (repeatable; replaces configured rooms)",
    )
    p.add_argument("--server", default=None, help="Chat server websocket URL")
    p.add_argument(
        "--flush-interval",
        type=float,
        default=None,
        help="Seconds between blacklist snapshots",
    )
    p.add_argument(
        "--command-prefix", default=None, help="Character that starts a chat command"
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace, environ=None) -> BotRuntimeConfig:
    cfg = BotRuntimeConfig(config_path=str(args.config))
    if os.path.exists(args.config):
        cfg = _apply_config_file(cfg, str(args.config))
    cfg = _apply_env(cfg, environ)

    if args.banlist is not None:
        cfg = replace(cfg, banlist_path=str(args.banlist))
    if cfg.banlist_path is None:
        cfg = replace(cfg, banlist_path=str(default_banlist_path()))
    if args.nickname is not None:
        cfg = replace(cfg, nickname=str(args.nickname))
    if args.room:
        cfg = replace(cfg, rooms=tuple(args.room))
    if args.server is not None:
        cfg = replace(cfg, server_url=str(args.server))
    if args.flush_interval is not None:
        cfg = replace(cfg, flush_interval_s=float(args.flush_interval))
    if args.command_prefix is not None:
        cfg = replace(cfg, command_prefix=str(args.command_prefix))

    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) if str(args.log_file) else None)
    return cfg


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)

    config_path = str(args.config)
    try:
        cfg = build_config(args)
    except (OSError, tomllib.TOMLDecodeError, TypeError) as e:
        raise SystemExit(f"blacklistbot: bad configuration {config_path}: {e}")

    banlist_path = cfg.banlist_path or str(default_banlist_path())
    try:
        created = _ensure_first_run_files(config_path, banlist_path)
    except (OSError, FlushError) as e:
        raise SystemExit(f"blacklistbot: cannot create default files: {e}")
    if created:
        print(
            "Created default blacklistbot files. Edit the configuration before starting:\n"
            f"- Config:    {config_path}\n"
            f"- Blacklist: {banlist_path}\n"
            "\nThen re-run blacklistbot.",
            file=sys.stderr,
        )
        raise SystemExit(0)

    if not cfg.nickname:
        raise SystemExit("blacklistbot: no nickname configured")
    if cfg.flush_interval_s <= 0:
        raise SystemExit("blacklistbot: flush_interval_s must be positive")

    configure_logging(cfg)

    svc = BotService(cfg)
    svc.install_signal_handlers()
    try:
        svc.start()
    except (BanlistError, LoginError, StartupInterrupted, WebSocketException, OSError) as e:
        svc.client.close()
        raise SystemExit(f"blacklistbot: startup failed: {e}")
    svc.run_forever()

    if svc.fatal_error is not None:
        raise SystemExit(f"blacklistbot: {svc.fatal_error}")


if __name__ == "__main__":
    main()
