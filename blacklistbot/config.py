from __future__ import annotations

from dataclasses import dataclass

from .constants import DEFAULT_LOGIN_URL, DEFAULT_ROOMS, DEFAULT_SERVER_URL


@dataclass(frozen=True)
class BotRuntimeConfig:
    config_path: str | None = None
    banlist_path: str | None = None
    nickname: str = ""
    password: str = ""
    rooms: tuple[str, ...] = DEFAULT_ROOMS
    server_url: str = DEFAULT_SERVER_URL
    login_url: str = DEFAULT_LOGIN_URL
    connect_timeout_s: float = 30.0
    command_prefix: str = "."
    exempt_users: tuple[str, ...] = ("xfix",)
    owner_symbols: tuple[str, ...] = ("*",)
    flush_interval_s: float = 30 * 60.0
    flush_on_exit: bool = True
    log_level: str = "INFO"
    log_ws_level: str = "WARNING"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s[%(threadName)s]: %(message)s"
    log_datefmt: str | None = None
