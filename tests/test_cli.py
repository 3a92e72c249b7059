import argparse

import pytest

from blacklistbot.cli import (
    _apply_config_data,
    _apply_env,
    _build_arg_parser,
    _ensure_first_run_files,
    build_config,
)
from blacklistbot.config import BotRuntimeConfig
from blacklistbot.persistence import BanlistFile


def test_apply_config_data_tables() -> None:
    data = {
        "bot": {
            "nickname": "Usain Bot",
            "rooms": ["joim", "lobby"],
            "flush_interval_s": 60.0,
            "config_path": "/elsewhere.toml",
            "banlist_path": "",
            "unknown_key": 1,
        },
        "logging": {"level": "DEBUG", "file": "", "ws_level": "ERROR"},
    }
    cfg = _apply_config_data(BotRuntimeConfig(config_path="/here.toml"), data)

    assert cfg.nickname == "Usain Bot"
    assert cfg.rooms == ("joim", "lobby")
    assert cfg.flush_interval_s == 60.0
    assert cfg.config_path == "/here.toml"
    assert cfg.banlist_path is None
    assert cfg.log_level == "DEBUG"
    assert cfg.log_ws_level == "ERROR"
    assert cfg.log_file is None


def test_apply_env_credentials() -> None:
    cfg = _apply_env(
        BotRuntimeConfig(nickname="from file"),
        {"BLACKLISTBOT_NICKNAME": "Usain Bot", "BLACKLISTBOT_PASSWORD": "hunter2"},
    )
    assert cfg.nickname == "Usain Bot"
    assert cfg.password == "hunter2"

    assert _apply_env(BotRuntimeConfig(nickname="kept"), {}).nickname == "kept"


def test_first_run_creates_files(tmp_path) -> None:
    config_path = tmp_path / "home" / "blacklistbot.toml"
    banlist_path = tmp_path / "home" / "blacklist.cbor"

    assert _ensure_first_run_files(str(config_path), str(banlist_path)) is True
    assert config_path.exists()
    assert BanlistFile(str(banlist_path)).load() == []

    assert _ensure_first_run_files(str(config_path), str(banlist_path)) is False


def test_default_config_parses_back(tmp_path) -> None:
    config_path = tmp_path / "blacklistbot.toml"
    banlist_path = tmp_path / "blacklist.cbor"
    _ensure_first_run_files(str(config_path), str(banlist_path))

    args = _build_arg_parser().parse_args(["--config", str(config_path)])
    cfg = build_config(args, environ={})
    assert cfg.banlist_path == str(banlist_path)
    assert cfg.rooms == ("joim",)
    assert cfg.flush_interval_s == 1800.0
    assert cfg.log_file is None
    assert cfg.log_datefmt is None


def test_command_line_overrides(tmp_path) -> None:
    config_path = tmp_path / "blacklistbot.toml"
    config_path.write_text('[bot]\nnickname = "file"\nrooms = ["joim"]\n')

    args = _build_arg_parser().parse_args(
        [
            "--config", str(config_path),
            "--nickname", "cli",
            "--room", "lobby",
            "--room", "help",
            "--flush-interval", "5",
            "--banlist", str(tmp_path / "b.cbor"),
            "--log-file", "",
        ]
    )
    cfg = build_config(args, environ={"BLACKLISTBOT_NICKNAME": "env"})

    assert cfg.nickname == "cli"
    assert cfg.rooms == ("lobby", "help")
    assert cfg.flush_interval_s == 5.0
    assert cfg.banlist_path == str(tmp_path / "b.cbor")
    assert cfg.log_file is None


def test_main_requires_nickname(tmp_path, monkeypatch) -> None:
    from blacklistbot.cli import main

    monkeypatch.delenv("BLACKLISTBOT_NICKNAME", raising=False)

    config_path = tmp_path / "blacklistbot.toml"
    banlist_path = tmp_path / "blacklist.cbor"
    _ensure_first_run_files(str(config_path), str(banlist_path))

    with pytest.raises(SystemExit) as exc:
        main(["--config", str(config_path)])
    assert "nickname" in str(exc.value)


def test_arg_parser_defaults() -> None:
    args = _build_arg_parser().parse_args([])
    assert isinstance(args, argparse.Namespace)
    assert args.room is None
    assert args.banlist is None


class _StubService:
    fatal_error: Exception | None = None
    startup_error: Exception | None = None

    def __init__(self, cfg) -> None:
        self.cfg = cfg
        self.client = self
        self.closed = False

    def install_signal_handlers(self) -> None:
        pass

    def start(self) -> None:
        if self.startup_error is not None:
            raise self.startup_error

    def run_forever(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def _ready_config(tmp_path) -> str:
    config_path = tmp_path / "blacklistbot.toml"
    banlist_path = tmp_path / "blacklist.cbor"
    _ensure_first_run_files(str(config_path), str(banlist_path))
    return str(config_path)


def test_main_exits_nonzero_after_flush_failure(tmp_path, monkeypatch) -> None:
    import blacklistbot.cli as cli
    from blacklistbot.persistence import FlushError

    class FailingFlush(_StubService):
        fatal_error = FlushError("cannot write ban list: disk full")

    monkeypatch.setattr(cli, "BotService", FailingFlush)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **kw: None)

    with pytest.raises(SystemExit) as exc:
        cli.main(["--config", _ready_config(tmp_path), "--nickname", "Usain Bot"])
    assert exc.value.code not in (0, None)
    assert "disk full" in str(exc.value)


def test_main_reports_interrupted_startup(tmp_path, monkeypatch) -> None:
    import blacklistbot.cli as cli
    from blacklistbot.service import StartupInterrupted

    class Interrupted(_StubService):
        startup_error = StartupInterrupted("interrupted by SIGINT during startup")

    monkeypatch.setattr(cli, "BotService", Interrupted)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **kw: None)

    with pytest.raises(SystemExit) as exc:
        cli.main(["--config", _ready_config(tmp_path), "--nickname", "Usain Bot"])
    assert str(exc.value) == "blacklistbot: startup failed: interrupted by SIGINT during startup"


def test_home_override(tmp_path, monkeypatch) -> None:
    from blacklistbot.paths import default_banlist_path, default_config_path

    monkeypatch.setenv("BLACKLISTBOT_HOME", str(tmp_path / "bot"))
    assert default_config_path() == tmp_path / "bot" / "blacklistbot.toml"
    assert default_banlist_path() == tmp_path / "bot" / "blacklist.cbor"
