from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import BotRuntimeConfig

# Third-party loggers governed by ``log_ws_level``; websockets logs every
# frame at DEBUG.
LIBRARY_LOGGERS = ("websockets", "urllib3", "requests")

_FALLBACK_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _parse_level(value, default: int) -> int:
    text = str(value or "").strip().upper()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    return logging.getLevelNamesMapping().get(text, default)


def _open_log_file(path: str) -> logging.Handler:
    p = Path(os.path.expanduser(path))
    p.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(p, encoding="utf-8")
    try:
        os.chmod(p, 0o600)
    except OSError:
        pass
    return handler


def _build_handlers(cfg: BotRuntimeConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if cfg.log_console:
        handlers.append(logging.StreamHandler())
    if cfg.log_file and cfg.log_file.strip():
        handlers.append(_open_log_file(cfg.log_file))

    formatter = logging.Formatter(
        fmt=cfg.log_format.strip() or _FALLBACK_FORMAT,
        datefmt=cfg.log_datefmt or None,
    )
    for h in handlers:
        h.setFormatter(formatter)
    return handlers


def configure_logging(cfg: BotRuntimeConfig) -> None:
    """Route all logging through the handlers ``cfg`` asks for.

    Existing root handlers are replaced, so a second call does not double
    every line.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in _build_handlers(cfg):
        root.addHandler(h)
    root.setLevel(_parse_level(cfg.log_level, logging.INFO))

    lib_level = _parse_level(cfg.log_ws_level, logging.WARNING)
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(lib_level)

    logging.captureWarnings(True)
