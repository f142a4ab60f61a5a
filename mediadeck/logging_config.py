"""Logging setup for MediaDeck.

Everything logs under the ``mediadeck`` logger. Audio is rendered on the
output device's callback thread and decodes run on a worker QThread, so
records carry the thread name. Qt's own warnings are routed here too.

Environment:
    MEDIADECK_LOG_LEVEL: level name used when none is passed (default INFO)
    MEDIADECK_LOG_FILE: log file path; "off" disables the file
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from . import config

ROOT_LOGGER = "mediadeck"
LOG_FILE_NAME = "mediadeck.log"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

# A long listening session should not grow the log without bound
MAX_LOG_BYTES = 1_000_000
LOG_BACKUPS = 2

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.getenv("MEDIADECK_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        named = logging.getLevelName(level.strip().upper())
        return named if isinstance(named, int) else logging.INFO
    return int(level)


def log_file_path() -> Optional[Path]:
    """Where the log file goes, or None when file logging is switched off."""
    override = os.getenv("MEDIADECK_LOG_FILE")
    if override is not None:
        if override.strip().lower() in ("", "off", "none"):
            return None
        return Path(override).expanduser()
    return config.config_dir() / LOG_FILE_NAME


def _qt_message_handler(msg_type, context, message) -> None:
    logging.getLogger(f"{ROOT_LOGGER}.qt").log(_QT_LEVELS.get(msg_type, logging.WARNING), message)


def configure_logging(level: Union[int, str, None] = None, log_to_file: bool = True) -> None:
    """Attach console and file handlers to the ``mediadeck`` logger once.

    Later calls only change the level.
    """
    resolved = _resolve_level(level)
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(resolved)
    if any(getattr(h, "_mediadeck", False) for h in root.handlers):
        return

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._mediadeck = True
    root.addHandler(console)
    qInstallMessageHandler(_qt_message_handler)

    path = log_file_path() if log_to_file else None
    if path is None:
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS,
                                           encoding="utf-8")
    except OSError as e:
        root.warning("Cannot write %s, logging to the console only: %s", path, e)
        return
    file_handler.setFormatter(formatter)
    file_handler._mediadeck = True
    root.addHandler(file_handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under ``mediadeck``; module ``__name__`` values pass through."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
