"""Tests for configuration loading and logging setup."""

import logging
import os
from logging.handlers import RotatingFileHandler

import pytest
from PySide6.QtCore import QtMsgType

from mediadeck import config, logging_config
from mediadeck.config import PlayerConfig, load_config
from mediadeck.logging_config import configure_logging, get_logger, log_file_path


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("SAMPLE_RATE", "CHUNK_SIZE", "CROSSFADE_SECONDS", "TIME_UPDATE_INTERVAL",
                 "CACHE_DIR", "CONFIG_DIR", "LOG_LEVEL", "LOG_FILE"):
        monkeypatch.delenv(f"MEDIADECK_{name}", raising=False)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.sample_rate == 44100
    assert cfg.channels == 2
    assert cfg.crossfade_seconds == 3.0
    assert cfg.cache_dir is None


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("MEDIADECK_SAMPLE_RATE", "48000")
    clean_env.setenv("MEDIADECK_CROSSFADE_SECONDS", "5.5")
    clean_env.setenv("MEDIADECK_CACHE_DIR", str(tmp_path / "c"))
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.sample_rate == 48000
    assert cfg.crossfade_seconds == 5.5
    assert cfg.resolved_cache_dir() == tmp_path / "c"
    assert (tmp_path / "c").is_dir()


def test_bad_values_fall_back(clean_env, tmp_path):
    clean_env.setenv("MEDIADECK_CHUNK_SIZE", "lots")
    clean_env.setenv("MEDIADECK_CROSSFADE_SECONDS", "-3")
    cfg = load_config(tmp_path / "missing.env")
    assert cfg.chunk_size == config.CHUNK_SIZE
    assert cfg.crossfade_seconds == 0.0


def test_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("MEDIADECK_TIME_UPDATE_INTERVAL=0.5\n")
    try:
        cfg = load_config(env_file)
        assert cfg.time_update_interval == 0.5
    finally:
        # load_dotenv writes into os.environ directly
        os.environ.pop("MEDIADECK_TIME_UPDATE_INTERVAL", None)


def test_config_dir_override(clean_env, tmp_path):
    clean_env.setenv("MEDIADECK_CONFIG_DIR", str(tmp_path / "conf"))
    assert config.config_dir() == tmp_path / "conf"
    assert (tmp_path / "conf").is_dir()
    assert PlayerConfig(config_dir=tmp_path / "other").resolved_config_dir() == tmp_path / "other"


def test_logger_names():
    assert get_logger("mediadeck.player").name == "mediadeck.player"
    assert get_logger("tests").name == "mediadeck.tests"
    assert get_logger().name == "mediadeck"


def test_configure_logging_is_idempotent(clean_env, tmp_path):
    clean_env.setenv("MEDIADECK_CONFIG_DIR", str(tmp_path))
    logger = logging.getLogger("mediadeck")
    before = list(logger.handlers)
    try:
        configure_logging(logging.DEBUG, log_to_file=False)
        count = len(logger.handlers)
        configure_logging(logging.WARNING, log_to_file=False)
        assert len(logger.handlers) == count
        assert logger.level == logging.WARNING
    finally:
        for handler in logger.handlers[:]:
            if handler not in before:
                logger.removeHandler(handler)


@pytest.fixture
def fresh_logger():
    logger = logging.getLogger("mediadeck")
    before, level = list(logger.handlers), logger.level
    for handler in before:
        logger.removeHandler(handler)
    yield logger
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    for handler in before:
        logger.addHandler(handler)
    logger.setLevel(level)


def test_level_from_environment(clean_env, fresh_logger):
    clean_env.setenv("MEDIADECK_LOG_LEVEL", "debug")
    configure_logging(log_to_file=False)
    assert fresh_logger.level == logging.DEBUG

    clean_env.setenv("MEDIADECK_LOG_LEVEL", "chatty")
    configure_logging(log_to_file=False)
    assert fresh_logger.level == logging.INFO


def test_log_file_location(clean_env, tmp_path):
    clean_env.setenv("MEDIADECK_CONFIG_DIR", str(tmp_path / "conf"))
    assert log_file_path() == tmp_path / "conf" / "mediadeck.log"
    clean_env.setenv("MEDIADECK_LOG_FILE", str(tmp_path / "elsewhere.log"))
    assert log_file_path() == tmp_path / "elsewhere.log"
    clean_env.setenv("MEDIADECK_LOG_FILE", "off")
    assert log_file_path() is None


def test_file_handler_rotates(clean_env, fresh_logger, tmp_path):
    clean_env.setenv("MEDIADECK_LOG_FILE", str(tmp_path / "logs" / "deck.log"))
    configure_logging(logging.INFO)
    files = [h for h in fresh_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(files) == 1
    assert files[0].maxBytes == logging_config.MAX_LOG_BYTES

    get_logger("tests").info("hello from the render thread")
    files[0].flush()
    text = (tmp_path / "logs" / "deck.log").read_text(encoding="utf-8")
    assert "[MainThread] mediadeck.tests: hello from the render thread" in text


def test_qt_messages_are_logged(caplog):
    with caplog.at_level(logging.DEBUG, logger="mediadeck"):
        logging_config._qt_message_handler(QtMsgType.QtWarningMsg, None, "QObject: bad parent")
        logging_config._qt_message_handler(QtMsgType.QtDebugMsg, None, "chatter")
    levels = [(r.name, r.levelno, r.getMessage()) for r in caplog.records]
    assert levels == [
        ("mediadeck.qt", logging.WARNING, "QObject: bad parent"),
        ("mediadeck.qt", logging.DEBUG, "chatter"),
    ]
