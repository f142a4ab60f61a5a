"""Configuration for MediaDeck.

Fixed signal-path constants live at module level. Runtime settings that a
user may want to tweak (sample rate, buffer size, directories, crossfade
length) are read from the environment by ``load_config()``; a ``.env`` file
in the working directory is honoured via python-dotenv.
"""

from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


# Audio format used by the processing graph
SAMPLE_RATE = 44100
CHANNELS = 2
CHUNK_SIZE = 2048

# 5-band EQ: low-shelf, three peaking filters (Q=1), high-shelf
EQ_BANDS = [60, 250, 1000, 4000, 12000]
EQ_PEAK_Q = 1.0
EQ_MIN_DB = -12.0
EQ_MAX_DB = 12.0

# Limiter ("normalization"): only the threshold is toggled
LIMITER_RATIO = 20.0
LIMITER_ATTACK_MS = 3.0
LIMITER_RELEASE_MS = 250.0
NORMALIZATION_THRESHOLD_DB = -6.0
NORMALIZATION_OFF_THRESHOLD_DB = 0.0

DEFAULT_VOLUME = 80
DEFAULT_NORMALIZATION = True
DEFAULT_CROSSFADE_SECONDS = 3.0

# previous() restarts the current track instead of skipping after this point
RESTART_THRESHOLD_SECONDS = 3.0

# Cadence of position updates while playing (seconds of rendered audio)
TIME_UPDATE_INTERVAL = 0.25

AUDIO_EXTS = {".mp3", ".m4a", ".wav", ".ogg", ".flac", ".aac", ".wma"}
VIDEO_EXTS = {".mp4", ".webm", ".mkv", ".avi", ".mov", ".m4v"}
MEDIA_EXTS = AUDIO_EXTS | VIDEO_EXTS

_ENV_PREFIX = "MEDIADECK_"


def config_dir() -> Path:
    """Return (and create) the per-user configuration directory."""
    override = os.getenv(f"{_ENV_PREFIX}CONFIG_DIR")
    if override:
        base = Path(override).expanduser()
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support" / "MediaDeck"
    elif os.name == "nt":
        base = Path(os.path.expanduser(os.getenv("APPDATA", "~"))) / "MediaDeck"
    else:
        base = Path.home() / ".config" / "mediadeck"
    base.mkdir(parents=True, exist_ok=True)
    return base


@dataclass
class PlayerConfig:
    """Runtime settings for one engine/controller pair."""

    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    chunk_size: int = CHUNK_SIZE
    crossfade_seconds: float = DEFAULT_CROSSFADE_SECONDS
    time_update_interval: float = TIME_UPDATE_INTERVAL
    cache_dir: Path | None = None
    config_dir: Path | None = None

    def resolved_cache_dir(self) -> Path:
        path = self.cache_dir or Path(tempfile.gettempdir()) / "mediadeck_cache"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def resolved_config_dir(self) -> Path:
        if self.config_dir is None:
            return config_dir()
        self.config_dir.mkdir(parents=True, exist_ok=True)
        return self.config_dir


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(_ENV_PREFIX + name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(_ENV_PREFIX + name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str) -> Path | None:
    raw = os.getenv(_ENV_PREFIX + name)
    return Path(raw).expanduser() if raw else None


def load_config(env_file: str | os.PathLike | None = None) -> PlayerConfig:
    """Build a ``PlayerConfig`` from ``.env`` and ``MEDIADECK_*`` variables.

    Unparseable values fall back to the defaults above.
    """
    load_dotenv(env_file)
    return PlayerConfig(
        sample_rate=_env_int("SAMPLE_RATE", SAMPLE_RATE),
        channels=CHANNELS,
        chunk_size=max(64, _env_int("CHUNK_SIZE", CHUNK_SIZE)),
        crossfade_seconds=max(0.0, _env_float("CROSSFADE_SECONDS", DEFAULT_CROSSFADE_SECONDS)),
        time_update_interval=max(0.01, _env_float("TIME_UPDATE_INTERVAL", TIME_UPDATE_INTERVAL)),
        cache_dir=_env_path("CACHE_DIR"),
        config_dir=_env_path("CONFIG_DIR"),
    )
