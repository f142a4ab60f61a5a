import json
import os
from pathlib import Path

from . import config
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULTS = {
    "volume": config.DEFAULT_VOLUME,
    "eq_bands": [0.0] * len(config.EQ_BANDS),
    "normalization": config.DEFAULT_NORMALIZATION,
    "crossfade_seconds": config.DEFAULT_CROSSFADE_SECONDS,
}


class SettingsStore:
    """Persisted settings in ``settings.json`` under the config directory.

    Holds plain values only: volume, EQ gains, the normalization flag,
    per-track crossfade flags (keyed by absolute path) and the saved queue.
    Every write is flushed to disk immediately.
    """

    def __init__(self, directory=None):
        base = Path(directory) if directory is not None else config.config_dir()
        base.mkdir(parents=True, exist_ok=True)
        self.path = base / "settings.json"
        self._db = self._read()

    def _read(self):
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def save(self):
        try:
            self.path.write_text(json.dumps(self._db, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Could not save settings to %s: %s", self.path, e)

    def get(self, key, default=None):
        if key in self._db:
            return self._db[key]
        if default is None:
            return DEFAULTS.get(key)
        return default

    def set(self, key, value):
        self._db[key] = value
        self.save()

    # --- per-track crossfade flags ---
    def get_crossfade(self, path):
        flags = self._db.get("crossfade_tracks", {})
        return bool(flags.get(os.path.abspath(path), False))

    def set_crossfade(self, path, enabled):
        flags = self._db.setdefault("crossfade_tracks", {})
        key = os.path.abspath(path)
        if enabled:
            flags[key] = True
        else:
            flags.pop(key, None)
        self.save()

    # --- saved queue ---
    def save_queue(self, paths):
        self._db["queue"] = [os.path.abspath(p) for p in paths]
        self.save()

    def load_queue(self):
        return list(self._db.get("queue", []))
