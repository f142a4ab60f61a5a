"""Named playlists: ordered lists of track paths stored as JSON."""

import json
import os
from pathlib import Path

from . import config
from .logging_config import get_logger

logger = get_logger(__name__)


class PlaylistStore:
    """All playlists live in one ``playlists.json`` file: {name: {"paths": [...]}}."""

    def __init__(self, directory=None):
        base = Path(directory) if directory is not None else config.config_dir()
        base.mkdir(parents=True, exist_ok=True)
        self.path = base / "playlists.json"
        try:
            data = json.loads(self.path.read_text(encoding="utf-8")) if self.path.exists() else {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable playlists file %s: %s", self.path, e)
            data = {}
        self._playlists = data if isinstance(data, dict) else {}

    def _save(self):
        try:
            self.path.write_text(json.dumps(self._playlists, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Could not save playlists to %s: %s", self.path, e)

    def names(self):
        return sorted(self._playlists)

    def create(self, name, paths=()):
        if not name or name in self._playlists:
            raise KeyError(f"Playlist name unavailable: {name!r}")
        self._playlists[name] = {"paths": [os.path.abspath(p) for p in paths]}
        self._save()

    def rename(self, old, new):
        if old not in self._playlists:
            raise KeyError(f"No playlist named {old!r}")
        if not new or (new != old and new in self._playlists):
            raise KeyError(f"Playlist name unavailable: {new!r}")
        self._playlists[new] = self._playlists.pop(old)
        self._save()

    def delete(self, name):
        if self._playlists.pop(name, None) is not None:
            self._save()

    def get_paths(self, name):
        return list(self._playlists.get(name, {}).get("paths", []))

    def save_paths(self, name, paths):
        self._playlists[name] = {"paths": [os.path.abspath(p) for p in paths]}
        self._save()

    def append(self, name, paths):
        """Append paths not already in the playlist; returns how many were added."""
        current = self.get_paths(name)
        fresh = [os.path.abspath(p) for p in paths if os.path.abspath(p) not in current]
        self.save_paths(name, current + fresh)
        return len(fresh)


def tracks_for_paths(paths, tracks):
    """Map stored paths onto library tracks, dropping paths no longer present."""
    by_path = {os.path.abspath(t.path): t for t in tracks}
    found = [by_path[os.path.abspath(p)] for p in paths if os.path.abspath(p) in by_path]
    missing = len(paths) - len(found)
    if missing:
        logger.info("%d playlist entries are not in the library", missing)
    return found


def export_m3u(paths, out_path):
    lines = ["#EXTM3U"]
    lines += [str(p) for p in paths]
    Path(out_path).write_text("\n".join(lines) + "\n", encoding="utf-8")
