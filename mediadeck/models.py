"""Data model shared by the engine, the queue and the playback controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class MediaKind(Enum):
    """Which media element currently owns transport and time queries."""

    AUDIO = "audio"
    VIDEO = "video"


class PlaybackState(Enum):
    """Playback controller state machine."""

    IDLE = "idle"
    LOADING = "loading"
    PAUSED = "paused"
    PLAYING = "playing"


@dataclass(eq=False)
class Track:
    """A single library entry.

    ``id``, ``path``, ``title``, ``artist``, ``album`` and ``is_video`` are the
    track's identity and are never changed after a scan. ``duration`` is
    filled in by the engine after the first successful load and ``crossfade``
    is the per-track fade-out opt-in.

    Two Track objects are equal when their ids are equal, so a queue entry and
    the library entry it was copied from compare the same.
    """

    id: int
    path: str
    title: str
    artist: str = "Unknown Artist"
    album: str = "Unknown Album"
    is_video: bool = False
    duration: float = 0.0
    crossfade: bool = False

    def __eq__(self, other):
        if not isinstance(other, Track):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.VIDEO if self.is_video else MediaKind.AUDIO


@dataclass(frozen=True)
class QueueState:
    """Read-only snapshot of the queue handed to UI collaborators."""

    entries: Tuple[Track, ...] = ()
    current_index: int = -1

    @property
    def current(self) -> Track | None:
        if 0 <= self.current_index < len(self.entries):
            return self.entries[self.current_index]
        return None


@dataclass(frozen=True)
class EngineState:
    """Read-only snapshot of the audio engine parameters."""

    active_media_kind: MediaKind = MediaKind.AUDIO
    is_playing: bool = False
    is_crossfading: bool = False
    crossfade_enabled: bool = False
    crossfade_duration_seconds: float = 3.0
    eq_gains_db: Tuple[float, ...] = field(default_factory=lambda: (0.0,) * 5)
    normalization_enabled: bool = True
    volume: float = 0.8
