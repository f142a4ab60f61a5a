"""Media elements - the two sources feeding the signal graph.

An element holds one decoded track as float32 PCM shaped (frames, channels)
and a read head. The render thread pulls blocks with ``read()``; the command
thread moves the read head with ``play()``, ``pause()`` and the
``current_time`` setter. Both sides go through ``_lock``.

``AudioElement`` decodes through pedalboard's ``AudioFile`` (resampled to
the engine rate). ``VideoElement`` asks ffmpeg for the audio track of a
video container; frames are never decoded.
"""

from __future__ import annotations

import subprocess
import threading
from pathlib import Path
from typing import Optional

import numpy as np
from pedalboard.io import AudioFile

from .errors import DecodeError, InvalidOperation
from .logging_config import get_logger
from .models import MediaKind

logger = get_logger(__name__)

FFMPEG_TIMEOUT_SECONDS = 300


def _fit_channels(audio: np.ndarray, channels: int) -> np.ndarray:
    """Coerce (frames, n) PCM to (frames, channels)."""
    if audio.ndim == 1:
        audio = audio[:, None]
    have = audio.shape[1]
    if have == channels:
        return audio
    if have == 1:
        return np.repeat(audio, channels, axis=1)
    if have > channels:
        return audio[:, :channels]
    # pad missing channels with the last one
    extra = np.repeat(audio[:, -1:], channels - have, axis=1)
    return np.concatenate([audio, extra], axis=1)


class PedalboardDecoder:
    """Decode audio files with ``pedalboard.io.AudioFile``."""

    def __init__(self, sample_rate: int, channels: int):
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)

    def decode(self, path: Path) -> np.ndarray:
        try:
            with AudioFile(str(path)).resampled_to(self.sample_rate) as f:
                audio = f.read(f.frames)
        except (OSError, ValueError, RuntimeError) as e:
            raise DecodeError(f"Cannot decode {Path(path).name}: {e}") from e
        if audio.size == 0:
            raise DecodeError(f"No audio frames in {Path(path).name}")
        # pedalboard returns (channels, frames)
        return _fit_channels(np.ascontiguousarray(audio.T, dtype=np.float32), self.channels)


class FfmpegDecoder:
    """Extract the audio track of a video file as float PCM via ffmpeg."""

    def __init__(self, sample_rate: int, channels: int, executable: str = "ffmpeg"):
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.executable = executable

    def build_command(self, path: Path) -> list:
        return [
            self.executable,
            "-v", "error",
            "-i", str(path),
            "-vn",                           # no video
            "-f", "f32le",                   # raw float32 little-endian
            "-ac", str(self.channels),
            "-ar", str(self.sample_rate),
            "-",
        ]

    def decode(self, path: Path) -> np.ndarray:
        name = Path(path).name
        try:
            result = subprocess.run(
                self.build_command(path),
                capture_output=True,
                timeout=FFMPEG_TIMEOUT_SECONDS,
            )
        except FileNotFoundError as e:
            raise DecodeError("FFmpeg not found. Install FFmpeg to play video files.") from e
        except subprocess.TimeoutExpired as e:
            raise DecodeError(f"FFmpeg timed out decoding {name}") from e

        if result.returncode != 0:
            detail = result.stderr.decode("utf-8", errors="ignore").strip()
            raise DecodeError(f"FFmpeg failed for {name}: {detail or result.returncode}")

        usable = len(result.stdout) - len(result.stdout) % (4 * self.channels)
        if usable <= 0:
            raise DecodeError(f"No audio track in {name}")
        pcm = np.frombuffer(result.stdout[:usable], dtype=np.float32)
        return pcm.reshape((-1, self.channels)).copy()


class MediaElement:
    """One playable source with a read head."""

    kind: MediaKind = MediaKind.AUDIO
    # Loudness is handled by the graph's gain stages, never here.
    volume = 1.0

    def __init__(self, decoder, sample_rate: int, channels: int):
        self.decoder = decoder
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.src: Optional[str] = None
        self._pcm: Optional[np.ndarray] = None
        self._position = 0
        self._paused = True
        self._ended = False
        self._lock = threading.Lock()

    def decode(self, path: Path) -> np.ndarray:
        return self.decoder.decode(path)

    def set_source(self, uri: str, pcm: np.ndarray) -> float:
        """Swap in decoded PCM; the element starts paused at 0."""
        with self._lock:
            self.src = uri
            self._pcm = pcm
            self._position = 0
            self._paused = True
            self._ended = False
        return self.duration

    def clear(self) -> None:
        with self._lock:
            self.src = None
            self._pcm = None
            self._position = 0
            self._paused = True
            self._ended = False

    @property
    def has_source(self) -> bool:
        return self._pcm is not None

    @property
    def duration(self) -> float:
        pcm = self._pcm
        if pcm is None:
            return 0.0
        return len(pcm) / float(self.sample_rate)

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def current_time(self) -> float:
        return self._position / float(self.sample_rate)

    @current_time.setter
    def current_time(self, seconds: float) -> None:
        with self._lock:
            if self._pcm is None:
                raise InvalidOperation("Cannot seek: nothing loaded")
            frame = int(round(float(seconds) * self.sample_rate))
            self._position = max(0, min(frame, len(self._pcm)))
            # Parked at the end while paused; it ends once played
            self._ended = not self._paused and self._position >= len(self._pcm)

    def play(self) -> None:
        with self._lock:
            if self._pcm is None:
                raise InvalidOperation("Cannot play: nothing loaded")
            if self._ended:
                self._position = 0
                self._ended = False
            self._paused = False

    def pause(self) -> None:
        with self._lock:
            self._paused = True

    def read(self, frames: int) -> np.ndarray:
        """Return the next ``frames`` frames (zeros when paused or ended)."""
        out = np.zeros((frames, self.channels), dtype=np.float32)
        with self._lock:
            pcm = self._pcm
            if pcm is None or self._paused or self._ended:
                return out
            start = self._position
            end = min(start + frames, len(pcm))
            out[: end - start] = pcm[start:end]
            self._position = end
            if end >= len(pcm):
                self._ended = True
                self._paused = True
        return out


class AudioElement(MediaElement):
    kind = MediaKind.AUDIO


class VideoElement(MediaElement):
    kind = MediaKind.VIDEO
