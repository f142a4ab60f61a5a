"""Output sinks - where rendered blocks from the signal graph end up.

A sink is started with a render callback ``render(frames) -> ndarray`` and
pulls blocks from it for as long as it runs. ``PyAudioSink`` writes to the
default output device from its own thread; ``NullSink`` never pulls, so the
owner drives rendering by hand (headless use and tests).
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import numpy as np

from .logging_config import get_logger

try:
    import pyaudio
    PYAUDIO_AVAILABLE = True
except ImportError:
    PYAUDIO_AVAILABLE = False

logger = get_logger(__name__)

RenderCallback = Callable[[int], np.ndarray]


class NullSink:
    """Sink with no device; rendering is driven by the caller."""

    def __init__(self):
        self.running = False

    def start(self, render: RenderCallback) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def close(self) -> None:
        self.running = False


class PyAudioSink:
    """Blocking-write PyAudio stream fed from a render thread."""

    def __init__(self, sample_rate: int, channels: int, chunk_size: int):
        if not PYAUDIO_AVAILABLE:
            raise ImportError("PyAudio is required for audio output")
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_size = chunk_size
        self.pyaudio = pyaudio.PyAudio()
        self.stream = None
        self.thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self, render: RenderCallback) -> None:
        if self.running:
            return
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._loop, args=(render,), daemon=True)
        self.thread.start()

    def _loop(self, render: RenderCallback) -> None:
        try:
            self.stream = self.pyaudio.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                frames_per_buffer=self.chunk_size,
            )
            while not self.stop_event.is_set():
                block = render(self.chunk_size)
                self.stream.write(block.astype(np.float32).tobytes())
        except Exception:
            logger.exception("Output stream failed")
        finally:
            self._close_stream()

    def _close_stream(self) -> None:
        if self.stream is None:
            return
        try:
            self.stream.stop_stream()
            self.stream.close()
        except OSError as e:
            logger.debug("Error closing output stream: %s", e)
        self.stream = None

    def stop(self) -> None:
        self.stop_event.set()
        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        self.thread = None

    def close(self) -> None:
        self.stop()
        if self.pyaudio:
            self.pyaudio.terminate()
            self.pyaudio = None


def create_default_sink(sample_rate: int, channels: int, chunk_size: int):
    """Return a device sink, or a ``NullSink`` when PyAudio is missing."""
    try:
        return PyAudioSink(sample_rate, channels, chunk_size)
    except (ImportError, OSError) as e:
        logger.warning("Audio output unavailable (%s); running without a device", e)
        return NullSink()
