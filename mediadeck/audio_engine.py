"""
Audio Engine with Real-time EQ Processing (Pedalboard-based)
=============================================================

One engine owns the whole audible path:

    MediaSourceAdapter → Audio/VideoElement → SignalGraph → output sink

plus the Transport that drives the active element and the
CrossfadeScheduler that automates the fade gain. Host code talks to the
engine through plain method calls and listens to its Qt signals.

Threads: ``render()`` runs on the sink's thread (or the caller's, with a
NullSink). Signals are emitted after the render lock is released, so
handlers may call straight back into the engine.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

import numpy as np
from PySide6.QtCore import QObject, Signal

from .config import PlayerConfig
from .crossfade import CrossfadeScheduler
from .errors import InvalidOperation, LoadError
from .logging_config import get_logger
from .media_elements import AudioElement, FfmpegDecoder, MediaElement, PedalboardDecoder, VideoElement
from .media_source import FileRef, MediaSourceAdapter, SourceRegistry
from .models import EngineState, MediaKind
from .signal_graph import ProcessingContext, SignalGraph
from .transport import Transport

logger = get_logger(__name__)


class AudioEngine(QObject):
    """Playback engine: signal graph, dual media elements, transport, crossfade."""

    timeUpdated = Signal(float)        # seconds
    trackEnded = Signal(int)           # generation of the playthrough that ended
    durationKnown = Signal(float)      # seconds
    crossfadeStarted = Signal(float)   # ramp length in seconds
    errorOccurred = Signal(str)

    def __init__(
        self,
        player_config: Optional[PlayerConfig] = None,
        sink=None,
        audio_decoder=None,
        video_decoder=None,
        parent=None,
    ):
        super().__init__(parent)
        self.config = player_config or PlayerConfig()
        self.sample_rate = self.config.sample_rate
        self.channels = self.config.channels

        self.context = ProcessingContext(self.sample_rate, sink)
        self.context.attach(self.render)
        self.graph = SignalGraph(self.context, self.channels)

        self.audio = AudioElement(
            audio_decoder or PedalboardDecoder(self.sample_rate, self.channels),
            self.sample_rate,
            self.channels,
        )
        self.video = VideoElement(
            video_decoder or FfmpegDecoder(self.sample_rate, self.channels),
            self.sample_rate,
            self.channels,
        )
        self.graph.connect_source(self.audio)
        self.graph.connect_source(self.video)
        self.active_kind = MediaKind.AUDIO

        self.transport = Transport(self.context, self._active_element)
        self.crossfade = CrossfadeScheduler(
            self.graph.fade_gain,
            lambda: self.context.current_time,
            self.config.crossfade_seconds,
        )
        self.crossfade.on_fade_started = self.crossfadeStarted.emit

        self.sources = MediaSourceAdapter(SourceRegistry(self.config.resolved_cache_dir()))

        # Threading
        self._load_lock = threading.Lock()
        self._render_lock = threading.Lock()

        # One generation per playthrough (load or restart); ended is reported once per generation
        self.generation = 0
        self._ended_generation = 0
        self._update_interval_frames = max(1, int(self.config.time_update_interval * self.sample_rate))
        self._frames_since_update = 0
        self._disposed = False

    def _active_element(self) -> MediaElement:
        return self.video if self.active_kind is MediaKind.VIDEO else self.audio

    # --- loading ---
    def load(self, file_ref: FileRef, is_video: bool = False) -> float:
        """Load a track into the matching element; returns its duration.

        Loads are serialized: a second call blocks until the first settles.
        The fade gain is reset before anything else, so even a failed load
        leaves it at 1. On failure the previous source keeps playing and its
        URI stays the only live one.

        Raises:
            ResourceError: the file bytes could not be read.
            DecodeError: the media could not be decoded.
        """
        with self._load_lock:
            if self._disposed:
                raise InvalidOperation("Engine has been disposed")
            self.crossfade.reset()

            target = self.video if is_video else self.audio
            other = self.audio if is_video else self.video
            try:
                uri = self.sources.open(file_ref)
            except LoadError as e:
                self.errorOccurred.emit(str(e))
                raise
            try:
                pcm = target.decode(self.sources.resolve(uri))
            except LoadError as e:
                self.sources.discard(uri)
                self.errorOccurred.emit(str(e))
                raise

            with self._render_lock:
                other.clear()
                duration = target.set_source(uri, pcm)
                self.active_kind = target.kind
                self.generation += 1
                self._frames_since_update = 0
            # Revoke the superseded URI only now that nothing reads from it
            self.sources.commit(uri)

        logger.info(
            "Loaded %s (%s, %.1fs)",
            getattr(file_ref, "name", None) or Path(str(file_ref)).name,
            target.kind.value,
            duration,
        )
        self.durationKnown.emit(duration)
        return duration

    # --- transport ---
    def play(self) -> None:
        element = self._active_element()
        was_ended = element.ended
        self.transport.play()
        if was_ended:
            self.crossfade.reset()
        self._rearm_end(was_ended)
        self._dispatch_time_update(element.current_time)

    def pause(self) -> None:
        self.transport.pause()
        self.crossfade.hold()

    def stop(self) -> None:
        was_ended = self._active_element().ended
        self.transport.stop()
        self._rearm_end(was_ended)
        self.crossfade.cancel()
        self._frames_since_update = 0
        self.timeUpdated.emit(0.0)

    def seek(self, time_seconds: float) -> float:
        was_ended = self._active_element().ended
        position = self.transport.seek(time_seconds)
        self._rearm_end(was_ended)
        self.crossfade.cancel()
        self._frames_since_update = 0
        self._dispatch_time_update(position)
        return position

    def get_current_time(self) -> float:
        return self.transport.get_current_time()

    def get_duration(self) -> float:
        return self.transport.get_duration()

    def get_play_state(self) -> str:
        return self.transport.get_play_state()

    @property
    def is_playing(self) -> bool:
        return self.get_play_state() == "playing"

    @property
    def has_source(self) -> bool:
        return self._active_element().has_source

    # --- parameters ---
    def set_eq_band(self, band: int, gain_db: float) -> float:
        return self.graph.set_eq_gain(band, gain_db)

    def set_volume(self, percent: float) -> float:
        return self.graph.set_volume(percent)

    def set_normalization(self, enabled: bool) -> None:
        self.graph.set_normalization(enabled)

    def set_crossfade(self, enabled: bool, duration_seconds: Optional[float] = None) -> None:
        self.crossfade.configure(enabled, duration_seconds)

    def state(self) -> EngineState:
        return EngineState(
            active_media_kind=self.active_kind,
            is_playing=self.is_playing,
            is_crossfading=self.crossfade.is_crossfading,
            crossfade_enabled=self.crossfade.enabled,
            crossfade_duration_seconds=self.crossfade.duration_seconds,
            eq_gains_db=self.graph.eq_gains,
            normalization_enabled=self.graph.normalization_enabled,
            volume=self.graph.volume,
        )

    # --- rendering ---
    def render(self, frames: int) -> np.ndarray:
        """Render one block; called by the sink (or by hand with a NullSink)."""
        with self._render_lock:
            block = self.graph.process(frames)
            self.context.advance(frames)
            tick, ended = self._poll_element(frames)

        if tick is not None:
            self._dispatch_time_update(tick)
        if ended is not None:
            self.trackEnded.emit(ended)
        return block

    def _poll_element(self, frames: int):
        """Decide which events the block just rendered should produce."""
        element = self._active_element()
        if not element.has_source:
            return None, None
        if element.ended:
            if self._ended_generation == self.generation:
                return None, None
            self._ended_generation = self.generation
            return element.duration, self.generation
        if element.paused:
            return None, None
        self._frames_since_update += frames
        if self._frames_since_update < self._update_interval_frames:
            return None, None
        self._frames_since_update = 0
        return element.current_time, None

    def _rearm_end(self, was_ended: bool) -> None:
        # Leaving the ended state starts a new playthrough with its own generation
        if was_ended and not self._active_element().ended:
            with self._render_lock:
                self.generation += 1

    def _dispatch_time_update(self, position: float) -> None:
        element = self._active_element()
        if not element.paused:
            self.crossfade.on_time_update(position, element.duration, element.kind)
        self.timeUpdated.emit(position)

    def dispose(self) -> None:
        """Stop output and release the last playable URI."""
        with self._load_lock:
            if self._disposed:
                return
            self._disposed = True
            with self._render_lock:
                self.audio.clear()
                self.video.clear()
            self.sources.dispose()
        self.context.close()
        logger.debug("Engine disposed")
