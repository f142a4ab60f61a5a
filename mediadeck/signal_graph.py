"""Signal graph - the fixed processing chain every audible sample goes through.

Topology (built once, never rewired)::

    AudioElement ┐
    VideoElement ┘→ [EQ band0..4] → limiter → master gain → fade gain → sink

The EQ and limiter are pedalboard plugins held in one ``Pedalboard``; their
parameters are mutated in place. Master and fade gain are ``AudioParam``
curves evaluated per sample against the processing clock, so the fade gain
can be automated independently of the user's volume.
"""

from __future__ import annotations

import math
import threading
from typing import List, Tuple

import numpy as np
from pedalboard import Compressor, HighShelfFilter, LowShelfFilter, Pedalboard, PeakFilter

from . import config
from .audio_param import AudioParam
from .errors import InvalidOperation, OutOfRangeParameter
from .logging_config import get_logger
from .media_elements import MediaElement
from .output import NullSink

logger = get_logger(__name__)


def clamp_parameter(name: str, value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into [lo, hi]; non-finite input raises."""
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise OutOfRangeParameter(f"{name} must be a number, got {value!r}") from e
    if not math.isfinite(value):
        raise OutOfRangeParameter(f"{name} must be finite, got {value}")
    clamped = min(hi, max(lo, value))
    if clamped != value:
        logger.debug("%s %.2f clamped to %.2f", name, value, clamped)
    return clamped


class ProcessingContext:
    """Processing clock plus the sink that pulls rendered audio.

    ``current_time`` counts rendered frames, so it only advances while
    something renders. The context starts ``suspended``; ``resume()`` is
    idempotent and starts the sink.
    """

    def __init__(self, sample_rate: int, sink=None):
        self.sample_rate = int(sample_rate)
        self.sink = sink if sink is not None else NullSink()
        self.state = "suspended"
        self._frames_rendered = 0
        self._render = None
        self._lock = threading.Lock()

    def attach(self, render) -> None:
        self._render = render

    @property
    def current_time(self) -> float:
        return self._frames_rendered / float(self.sample_rate)

    def advance(self, frames: int) -> None:
        self._frames_rendered += int(frames)

    def resume(self) -> None:
        with self._lock:
            if self.state == "closed":
                raise InvalidOperation("Processing context is closed")
            if self.state == "running":
                return
            self.state = "running"
            self.sink.start(self._render)

    def suspend(self) -> None:
        with self._lock:
            if self.state != "running":
                return
            self.state = "suspended"
        self.sink.stop()

    def close(self) -> None:
        with self._lock:
            if self.state == "closed":
                return
            self.state = "closed"
        self.sink.close()


class SignalGraph:
    """EQ → limiter → master gain → fade gain, shared by both media elements."""

    def __init__(self, context: ProcessingContext, channels: int = config.CHANNELS):
        self.context = context
        self.channels = int(channels)
        self.sources: List[MediaElement] = []
        self._chain_lock = threading.Lock()

        self.eq_filters = []
        for i, freq in enumerate(config.EQ_BANDS):
            if i == 0:
                band = LowShelfFilter(cutoff_frequency_hz=freq, gain_db=0.0)
            elif i == len(config.EQ_BANDS) - 1:
                band = HighShelfFilter(cutoff_frequency_hz=freq, gain_db=0.0)
            else:
                band = PeakFilter(cutoff_frequency_hz=freq, gain_db=0.0, q=config.EQ_PEAK_Q)
            self.eq_filters.append(band)
        self._eq_gains = [0.0] * len(config.EQ_BANDS)

        self.limiter = Compressor(
            threshold_db=config.NORMALIZATION_THRESHOLD_DB,
            ratio=config.LIMITER_RATIO,
            attack_ms=config.LIMITER_ATTACK_MS,
            release_ms=config.LIMITER_RELEASE_MS,
        )
        self.set_normalization(config.DEFAULT_NORMALIZATION)

        self._chain = Pedalboard([*self.eq_filters, self.limiter])

        self.master_gain = AudioParam(config.DEFAULT_VOLUME / 100.0)
        self.fade_gain = AudioParam(1.0)

    def connect_source(self, element: MediaElement) -> None:
        if element not in self.sources:
            self.sources.append(element)

    # --- parameters ---
    def set_eq_gain(self, band: int, gain_db: float) -> float:
        """Set one band's gain (clamped to ±12 dB); returns the stored value."""
        if not isinstance(band, int) or not 0 <= band < len(self.eq_filters):
            raise OutOfRangeParameter(f"EQ band must be 0-{len(self.eq_filters) - 1}, got {band!r}")
        gain_db = clamp_parameter(f"EQ band {band}", gain_db, config.EQ_MIN_DB, config.EQ_MAX_DB)
        with self._chain_lock:
            self.eq_filters[band].gain_db = gain_db
            self._eq_gains[band] = gain_db
        return gain_db

    @property
    def eq_gains(self) -> Tuple[float, ...]:
        return tuple(self._eq_gains)

    def set_normalization(self, enabled: bool) -> None:
        enabled = bool(enabled)
        threshold = (
            config.NORMALIZATION_THRESHOLD_DB if enabled else config.NORMALIZATION_OFF_THRESHOLD_DB
        )
        with self._chain_lock:
            self.limiter.threshold_db = threshold
        self.normalization_enabled = enabled

    def set_volume(self, percent: float) -> float:
        """Map a 0-100 volume onto the master gain (linear); returns the gain."""
        percent = clamp_parameter("Volume", percent, 0.0, 100.0)
        gain = percent / 100.0
        self.master_gain.set_value(gain)
        return gain

    @property
    def volume(self) -> float:
        return self.master_gain.value

    # --- rendering ---
    def process(self, frames: int) -> np.ndarray:
        """Pull ``frames`` frames from the sources and run them through the chain."""
        start = self.context.current_time
        rate = self.context.sample_rate

        mix = np.zeros((frames, self.channels), dtype=np.float32)
        for source in self.sources:
            mix += source.read(frames)

        with self._chain_lock:
            wet = self._chain(np.ascontiguousarray(mix.T), rate, reset=False)
        out = wet.T[:frames]

        gain = self.master_gain.render(start, frames, rate) * self.fade_gain.render(start, frames, rate)
        out = out * gain[:, None]
        return np.clip(out, -1.0, 1.0).astype(np.float32)
