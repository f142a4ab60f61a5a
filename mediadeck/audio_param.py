"""Automatable gain parameter driven by the processing clock.

An ``AudioParam`` has an intrinsic value plus a timeline of scheduled
events. Two event kinds exist:

``set``     jump to ``value`` at ``time``
``linear``  ramp linearly from the previous event's (time, value) so that
            ``value`` is reached exactly at ``time``

Times are processing-clock seconds (``ProcessingContext.current_time``),
never wall-clock, so a ramp scheduled from the render thread ends on an
exact sample.
"""

from __future__ import annotations

import bisect
import math
import threading
from dataclasses import dataclass
from typing import List

import numpy as np

from .errors import OutOfRangeParameter


@dataclass(frozen=True)
class _Event:
    kind: str  # "set" | "linear"
    time: float
    value: float


class AudioParam:
    """Single float parameter with sample-accurate automation."""

    def __init__(self, value: float = 1.0, min_value: float = 0.0, max_value: float = 1.0):
        self.min_value = float(min_value)
        self.max_value = float(max_value)
        self._value = self._check(value)
        self._events: List[_Event] = []
        self._lock = threading.Lock()

    def _check(self, value: float) -> float:
        value = float(value)
        if not math.isfinite(value):
            raise OutOfRangeParameter(f"Parameter value must be finite, got {value}")
        return min(self.max_value, max(self.min_value, value))

    def _insert(self, event: _Event) -> None:
        times = [e.time for e in self._events]
        self._events.insert(bisect.bisect_right(times, event.time), event)

    # --- scheduling API ---
    @property
    def value(self) -> float:
        """Intrinsic value (what the parameter holds with no automation)."""
        return self._value

    def set_value(self, value: float) -> None:
        """Drop all automation and hold ``value`` immediately."""
        value = self._check(value)
        with self._lock:
            self._events.clear()
            self._value = value

    def set_value_at_time(self, value: float, time: float) -> None:
        event = _Event("set", float(time), self._check(value))
        with self._lock:
            self._insert(event)

    def linear_ramp_to_value_at_time(self, value: float, end_time: float) -> None:
        event = _Event("linear", float(end_time), self._check(value))
        with self._lock:
            self._insert(event)

    def cancel_scheduled_values(self, start_time: float) -> None:
        """Remove every event scheduled at or after ``start_time``."""
        with self._lock:
            self._events = [e for e in self._events if e.time < start_time]

    @property
    def has_automation(self) -> bool:
        with self._lock:
            return bool(self._events)

    # --- evaluation ---
    def value_at(self, time: float) -> float:
        return float(self.render(time, 1, 1)[0])

    def render(self, start_time: float, frames: int, sample_rate: int) -> np.ndarray:
        """Return the per-sample curve for ``frames`` samples from ``start_time``."""
        with self._lock:
            events = list(self._events)
            base = self._value
        if not events:
            return np.full(frames, base, dtype=np.float32)

        times = start_time + np.arange(frames, dtype=np.float64) / float(sample_rate)
        out = np.full(frames, base, dtype=np.float64)
        prev_time = None
        prev_value = base
        for event in events:
            if event.kind == "linear" and prev_time is not None and event.time > prev_time:
                seg = (times >= prev_time) & (times < event.time)
                if seg.any():
                    frac = (times[seg] - prev_time) / (event.time - prev_time)
                    out[seg] = prev_value + (event.value - prev_value) * frac
            out[times >= event.time] = event.value
            prev_time, prev_value = event.time, event.value
        return out.astype(np.float32)
