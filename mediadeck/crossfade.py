"""Crossfade scheduler - fades the current track out before its natural end.

On every position tick of an audio track the scheduler checks whether the
remaining time has entered the crossfade window. The first time it does, a
single linear ramp to 0 is scheduled on the fade gain, anchored at the
processing clock and lasting exactly the remaining time, so silence is
reached on the track's last sample. The ramp is latched: later ticks in the
same playthrough never schedule another one.

The scheduler only shapes loudness. The transport still reports the end of
media normally and the playback controller decides what plays next.
"""

from __future__ import annotations

from typing import Callable, Optional

from . import config
from .audio_param import AudioParam
from .logging_config import get_logger
from .models import MediaKind
from .signal_graph import clamp_parameter

logger = get_logger(__name__)

# Upper bound for the crossfade window
MAX_CROSSFADE_SECONDS = 30.0


class CrossfadeScheduler:
    def __init__(
        self,
        fade_gain: AudioParam,
        clock: Callable[[], float],
        duration_seconds: float = config.DEFAULT_CROSSFADE_SECONDS,
    ):
        self.fade_gain = fade_gain
        self.clock = clock
        self.enabled = False
        self.duration_seconds = clamp_parameter(
            "Crossfade duration", duration_seconds, 0.0, MAX_CROSSFADE_SECONDS
        )
        self.is_crossfading = False
        # Called with the ramp length once a fade starts (e.g. to preload the next track)
        self.on_fade_started: Optional[Callable[[float], None]] = None

    def configure(self, enabled: bool, duration_seconds: Optional[float] = None) -> None:
        if duration_seconds is not None:
            self.duration_seconds = clamp_parameter(
                "Crossfade duration", duration_seconds, 0.0, MAX_CROSSFADE_SECONDS
            )
        self.enabled = bool(enabled)
        if not self.enabled:
            self.cancel()

    def reset(self) -> None:
        """Snap the fade gain back to 1 (no ramp) and clear the latch."""
        self.fade_gain.set_value(1.0)
        self.is_crossfading = False

    def cancel(self) -> None:
        """Abandon a fade (running or held) and restore full gain."""
        if self.is_crossfading or self.fade_gain.has_automation or self.fade_gain.value != 1.0:
            logger.debug("Crossfade cancelled")
        self.reset()

    def hold(self) -> None:
        """Freeze a running fade at its current level.

        Used while playback is paused; the processing clock keeps running, so
        the ramp must not. The next in-window tick ramps on from the held level.
        """
        if not self.is_crossfading:
            return
        now = self.clock()
        self.fade_gain.set_value(self.fade_gain.value_at(now))
        self.is_crossfading = False

    def in_window(self, position: float, duration: float) -> bool:
        remaining = duration - position
        return 0 < remaining <= self.duration_seconds

    def on_time_update(self, position: float, duration: float, kind: MediaKind) -> bool:
        """Handle one position tick; returns True if a ramp was scheduled."""
        if kind is not MediaKind.AUDIO:
            return False
        if not self.enabled or self.is_crossfading or not duration or duration <= 0:
            return False
        remaining = duration - position
        if not self.in_window(position, duration):
            return False

        now = self.clock()
        current = self.fade_gain.value_at(now)
        self.fade_gain.cancel_scheduled_values(now)
        self.fade_gain.set_value_at_time(current, now)
        self.fade_gain.linear_ramp_to_value_at_time(0.0, now + remaining)
        self.is_crossfading = True
        logger.debug("Crossfade ramp %.3fs -> 0 at clock %.3f", remaining, now + remaining)

        if self.on_fade_started is not None:
            self.on_fade_started(remaining)
        return True
