"""Transport - play/pause/stop/seek against whichever element is active."""

from __future__ import annotations

from typing import Callable

from .media_elements import MediaElement
from .signal_graph import ProcessingContext, clamp_parameter


class Transport:
    """Thin wrapper over the active media element.

    ``active`` is a callable so the engine can switch between its audio and
    video elements without rebuilding the transport.
    """

    def __init__(self, context: ProcessingContext, active: Callable[[], MediaElement]):
        self.context = context
        self._active = active

    @property
    def element(self) -> MediaElement:
        return self._active()

    def play(self) -> None:
        # Resume is synchronous and idempotent, so a pause() issued right
        # after play() always wins.
        self.context.resume()
        self.element.play()

    def pause(self) -> None:
        self.element.pause()

    def stop(self) -> None:
        element = self.element
        element.pause()
        if element.has_source:
            element.current_time = 0.0

    def seek(self, time_seconds: float) -> float:
        element = self.element
        target = clamp_parameter("Seek position", time_seconds, 0.0, max(0.0, element.duration))
        element.current_time = target
        return element.current_time

    def get_current_time(self) -> float:
        return self.element.current_time

    def get_duration(self) -> float:
        return self.element.duration

    def get_play_state(self) -> str:
        return "paused" if self.element.paused else "playing"
