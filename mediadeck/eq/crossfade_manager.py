"""Crossfade settings for MediaDeck.

Per-track crossfade flags are keyed by file path in the settings store so
they survive rescans, where track ids are reassigned.
"""

from ..logging_config import get_logger

logger = get_logger(__name__)


class CrossfadeManager:
    """Applies crossfade flags and the fade window, and persists both."""

    def __init__(self, controller, store):
        self.controller = controller
        self.store = store

    def set_track_crossfade(self, track, enabled: bool, save: bool = True) -> bool:
        """Turn the end-of-track fade on or off for one track.

        Returns:
            False when the controller does not know the track
        """
        if not self.controller.set_crossfade(track.id, enabled):
            logger.debug("Crossfade for unknown track %s ignored", track.id)
            return False
        if save:
            self.store.set_crossfade(track.path, enabled)
        return True

    def set_duration(self, seconds: float, save: bool = True) -> float:
        applied = self.controller.set_crossfade_duration(seconds)
        if save:
            self.store.set("crossfade_seconds", applied)
        logger.debug("Crossfade window %.1fs", applied)
        return applied

    def restore(self, tracks, fade_all: bool = False) -> int:
        """Apply saved flags to ``tracks`` and the saved window to the engine.

        With ``fade_all`` every track fades for this session; nothing is
        written back. Returns the number of tracks that fade.
        """
        fading = 0
        for track in tracks:
            track.crossfade = fade_all or self.store.get_crossfade(track.path)
            fading += track.crossfade
        self.set_duration(self.store.get("crossfade_seconds"), save=False)
        return fading
