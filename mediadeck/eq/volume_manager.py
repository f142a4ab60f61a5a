"""Volume management for MediaDeck.

This module handles volume control and persistence.
"""

from ..logging_config import get_logger

logger = get_logger(__name__)


class VolumeManager:
    """Manages volume settings and persistence."""

    def __init__(self, controller, store):
        """Initialize volume manager.

        Args:
            controller: PlaybackController for audio playback
            store: SettingsStore used for persistence
        """
        self.controller = controller
        self.store = store
        self.volume = int(store.get("volume"))

    def set_volume(self, volume_percent: float, save: bool = True) -> int:
        """Set volume level.

        Args:
            volume_percent: Volume level (0-100); clamped
            save: Whether to persist (should be False when loading)

        Returns:
            The volume actually applied (0-100)
        """
        gain = self.controller.set_volume(volume_percent)
        self.volume = int(round(gain * 100))
        if save:
            self.store.set("volume", self.volume)
        logger.debug("Set volume to %d%%", self.volume)
        return self.volume

    def get_volume(self) -> int:
        return self.volume

    def restore(self) -> int:
        return self.set_volume(self.store.get("volume"), save=False)
