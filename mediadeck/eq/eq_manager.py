"""EQ management for MediaDeck.

This module handles all EQ-related settings around the playback controller:
- Applying named presets to the five bands
- Converting between dB and 0-100 slider values
- Persisting band gains and the normalization flag
- Restoring saved settings at startup
"""

from typing import Dict, List

from ..config import EQ_BANDS, EQ_MAX_DB, EQ_MIN_DB
from ..logging_config import get_logger

logger = get_logger(__name__)


class EQManager:
    """Manages EQ settings and persistence."""

    EQ_BANDS_HZ = list(EQ_BANDS)
    EQ_BAND_LABELS = ["60 Hz", "250 Hz", "1 kHz", "4 kHz", "12 kHz"]

    # Gains in dB per band (low-shelf, 250, 1k, 4k, high-shelf)
    PRESETS: Dict[str, List[float]] = {
        "flat": [0.0, 0.0, 0.0, 0.0, 0.0],
        "bass": [6.0, 4.0, 0.0, 0.0, 0.0],
        "treble": [0.0, 0.0, 0.0, 4.0, 6.0],
        "rock": [4.0, 2.0, -1.0, 2.0, 4.0],
        "pop": [-1.0, 2.0, 4.0, 2.0, -1.0],
        "jazz": [3.0, 0.0, 1.0, 2.0, 3.0],
        "classical": [4.0, 3.0, -2.0, 0.0, 3.0],
    }

    def __init__(self, controller, store):
        """Initialize EQ manager.

        Args:
            controller: PlaybackController that receives band gains
            store: SettingsStore used for persistence
        """
        self.controller = controller
        self.store = store

    def db_to_slider_value(self, db: float) -> int:
        """Convert dB value to a 0-100 slider scale (-12 dB -> 0, 0 dB -> 50)."""
        db_clamped = max(EQ_MIN_DB, min(EQ_MAX_DB, db))
        return int(round(((db_clamped - EQ_MIN_DB) / (EQ_MAX_DB - EQ_MIN_DB)) * 100))

    def slider_value_to_db(self, slider_value: int) -> float:
        value_clamped = max(0, min(100, slider_value))
        return (value_clamped / 100.0) * (EQ_MAX_DB - EQ_MIN_DB) + EQ_MIN_DB

    def set_band(self, band: int, gain_db: float) -> float:
        """Set one band and persist the full set; returns the stored gain."""
        stored = self.controller.set_eq_band(band, gain_db)
        self.save()
        return stored

    def apply_eq_settings(self, gains_db: List[float], save: bool = True) -> List[float]:
        """Apply a full set of band gains; returns what the graph stored.

        Args:
            gains_db: One gain per band, in dB.
            save: Whether to persist (False when restoring).
        """
        if len(gains_db) != len(self.EQ_BANDS_HZ):
            raise ValueError(f"Expected {len(self.EQ_BANDS_HZ)} EQ values, got {len(gains_db)}")
        stored = [self.controller.set_eq_band(i, g) for i, g in enumerate(gains_db)]
        logger.info("Applied EQ: %s", [f"{g:+.1f}dB" for g in stored])
        if save:
            self.save()
        return stored

    def apply_preset(self, name: str) -> List[float]:
        try:
            gains = self.PRESETS[name.lower()]
        except KeyError:
            raise KeyError(f"Unknown EQ preset {name!r}; choose from {sorted(self.PRESETS)}") from None
        return self.apply_eq_settings(gains)

    def set_neutral_eq(self) -> List[float]:
        """Set all bands to 0 dB (neutral/flat)."""
        return self.apply_preset("flat")

    def get_current_eq_values(self) -> List[float]:
        return list(self.controller.engine_state().eq_gains_db)

    def set_normalization(self, enabled: bool) -> None:
        self.controller.set_normalization(enabled)
        self.store.set("normalization", bool(enabled))

    def save(self) -> None:
        self.store.set("eq_bands", self.get_current_eq_values())

    def restore(self) -> None:
        """Push saved band gains and the normalization flag into the controller."""
        saved = self.store.get("eq_bands")
        if isinstance(saved, list) and len(saved) == len(self.EQ_BANDS_HZ):
            self.apply_eq_settings([float(g) for g in saved], save=False)
        else:
            logger.warning("Ignoring saved EQ with %s bands", len(saved) if isinstance(saved, list) else "no")
        self.controller.set_normalization(bool(self.store.get("normalization")))
