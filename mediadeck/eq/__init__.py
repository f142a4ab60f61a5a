"""EQ, volume and crossfade management modules."""

from .crossfade_manager import CrossfadeManager
from .eq_manager import EQManager
from .volume_manager import VolumeManager

__all__ = ['CrossfadeManager', 'EQManager', 'VolumeManager']
