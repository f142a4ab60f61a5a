"""Background worker threads for MediaDeck.

This module provides QThread-based workers for performing track loads
without blocking the thread that owns the playback controller.
"""

from PySide6.QtCore import QThread, Signal

from .errors import PlayerError
from .logging_config import get_logger

logger = get_logger(__name__)


class LoadWorker(QThread):
    """Run ``AudioEngine.load`` in a separate thread.

    Reading the file bytes and decoding are the only slow steps of a track
    change, so the controller hands them to this worker and keeps answering
    commands meanwhile. Exactly one of the two signals is emitted per run.

    Signals:
        loaded(float): Emitted with the track duration in seconds.
        failed(str): Emitted with the error message when the load fails.

    Args:
        engine: The AudioEngine to load into.
        file_ref: File reference accepted by ``AudioEngine.load``.
        is_video: Load into the video element instead of the audio one.
        parent: Parent QObject (optional).

    Example:
        >>> worker = LoadWorker(engine, FileHandle("/music/song.flac"), False)
        >>> worker.loaded.connect(on_loaded)
        >>> worker.failed.connect(on_failed)
        >>> worker.start()
    """

    loaded = Signal(float)  # duration
    failed = Signal(str)  # error_message

    def __init__(self, engine, file_ref, is_video=False, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.file_ref = file_ref
        self.is_video = is_video

    def run(self):
        """Execute the load in the background thread.

        Note:
            This method should not be called directly. Use start() instead.
        """
        try:
            duration = self.engine.load(self.file_ref, self.is_video)
        except PlayerError as e:
            logger.debug("Background load failed: %s", e)
            self.failed.emit(str(e))
            return
        self.loaded.emit(duration)
