"""Playback controller - the state machine between commands and the engine.

States::

    IDLE ──load──▶ LOADING ──ok──▶ PLAYING ⇄ PAUSED
                      │                │
                      └─fail─▶ prior   └─ended─▶ LOADING (next) / IDLE

The controller owns the queue, the current track and the playback state.
UI code submits commands and reads snapshots (``queue_state()``,
``engine_state()``); it never touches the queue or the engine directly.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from PySide6.QtCore import QObject, QCoreApplication, QDeadlineTimer, Signal, Slot

from . import library
from .audio_engine import AudioEngine
from .config import RESTART_THRESHOLD_SECONDS
from .errors import InvalidOperation, LoadError
from .logging_config import get_logger
from .media_source import FileHandle, FileRef
from .models import EngineState, MediaKind, PlaybackState, QueueState, Track
from .queue_model import QueueModel
from .workers import LoadWorker

logger = get_logger(__name__)


class PlaybackController(QObject):
    stateChanged = Signal(object)      # PlaybackState
    trackChanged = Signal(object)      # Track or None
    queueChanged = Signal(object)      # QueueState
    timeUpdated = Signal(float)
    durationChanged = Signal(float)
    errorOccurred = Signal(str)

    def __init__(self, engine: AudioEngine, queue: Optional[QueueModel] = None,
                 async_loads: bool = False, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.queue = queue if queue is not None else QueueModel(self)
        self.async_loads = async_loads

        self.library: List[Track] = []
        self._refs: Dict[int, FileRef] = {}

        self.state = PlaybackState.IDLE
        self.current_track: Optional[Track] = None
        self.current_time = 0.0
        self.duration = 0.0

        # Load bookkeeping
        self._inflight = None       # (track, prior_state, prior_track_id)
        self._pending: Optional[Track] = None
        self._worker: Optional[LoadWorker] = None
        self._handled_generation = 0

        engine.timeUpdated.connect(self._on_time_updated)
        engine.trackEnded.connect(self._on_track_ended)
        engine.durationKnown.connect(self._on_duration_known)
        engine.crossfadeStarted.connect(self._on_crossfade_started)

    # --- snapshots ---
    def queue_state(self) -> QueueState:
        return self.queue.snapshot()

    def engine_state(self) -> EngineState:
        return self.engine.state()

    @property
    def is_playing(self) -> bool:
        return self.state is PlaybackState.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.state is PlaybackState.LOADING

    def _set_state(self, state: PlaybackState) -> None:
        if state is self.state:
            return
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state
        self.stateChanged.emit(state)

    def _publish_queue(self) -> None:
        self.queueChanged.emit(self.queue.snapshot())

    def _reject_while_loading(self, command: str) -> bool:
        if self.is_loading:
            logger.info("Ignoring %s while a track is loading", command)
            return True
        return False

    # --- library ---
    def select_library_root(self, folder_path) -> List[Track]:
        """Scan ``folder_path`` and make it the library; resets the queue."""
        tracks = library.scan_folder(folder_path)
        self.library = tracks
        self._refs = {t.id: FileHandle(t.path) for t in tracks}
        self._pending = None
        self._reset_playback()
        self.queue.clear()
        self._publish_queue()
        logger.info("Library root %s: %d tracks", folder_path, len(tracks))
        return tracks

    def register_file(self, track_id: int, file_ref: FileRef) -> None:
        """Attach a file reference (handle, file object or path) to a track."""
        self._refs[track_id] = file_ref

    def find_track(self, track_id: int) -> Optional[Track]:
        for track in self.library:
            if track.id == track_id:
                return track
        return self.queue.track_at(self.queue.index_of(track_id))

    def _file_ref(self, track: Track) -> FileRef:
        return self._refs.get(track.id) or FileHandle(track.path)

    # --- loading ---
    def _request_load(self, track: Track) -> bool:
        """Load ``track`` and start playing it.

        While another load is in flight the request is parked; only the
        latest parked request runs once the in-flight one settles.
        Returns False when a synchronous load failed.
        """
        if self.is_loading:
            logger.debug("Load in flight; parking %s", track.title)
            self._pending = track
            return True

        prior_current = self.queue.current_track
        self._inflight = (track, self.state, prior_current.id if prior_current else None)
        self._set_state(PlaybackState.LOADING)
        file_ref = self._file_ref(track)
        is_video = track.media_kind is MediaKind.VIDEO

        if self.async_loads:
            worker = LoadWorker(self.engine, file_ref, is_video, self)
            worker.loaded.connect(self._on_worker_loaded)
            worker.failed.connect(self._on_worker_failed)
            self._worker = worker
            worker.start()
            return True

        try:
            duration = self.engine.load(file_ref, is_video)
        except LoadError as e:
            self._load_failed(str(e))
            return False
        self._load_succeeded(duration)
        return True

    @Slot(float)
    def _on_worker_loaded(self, duration: float) -> None:
        self._load_succeeded(duration)

    @Slot(str)
    def _on_worker_failed(self, message: str) -> None:
        self._load_failed(message)

    def wait_for_load(self, timeout_ms: int = 30000) -> bool:
        """Block until a background load settles and its result is handled."""
        worker = self._worker
        if worker is None:
            return not self.is_loading
        if not worker.wait(QDeadlineTimer(timeout_ms)):
            return False
        QCoreApplication.processEvents()
        return not self.is_loading

    def _load_succeeded(self, duration: float) -> None:
        track = self._inflight[0]
        self._inflight = None
        self._worker = None
        self._handled_generation = self.engine.generation - 1

        if self.queue.index_of(track.id) < 0:
            # Cleared or removed from the queue while it decoded
            logger.info("Dropping %s: no longer queued", track.title)
            self._reset_playback()
            self._publish_queue()
            self._run_pending()
            return

        # Duration is only knowable after decode; write it back
        track.duration = duration
        self.queue.update_duration(track.id, duration)
        self.queue.set_current_index(self.queue.index_of(track.id))

        self.current_track = track
        self.duration = duration
        self.current_time = 0.0
        self.engine.set_crossfade(track.crossfade)
        self.engine.play()
        self._set_state(PlaybackState.PLAYING)

        logger.info("Now playing: %s - %s", track.artist, track.title)
        self.trackChanged.emit(track)
        self._publish_queue()
        self._run_pending()

    def _load_failed(self, message: str) -> None:
        track, prior_state, prior_track_id = self._inflight
        self._inflight = None
        self._worker = None

        # Back to the entry the engine still owns
        restored = self.queue.index_of(prior_track_id) if prior_track_id is not None else -1
        self.queue.set_current_index(restored)
        if prior_state is PlaybackState.PLAYING and not self.engine.is_playing:
            prior_state = PlaybackState.PAUSED if self.engine.has_source else PlaybackState.IDLE
        self._set_state(prior_state)

        logger.error("Failed to load %s: %s", track.path, message)
        self.errorOccurred.emit(f"Cannot play {track.title}: {message}")
        self._publish_queue()
        self._run_pending()

    def _run_pending(self) -> None:
        if self._pending is None:
            return
        track, self._pending = self._pending, None
        if self.queue.index_of(track.id) < 0:
            logger.debug("Parked load of %s dropped: no longer queued", track.title)
            return
        self._request_load(track)

    # --- queue commands ---
    def play_track(self, track: Track, file_ref: Optional[FileRef] = None) -> bool:
        """Play ``track``, queueing it at the end unless it is already queued."""
        if file_ref is not None:
            self.register_file(track.id, file_ref)
        _, added = self.queue.append(track)
        if added:
            self._publish_queue()
        return self._request_load(track)

    def add_to_queue(self, track: Track, file_ref: Optional[FileRef] = None) -> bool:
        if file_ref is not None:
            self.register_file(track.id, file_ref)
        _, added = self.queue.append(track)
        if added:
            self._publish_queue()
        return added

    def add_album_to_queue(self, tracks: Iterable[Track]) -> int:
        added = self.queue.extend(tracks)
        if added:
            self._publish_queue()
        return added

    def remove_from_queue(self, track_id: int) -> bool:
        """Remove a queued track; removing the current one moves playback on.

        The entry that slides into the removed slot plays next; when the
        last entry was removed the new last entry plays instead. Emptying
        the queue stops playback.
        """
        was_current = self.queue.current_index
        row = self.queue.remove(track_id)
        if row < 0:
            return False

        if len(self.queue) == 0:
            self._reset_playback()
        elif row == was_current:
            successor = row if row < len(self.queue) else len(self.queue) - 1
            self._publish_queue()
            self._request_load(self.queue.track_at(successor))
            return True
        self._publish_queue()
        return True

    def reorder_queue(self, new_order: Iterable[Track]) -> None:
        self.queue.reorder(list(new_order))
        self._publish_queue()

    def clear_queue(self) -> None:
        self._pending = None
        self.queue.clear()
        self._reset_playback()
        self._publish_queue()

    def play_from_queue(self, index: int) -> bool:
        track = self.queue.track_at(index)
        if track is None:
            logger.debug("play_from_queue(%s): no such entry", index)
            return False
        return self._request_load(track)

    def load_playlist(self, tracks: Iterable[Track]) -> None:
        """Replace the queue with a playlist; nothing plays until asked."""
        self._pending = None
        self.queue.replace(list(tracks))
        self._reset_playback()
        self._publish_queue()

    def _reset_playback(self) -> None:
        """Stop the engine and forget the current track."""
        if self.engine.has_source:
            self.engine.stop()
        self.queue.set_current_index(-1)
        self.current_track = None
        self.current_time = 0.0
        self.duration = 0.0
        if not self.is_loading:
            self._set_state(PlaybackState.IDLE)
        self.trackChanged.emit(None)

    # --- transport ---
    def toggle_play(self) -> bool:
        if self._reject_while_loading("toggle_play"):
            return False
        if self.is_playing:
            return self.pause()
        return self.play()

    def play(self) -> bool:
        if self._reject_while_loading("play"):
            return False
        if self.current_track is None or not self.engine.has_source:
            if len(self.queue):
                return self.play_from_queue(0)
            return False
        try:
            self.engine.play()
        except InvalidOperation as e:
            logger.debug("play ignored: %s", e)
            return False
        self._set_state(PlaybackState.PLAYING)
        return True

    def pause(self) -> bool:
        if self._reject_while_loading("pause"):
            return False
        if not self.is_playing:
            return False
        self.engine.pause()
        self._set_state(PlaybackState.PAUSED)
        return True

    def seek(self, time_seconds: float) -> bool:
        """Jump to ``time_seconds``; play/pause status is unchanged."""
        if self._reject_while_loading("seek"):
            return False
        try:
            self.current_time = self.engine.seek(time_seconds)
        except InvalidOperation as e:
            logger.debug("seek ignored: %s", e)
            return False
        return True

    def next(self) -> bool:
        if self._reject_while_loading("next"):
            return False
        if len(self.queue) == 0:
            return False
        return self._advance()

    def previous(self) -> bool:
        """Restart the track after 3 s of play, otherwise go one entry back."""
        if self._reject_while_loading("previous"):
            return False
        position = self.engine.get_current_time() if self.engine.has_source else self.current_time
        if self.current_track is not None and position > RESTART_THRESHOLD_SECONDS:
            return self.seek(0.0)
        index = self.queue.current_index
        if index > 0:
            return self.play_from_queue(index - 1)
        return False

    def handle_auto_advance(self) -> bool:
        if self.is_loading:
            return False
        return self._advance()

    def _advance(self) -> bool:
        next_index = self.queue.current_index + 1
        if next_index < len(self.queue):
            return self.play_from_queue(next_index)

        # Queue exhausted; the last track stays selected for toggle_play
        logger.info("End of queue")
        if self.engine.has_source:
            self.engine.stop()
        self.queue.set_current_index(-1)
        self.current_time = 0.0
        self._set_state(PlaybackState.IDLE)
        self._publish_queue()
        return False

    # --- parameters ---
    def set_volume(self, percent: float) -> float:
        return self.engine.set_volume(percent)

    def set_eq_band(self, band: int, gain_db: float) -> float:
        return self.engine.set_eq_band(band, gain_db)

    def set_normalization(self, enabled: bool) -> None:
        self.engine.set_normalization(enabled)

    def set_crossfade(self, track_id: int, enabled: bool) -> bool:
        """Set the per-track crossfade opt-in; applies now if it is playing."""
        track = self.find_track(track_id)
        if track is None:
            return False
        track.crossfade = bool(enabled)
        if self.current_track is not None and self.current_track.id == track_id:
            self.engine.set_crossfade(track.crossfade)
        return True

    def set_crossfade_duration(self, seconds: float) -> float:
        self.engine.set_crossfade(self.engine.crossfade.enabled, seconds)
        return self.engine.crossfade.duration_seconds

    # --- engine events ---
    @Slot(float)
    def _on_time_updated(self, seconds: float) -> None:
        self.current_time = seconds
        self.timeUpdated.emit(seconds)

    @Slot(float)
    def _on_duration_known(self, seconds: float) -> None:
        self.duration = seconds
        self.durationChanged.emit(seconds)

    @Slot(float)
    def _on_crossfade_started(self, remaining: float) -> None:
        logger.debug("Fading out over the last %.2fs", remaining)

    @Slot(int)
    def _on_track_ended(self, generation: int) -> None:
        # Each load generation ends once; stale or repeated deliveries are dropped
        if generation <= self._handled_generation or generation != self.engine.generation:
            return
        self._handled_generation = generation
        self.current_time = self.duration
        self.handle_auto_advance()

    def dispose(self) -> None:
        if self._worker is not None:
            self._worker.wait()
        self.engine.dispose()
        self._set_state(PlaybackState.IDLE)
