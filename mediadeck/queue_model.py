from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from .models import QueueState, Track

COLUMNS = [
    "Status",      # play indicator
    "Title",
    "Artist",
    "Album",
    "Duration",
    "Type",
]


class QueueModel(QAbstractTableModel):
    """Ordered, duplicate-free list of tracks plus the current-index pointer.

    The pointer follows the *track*, not the row: removing a row above it
    shifts it up, reordering looks the track up again by id. Removing the
    current row leaves the pointer at -1; picking the successor is up to
    the playback controller.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._rows = []
        self._ids_set = set()
        self._current_index = -1

    # --- Qt model API ---
    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(COLUMNS)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        track = self._rows[index.row()]
        col = index.column()

        if role == Qt.DisplayRole:
            if col == 0:
                return "▶" if index.row() == self._current_index else ""
            elif col == 1:
                return track.title
            elif col == 2:
                return track.artist
            elif col == 3:
                return track.album
            elif col == 4:
                if track.duration:
                    mins = int(track.duration // 60)
                    secs = int(track.duration % 60)
                    return f"{mins}:{secs:02d}"
                return ""
            elif col == 5:
                return "Video" if track.is_video else "Audio"
        # UserRole returns the full path (for internal use)
        elif role == Qt.UserRole:
            return track.path
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            return COLUMNS[section]
        return str(section + 1)

    def __len__(self):
        return len(self._rows)

    # --- lookups ---
    def tracks(self):
        return list(self._rows)

    def paths(self):
        return [t.path for t in self._rows]

    def track_at(self, index):
        if 0 <= index < len(self._rows):
            return self._rows[index]
        return None

    def index_of(self, track_id):
        for i, track in enumerate(self._rows):
            if track.id == track_id:
                return i
        return -1

    def contains(self, track_id):
        return track_id in self._ids_set

    # --- pointer ---
    @property
    def current_index(self):
        return self._current_index

    def set_current_index(self, index):
        if index != -1 and not 0 <= index < len(self._rows):
            raise IndexError(f"Queue index {index} out of range (0-{len(self._rows) - 1})")
        previous = self._current_index
        self._current_index = index
        for row in (previous, index):
            if 0 <= row < len(self._rows):
                cell = self.index(row, 0)
                self.dataChanged.emit(cell, cell)

    @property
    def current_track(self):
        return self.track_at(self._current_index)

    # --- mutation ---
    def append(self, track: Track):
        """Add ``track`` at the end; returns (row, added).

        A track that is already queued is not added again; its existing
        row is returned instead.
        """
        if track.id in self._ids_set:
            return self.index_of(track.id), False
        row = len(self._rows)
        self.beginInsertRows(QModelIndex(), row, row)
        self._rows.append(track)
        self._ids_set.add(track.id)
        self.endInsertRows()
        return row, True

    def extend(self, tracks):
        """Append every track not yet queued; returns how many were added."""
        fresh = []
        seen = set(self._ids_set)
        for track in tracks:
            if track.id not in seen:
                seen.add(track.id)
                fresh.append(track)
        if not fresh:
            return 0
        first = len(self._rows)
        self.beginInsertRows(QModelIndex(), first, first + len(fresh) - 1)
        self._rows.extend(fresh)
        self._ids_set.update(t.id for t in fresh)
        self.endInsertRows()
        return len(fresh)

    def remove(self, track_id):
        """Remove a track by id; returns the row it occupied, or -1."""
        row = self.index_of(track_id)
        if row < 0:
            return -1
        self.beginRemoveRows(QModelIndex(), row, row)
        del self._rows[row]
        self._ids_set.discard(track_id)
        if row < self._current_index:
            self._current_index -= 1
        elif row == self._current_index:
            self._current_index = -1
        self.endRemoveRows()
        return row

    def reorder(self, new_order):
        """Replace the order; the pointer follows the current track by id."""
        current = self.current_track
        self.replace(new_order)
        if current is not None:
            self._current_index = self.index_of(current.id)

    def replace(self, tracks):
        """Replace all rows (duplicates dropped) and reset the pointer."""
        self.beginResetModel()
        self._rows = []
        self._ids_set = set()
        for track in tracks:
            if track.id not in self._ids_set:
                self._rows.append(track)
                self._ids_set.add(track.id)
        self._current_index = -1
        self.endResetModel()

    def clear(self):
        self.replace([])

    def update_duration(self, track_id, duration):
        row = self.index_of(track_id)
        if row < 0:
            return
        self._rows[row].duration = duration
        cell = self.index(row, 4)
        self.dataChanged.emit(cell, cell)

    def snapshot(self):
        return QueueState(tuple(self._rows), self._current_index)
