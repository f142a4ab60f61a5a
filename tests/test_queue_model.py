"""Unit tests for QueueModel."""

import pytest
from PySide6.QtCore import Qt

from mediadeck.models import Track
from mediadeck.queue_model import COLUMNS, QueueModel


def track(id, title=None, **kw):
    return Track(id=id, path=f"/music/{id}.mp3", title=title or f"T{id}", **kw)


@pytest.fixture
def model(qapp):
    m = QueueModel()
    m.extend([track(1, "A"), track(2, "B"), track(3, "C")])
    return m


class TestContents:
    def test_table_shape_and_headers(self, model):
        assert model.rowCount() == 3
        assert model.columnCount() == len(COLUMNS)
        assert model.headerData(1, Qt.Horizontal) == "Title"
        assert model.headerData(0, Qt.Vertical) == "1"

    def test_display_data(self, model):
        model.update_duration(2, 125.0)
        assert model.data(model.index(1, 1)) == "B"
        assert model.data(model.index(1, 4)) == "2:05"
        assert model.data(model.index(0, 4)) == ""
        assert model.data(model.index(0, 5)) == "Audio"
        assert model.data(model.index(2, 0), Qt.UserRole) == "/music/3.mp3"

    def test_status_column_marks_current_row(self, model):
        model.set_current_index(1)
        assert model.data(model.index(1, 0)) == "▶"
        assert model.data(model.index(0, 0)) == ""


class TestDuplicates:
    def test_append_is_deduplicated_by_id(self, model):
        assert model.append(track(2)) == (1, False)
        assert model.append(track(4)) == (3, True)
        assert [t.id for t in model.tracks()] == [1, 2, 3, 4]

    def test_extend_skips_queued_and_repeated(self, model):
        added = model.extend([track(3), track(5), track(5), track(6)])
        assert added == 2
        assert [t.id for t in model.tracks()] == [1, 2, 3, 5, 6]
        assert model.extend([]) == 0

    def test_replace_drops_duplicates_and_resets_pointer(self, model):
        model.set_current_index(2)
        model.replace([track(7), track(8), track(7)])
        assert [t.id for t in model.tracks()] == [7, 8]
        assert model.current_index == -1
        assert model.contains(8)
        assert not model.contains(1)


class TestPointer:
    def test_invalid_index_raises(self, model):
        with pytest.raises(IndexError):
            model.set_current_index(3)
        with pytest.raises(IndexError):
            model.set_current_index(-2)
        model.set_current_index(-1)
        assert model.current_track is None

    def test_remove_before_current_shifts_pointer(self, model):
        model.set_current_index(2)
        assert model.remove(1) == 0
        assert model.current_index == 1
        assert model.current_track.id == 3

    def test_remove_after_current_keeps_pointer(self, model):
        model.set_current_index(0)
        model.remove(3)
        assert model.current_index == 0

    def test_remove_current_clears_pointer(self, model):
        model.set_current_index(1)
        assert model.remove(2) == 1
        assert model.current_index == -1

    def test_remove_unknown_is_noop(self, model):
        assert model.remove(99) == -1
        assert len(model) == 3

    def test_reorder_follows_current_track(self, model):
        model.set_current_index(2)
        tracks = model.tracks()
        model.reorder([tracks[2], tracks[0], tracks[1]])
        assert model.current_index == 0
        assert [t.title for t in model.tracks()] == ["C", "A", "B"]

    def test_reorder_without_current_track(self, model):
        model.set_current_index(0)
        model.reorder([track(2), track(3)])
        assert model.current_index == -1


def test_snapshot_is_immutable_copy(model):
    model.set_current_index(1)
    snap = model.snapshot()
    model.remove(1)
    assert [t.id for t in snap.entries] == [1, 2, 3]
    assert snap.current_index == 1
    assert snap.current.title == "B"
    assert model.snapshot().current_index == 0


def test_clear(model):
    model.set_current_index(0)
    model.clear()
    assert len(model) == 0
    assert model.paths() == []
    assert model.current_index == -1
