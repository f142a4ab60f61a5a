"""Tests for the EQ, volume and crossfade managers."""

import pytest

from mediadeck.eq import CrossfadeManager, EQManager, VolumeManager
from mediadeck.store import SettingsStore


@pytest.fixture
def store(tmp_path):
    return SettingsStore(tmp_path / "settings")


@pytest.fixture
def eq(controller, store):
    return EQManager(controller, store)


class TestEQManager:
    def test_slider_conversion(self, eq):
        assert eq.db_to_slider_value(-12) == 0
        assert eq.db_to_slider_value(0) == 50
        assert eq.db_to_slider_value(12) == 100
        assert eq.db_to_slider_value(30) == 100
        assert eq.slider_value_to_db(75) == pytest.approx(6.0)
        assert eq.slider_value_to_db(-10) == pytest.approx(-12.0)

    def test_apply_preset_reaches_graph_and_store(self, eq, controller, store):
        assert eq.apply_preset("Classical") == [4.0, 3.0, -2.0, 0.0, 3.0]
        assert controller.engine_state().eq_gains_db == (4.0, 3.0, -2.0, 0.0, 3.0)
        assert store.get("eq_bands") == [4.0, 3.0, -2.0, 0.0, 3.0]

    def test_unknown_preset(self, eq):
        with pytest.raises(KeyError):
            eq.apply_preset("disco")

    def test_wrong_band_count(self, eq):
        with pytest.raises(ValueError):
            eq.apply_eq_settings([1.0, 2.0])

    def test_set_band_clamps_and_persists(self, eq, store):
        assert eq.set_band(1, 20.0) == 12.0
        assert store.get("eq_bands")[1] == 12.0

    def test_neutral(self, eq):
        eq.apply_preset("rock")
        assert eq.set_neutral_eq() == [0.0] * 5
        assert eq.get_current_eq_values() == [0.0] * 5

    def test_restore(self, controller, store):
        store.set("eq_bands", [1.0, -2.0, 3.0, -4.0, 5.0])
        store.set("normalization", False)
        EQManager(controller, store).restore()
        state = controller.engine_state()
        assert state.eq_gains_db == (1.0, -2.0, 3.0, -4.0, 5.0)
        assert state.normalization_enabled is False

    def test_restore_ignores_malformed_bands(self, controller, store):
        store.set("eq_bands", [1.0, 2.0])
        EQManager(controller, store).restore()
        assert controller.engine_state().eq_gains_db == (0.0,) * 5

    def test_normalization_is_persisted(self, eq, controller, store):
        eq.set_normalization(False)
        assert controller.engine_state().normalization_enabled is False
        assert SettingsStore(store.path.parent).get("normalization") is False


class TestVolumeManager:
    def test_default_volume(self, controller, store):
        assert VolumeManager(controller, store).get_volume() == 80

    def test_set_volume_clamps_and_persists(self, controller, store):
        volume = VolumeManager(controller, store)
        assert volume.set_volume(150) == 100
        assert controller.engine_state().volume == 1.0
        assert store.get("volume") == 100

        assert volume.set_volume(25, save=False) == 25
        assert store.get("volume") == 100

    def test_restore(self, controller, store):
        store.set("volume", 30)
        VolumeManager(controller, store).restore()
        assert controller.engine_state().volume == 0.3


class TestCrossfadeManager:
    def test_track_flag_reaches_engine_and_store(self, controller, store, make_track, engine):
        track = make_track("A", 4.0)
        controller.play_track(track)
        assert CrossfadeManager(controller, store).set_track_crossfade(track, True)
        assert engine.crossfade.enabled
        assert SettingsStore(store.path.parent).get_crossfade(track.path)

    def test_unknown_track_is_not_saved(self, controller, store, make_track):
        stray = make_track("Stray")
        assert not CrossfadeManager(controller, store).set_track_crossfade(stray, True)
        assert not store.get_crossfade(stray.path)

    def test_restore_applies_saved_flags(self, controller, store, make_track):
        a, b = make_track("A"), make_track("B")
        store.set_crossfade(b.path, True)
        store.set("crossfade_seconds", 5.0)
        assert CrossfadeManager(controller, store).restore([a, b]) == 1
        assert (a.crossfade, b.crossfade) == (False, True)
        assert controller.engine_state().crossfade_duration_seconds == 5.0

    def test_fade_all_is_not_saved(self, controller, store, make_track):
        a, b = make_track("A"), make_track("B")
        assert CrossfadeManager(controller, store).restore([a, b], fade_all=True) == 2
        assert not store.get_crossfade(a.path)

    def test_duration_persists(self, controller, store):
        assert CrossfadeManager(controller, store).set_duration(7.5) == 7.5
        assert store.get("crossfade_seconds") == 7.5
