"""Tests for the processing context and the fixed EQ/limiter/gain chain."""

import math

import numpy as np
import pytest
from pedalboard import Compressor, HighShelfFilter, LowShelfFilter, PeakFilter

from mediadeck.errors import InvalidOperation, OutOfRangeParameter
from mediadeck.media_elements import AudioElement
from mediadeck.output import NullSink
from mediadeck.signal_graph import ProcessingContext, SignalGraph, clamp_parameter

from conftest import FakeDecoder

RATE = 44100


@pytest.fixture
def graph():
    return SignalGraph(ProcessingContext(RATE, NullSink()), channels=2)


@pytest.fixture
def tone_element():
    decoder = FakeDecoder(RATE, 2)
    element = AudioElement(decoder, RATE, 2)
    t = np.arange(RATE, dtype=np.float32) / RATE
    tone = (0.5 * np.sin(2 * np.pi * 1000.0 * t)).astype(np.float32)
    element.set_source("test:tone", np.repeat(tone[:, None], 2, axis=1))
    return element


class TestProcessingContext:
    def test_resume_is_idempotent_and_starts_sink(self):
        sink = NullSink()
        context = ProcessingContext(RATE, sink)
        assert context.state == "suspended"

        context.resume()
        context.resume()
        assert context.state == "running"
        assert sink.running

        context.suspend()
        assert context.state == "suspended"
        assert not sink.running

    def test_clock_counts_rendered_frames(self):
        context = ProcessingContext(RATE)
        assert context.current_time == 0.0
        context.advance(RATE // 2)
        assert context.current_time == pytest.approx(0.5)

    def test_closed_context_cannot_resume(self):
        context = ProcessingContext(RATE)
        context.close()
        with pytest.raises(InvalidOperation):
            context.resume()


class TestTopology:
    def test_band_types_and_frequencies(self, graph):
        kinds = [type(f) for f in graph.eq_filters]
        assert kinds == [LowShelfFilter, PeakFilter, PeakFilter, PeakFilter, HighShelfFilter]
        freqs = [f.cutoff_frequency_hz for f in graph.eq_filters]
        assert freqs == pytest.approx([60, 250, 1000, 4000, 12000])
        for peak in graph.eq_filters[1:4]:
            assert peak.q == pytest.approx(1.0)

    def test_limiter_settings(self, graph):
        assert isinstance(graph.limiter, Compressor)
        assert graph.limiter.ratio == pytest.approx(20.0)
        assert graph.limiter.attack_ms == pytest.approx(3.0)
        assert graph.limiter.release_ms == pytest.approx(250.0)

    def test_defaults(self, graph):
        assert graph.eq_gains == (0.0, 0.0, 0.0, 0.0, 0.0)
        assert graph.volume == pytest.approx(0.8)
        assert graph.fade_gain.value == 1.0
        assert graph.normalization_enabled is True


class TestVolume:
    def test_volume_maps_linearly_and_exactly(self, graph):
        for v in range(0, 101):
            gain = graph.set_volume(v)
            assert gain == v / 100
            assert graph.master_gain.value == v / 100

    def test_fractional_volume(self, graph):
        assert graph.set_volume(33.5) == 33.5 / 100

    @pytest.mark.parametrize("given, expected", [(150, 1.0), (100.01, 1.0), (-5, 0.0), (-0.1, 0.0)])
    def test_volume_is_clamped_before_mapping(self, graph, given, expected):
        assert graph.set_volume(given) == expected

    def test_nan_volume_raises(self, graph):
        graph.set_volume(50)
        with pytest.raises(OutOfRangeParameter):
            graph.set_volume(math.nan)
        assert graph.volume == 0.5


class TestEqualizer:
    @pytest.mark.parametrize("given", [-12.0, -3.5, 0.0, 0.25, 7.0, 12.0])
    def test_in_range_gain_is_stored_verbatim(self, graph, given):
        assert graph.set_eq_gain(2, given) == given
        assert graph.eq_gains[2] == given
        assert graph.eq_filters[2].gain_db == pytest.approx(given, abs=1e-4)

    @pytest.mark.parametrize("given, expected", [(12.5, 12.0), (40, 12.0), (-13, -12.0), (-1e6, -12.0)])
    def test_out_of_range_gain_is_clamped(self, graph, given, expected):
        assert graph.set_eq_gain(0, given) == expected
        assert graph.eq_gains[0] == expected
        assert graph.eq_filters[0].gain_db == pytest.approx(expected)

    @pytest.mark.parametrize("band", [-1, 5, 99, 1.0, "1", None])
    def test_bad_band_index_raises(self, graph, band):
        with pytest.raises(OutOfRangeParameter):
            graph.set_eq_gain(band, 3.0)

    def test_nan_gain_raises_and_keeps_value(self, graph):
        graph.set_eq_gain(4, 6.0)
        with pytest.raises(OutOfRangeParameter):
            graph.set_eq_gain(4, math.nan)
        assert graph.eq_gains[4] == 6.0

    def test_clamp_parameter_rejects_non_numbers(self):
        with pytest.raises(OutOfRangeParameter):
            clamp_parameter("x", "loud", 0, 1)


class TestNormalization:
    def test_threshold_toggles_without_removing_limiter(self, graph):
        limiter = graph.limiter
        assert limiter.threshold_db == pytest.approx(-6.0)

        graph.set_normalization(False)
        assert graph.normalization_enabled is False
        assert graph.limiter is limiter
        assert limiter.threshold_db == pytest.approx(0.0)

        graph.set_normalization(True)
        assert limiter.threshold_db == pytest.approx(-6.0)


class TestProcess:
    def test_silence_without_sources(self, graph):
        out = graph.process(512)
        assert out.shape == (512, 2)
        assert out.dtype == np.float32
        assert not out.any()

    def test_playing_source_is_audible_and_bounded(self, graph, tone_element):
        graph.connect_source(tone_element)
        tone_element.play()
        out = graph.process(4096)
        assert np.abs(out).max() > 0.01
        assert np.abs(out).max() <= 1.0

    def test_volume_zero_silences_output(self, graph, tone_element):
        graph.connect_source(tone_element)
        tone_element.play()
        graph.set_volume(0)
        assert not graph.process(1024).any()

    def test_fade_gain_is_independent_of_volume(self, graph, tone_element):
        graph.connect_source(tone_element)
        tone_element.play()
        graph.set_volume(100)
        graph.fade_gain.set_value(0.0)
        assert not graph.process(1024).any()
        assert graph.volume == 1.0

    def test_element_volume_stays_pinned(self, tone_element):
        assert tone_element.volume == 1.0
