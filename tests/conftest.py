"""Test configuration for pytest."""

import sys
from pathlib import Path

import numpy as np
import pytest
from PySide6.QtCore import QCoreApplication

# Ensure mediadeck is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from mediadeck.audio_engine import AudioEngine
from mediadeck.config import PlayerConfig
from mediadeck.errors import DecodeError
from mediadeck.models import Track
from mediadeck.output import NullSink
from mediadeck.player import PlaybackController

BLOCK = 2048


class FakeDecoder:
    """Decoder for test media files containing ``duration=<seconds>``.

    Produces a quiet 440 Hz tone so rendered output is non-silent. Anything
    else in the file is treated as a corrupt container.
    """

    def __init__(self, sample_rate, channels):
        self.sample_rate = sample_rate
        self.channels = channels
        self.calls = 0

    def decode(self, path):
        self.calls += 1
        text = Path(path).read_bytes().decode("utf-8", errors="replace")
        if not text.startswith("duration="):
            raise DecodeError(f"Unsupported container: {Path(path).name}")
        seconds = float(text.split("=", 1)[1])
        frames = int(round(seconds * self.sample_rate))
        t = np.arange(frames, dtype=np.float32) / self.sample_rate
        tone = (0.1 * np.sin(2 * np.pi * 440.0 * t)).astype(np.float32)
        return np.repeat(tone[:, None], self.channels, axis=1)


def render_seconds(engine, seconds):
    """Pull ``seconds`` of audio through the engine in fixed blocks."""
    blocks = int(np.ceil(seconds * engine.sample_rate / BLOCK))
    out = [engine.render(BLOCK) for _ in range(blocks)]
    return np.concatenate(out) if out else np.zeros((0, engine.channels), dtype=np.float32)


def render_until_ended(engine, limit_seconds=30.0):
    """Render until the engine reports a track end; returns its generation."""
    ended = []

    def _on_ended(generation):
        ended.append(generation)

    engine.trackEnded.connect(_on_ended)
    try:
        rendered = 0.0
        while not ended:
            if rendered >= limit_seconds:
                raise AssertionError("track never ended")
            engine.render(BLOCK)
            rendered += BLOCK / engine.sample_rate
    finally:
        engine.trackEnded.disconnect(_on_ended)
    return ended[0]


@pytest.fixture(scope="session")
def qapp():
    """Create a headless QCoreApplication instance for Qt tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    yield app
    # Don't quit - other tests might need it


@pytest.fixture
def player_config(tmp_path):
    return PlayerConfig(cache_dir=tmp_path / "cache", config_dir=tmp_path / "config")


@pytest.fixture
def media_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def make_media(media_dir):
    """Write a fake media file that FakeDecoder decodes to ``seconds`` of audio."""

    def _make(name, seconds=1.0):
        path = media_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"duration={seconds}")
        return path

    return _make


@pytest.fixture
def make_track(make_media):
    """Create a Track backed by a fake media file."""
    counter = {"id": 0}

    def _make(title, seconds=1.0, is_video=False, corrupt=False):
        counter["id"] += 1
        ext = ".mp4" if is_video else ".mp3"
        path = make_media(f"{title}{ext}", seconds)
        if corrupt:
            path.write_bytes(b"\x00garbage")
        return Track(
            id=counter["id"],
            path=str(path),
            title=title,
            artist="Test Artist",
            album="Test Album",
            is_video=is_video,
        )

    return _make


@pytest.fixture
def engine(qapp, player_config):
    eng = AudioEngine(
        player_config,
        sink=NullSink(),
        audio_decoder=FakeDecoder(player_config.sample_rate, player_config.channels),
        video_decoder=FakeDecoder(player_config.sample_rate, player_config.channels),
    )
    yield eng
    eng.dispose()


@pytest.fixture
def controller(engine):
    ctrl = PlaybackController(engine)
    yield ctrl
    ctrl.dispose()
