"""Command-line entry point: scan a folder and play it through the engine.

    mediadeck ~/Music --eq-preset rock --crossfade --volume 60

One engine and one controller are built here and passed around
explicitly; nothing else in the package creates them.
"""

import argparse
import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from .audio_engine import AudioEngine
from .config import load_config
from .eq import CrossfadeManager, EQManager, VolumeManager
from .library import group_by_album
from .logging_config import configure_logging, get_logger
from .models import PlaybackState
from .output import NullSink, create_default_sink
from .player import PlaybackController
from .playlist import PlaylistStore, tracks_for_paths
from .store import SettingsStore

logger = get_logger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog="mediadeck", description="Play a folder of audio/video files.")
    parser.add_argument("folder", help="Library root to scan")
    parser.add_argument("--playlist", help="Queue a saved playlist instead of the whole folder")
    parser.add_argument("--volume", type=float, help="Volume 0-100 (saved)")
    parser.add_argument("--eq-preset", choices=sorted(EQManager.PRESETS), help="EQ preset (saved)")
    parser.add_argument("--no-normalization", action="store_true", help="Disengage the limiter")
    parser.add_argument("--crossfade", action="store_true", help="Fade out the end of every track")
    parser.add_argument("--crossfade-seconds", type=float, help="Crossfade window in seconds (saved)")
    parser.add_argument("--fade-track", action="append", default=[], metavar="PATH",
                        help="Always fade out the end of this file (saved, repeatable)")
    parser.add_argument("--no-fade-track", action="append", default=[], metavar="PATH",
                        help="Stop fading this file (saved, repeatable)")
    parser.add_argument("--list", action="store_true", help="Print the scanned tracks and exit")
    parser.add_argument("--env-file", help="Read settings from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_library(tracks):
    """Print the scanned tracks grouped by artist and album."""
    for artist, albums in group_by_album(tracks).items():
        print(artist)
        for album, album_tracks in albums.items():
            print(f"  {album}")
            for track in album_tracks:
                flags = track.media_kind.value + (", crossfade" if track.crossfade else "")
                print(f"    {track.id:4d}  {track.title}  [{flags}]")


def main(argv=None):
    """App entry point: configure environment, build engine and controller, run."""
    args = build_parser().parse_args(argv)
    player_config = load_config(args.env_file)
    configure_logging(level=logging.DEBUG if args.verbose else None)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    sink = create_default_sink(player_config.sample_rate, player_config.channels, player_config.chunk_size)
    engine = AudioEngine(player_config, sink=sink)
    controller = PlaybackController(engine, parent=app)
    settings = SettingsStore(player_config.resolved_config_dir())
    eq_manager = EQManager(controller, settings)
    volume_manager = VolumeManager(controller, settings)
    crossfade_manager = CrossfadeManager(controller, settings)

    tracks = controller.select_library_root(args.folder)
    crossfade_manager.restore(tracks, fade_all=args.crossfade)
    for track in tracks_for_paths(args.fade_track, tracks):
        crossfade_manager.set_track_crossfade(track, True)
    for track in tracks_for_paths(args.no_fade_track, tracks):
        crossfade_manager.set_track_crossfade(track, False)
    if args.crossfade_seconds is not None:
        crossfade_manager.set_duration(args.crossfade_seconds)

    if args.list:
        print_library(tracks)
        engine.dispose()
        return 0
    if not tracks:
        logger.error("No playable media found in %s", args.folder)
        engine.dispose()
        return 1

    eq_manager.restore()
    volume_manager.restore()
    if args.eq_preset:
        eq_manager.apply_preset(args.eq_preset)
    if args.no_normalization:
        eq_manager.set_normalization(False)
    if args.volume is not None:
        volume_manager.set_volume(args.volume)

    if args.playlist:
        queued = tracks_for_paths(PlaylistStore(player_config.resolved_config_dir()).get_paths(args.playlist), tracks)
        controller.load_playlist(queued)
    else:
        # Pick up the queue left by the last run, or queue the whole folder
        saved = tracks_for_paths(settings.load_queue(), tracks)
        if saved:
            logger.info("Restoring %d queued tracks", len(saved))
            controller.load_playlist(saved)
        else:
            controller.add_album_to_queue(tracks)

    # Without an output device nothing pulls audio; render on a timer instead
    render_timer = None
    if isinstance(sink, NullSink):
        render_timer = QTimer()
        render_timer.setInterval(int(1000 * player_config.chunk_size / player_config.sample_rate))
        render_timer.timeout.connect(lambda: engine.render(player_config.chunk_size))
        render_timer.start()

    def _on_state(state):
        if state is PlaybackState.IDLE and controller.queue.current_index == -1:
            app.quit()

    controller.stateChanged.connect(_on_state)
    controller.trackChanged.connect(
        lambda t: t is not None and print(f"▶ {t.artist} - {t.title}", flush=True)
    )
    controller.errorOccurred.connect(lambda msg: print(f"✗ {msg}", file=sys.stderr, flush=True))
    signal.signal(signal.SIGINT, lambda *_: app.quit())

    if not controller.play():
        engine.dispose()
        return 1
    try:
        app.exec()
    finally:
        if render_timer is not None:
            render_timer.stop()
        settings.save_queue(controller.queue.paths())
        controller.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
