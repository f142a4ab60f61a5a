"""Media library scanner for MediaDeck.

Walks a folder and turns every supported audio/video file into a ``Track``.
Titles, artists and albums come from the file tags when mutagen can read
them; otherwise they are parsed from the path relative to the library root
(``Artist/Album/Title.ext``).
"""

from pathlib import Path
from typing import List, Optional, Tuple

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .config import AUDIO_EXTS, MEDIA_EXTS, VIDEO_EXTS
from .logging_config import get_logger
from .models import Track

logger = get_logger(__name__)

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


def is_media_file(path: Path, root: Optional[Path] = None) -> bool:
    """True for a supported extension outside any hidden file or folder.

    With ``root`` given only the parts below it are checked, so a library
    that itself lives under a dot-folder still scans.
    """
    if path.suffix.lower() not in MEDIA_EXTS:
        return False
    parts = path.relative_to(root).parts if root is not None else (path.name,)
    return not any(part.startswith(".") for part in parts)


def is_video_file(path: Path) -> bool:
    return path.suffix.lower() in VIDEO_EXTS


def parse_path(file_path: Path, root: Path) -> Tuple[str, str, str]:
    """Derive (title, artist, album) from the folder layout under ``root``.

    The first folder below the root is the artist and the second the album.
    """
    try:
        parts = file_path.relative_to(root).parts
    except ValueError:
        parts = (file_path.name,)
    folders = parts[:-1]
    artist = folders[0] if len(folders) >= 1 else UNKNOWN_ARTIST
    album = folders[1] if len(folders) >= 2 else UNKNOWN_ALBUM
    return file_path.stem, artist, album


def _get_tag(tags, names: List[str]) -> str:
    """Return the first non-empty tag value among ``names``."""
    for name in names:
        value = tags.get(name)
        if value:
            if isinstance(value, list):
                value = value[0]
            text = str(value).strip()
            if text:
                return text
    return ""


def read_tags(file_path: Path) -> Optional[dict]:
    """Read title/artist/album with mutagen; None when the file has no tags."""
    try:
        mutagen_file = MutagenFile(str(file_path), easy=True)
    except (MutagenError, OSError) as e:
        logger.debug("No tags for %s: %s", file_path.name, e)
        return None
    if mutagen_file is None or mutagen_file.tags is None:
        return None
    tags = mutagen_file.tags
    return {
        "title": _get_tag(tags, ["title"]),
        "artist": _get_tag(tags, ["artist", "albumartist"]),
        "album": _get_tag(tags, ["album"]),
    }


def scan_folder(folder_path, recursive: bool = True, progress_callback=None) -> List[Track]:
    """Scan a folder and return its media files as tracks.

    Args:
        folder_path: Library root to scan.
        recursive: If True, scan subfolders recursively.
        progress_callback: Optional callback(found) for progress updates.

    Returns:
        Tracks with sequential ids starting at 1, in path order.
    """
    root = Path(folder_path).expanduser()
    if not root.is_dir():
        logger.warning("Library folder not found: %s", root)
        return []

    files = root.rglob("*") if recursive else root.glob("*")
    media = sorted(p for p in files if p.is_file() and is_media_file(p, root))
    logger.info("Found %d media files under %s", len(media), root)

    tracks = []
    for track_id, file_path in enumerate(media, start=1):
        title, artist, album = parse_path(file_path, root)
        tags = read_tags(file_path)
        if tags:
            title = tags["title"] or title
            artist = tags["artist"] or artist
            album = tags["album"] or album
        tracks.append(
            Track(
                id=track_id,
                path=str(file_path.absolute()),
                title=title,
                artist=artist,
                album=album,
                is_video=is_video_file(file_path),
            )
        )
        # Progress feedback every 50 files
        if progress_callback and track_id % 50 == 0:
            progress_callback(track_id)

    return tracks


def group_by_album(tracks: List[Track]) -> dict:
    """Group tracks as {artist: {album: [tracks]}} for album-level queueing."""
    tree = {}
    for track in tracks:
        tree.setdefault(track.artist, {}).setdefault(track.album, []).append(track)
    return tree


__all__ = [
    "AUDIO_EXTS",
    "VIDEO_EXTS",
    "scan_folder",
    "parse_path",
    "read_tags",
    "group_by_album",
]
