"""Media source adapter - turns file references into playable-resource URIs.

The decoders never read the user's files directly. Each load materializes
the file bytes into a private cache file and hands out an opaque URI for
it (``mediadeck-blob:<hex>``). URIs are revocable: revoking deletes the
backing cache file. The adapter keeps exactly one URI "current" per engine
and only revokes the superseded one after the engine has switched to the
new source.
"""

from __future__ import annotations

import os
import threading
import uuid
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from .errors import ResourceError
from .logging_config import get_logger

logger = get_logger(__name__)

URI_SCHEME = "mediadeck-blob:"


class FileHandle:
    """Lazily-resolved capability for a file on disk.

    Nothing is read until ``get_file()`` is called, so a handle created at
    scan time can outlive the file it points to; in that case ``get_file()``
    raises ``OSError``.
    """

    def __init__(self, path: Union[str, os.PathLike]):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    def get_file(self) -> BinaryIO:
        return open(self.path, "rb")

    def __repr__(self):
        return f"FileHandle({str(self.path)!r})"


FileRef = Union[FileHandle, BinaryIO, str, os.PathLike]


def _ref_name(file_ref) -> str:
    name = getattr(file_ref, "name", None)
    if isinstance(name, str) and name:
        return name
    if isinstance(file_ref, (str, os.PathLike)):
        return os.fspath(file_ref)
    return ""


def read_file_ref(file_ref: FileRef) -> bytes:
    """Return the full byte content behind a file reference.

    Accepts anything with ``get_file()`` (a ``FileHandle``), a readable
    file-like object, or a filesystem path.

    Raises:
        ResourceError: The bytes could not be read.
    """
    try:
        if hasattr(file_ref, "get_file"):
            with file_ref.get_file() as f:
                return f.read()
        if hasattr(file_ref, "read"):
            if hasattr(file_ref, "seek"):
                file_ref.seek(0)
            return file_ref.read()
        return Path(file_ref).read_bytes()
    except (OSError, ValueError) as e:
        raise ResourceError(f"Cannot read {_ref_name(file_ref) or file_ref!r}: {e}") from e


class SourceRegistry:
    """Allocates and revokes playable-resource URIs backed by cache files."""

    def __init__(self, cache_dir: Union[str, os.PathLike]):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._entries: Dict[str, Path] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, suffix: str = "") -> str:
        """Store ``data`` and return a new URI for it."""
        token = uuid.uuid4().hex
        path = self.cache_dir / f"{token}{suffix.lower()}"
        try:
            path.write_bytes(data)
        except OSError as e:
            raise ResourceError(f"Cannot stage media in {self.cache_dir}: {e}") from e
        uri = URI_SCHEME + token
        with self._lock:
            self._entries[uri] = path
        return uri

    def resolve(self, uri: str) -> Path:
        with self._lock:
            path = self._entries.get(uri)
        if path is None:
            raise ResourceError(f"URI is not live: {uri}")
        return path

    def revoke(self, uri: Optional[str]) -> None:
        """Release ``uri``. Unknown or already-revoked URIs are ignored."""
        if not uri:
            return
        with self._lock:
            path = self._entries.pop(uri, None)
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove cache file %s: %s", path.name, e)

    @property
    def live_uris(self) -> list:
        with self._lock:
            return list(self._entries)

    def revoke_all(self) -> None:
        for uri in self.live_uris:
            self.revoke(uri)


class MediaSourceAdapter:
    """Owns the "current" playable URI of one engine instance.

    Loading is a two-step operation so the engine can switch sources before
    the old bytes disappear::

        uri = adapter.open(file_ref)     # new URI, previous still live
        ...decode and switch element...
        adapter.commit(uri)              # previous URI revoked now

    If decoding fails the engine calls ``discard(uri)`` instead and the
    current URI is left untouched.
    """

    def __init__(self, registry: SourceRegistry):
        self.registry = registry
        self.current_uri: Optional[str] = None

    def open(self, file_ref: FileRef) -> str:
        data = read_file_ref(file_ref)
        if not data:
            raise ResourceError(f"File is empty: {_ref_name(file_ref) or file_ref!r}")
        suffix = Path(_ref_name(file_ref)).suffix
        return self.registry.create(data, suffix)

    def resolve(self, uri: str) -> Path:
        return self.registry.resolve(uri)

    def commit(self, uri: str) -> None:
        previous = self.current_uri
        self.current_uri = uri
        if previous and previous != uri:
            self.registry.revoke(previous)

    def discard(self, uri: Optional[str]) -> None:
        if uri and uri != self.current_uri:
            self.registry.revoke(uri)

    def dispose(self) -> None:
        self.registry.revoke(self.current_uri)
        self.current_uri = None

    @property
    def live_uris(self) -> list:
        return self.registry.live_uris
