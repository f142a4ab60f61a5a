"""Exception types raised by the MediaDeck playback core.

Load failures (``ResourceError``, ``DecodeError``) are recovered by the
playback controller: state rolls back and the message is surfaced through
its ``errorOccurred`` signal. ``InvalidOperation`` marks commands that make
no sense in the current state and are treated as no-ops by the controller.
"""


class PlayerError(Exception):
    """Base class for all MediaDeck errors."""


class LoadError(PlayerError):
    """A track could not be loaded into the engine."""


class ResourceError(LoadError):
    """The file bytes could not be read (moved, deleted, permission revoked)."""


class DecodeError(LoadError):
    """The media could not be decoded (unsupported codec, corrupt container)."""


class InvalidOperation(PlayerError):
    """The command is not valid in the current state (e.g. seek with nothing loaded)."""


class OutOfRangeParameter(PlayerError, ValueError):
    """A parameter could not be clamped into range (NaN, bad band index)."""
