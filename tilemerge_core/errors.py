from __future__ import annotations


class TilemergeError(Exception):
    """Base class for errors raised by the tilemerge core."""


class SnapshotError(TilemergeError, ValueError):
    """A serialized grid or game snapshot is corrupted or incompatible."""


class CommandError(TilemergeError, ValueError):
    """A wire-format command could not be parsed."""
