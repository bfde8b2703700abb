from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import SnapshotError
from .grid import Grid


def _flag(obj: Dict[str, Any], key: str) -> bool:
    value = obj.get(key, False)
    if not isinstance(value, bool):
        raise SnapshotError(f"bad {key} flag {value!r}")
    return value


@dataclass(frozen=True)
class GameSnapshot:
    """A serialized copy of the grid, score and flags, used for undo and persistence."""
    grid: Dict[str, Any]  # Grid.serialize() output: {"size": int, "cells": [[tile|None]]}
    score: int
    over: bool
    won: bool
    keep_playing: bool

    @property
    def size(self) -> int:
        return int(self.grid["size"])

    def restore_grid(self) -> Grid:
        return Grid.from_state(self.size, self.grid["cells"])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grid": self.grid,
            "score": self.score,
            "over": self.over,
            "won": self.won,
            "keepPlaying": self.keep_playing,
        }

    @classmethod
    def from_dict(cls, obj: Any, expected_size: Optional[int] = None) -> 'GameSnapshot':
        """Validates and decodes to_dict() output. Raises SnapshotError on anything malformed."""
        if not isinstance(obj, dict):
            raise SnapshotError("snapshot must be an object")
        try:
            grid_obj = obj["grid"]
            size = grid_obj["size"]
            cells = grid_obj["cells"]
            score = obj["score"]
        except (TypeError, KeyError) as e:
            raise SnapshotError(f"snapshot missing field: {e}") from e
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise SnapshotError(f"bad grid size {size!r}")
        if expected_size is not None and size != expected_size:
            raise SnapshotError(f"snapshot grid size {size} does not match configured size {expected_size}")
        if isinstance(score, bool) or not isinstance(score, int) or score < 0:
            raise SnapshotError(f"bad score {score!r}")
        # Round-trip through Grid to validate cells and normalize their encoding.
        grid = Grid.from_state(size, cells)
        return cls(
            grid=grid.serialize(),
            score=score,
            over=_flag(obj, "over"),
            won=_flag(obj, "won"),
            keep_playing=_flag(obj, "keepPlaying"),
        )
