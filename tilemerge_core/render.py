from __future__ import annotations

import sys
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol, TextIO, Tuple

from .grid import Grid
from .tile import Cell, Tile


@dataclass(frozen=True)
class Metadata:
    score: int
    best_score: int
    over: bool
    won: bool
    terminated: bool
    can_undo: bool = False
    mode: str = "idle"
    swap_first: Optional[Cell] = None
    removing: Tuple[Cell, ...] = ()
    removal_stage: Optional[str] = None


class Renderer(Protocol):
    """Presentation-only collaborator; must never mutate the grid it is shown."""

    def actuate(self, grid: Grid, metadata: Metadata) -> None: ...


def tile_to_json(tile: Tile) -> Dict[str, Any]:
    out: Dict[str, Any] = {"x": tile.x, "y": tile.y, "value": tile.value}
    if tile.previous_position is not None:
        out["previousPosition"] = {"x": tile.previous_position[0], "y": tile.previous_position[1]}
    if tile.merged_from is not None:
        out["mergedFrom"] = [
            {"x": src.x, "y": src.y, "value": src.value,
             "previousPosition": (
                 {"x": src.previous_position[0], "y": src.previous_position[1]}
                 if src.previous_position is not None else None
             )}
            for src in tile.merged_from
        ]
    return out


def metadata_to_json(metadata: Metadata) -> Dict[str, Any]:
    raw = asdict(metadata)
    return {
        "score": raw["score"],
        "bestScore": raw["best_score"],
        "over": raw["over"],
        "won": raw["won"],
        "terminated": raw["terminated"],
        "canUndo": raw["can_undo"],
        "mode": raw["mode"],
        "swapFirst": list(metadata.swap_first) if metadata.swap_first is not None else None,
        "removing": [list(c) for c in metadata.removing],
        "removalStage": raw["removal_stage"],
    }


def frame_to_json(grid: Grid, metadata: Metadata) -> Dict[str, Any]:
    return {
        "size": grid.size,
        "tiles": [tile_to_json(t) for t in grid.tiles()],
        **metadata_to_json(metadata),
    }


class FrameRenderer:
    """Keeps the most recent frame as JSON; used by the HTTP API and tests."""

    def __init__(self) -> None:
        self.frame: Optional[Dict[str, Any]] = None
        self.frames_rendered = 0

    def actuate(self, grid: Grid, metadata: Metadata) -> None:
        self.frame = frame_to_json(grid, metadata)
        self.frames_rendered += 1


class TextRenderer:
    """Writes the grid and a status line to a text stream."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout

    def actuate(self, grid: Grid, metadata: Metadata) -> None:
        lines: List[str] = [f"Score: {metadata.score}   Best: {metadata.best_score}"]
        lines.append(grid.pretty(metadata.swap_first))
        if metadata.mode != "idle":
            lines.append(f"[{metadata.mode} mode] pick a tile with: pick X Y")
        if metadata.removing:
            lines.append(f"removing {len(metadata.removing)} tile(s)...")
        if metadata.terminated:
            lines.append("Game over!" if metadata.over else "You win! (keep to continue)")
        self.out.write("\n".join(lines) + "\n\n")
        self.out.flush()
