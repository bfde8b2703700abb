from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

Cell = Tuple[int, int]  # (x, y): x is the column, y the row


@dataclass(eq=False)
class Tile:
    """A numbered piece occupying one grid cell, with the bookkeeping a renderer needs to animate it."""
    x: int
    y: int
    value: int = 2
    previous_position: Optional[Cell] = None
    merged_from: Optional[Tuple['Tile', 'Tile']] = field(default=None, repr=False)

    @property
    def position(self) -> Cell:
        return (self.x, self.y)

    def save_position(self) -> None:
        self.previous_position = (self.x, self.y)

    def update_position(self, cell: Cell) -> None:
        self.x, self.y = cell

    def clear_history(self) -> None:
        """Forget animation hints so the tile renders as freshly placed."""
        self.previous_position = None
        self.merged_from = None

    def serialize(self) -> Dict[str, Any]:
        return {"position": {"x": self.x, "y": self.y}, "value": self.value}
