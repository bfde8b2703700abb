from __future__ import annotations

import random
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from .errors import SnapshotError
from .tile import Cell, Tile


class Grid:
    """Fixed-size square board of optional tiles, indexed as cells[x][y]."""

    def __init__(self, size: int, previous_state: Optional[Sequence[Sequence[Any]]] = None):
        if size < 1:
            raise ValueError(f"grid size must be positive, got {size}")
        self.size = size
        self.cells: List[List[Optional[Tile]]] = (
            self._from_state(previous_state) if previous_state is not None else self.empty()
        )

    @classmethod
    def from_state(cls, size: int, cells: Sequence[Sequence[Any]]) -> 'Grid':
        """Rebuilds a grid from serialize()['cells']. Raises SnapshotError on malformed input."""
        return cls(size, cells)

    def empty(self) -> List[List[Optional[Tile]]]:
        return [[None for _ in range(self.size)] for _ in range(self.size)]

    def _from_state(self, state: Sequence[Sequence[Any]]) -> List[List[Optional[Tile]]]:
        if not isinstance(state, (list, tuple)) or len(state) != self.size:
            raise SnapshotError(f"expected {self.size} columns in grid state")
        cells = self.empty()
        for x in range(self.size):
            column = state[x]
            if not isinstance(column, (list, tuple)) or len(column) != self.size:
                raise SnapshotError(f"expected {self.size} cells in column {x}")
            for y in range(self.size):
                raw = column[y]
                if raw is None:
                    continue
                cells[x][y] = self._tile_from_state(raw, x, y)
        return cells

    @staticmethod
    def _tile_from_state(raw: Any, x: int, y: int) -> Tile:
        try:
            value = raw["value"]
        except (TypeError, KeyError) as e:
            raise SnapshotError(f"bad tile at ({x},{y}): {e!r}") from e
        if isinstance(value, bool) or not isinstance(value, int) or value < 2 or value & (value - 1):
            raise SnapshotError(f"tile at ({x},{y}) has invalid value {value!r}")
        # The slot is authoritative; a stored position only has to agree with it.
        pos = raw.get("position") if isinstance(raw, dict) else None
        if pos is not None and (not isinstance(pos, dict) or (pos.get("x"), pos.get("y")) != (x, y)):
            raise SnapshotError(f"tile stored at ({x},{y}) claims position {pos!r}")
        return Tile(x, y, value)

    # ---- spatial queries ----

    def within_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.size and 0 <= y < self.size

    def cell_content(self, cell: Cell) -> Optional[Tile]:
        if self.within_bounds(cell):
            return self.cells[cell[0]][cell[1]]
        return None

    def cell_occupied(self, cell: Cell) -> bool:
        return self.cell_content(cell) is not None

    def cell_available(self, cell: Cell) -> bool:
        return not self.cell_occupied(cell)

    def each_cell(self) -> Iterator[Tuple[int, int, Optional[Tile]]]:
        """Iterates (x, y, tile) with x ascending outer and y ascending inner."""
        for x in range(self.size):
            for y in range(self.size):
                yield x, y, self.cells[x][y]

    def available_cells(self) -> List[Cell]:
        return [(x, y) for x, y, tile in self.each_cell() if tile is None]

    def cells_available(self) -> bool:
        return any(tile is None for _, _, tile in self.each_cell())

    def random_available_cell(self, rng: Optional[random.Random] = None) -> Optional[Cell]:
        cells = self.available_cells()
        if not cells:
            return None
        return (rng or random).choice(cells)

    def tiles(self) -> List[Tile]:
        return [tile for _, _, tile in self.each_cell() if tile is not None]

    def tiles_with_value(self, value: int) -> List[Tile]:
        return [tile for tile in self.tiles() if tile.value == value]

    def max_value(self) -> int:
        return max((tile.value for tile in self.tiles()), default=0)

    # ---- mutation primitives ----

    def insert_tile(self, tile: Tile) -> None:
        self.cells[tile.x][tile.y] = tile

    def remove_tile(self, tile: Tile) -> None:
        # Only clear the slot if it still refers to this tile; a merge may have replaced it.
        if self.cells[tile.x][tile.y] is tile:
            self.cells[tile.x][tile.y] = None

    def move_tile(self, tile: Tile, cell: Cell) -> None:
        self.cells[tile.x][tile.y] = None
        self.cells[cell[0]][cell[1]] = tile
        tile.update_position(cell)

    def swap_cells(self, a: Cell, b: Cell) -> None:
        """Exchanges the contents of two slots; either side may be empty."""
        tile_a = self.cells[a[0]][a[1]]
        tile_b = self.cells[b[0]][b[1]]
        self.cells[a[0]][a[1]] = tile_b
        self.cells[b[0]][b[1]] = tile_a
        if tile_a is not None:
            tile_a.update_position(b)
        if tile_b is not None:
            tile_b.update_position(a)

    # ---- serialization ----

    def serialize(self) -> Dict[str, Any]:
        cells = [
            [tile.serialize() if tile is not None else None for tile in column]
            for column in self.cells
        ]
        return {"size": self.size, "cells": cells}

    def values(self) -> Tuple[Tuple[int, ...], ...]:
        """Tile values as rows (row-major, 0 for empty), handy for comparisons and printing."""
        return tuple(
            tuple(self.cells[x][y].value if self.cells[x][y] is not None else 0 for x in range(self.size))
            for y in range(self.size)
        )

    def pretty(self, selected: Optional[Cell] = None) -> str:
        """Generates a human-readable string representation of the grid."""
        width = max(4, len(str(self.max_value()))) + (2 if selected is not None else 0)
        lines: List[str] = []
        for y, row in enumerate(self.values()):
            parts: List[str] = []
            for x, value in enumerate(row):
                text = str(value) if value else "."
                if selected == (x, y):
                    text = f"[{text}]"
                parts.append(text.rjust(width))
            lines.append(" ".join(parts))
        return "\n".join(lines)
