from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Tuple

from .grid import Grid
from .tile import Cell, Tile

logger = logging.getLogger(__name__)

Vector = Tuple[int, int]

DEFAULT_WIN_VALUE = 2048


class Direction(IntEnum):
    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3


VECTORS: Dict[Direction, Vector] = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}


@dataclass(frozen=True)
class MoveResult:
    moved: bool
    score_delta: int = 0
    won: bool = False
    merged: Tuple[Cell, ...] = ()


def get_vector(direction: Direction) -> Vector:
    """Maps a direction to its unit vector (y grows downwards)."""
    return VECTORS[Direction(direction)]


def positions_equal(first: Cell, second: Cell) -> bool:
    return first[0] == second[0] and first[1] == second[1]


def build_traversals(size: int, vector: Vector) -> Tuple[List[int], List[int]]:
    """
    Builds the x and y enumeration order for a move.
    An axis is walked backwards when the vector points along it, so tiles nearest
    the destination edge are processed first and never get overwritten.
    """
    xs = list(range(size))
    ys = list(range(size))
    if vector[0] == 1:
        xs.reverse()
    if vector[1] == 1:
        ys.reverse()
    return xs, ys


def find_farthest_position(grid: Grid, cell: Cell, vector: Vector) -> Tuple[Cell, Cell]:
    """Slides from cell along vector; returns (last empty cell reached, the blocking cell beyond it)."""
    while True:
        previous = cell
        cell = (previous[0] + vector[0], previous[1] + vector[1])
        if not (grid.within_bounds(cell) and grid.cell_available(cell)):
            return previous, cell


def prepare_tiles(grid: Grid) -> None:
    """Clears merge markers and records each tile's position before a move."""
    for tile in grid.tiles():
        tile.merged_from = None
        tile.save_position()


def move(grid: Grid, direction: Direction, win_value: int = DEFAULT_WIN_VALUE) -> MoveResult:
    """
    Applies one directional move to the grid in place.
    Tiles are resolved one at a time in traversal order; a tile produced by a merge
    carries merged_from and cannot merge again in the same move.
    """
    vector = get_vector(direction)
    xs, ys = build_traversals(grid.size, vector)
    moved = False
    score_delta = 0
    won = False
    merged_cells: List[Cell] = []

    prepare_tiles(grid)

    for x in xs:
        for y in ys:
            cell = (x, y)
            tile = grid.cell_content(cell)
            if tile is None:
                continue
            farthest, nxt = find_farthest_position(grid, cell, vector)
            next_tile = grid.cell_content(nxt)
            if next_tile is not None and next_tile.value == tile.value and next_tile.merged_from is None:
                merged = Tile(nxt[0], nxt[1], tile.value * 2)
                merged.merged_from = (tile, next_tile)
                grid.insert_tile(merged)
                grid.remove_tile(tile)
                tile.update_position(nxt)
                score_delta += merged.value
                merged_cells.append(nxt)
                if merged.value >= win_value:
                    won = True
            else:
                grid.move_tile(tile, farthest)
            if not positions_equal(cell, tile.position):
                moved = True

    if moved:
        logger.debug("move %s: +%d, %d merge(s)", Direction(direction).name, score_delta, len(merged_cells))
    return MoveResult(moved=moved, score_delta=score_delta, won=won, merged=tuple(merged_cells))


def tile_matches_available(grid: Grid) -> bool:
    """True if any tile has an orthogonal neighbour of equal value."""
    for x, y, tile in grid.each_cell():
        if tile is None:
            continue
        for vector in VECTORS.values():
            other = grid.cell_content((x + vector[0], y + vector[1]))
            if other is not None and other.value == tile.value:
                return True
    return False


def moves_available(grid: Grid) -> bool:
    """Terminal-state oracle: False means no direction can change the grid."""
    return grid.cells_available() or tile_matches_available(grid)
