from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from .grid import Grid
from .state import GameSnapshot
from .tile import Cell

logger = logging.getLogger(__name__)


class PowerUpMode(Enum):
    IDLE = "idle"
    SWAP_ARMED = "swap"
    SWAP_FIRST_CHOSEN = "swap_first"
    REMOVE_ARMED = "remove"


@dataclass(frozen=True)
class SwapAction:
    first: Cell
    second: Cell


@dataclass(frozen=True)
class RemoveAction:
    value: int
    targets: Tuple[Cell, ...]


PowerUpAction = Union[SwapAction, RemoveAction]


class PowerUpController:
    """
    Gates the swap and remove power-ups.

    The controller only tracks selection state and decides what a cell pick means;
    it hands back an action for the session to snapshot and apply, so the undo
    slot is always filled before the grid changes.
    """

    def __init__(self) -> None:
        self.mode = PowerUpMode.IDLE
        self.swap_first: Optional[Cell] = None

    @property
    def active(self) -> bool:
        return self.mode is not PowerUpMode.IDLE

    @property
    def swap_mode(self) -> bool:
        return self.mode in (PowerUpMode.SWAP_ARMED, PowerUpMode.SWAP_FIRST_CHOSEN)

    @property
    def remove_mode(self) -> bool:
        return self.mode is PowerUpMode.REMOVE_ARMED

    def cancel(self) -> None:
        self.mode = PowerUpMode.IDLE
        self.swap_first = None

    def activate_swap(self) -> None:
        # Pressing the active power-up again switches it off.
        was_swap = self.swap_mode
        self.cancel()
        if not was_swap:
            self.mode = PowerUpMode.SWAP_ARMED

    def activate_remove(self) -> None:
        was_remove = self.remove_mode
        self.cancel()
        if not was_remove:
            self.mode = PowerUpMode.REMOVE_ARMED

    def select(self, grid: Grid, cell: Cell) -> Optional[PowerUpAction]:
        """Feeds a cell pick into the state machine; returns an action when one is ready to apply."""
        if not grid.within_bounds(cell):
            return None
        tile = grid.cell_content(cell)

        if self.mode is PowerUpMode.SWAP_ARMED:
            if tile is not None:
                self.swap_first = cell
                self.mode = PowerUpMode.SWAP_FIRST_CHOSEN
            return None

        if self.mode is PowerUpMode.SWAP_FIRST_CHOSEN:
            first = self.swap_first
            self.cancel()
            if first is None or cell == first:
                return None
            return SwapAction(first, cell)

        if self.mode is PowerUpMode.REMOVE_ARMED:
            if tile is None:
                return None
            targets = tuple(t.position for t in grid.tiles_with_value(tile.value))
            return RemoveAction(tile.value, targets)

        return None


def apply_swap(grid: Grid, action: SwapAction) -> None:
    """Exchanges two cells; moved tiles lose their animation hints."""
    grid.swap_cells(action.first, action.second)
    for cell in (action.first, action.second):
        tile = grid.cell_content(cell)
        if tile is not None:
            tile.clear_history()


def apply_remove(grid: Grid, action: RemoveAction) -> int:
    """Removes every targeted tile still holding the action's value; returns how many went."""
    removed = 0
    for cell in action.targets:
        tile = grid.cell_content(cell)
        if tile is not None and tile.value == action.value:
            grid.remove_tile(tile)
            removed += 1
    return removed


class CancelToken:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class PendingRemoval:
    """
    A remove power-up waiting out its highlight and vanish stages.
    The grid is only touched once both stages have elapsed.
    """
    action: RemoveAction
    before: GameSnapshot
    delays: Tuple[float, float]
    token: CancelToken = field(default_factory=CancelToken)
    elapsed: float = 0.0

    @property
    def stage(self) -> str:
        if self.elapsed < self.delays[0]:
            return "highlight"
        if self.elapsed < self.delays[0] + self.delays[1]:
            return "vanish"
        return "done"

    @property
    def due(self) -> bool:
        return not self.token.cancelled and self.stage == "done"

    def advance(self, seconds: float) -> bool:
        """Moves the clock forward; returns True once the removal should commit."""
        if self.token.cancelled:
            return False
        self.elapsed += max(0.0, seconds)
        return self.due

    def cancel(self) -> None:
        if not self.token.cancelled:
            logger.debug("pending removal of %d cancelled at stage %s", self.action.value, self.stage)
        self.token.cancel()
