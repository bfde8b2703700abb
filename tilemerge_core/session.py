from __future__ import annotations

import logging
import random
from typing import Optional

from .commands import (
    ActivateRemove,
    ActivateSwap,
    CancelPowerUp,
    Command,
    KeepPlaying,
    Move,
    Restart,
    SelectCell,
    Tick,
    Undo,
)
from .config import GameConfig
from .errors import SnapshotError
from .grid import Grid
from .moves import Direction, moves_available
from .moves import move as apply_move
from .powerups import (
    PendingRemoval,
    PowerUpController,
    RemoveAction,
    SwapAction,
    apply_remove,
    apply_swap,
)
from .render import Metadata, Renderer
from .state import GameSnapshot
from .storage import FallbackStorage, MemoryStorage, Storage
from .tile import Cell, Tile

logger = logging.getLogger(__name__)


class GameSession:
    """
    Owns one game: the grid, score and flags, the single undo slot, the power-up
    state and any pending removal. All input arrives through dispatch(); after
    every state change the storage and renderer collaborators are notified.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        storage: Optional[Storage] = None,
        renderer: Optional[Renderer] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or GameConfig()
        if storage is None:
            storage = MemoryStorage()
        elif not isinstance(storage, (MemoryStorage, FallbackStorage)):
            storage = FallbackStorage(storage)
        self.storage: Storage = storage
        self.renderer = renderer
        self.rng = rng or random.Random()

        self.grid = Grid(self.config.size)
        self.score = 0
        self.over = False
        self.won = False
        self.keep_going = False
        self.previous_state: Optional[GameSnapshot] = None
        self.powerups = PowerUpController()
        self.pending_removal: Optional[PendingRemoval] = None

        self.setup()

    # ---- lifecycle ----

    def setup(self) -> None:
        """Resumes the persisted game if it is usable, otherwise deals a fresh one."""
        snapshot = self._load_persisted()
        if snapshot is not None:
            self._restore(snapshot)
            logger.info("resumed game: score=%d", self.score)
        else:
            self.grid = Grid(self.config.size)
            self.score = 0
            self.over = False
            self.won = False
            self.keep_going = False
            self.add_start_tiles()
            logger.info("new %dx%d game", self.config.size, self.config.size)
        self.actuate()

    def _load_persisted(self) -> Optional[GameSnapshot]:
        try:
            raw = self.storage.get_game_state()
        except ValueError as e:
            logger.warning("discarding unreadable saved game: %s", e)
            return None
        if raw is None:
            return None
        try:
            return GameSnapshot.from_dict(raw, expected_size=self.config.size)
        except SnapshotError as e:
            logger.warning("discarding saved game: %s", e)
            return None

    def add_start_tiles(self) -> None:
        for _ in range(self.config.start_tiles):
            self.add_random_tile()

    def add_random_tile(self) -> Optional[Tile]:
        cell = self.grid.random_available_cell(self.rng)
        if cell is None:
            return None
        value = 4 if self.rng.random() < self.config.four_probability else 2
        tile = Tile(cell[0], cell[1], value)
        self.grid.insert_tile(tile)
        return tile

    # ---- state ----

    def is_game_terminated(self) -> bool:
        return self.over or (self.won and not self.keep_going)

    @property
    def can_undo(self) -> bool:
        return self.previous_state is not None

    def serialize(self) -> GameSnapshot:
        return GameSnapshot(
            grid=self.grid.serialize(),
            score=self.score,
            over=self.over,
            won=self.won,
            keep_playing=self.keep_going,
        )

    def _restore(self, snapshot: GameSnapshot) -> None:
        self.grid = snapshot.restore_grid()
        self.score = snapshot.score
        self.over = snapshot.over
        self.won = snapshot.won
        self.keep_going = snapshot.keep_playing

    def _check_over(self) -> None:
        if not moves_available(self.grid):
            self.over = True

    # ---- input ----

    def dispatch(self, command: Command) -> bool:
        """Routes one input command. Returns True when game state changed."""
        if isinstance(command, Move):
            return self.move(command.direction)
        if isinstance(command, Undo):
            return self.undo()
        if isinstance(command, Restart):
            self.restart()
            return True
        if isinstance(command, KeepPlaying):
            return self.keep_playing()
        if isinstance(command, ActivateSwap):
            return self.activate_swap()
        if isinstance(command, ActivateRemove):
            return self.activate_remove()
        if isinstance(command, CancelPowerUp):
            return self.cancel_powerup()
        if isinstance(command, SelectCell):
            return self.select_cell(command.cell)
        if isinstance(command, Tick):
            return self.advance(command.seconds)
        raise TypeError(f"unsupported command {command!r}")

    def move(self, direction: Direction) -> bool:
        if self._interrupt_pending_removal():
            return False
        if self.is_game_terminated():
            return False
        if self.powerups.active:
            # Regular input always wins over a half-finished power-up selection.
            self.powerups.cancel()
            self.actuate()
            return False

        before = self.serialize()
        result = apply_move(self.grid, direction, self.config.win_value)
        if not result.moved:
            return False

        self.previous_state = before
        self.score += result.score_delta
        if result.won and not self.won:
            self.won = True
            logger.info("reached %d with score %d", self.config.win_value, self.score)
        self.add_random_tile()
        self._check_over()
        if self.over:
            logger.info("game over: score=%d", self.score)
        self.actuate()
        return True

    def undo(self) -> bool:
        self._cancel_pending_removal()
        if self.previous_state is None:
            return False
        self.powerups.cancel()
        self._restore(self.previous_state)
        self.previous_state = None
        logger.debug("undo: score back to %d", self.score)
        self.actuate()
        return True

    def restart(self) -> None:
        self._cancel_pending_removal()
        self.storage.clear_game_state()
        self.previous_state = None
        self.powerups.cancel()
        self.setup()

    def keep_playing(self) -> bool:
        if self.keep_going:
            return False
        self.keep_going = True
        self.actuate()
        return True

    # ---- power-ups ----

    def activate_swap(self) -> bool:
        if self._interrupt_pending_removal() or self.is_game_terminated():
            return False
        self.powerups.activate_swap()
        self.actuate()
        return True

    def activate_remove(self) -> bool:
        if self._interrupt_pending_removal() or self.is_game_terminated():
            return False
        self.powerups.activate_remove()
        self.actuate()
        return True

    def cancel_powerup(self) -> bool:
        if self._interrupt_pending_removal():
            return True
        if not self.powerups.active:
            return False
        self.powerups.cancel()
        self.actuate()
        return True

    def select_cell(self, cell: Cell) -> bool:
        if self._interrupt_pending_removal() or self.is_game_terminated():
            return False
        mode_before = self.powerups.mode
        action = self.powerups.select(self.grid, cell)
        if isinstance(action, SwapAction):
            self._swap(action)
            return True
        if isinstance(action, RemoveAction):
            self._begin_removal(action)
            return True
        if self.powerups.mode is not mode_before:
            self.actuate()
            return True
        return False

    def _swap(self, action: SwapAction) -> None:
        before = self.serialize()
        apply_swap(self.grid, action)
        self.previous_state = before
        self._check_over()
        logger.debug("swapped %s <-> %s", action.first, action.second)
        self.actuate()

    def _begin_removal(self, action: RemoveAction) -> None:
        pending = PendingRemoval(action=action, before=self.serialize(), delays=self.config.remove_delays)
        self.pending_removal = pending
        if pending.advance(0.0):
            self._commit_removal(pending)
        else:
            self.actuate()

    def advance(self, seconds: float) -> bool:
        """Moves the removal clock forward; commits the removal once both stages have elapsed."""
        pending = self.pending_removal
        if pending is None:
            return False
        stage_before = pending.stage
        if pending.advance(seconds):
            self._commit_removal(pending)
            return True
        if pending.stage != stage_before:
            self.actuate()
        return False

    def _commit_removal(self, pending: PendingRemoval) -> None:
        if pending is not self.pending_removal or pending.token.cancelled:
            return
        removed = apply_remove(self.grid, pending.action)
        self.previous_state = pending.before
        self.pending_removal = None
        self.powerups.cancel()
        self._check_over()
        logger.debug("removed %d tile(s) of value %d", removed, pending.action.value)
        self.actuate()

    def _cancel_pending_removal(self) -> bool:
        pending = self.pending_removal
        if pending is None:
            return False
        pending.cancel()
        self.pending_removal = None
        self.powerups.cancel()
        return True

    def _interrupt_pending_removal(self) -> bool:
        """Cancels a pending removal in response to competing input; True means the input is swallowed."""
        if self._cancel_pending_removal():
            self.actuate()
            return True
        return False

    # ---- collaborators ----

    def metadata(self, best_score: Optional[int] = None) -> Metadata:
        if best_score is None:
            best_score = max(self.storage.get_best_score(), self.score)
        pending = self.pending_removal
        return Metadata(
            score=self.score,
            best_score=best_score,
            over=self.over,
            won=self.won,
            terminated=self.is_game_terminated(),
            can_undo=self.can_undo,
            mode=self.powerups.mode.value,
            swap_first=self.powerups.swap_first,
            removing=pending.action.targets if pending is not None else (),
            removal_stage=pending.stage if pending is not None else None,
        )

    def actuate(self) -> None:
        best = self.storage.get_best_score()
        if best < self.score:
            self.storage.set_best_score(self.score)
            best = self.score
        if self.over:
            self.storage.clear_game_state()
        else:
            self.storage.set_game_state(self.serialize().to_dict())
        if self.renderer is not None:
            self.renderer.actuate(self.grid, self.metadata(best))
