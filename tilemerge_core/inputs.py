from __future__ import annotations

from typing import Dict, Optional

from .commands import Command, Move, Restart, Undo
from .moves import Direction

# Arrow-style WASD plus vim HJKL, R restarts, Z undoes.
KEY_MAP: Dict[str, Command] = {
    "w": Move(Direction.UP),
    "d": Move(Direction.RIGHT),
    "s": Move(Direction.DOWN),
    "a": Move(Direction.LEFT),
    "k": Move(Direction.UP),
    "l": Move(Direction.RIGHT),
    "j": Move(Direction.DOWN),
    "h": Move(Direction.LEFT),
    "up": Move(Direction.UP),
    "right": Move(Direction.RIGHT),
    "down": Move(Direction.DOWN),
    "left": Move(Direction.LEFT),
    "r": Restart(),
    "z": Undo(),
}

SWIPE_THRESHOLD = 10


def command_for_key(key: str) -> Optional[Command]:
    return KEY_MAP.get(key.strip().lower())


def direction_from_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD) -> Optional[Direction]:
    """Maps a pointer drag to a direction along its dominant axis; short drags map to nothing."""
    if max(abs(dx), abs(dy)) <= threshold:
        return None
    if abs(dx) > abs(dy):
        return Direction.RIGHT if dx > 0 else Direction.LEFT
    return Direction.DOWN if dy > 0 else Direction.UP
