from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from .errors import CommandError
from .moves import Direction
from .tile import Cell


@dataclass(frozen=True)
class Move:
    direction: Direction


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Restart:
    pass


@dataclass(frozen=True)
class KeepPlaying:
    pass


@dataclass(frozen=True)
class ActivateSwap:
    pass


@dataclass(frozen=True)
class ActivateRemove:
    pass


@dataclass(frozen=True)
class CancelPowerUp:
    pass


@dataclass(frozen=True)
class SelectCell:
    x: int
    y: int

    @property
    def cell(self) -> Cell:
        return (self.x, self.y)


@dataclass(frozen=True)
class Tick:
    seconds: float


Command = Union[Move, Undo, Restart, KeepPlaying, ActivateSwap, ActivateRemove, CancelPowerUp, SelectCell, Tick]

_SIMPLE: Dict[str, Command] = {
    "undo": Undo(),
    "restart": Restart(),
    "keepPlaying": KeepPlaying(),
    "swap": ActivateSwap(),
    "remove": ActivateRemove(),
    "cancel": CancelPowerUp(),
}


def parse_direction(raw: Any) -> Direction:
    """Accepts a direction name ('up', 'LEFT') or its numeric code (0..3)."""
    if isinstance(raw, bool):
        raise CommandError(f"bad direction {raw!r}")
    if isinstance(raw, int):
        try:
            return Direction(raw)
        except ValueError as e:
            raise CommandError(f"bad direction {raw!r}") from e
    if isinstance(raw, str):
        try:
            return Direction[raw.strip().upper()]
        except KeyError as e:
            raise CommandError(f"bad direction {raw!r}") from e
    raise CommandError(f"bad direction {raw!r}")


def command_from_json(obj: Any) -> Command:
    """Decodes the wire form {"type": ..., ...} into a Command."""
    if not isinstance(obj, dict):
        raise CommandError("command must be an object")
    kind = obj.get("type")
    if kind in _SIMPLE:
        return _SIMPLE[kind]
    if kind == "move":
        return Move(parse_direction(obj.get("direction")))
    if kind == "select":
        try:
            return SelectCell(int(obj["x"]), int(obj["y"]))
        except (KeyError, TypeError, ValueError) as e:
            raise CommandError(f"bad select command: {e}") from e
    if kind == "tick":
        try:
            seconds = float(obj.get("seconds", 0.0))
        except (TypeError, ValueError) as e:
            raise CommandError(f"bad tick command: {e}") from e
        return Tick(seconds)
    raise CommandError(f"unknown command type {kind!r}")
