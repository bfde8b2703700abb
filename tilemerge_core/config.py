from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_DB = os.path.join("data", "tilemerge.db")


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_delays(env: Mapping[str, str], name: str, default: Tuple[float, float]) -> Tuple[float, float]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    parts = [p for p in raw.replace(" ", "").split(",") if p != ""]
    try:
        if len(parts) != 2:
            raise ValueError
        first, second = float(parts[0]), float(parts[1])
    except ValueError:
        raise ValueError(f"{name} must look like '0.25,0.2', got {raw!r}") from None
    if first < 0 or second < 0:
        raise ValueError(f"{name} delays must be non-negative, got {raw!r}")
    return first, second


@dataclass(frozen=True)
class GameConfig:
    """Tunable game parameters. Defaults reproduce classic 2048 on a 4x4 board."""
    size: int = 4
    start_tiles: int = 2
    win_value: int = 2048
    four_probability: float = 0.1
    remove_highlight_delay: float = 0.25
    remove_vanish_delay: float = 0.20
    db_path: Optional[str] = DEFAULT_DB
    max_games: int = 256

    @property
    def remove_delays(self) -> Tuple[float, float]:
        return self.remove_highlight_delay, self.remove_vanish_delay

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'GameConfig':
        """Reads TILEMERGE_* overrides; raises ValueError naming the offending variable."""
        env = os.environ if env is None else env
        highlight, vanish = _env_delays(env, "TILEMERGE_REMOVE_DELAYS", (0.25, 0.20))
        return cls(
            size=_env_int(env, "TILEMERGE_SIZE", 4, 2),
            start_tiles=_env_int(env, "TILEMERGE_START_TILES", 2, 0),
            win_value=_env_int(env, "TILEMERGE_WIN_VALUE", 2048, 4),
            remove_highlight_delay=highlight,
            remove_vanish_delay=vanish,
            db_path=env.get("TILEMERGE_DB", DEFAULT_DB) or None,
            max_games=_env_int(env, "TILEMERGE_MAX_GAMES", 256, 1),
        )
