from __future__ import annotations

import random

# Facade module that re-exports the tilemerge core.
# The Flask app, tools and tests import from here; single-responsibility
# modules live under tilemerge_core/*.

from tilemerge_core.tile import Cell, Tile  # noqa: F401
from tilemerge_core.grid import Grid  # noqa: F401
from tilemerge_core.errors import CommandError, SnapshotError, TilemergeError  # noqa: F401
from tilemerge_core.moves import (  # noqa: F401
    DEFAULT_WIN_VALUE,
    VECTORS,
    Direction,
    MoveResult,
    build_traversals,
    find_farthest_position,
    get_vector,
    move,
    moves_available,
    positions_equal,
    prepare_tiles,
    tile_matches_available,
)
from tilemerge_core.state import GameSnapshot  # noqa: F401
from tilemerge_core.powerups import (  # noqa: F401
    CancelToken,
    PendingRemoval,
    PowerUpController,
    PowerUpMode,
    RemoveAction,
    SwapAction,
    apply_remove,
    apply_swap,
)
from tilemerge_core.commands import (  # noqa: F401
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
    command_from_json,
    parse_direction,
)
from tilemerge_core.config import GameConfig  # noqa: F401
from tilemerge_core.storage import (  # noqa: F401
    FallbackStorage,
    MemoryStorage,
    SqliteStorage,
    Storage,
    open_storage,
)
from tilemerge_core.render import (  # noqa: F401
    FrameRenderer,
    Metadata,
    Renderer,
    TextRenderer,
    frame_to_json,
)
from tilemerge_core.inputs import KEY_MAP, command_for_key, direction_from_swipe  # noqa: F401
from tilemerge_core.session import GameSession  # noqa: F401


def grid_from_rows(rows) -> Grid:
    """Builds a grid from row-major values (0 = empty); rows[y][x] lands at cell (x, y)."""
    size = len(rows)
    grid = Grid(size)
    for y, row in enumerate(rows):
        if len(row) != size:
            raise ValueError(f"row {y} has {len(row)} cells, expected {size}")
        for x, value in enumerate(row):
            if value:
                grid.insert_tile(Tile(x, y, int(value)))
    return grid


def new_session(seed=None, config=None, storage=None, renderer=None) -> GameSession:
    """Convenience constructor with a seeded RNG."""
    return GameSession(config=config, storage=storage, renderer=renderer, rng=random.Random(seed))
