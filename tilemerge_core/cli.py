from __future__ import annotations

import argparse
import logging
import random
from dataclasses import replace
from typing import List, Optional

from .commands import (
    ActivateRemove,
    ActivateSwap,
    CancelPowerUp,
    Command,
    KeepPlaying,
    SelectCell,
)
from .config import GameConfig
from .inputs import command_for_key
from .render import TextRenderer
from .session import GameSession
from .storage import open_storage

HELP = (
    "moves: w/a/s/d, h/j/k/l or up/down/left/right | z undo | r restart | keep\n"
    "power-ups: swap, remove, then 'pick X Y' | cancel | quit"
)

_WORDS = {
    "swap": ActivateSwap(),
    "remove": ActivateRemove(),
    "cancel": CancelPowerUp(),
    "keep": KeepPlaying(),
}


def parse_line(text: str) -> Optional[Command]:
    """Turns one line of terminal input into a command, or None if it means nothing."""
    parts = text.strip().lower().split()
    if not parts:
        return None
    if parts[0] == "pick":
        if len(parts) != 3:
            return None
        try:
            return SelectCell(int(parts[1]), int(parts[2]))
        except ValueError:
            return None
    if parts[0] in _WORDS and len(parts) == 1:
        return _WORDS[parts[0]]
    if len(parts) == 1:
        return command_for_key(parts[0])
    return None


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='Sliding-tile merge puzzle with swap/remove power-ups')
    parser.add_argument('--size', type=int, default=None, help='Board size (NxN)')
    parser.add_argument('--seed', type=int, default=None, help='RNG seed for tile spawns')
    parser.add_argument('--db', default=None, help='SQLite file for best score and saved game (default: $TILEMERGE_DB, then data/tilemerge.db; "" keeps it in memory)')
    parser.add_argument('--win-value', type=int, default=None, help='Tile value that wins the game')
    parser.add_argument('--log-level', default='WARNING', help='Logging level (DEBUG, INFO, ...)')
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format='%(levelname)s %(name)s: %(message)s')

    config = GameConfig.from_env()
    # The terminal has no animation, so removals commit at once.
    config = replace(
        config,
        remove_highlight_delay=0.0,
        remove_vanish_delay=0.0,
        db_path=args.db if args.db is not None else config.db_path,
    )
    if args.size is not None:
        config = replace(config, size=args.size)
    if args.win_value is not None:
        config = replace(config, win_value=args.win_value)

    session = GameSession(
        config=config,
        storage=open_storage(config.db_path),
        renderer=TextRenderer(),
        rng=random.Random(args.seed),
    )
    print(HELP)

    while True:
        try:
            text = input('> ')
        except EOFError:
            break
        if text.strip().lower() in ('q', 'quit', 'exit'):
            break
        command = parse_line(text)
        if command is None:
            print('Could not parse. ' + HELP)
            continue
        if not session.dispatch(command):
            print('(nothing happened)')


if __name__ == '__main__':
    main()
