import argparse
import random
import sys
import time
from typing import List, Tuple

sys.path.append('.')
import game  # type: ignore  # noqa: E402


def check_terminal_oracle(grid: game.Grid) -> bool:
    """When no moves are available, every direction must leave the grid untouched."""
    if game.moves_available(grid):
        return True
    for direction in game.Direction:
        trial = game.Grid.from_state(grid.size, grid.serialize()["cells"])
        if game.move(trial, direction).moved:
            return False
    return True


def play_one(seed: int, size: int, powerups: bool) -> Tuple[int, int, List[str]]:
    rng = random.Random(seed)
    config = game.GameConfig(size=size, db_path=None, remove_highlight_delay=0.0, remove_vanish_delay=0.0)
    session = game.new_session(seed=seed, config=config)
    problems: List[str] = []
    turns = 0
    while not session.over and turns < 5000:
        turns += 1
        if not check_terminal_oracle(session.grid):
            problems.append(f"seed={seed} turn={turns}: oracle says over but a move changed the grid")
        before = session.serialize()
        roll = rng.random()
        if powerups and roll < 0.02:
            session.dispatch(game.ActivateRemove())
            session.dispatch(game.SelectCell(rng.randrange(size), rng.randrange(size)))
        elif powerups and roll < 0.04:
            session.dispatch(game.ActivateSwap())
            session.dispatch(game.SelectCell(rng.randrange(size), rng.randrange(size)))
            session.dispatch(game.SelectCell(rng.randrange(size), rng.randrange(size)))
        else:
            direction = rng.choice(list(game.Direction))
            if session.dispatch(game.Move(direction)) and rng.random() < 0.05:
                session.dispatch(game.Undo())
                if session.serialize() != before:
                    problems.append(f"seed={seed} turn={turns}: undo did not restore the pre-move state")
        if session.won and not session.keep_going:
            session.dispatch(game.KeepPlaying())
    return turns, session.score, problems


def main() -> None:
    parser = argparse.ArgumentParser(description='Play random games and check core invariants')
    parser.add_argument('--games', type=int, default=50)
    parser.add_argument('--size', type=int, default=4)
    parser.add_argument('--seed', type=int, default=0)
    parser.add_argument('--no-powerups', action='store_true')
    args = parser.parse_args()

    random.seed(args.seed)
    failures = 0
    t0 = time.time()
    for _ in range(args.games):
        seed = random.randrange(1_000_000)
        turns, score, problems = play_one(seed, args.size, not args.no_powerups)
        print(f"seed={seed} turns={turns} score={score} problems={len(problems)}")
        for p in problems[:5]:
            print("  " + p)
        failures += len(problems)
    took = int((time.time() - t0) * 1000)
    print(f"Checked {args.games} games in {took}ms, problems={failures}")
    if failures:
        sys.exit(1)


if __name__ == '__main__':
    main()
