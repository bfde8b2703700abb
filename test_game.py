import random
import unittest

from game import (
    ActivateRemove,
    ActivateSwap,
    Direction,
    FrameRenderer,
    GameConfig,
    GameSession,
    Move,
    SelectCell,
    Undo,
    grid_from_rows,
    move,
)


def make_session(rows=None, seed=1, **overrides):
    params = dict(start_tiles=0, db_path=None, remove_highlight_delay=0.0, remove_vanish_delay=0.0)
    params.update(overrides)
    session = GameSession(config=GameConfig(**params), renderer=FrameRenderer(), rng=random.Random(seed))
    if rows is not None:
        session.grid = grid_from_rows(rows)
    return session


class TestTilemergeScenarios(unittest.TestCase):
    def test_pair_moved_left_merges_and_spawns(self):
        session = make_session([
            [2, 2, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
        ])
        self.assertTrue(session.dispatch(Move(Direction.LEFT)))
        self.assertEqual(session.grid.cell_content((0, 0)).value, 4)
        self.assertEqual(session.score, 4)
        tiles = session.grid.tiles()
        self.assertEqual(len(tiles), 2)
        spawned = [t for t in tiles if t.position != (0, 0)]
        self.assertEqual(len(spawned), 1)
        self.assertIn(spawned[0].value, (2, 4))

    def test_three_in_a_row_merges_only_the_leading_pair(self):
        grid = grid_from_rows([
            [2, 2, 2, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
        ])
        result = move(grid, Direction.LEFT)
        self.assertTrue(result.moved)
        self.assertEqual(result.score_delta, 4)
        self.assertEqual(grid.values()[0], (4, 2, 0, 0))

    def test_remove_takes_every_tile_of_the_value_and_undo_brings_them_back(self):
        rows = [
            [8, 2, 0, 0],
            [0, 8, 4, 0],
            [0, 0, 0, 8],
            [16, 0, 0, 0],
        ]
        session = make_session(rows)
        session.dispatch(ActivateRemove())
        self.assertTrue(session.dispatch(SelectCell(1, 1)))
        self.assertEqual(session.grid.values(), (
            (0, 2, 0, 0),
            (0, 0, 4, 0),
            (0, 0, 0, 0),
            (16, 0, 0, 0),
        ))
        self.assertEqual(session.score, 0)
        self.assertTrue(session.dispatch(Undo()))
        self.assertEqual(session.grid.values(), tuple(tuple(r) for r in rows))

    def test_swap_with_empty_corner_moves_tile_without_score_or_spawn(self):
        session = make_session([
            [2, 0, 0, 0],
            [0, 4, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
        ])
        session.dispatch(ActivateSwap())
        session.dispatch(SelectCell(0, 0))
        self.assertTrue(session.dispatch(SelectCell(3, 3)))
        self.assertIsNone(session.grid.cell_content((0, 0)))
        self.assertEqual(session.grid.cell_content((3, 3)).value, 2)
        self.assertEqual(len(session.grid.tiles()), 2)
        self.assertEqual(session.score, 0)

    def test_undo_is_a_single_level(self):
        session = make_session(start_tiles=2, seed=7)
        session.grid = grid_from_rows([
            [2, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 0],
            [0, 0, 0, 4],
        ])
        self.assertTrue(session.dispatch(Move(Direction.RIGHT)))
        after_first = session.serialize()
        self.assertTrue(any(session.dispatch(Move(d)) for d in Direction))
        self.assertTrue(session.dispatch(Undo()))
        self.assertEqual(session.serialize(), after_first)
        # Nothing left to undo
        self.assertFalse(session.dispatch(Undo()))
        self.assertEqual(session.serialize(), after_first)


if __name__ == '__main__':
    unittest.main()
