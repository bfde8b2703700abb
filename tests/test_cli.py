import io
import os
import tempfile
import unittest
from unittest import mock

from game import (
    ActivateRemove,
    ActivateSwap,
    CancelPowerUp,
    Direction,
    KeepPlaying,
    Metadata,
    Move,
    Restart,
    SelectCell,
    SqliteStorage,
    TextRenderer,
    Undo,
    command_for_key,
    direction_from_swipe,
    grid_from_rows,
)
from tilemerge_core import cli


class TestKeyAndSwipeMapping(unittest.TestCase):
    def test_given_movement_keys_when_mapped_then_all_three_layouts_agree(self):
        for keys, direction in (
            (("w", "k", "up"), Direction.UP),
            (("d", "l", "right"), Direction.RIGHT),
            (("s", "j", "down"), Direction.DOWN),
            (("a", "h", "left"), Direction.LEFT),
        ):
            for key in keys:
                with self.subTest(key=key):
                    self.assertEqual(command_for_key(key), Move(direction))
                    self.assertEqual(command_for_key(key.upper()), Move(direction))

    def test_given_restart_undo_and_unknown_keys_when_mapped_then_expected(self):
        self.assertEqual(command_for_key("r"), Restart())
        self.assertEqual(command_for_key("z"), Undo())
        self.assertIsNone(command_for_key("x"))
        self.assertIsNone(command_for_key(""))

    def test_given_drags_when_mapped_then_dominant_axis_past_threshold(self):
        self.assertIs(direction_from_swipe(50, 10), Direction.RIGHT)
        self.assertIs(direction_from_swipe(-50, 49), Direction.LEFT)
        self.assertIs(direction_from_swipe(10, 50), Direction.DOWN)
        self.assertIs(direction_from_swipe(0, -11), Direction.UP)
        # Diagonal ties go vertical.
        self.assertIs(direction_from_swipe(30, 30), Direction.DOWN)
        self.assertIsNone(direction_from_swipe(10, -10))
        self.assertIsNone(direction_from_swipe(0, 0))
        self.assertIs(direction_from_swipe(4, 0, threshold=3), Direction.RIGHT)


class TestParseLine(unittest.TestCase):
    def test_given_text_commands_when_parsed_then_commands(self):
        cases = [
            ("a", Move(Direction.LEFT)),
            ("  LEFT ", Move(Direction.LEFT)),
            ("z", Undo()),
            ("swap", ActivateSwap()),
            ("remove", ActivateRemove()),
            ("cancel", CancelPowerUp()),
            ("keep", KeepPlaying()),
            ("pick 2 3", SelectCell(2, 3)),
        ]
        for text, expected in cases:
            with self.subTest(text=text):
                self.assertEqual(cli.parse_line(text), expected)

    def test_given_nonsense_when_parsed_then_none(self):
        for text in ("", "   ", "pick", "pick 1", "pick a b", "swap now", "jump", "w a"):
            with self.subTest(text=text):
                self.assertIsNone(cli.parse_line(text))


class TestTextRenderer(unittest.TestCase):
    def test_given_running_game_when_rendered_then_score_line_and_grid(self):
        out = io.StringIO()
        grid = grid_from_rows([[2, 0], [0, 4]])
        TextRenderer(out).actuate(grid, Metadata(score=12, best_score=40, over=False, won=False, terminated=False))
        text = out.getvalue()
        self.assertIn("Score: 12", text)
        self.assertIn("Best: 40", text)
        self.assertIn(grid.pretty(), text)
        self.assertNotIn("Game over", text)

    def test_given_power_up_and_terminal_states_when_rendered_then_hints_shown(self):
        grid = grid_from_rows([[2, 0], [0, 4]])
        out = io.StringIO()
        TextRenderer(out).actuate(grid, Metadata(
            score=0, best_score=0, over=False, won=False, terminated=False,
            mode="swap_first", swap_first=(0, 0),
        ))
        self.assertIn("[swap_first mode]", out.getvalue())
        self.assertIn("[2]", out.getvalue())

        out = io.StringIO()
        TextRenderer(out).actuate(grid, Metadata(
            score=0, best_score=0, over=False, won=False, terminated=False,
            mode="remove", removing=((0, 0),), removal_stage="highlight",
        ))
        self.assertIn("removing 1 tile(s)", out.getvalue())

        out = io.StringIO()
        TextRenderer(out).actuate(grid, Metadata(score=0, best_score=0, over=True, won=False, terminated=True))
        self.assertIn("Game over!", out.getvalue())

        out = io.StringIO()
        TextRenderer(out).actuate(grid, Metadata(score=0, best_score=0, over=False, won=True, terminated=True))
        self.assertIn("You win!", out.getvalue())


class TestCliMain(unittest.TestCase):
    def test_given_scripted_input_when_running_then_plays_and_quits(self):
        lines = iter(["d", "jump", "q"])
        out = io.StringIO()
        with mock.patch("builtins.input", lambda prompt="": next(lines)), \
                mock.patch("sys.stdout", out), \
                mock.patch.dict("os.environ", {"TILEMERGE_DB": ""}, clear=True):
            cli.main(["--seed", "3", "--size", "3"])
        text = out.getvalue()
        self.assertIn("Score: 0", text)
        self.assertIn("Could not parse.", text)

    def test_given_end_of_input_when_running_then_exits_cleanly(self):
        def eof(prompt=""):
            raise EOFError

        out = io.StringIO()
        with mock.patch("builtins.input", eof), mock.patch("sys.stdout", out), \
                mock.patch.dict("os.environ", {"TILEMERGE_DB": ""}, clear=True):
            cli.main(["--seed", "1"])
        self.assertIn("moves:", out.getvalue())

    def _run_quietly(self, argv, env):
        out = io.StringIO()
        with mock.patch("builtins.input", lambda prompt="": "q"), mock.patch("sys.stdout", out), \
                mock.patch.dict("os.environ", env, clear=True):
            cli.main(argv)

    def test_given_db_env_var_and_no_flag_when_running_then_game_saved_there(self):
        with tempfile.TemporaryDirectory() as tmp:
            db_path = os.path.join(tmp, "env.db")
            self._run_quietly(["--seed", "2"], {"TILEMERGE_DB": db_path})
            self.assertIsNotNone(SqliteStorage(db_path).get_game_state())

    def test_given_db_flag_and_env_var_when_running_then_flag_wins(self):
        with tempfile.TemporaryDirectory() as tmp:
            env_path = os.path.join(tmp, "env.db")
            flag_path = os.path.join(tmp, "flag.db")
            self._run_quietly(["--seed", "2", "--db", flag_path], {"TILEMERGE_DB": env_path})
            self.assertIsNotNone(SqliteStorage(flag_path).get_game_state())
            self.assertFalse(os.path.exists(env_path))


if __name__ == '__main__':
    unittest.main(verbosity=2)
