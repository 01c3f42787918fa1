from __future__ import annotations

import contextlib
import dataclasses
import io
import json
import unittest

from soko_search.bench import search
from soko_search.bench.progress import SearchProgressReporter
from soko_search.bench.search import (
    StateTable,
    breadth_first_search,
    depth_first_search,
    solve_level,
)
from soko_search.config import SearchConfig
from soko_search.sokoban import (
    SearchState,
    UnsupportedModeError,
    build_forward_problem,
    load_bundled_level_set,
    load_level_by_id,
    parse_xsb_levels,
)
from soko_search.sokoban.procgen import generate_procedural_level_with_solution
from soko_search.sokoban.replay import is_solution

CORRIDOR = """########
#@$   .#
########
"""


def _level(xsb: str):
    return parse_xsb_levels(xsb, set_name="unit")[0]


class _RecordingReporter(SearchProgressReporter):
    def __init__(self) -> None:
        self.calls: list[tuple[int, int, int]] = []
        self.closed = False

    def on_expand(self, *, expanded: int, frontier: int, depth: int) -> None:
        self.calls.append((expanded, frontier, depth))

    def close(self) -> None:
        self.closed = True


class TestStateTable(unittest.TestCase):
    def test_equal_states_are_deduplicated(self) -> None:
        root = build_forward_problem(load_level_by_id("starter:3")).initial_state
        same_region = SearchState.create(root.board, root.boxes, player=(1, 1))
        table = StateTable()
        self.assertTrue(table.add(root))
        self.assertFalse(table.add(same_region))
        self.assertIn(same_region, table)
        self.assertEqual(len(table), 1)

    def test_hash_collisions_keep_both_states(self) -> None:
        root = build_forward_problem(load_level_by_id("starter:3")).initial_state
        child = root.get_children()[0]
        colliding = dataclasses.replace(child, hash=root.hash)
        table = StateTable()
        table.add(root)
        self.assertNotIn(colliding, table)
        self.assertTrue(table.add(colliding))
        self.assertEqual(len(table), 2)
        self.assertEqual(table.bucket_count, 1)
        self.assertNotIn("not a state", table)


class TestSearchStrategies(unittest.TestCase):
    def test_bfs_finds_fewest_pushes_on_starter_levels(self) -> None:
        expected_pushes = {"starter:1": 1, "starter:2": 1, "starter:5": 2}
        for level_id, pushes in expected_pushes.items():
            with self.subTest(level_id=level_id):
                root = build_forward_problem(load_level_by_id(level_id)).initial_state
                result = breadth_first_search(root)
                self.assertTrue(result.solved)
                self.assertEqual(result.state.depth, pushes)
                self.assertEqual(result.strategy, "bfs")
                self.assertEqual(result.direction, "forward")

    def test_dfs_solves_starter_levels(self) -> None:
        for level in load_bundled_level_set("starter").levels:
            with self.subTest(level_id=level.level_id):
                root = build_forward_problem(level).initial_state
                result = depth_first_search(root, max_states=50_000)
                self.assertTrue(result.solved)
                self.assertTrue(result.state.is_solved())

    def test_root_already_solved(self) -> None:
        root = build_forward_problem(_level("####\n#@*#\n####\n")).initial_state
        result = breadth_first_search(root)
        self.assertTrue(result.solved)
        self.assertIs(result.state, root)
        self.assertEqual(result.expanded, 0)

    def test_exhausted_search_is_not_a_limit(self) -> None:
        root = build_forward_problem(_level("#####\n#$@.#\n#####\n")).initial_state
        result = breadth_first_search(root)
        self.assertFalse(result.solved)
        self.assertIsNone(result.state)
        self.assertFalse(result.limit_reached)
        self.assertEqual(result.expanded, 1)

    def test_max_states_stops_the_search(self) -> None:
        root = build_forward_problem(load_level_by_id("starter:3")).initial_state
        result = breadth_first_search(root, max_states=1)
        self.assertFalse(result.solved)
        self.assertTrue(result.limit_reached)
        self.assertEqual(result.expanded, 1)

    def test_max_depth_bounds_dfs(self) -> None:
        root = build_forward_problem(load_level_by_id("starter:5")).initial_state
        shallow = depth_first_search(root, max_depth=1)
        self.assertFalse(shallow.solved)
        self.assertFalse(shallow.limit_reached)
        deep = depth_first_search(root, max_depth=2)
        self.assertTrue(deep.solved)
        self.assertEqual(deep.state.depth, 2)

    def test_invalid_limits(self) -> None:
        root = build_forward_problem(load_level_by_id("starter:1")).initial_state
        with self.assertRaises(ValueError):
            breadth_first_search(root, max_states=0)
        with self.assertRaises(ValueError):
            depth_first_search(root, max_depth=0)

    def test_tunnel_macros_reduce_expansions(self) -> None:
        root = build_forward_problem(_level(CORRIDOR)).initial_state
        plain = breadth_first_search(root)
        macro = breadth_first_search(root, tunnel_macros=True)
        self.assertTrue(plain.solved and macro.solved)
        self.assertEqual(plain.state.depth, 4)
        self.assertEqual(macro.state.depth, 4)
        self.assertLess(macro.expanded, plain.expanded)

    def test_progress_reporter_is_called_but_not_closed(self) -> None:
        reporter = _RecordingReporter()
        root = build_forward_problem(load_level_by_id("starter:4")).initial_state
        result = breadth_first_search(root, progress=reporter)
        self.assertTrue(result.solved)
        self.assertTrue(reporter.calls)
        self.assertEqual(reporter.calls[-1][0], result.expanded)
        self.assertFalse(reporter.closed)


class TestSolveLevel(unittest.TestCase):
    def test_forward_and_backward_solutions_replay(self) -> None:
        for level in load_bundled_level_set("starter").levels:
            for direction in ("forward", "backward"):
                with self.subTest(level_id=level.level_id, direction=direction):
                    report = solve_level(level, SearchConfig(direction=direction))
                    self.assertTrue(report.solved)
                    self.assertTrue(is_solution(level, report.moves))
                    self.assertEqual(
                        report.pushes, sum(1 for c in report.moves if c.isupper())
                    )

    def test_backward_bfs_matches_forward_push_count(self) -> None:
        level = load_level_by_id("starter:5")
        forward = solve_level(level, SearchConfig(direction="forward"))
        backward = solve_level(level, SearchConfig(direction="backward"))
        self.assertEqual(forward.pushes, 2)
        self.assertEqual(backward.pushes, 2)
        self.assertEqual(backward.result.direction, "backward")

    def test_procedural_levels_are_solved(self) -> None:
        for seed in range(3):
            with self.subTest(seed=seed):
                level, _ = generate_procedural_level_with_solution(
                    rows=7, cols=7, n_boxes=2, seed=seed, scramble_steps=30
                )
                report = solve_level(
                    level, SearchConfig(strategy="bfs", max_states=200_000)
                )
                self.assertTrue(report.solved)
                self.assertTrue(is_solution(level, report.moves))

    def test_unsolved_report(self) -> None:
        report = solve_level(_level("#####\n#$@.#\n#####\n"))
        self.assertFalse(report.solved)
        self.assertIsNone(report.moves)
        payload = report.to_dict()
        self.assertEqual(payload["level_id"], "unit:1")
        self.assertFalse(payload["solved"])
        self.assertIsNone(payload["depth"])

    def test_backward_tunnel_macros_are_rejected(self) -> None:
        with self.assertRaises(UnsupportedModeError):
            solve_level(
                load_level_by_id("starter:2"),
                SearchConfig(direction="backward", tunnel_macros=True),
            )

    def test_passed_reporter_is_left_open(self) -> None:
        reporter = _RecordingReporter()
        report = solve_level(load_level_by_id("starter:2"), progress=reporter)
        self.assertTrue(report.solved)
        self.assertFalse(reporter.closed)


class TestSolveCli(unittest.TestCase):
    def test_json_output(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            code = search.main(
                ["--level-set", "starter", "--level-index", "2", "--json"]
            )
        self.assertEqual(code, 0)
        payload = json.loads(stdout.getvalue())
        self.assertEqual(len(payload), 1)
        self.assertEqual(payload[0]["level_id"], "starter:2")
        self.assertEqual(payload[0]["moves"], "rR")
        self.assertEqual(payload[0]["pushes"], 1)

    def test_text_summary_and_overrides(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            code = search.main(
                [
                    "--level-index",
                    "5",
                    "--direction",
                    "backward",
                    "--strategy",
                    "dfs",
                    "--seed",
                    "9",
                ]
            )
        self.assertEqual(code, 0)
        self.assertIn("starter:5: solved strategy=dfs direction=backward", stdout.getvalue())

    def test_limit_returns_nonzero(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            code = search.main(["--level-index", "3", "--max-states", "1"])
        self.assertEqual(code, 1)
        self.assertIn("starter:3: limit", stdout.getvalue())

    def test_bad_inputs_return_two(self) -> None:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            self.assertEqual(search.main(["--level-set", "nope"]), 2)
            self.assertEqual(search.main(["--max-states", "0"]), 2)
            self.assertEqual(search.main(["--level-index", "42"]), 2)
            self.assertEqual(
                search.main(["--direction", "backward", "--tunnel-macros"]), 2
            )
        self.assertIn("Could not load levels", stderr.getvalue())
        self.assertIn("Invalid search config", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
