from __future__ import annotations

import contextlib
import io
import os
import tempfile
import unittest

from soko_search.sokoban import (
    InvalidLevelError,
    load_bundled_level_set,
    load_level_by_id,
    load_level_set,
    parse_level_rows,
    parse_xsb_levels,
)
from soko_search.sokoban import level_loader


class TestLevelParsing(unittest.TestCase):
    def test_parse_xsb_levels_with_comments_and_multiple_levels(self) -> None:
        text = """; unit:1
; Single push
#####
#@$.#
#####

; unit:2
; Walk then push
######
#@ $.#
######
"""
        levels = parse_xsb_levels(text, set_name="unit")
        self.assertEqual(len(levels), 2)
        self.assertEqual(levels[0].level_id, "unit:1")
        self.assertEqual(levels[0].title, "Single push")
        self.assertEqual(levels[0].n_boxes, 1)
        self.assertEqual(levels[1].level_id, "unit:2")
        self.assertEqual(levels[1].title, "Walk then push")

    def test_composite_symbols(self) -> None:
        level = parse_level_rows(["######", "#+*$ #", "######"])
        self.assertEqual(level.player_start, (1, 1))
        self.assertEqual(set(level.boxes_start), {(1, 2), (1, 3)})
        self.assertEqual(set(level.goals), {(1, 1), (1, 2)})
        self.assertEqual(level.xsb, "######\n#+*$ #\n######")

    def test_short_rows_are_padded_with_floor(self) -> None:
        level = parse_level_rows(["#####", "#@$.#", "###"])
        self.assertEqual(level.cols, 5)
        self.assertNotIn((2, 4), level.walls)

    def test_invalid_levels_are_rejected(self) -> None:
        cases = {
            "invalid symbol": ["#####", "#@x.#", "#####"],
            "box goal mismatch": ["#####", "#@$.#", "# . #", "#####"],
            "two players": ["######", "#@@$.#", "######"],
            "no player": ["#####", "# $.#", "#####"],
            "no boxes": ["#####", "#@ .#", "#####"],
        }
        for name, lines in cases.items():
            with self.subTest(name=name):
                with self.assertRaises(InvalidLevelError):
                    parse_level_rows(lines)
        with self.assertRaises(InvalidLevelError):
            parse_level_rows([])
        with self.assertRaises(InvalidLevelError):
            parse_xsb_levels("; only a comment\n", set_name="empty")


class TestLevelSets(unittest.TestCase):
    def test_bundled_starter_set(self) -> None:
        self.assertIn("starter", level_loader.list_bundled_level_sets())
        level_set = load_bundled_level_set("starter")
        self.assertEqual(level_set.name, "starter")
        self.assertEqual(len(level_set.levels), 5)
        self.assertEqual(level_set.levels[0].xsb, "#####\n#@$.#\n#####")

    def test_load_level_by_id(self) -> None:
        level = load_level_by_id("starter:2")
        self.assertEqual(level.level_id, "starter:2")
        self.assertEqual(level.title, "Walk then push")
        for bad in ("starter", "starter:0", "starter:99", "missing:1"):
            with self.subTest(level_id=bad):
                with self.assertRaises(InvalidLevelError):
                    load_level_by_id(bad)

    def test_load_level_set_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "mine.xsb")
            with open(path, "w", encoding="utf-8") as f:
                f.write("#####\n#@$.#\n#####\n")
            level_set = load_level_set(path)
            self.assertEqual(level_set.name, "mine")
            self.assertEqual(level_set.levels[0].level_id, "mine:1")
            with self.assertRaises(FileNotFoundError):
                load_level_set(os.path.join(tmp, "missing.xsb"))

    def test_describe_level_marks_dead_squares(self) -> None:
        level = parse_level_rows(
            ["######", "#   .#", "# $@ #", "#    #", "######"], level_id="unit:1"
        )
        text = level_loader.describe_level(level)
        self.assertIn("#x  .#", text)
        self.assertIn("#x$@ #", text)
        self.assertIn("#xxxx#", text)
        self.assertIn("dead_squares=6", text)

    def test_main_prints_selected_levels(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            code = level_loader.main(["--level-set", "starter", "--level-index", "1"])
        self.assertEqual(code, 0)
        self.assertIn("starter:1 (Single push)", stdout.getvalue())
        self.assertNotIn("starter:2", stdout.getvalue())

    def test_main_reports_unknown_set_on_stderr(self) -> None:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = level_loader.main(["--level-set", "nope"])
        self.assertEqual(code, 2)
        self.assertIn("Could not load levels", stderr.getvalue())
        self.assertEqual(stdout.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
