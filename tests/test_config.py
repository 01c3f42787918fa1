from __future__ import annotations

import json
import os
import tempfile
import unittest

from soko_search.config import (
    SearchConfig,
    load_config,
    merge_dicts,
    resolve_search_config,
)


class TestConfig(unittest.TestCase):
    def test_load_config_expands_env_vars(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            os.environ["SOKO_TEST_STRATEGY"] = "dfs"
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"strategy": "$SOKO_TEST_STRATEGY", "tags": ["${SOKO_TEST_STRATEGY}"]}, f)
            loaded = load_config(path)
            self.assertEqual(loaded, {"strategy": "dfs", "tags": ["dfs"]})

    def test_load_config_requires_an_object(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump([1, 2], f)
            with self.assertRaises(ValueError):
                load_config(path)

    def test_merge_dicts_nested(self) -> None:
        base = {"a": 1, "nested": {"x": 1, "y": 2}}
        override = {"nested": {"y": 3, "z": 4}}
        merged = merge_dicts(base, override)
        self.assertEqual(merged, {"a": 1, "nested": {"x": 1, "y": 3, "z": 4}})
        self.assertEqual(base["nested"], {"x": 1, "y": 2})

    def test_defaults(self) -> None:
        config = SearchConfig.from_mapping({})
        self.assertEqual(config, SearchConfig())
        self.assertEqual(config.strategy, "bfs")
        self.assertEqual(config.direction, "forward")
        self.assertIsNone(config.max_depth)
        self.assertFalse(config.tunnel_macros)

    def test_from_mapping_normalizes_values(self) -> None:
        config = SearchConfig.from_mapping(
            {
                "strategy": " DFS ",
                "direction": "Backward",
                "max_states": "500",
                "max_depth": 12,
                "hash_seed": 0,
                "progress": "yes",
                "progress_refresh_s": 2,
            }
        )
        self.assertEqual(config.strategy, "dfs")
        self.assertEqual(config.direction, "backward")
        self.assertEqual(config.max_states, 500)
        self.assertEqual(config.max_depth, 12)
        self.assertEqual(config.hash_seed, 0)
        self.assertTrue(config.progress)
        self.assertEqual(config.progress_refresh_s, 2.0)

    def test_from_mapping_rejects_bad_values(self) -> None:
        cases = [
            {"strategy": "astar"},
            {"direction": "sideways"},
            {"max_states": 0},
            {"max_states": True},
            {"max_depth": "deep"},
            {"hash_seed": -1},
            {"tunnel_macros": "maybe"},
            {"progress_refresh_s": 0},
            {"unknown_key": 1},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    SearchConfig.from_mapping(data)

    def test_resolve_layers_file_and_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "search.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"strategy": "dfs", "max_states": 10}, f)
            config = resolve_search_config(
                path, {"max_states": 20, "direction": None, "hash_seed": 4}
            )
        self.assertEqual(config.strategy, "dfs")
        self.assertEqual(config.max_states, 20)
        self.assertEqual(config.direction, "forward")
        self.assertEqual(config.hash_seed, 4)
        self.assertEqual(resolve_search_config(), SearchConfig())


if __name__ == "__main__":
    unittest.main()
