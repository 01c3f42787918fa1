from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

STRATEGIES = ("bfs", "dfs")
DIRECTIONS = ("forward", "backward")


def load_config(path: str) -> dict[str, Any]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    return _expand_env_vars(data)


def _expand_env_vars(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _expand_env_vars(v) for k, v in value.items()}
    return value


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {**base}
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_int(name: str, value: Any, *, minimum: int = 1) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean")


@dataclass(frozen=True, slots=True)
class SearchConfig:
    strategy: str = "bfs"
    direction: str = "forward"
    max_states: int = 1_000_000
    max_depth: int | None = None
    tunnel_macros: bool = False
    hash_seed: int | None = None
    progress: bool = False
    progress_refresh_s: float = 0.5

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> SearchConfig:
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown search config keys: {', '.join(unknown)}")

        merged = merge_dicts(asdict(cls()), data)
        strategy = str(merged["strategy"]).strip().lower()
        if strategy not in STRATEGIES:
            raise ValueError(f"strategy must be one of: {', '.join(STRATEGIES)}")
        direction = str(merged["direction"]).strip().lower()
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of: {', '.join(DIRECTIONS)}")

        max_depth = merged["max_depth"]
        hash_seed = merged["hash_seed"]
        refresh = merged["progress_refresh_s"]
        if isinstance(refresh, bool) or not isinstance(refresh, (int, float, str)):
            raise ValueError("progress_refresh_s must be a number")
        refresh_value = float(refresh)
        if refresh_value <= 0:
            raise ValueError("progress_refresh_s must be > 0")

        return cls(
            strategy=strategy,
            direction=direction,
            max_states=_coerce_int("max_states", merged["max_states"]),
            max_depth=None if max_depth is None else _coerce_int("max_depth", max_depth),
            tunnel_macros=_coerce_bool("tunnel_macros", merged["tunnel_macros"]),
            hash_seed=(
                None
                if hash_seed is None
                else _coerce_int("hash_seed", hash_seed, minimum=0)
            ),
            progress=_coerce_bool("progress", merged["progress"]),
            progress_refresh_s=refresh_value,
        )


def resolve_search_config(
    path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> SearchConfig:
    """Defaults, then the JSON file at ``path``, then non-None ``overrides``."""
    data: dict[str, Any] = {}
    if path:
        data = merge_dicts(data, load_config(path))
    if overrides:
        data = merge_dicts(
            data, {key: value for key, value in overrides.items() if value is not None}
        )
    return SearchConfig.from_mapping(data)
