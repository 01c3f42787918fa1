"""Sokoban boards, states and level utilities."""

from __future__ import annotations

from .board import CellFlag, StaticBoard, build_static_board, compute_dead_squares
from .connectivity import Connectivity
from .errors import (
    IllegalMoveError,
    InvalidActionError,
    InvalidLevelError,
    ReachabilityError,
    SokobanError,
    UnsupportedModeError,
)
from .geometry import ACTION_SPACE, Direction, parse_direction
from .level_loader import (
    LevelSet,
    SokobanLevel,
    default_levels_dir,
    load_bundled_level_set,
    load_level_by_id,
    load_level_set,
    parse_level_rows,
    parse_xsb_levels,
)
from .problem import SokobanProblem, build_forward_problem, transform_to_backward
from .state import BoxMove, SearchDirection, SearchState

__all__ = [
    "ACTION_SPACE",
    "BoxMove",
    "CellFlag",
    "Connectivity",
    "Direction",
    "IllegalMoveError",
    "InvalidActionError",
    "InvalidLevelError",
    "LevelSet",
    "ReachabilityError",
    "SearchDirection",
    "SearchState",
    "SokobanError",
    "SokobanLevel",
    "SokobanProblem",
    "StaticBoard",
    "UnsupportedModeError",
    "build_forward_problem",
    "build_static_board",
    "compute_dead_squares",
    "default_levels_dir",
    "load_bundled_level_set",
    "load_level_by_id",
    "load_level_set",
    "parse_direction",
    "parse_level_rows",
    "parse_xsb_levels",
    "transform_to_backward",
]
