"""Sokoban state-space search engine."""

from __future__ import annotations

from .sokoban import (
    Connectivity,
    Direction,
    SearchDirection,
    SearchState,
    StaticBoard,
    build_forward_problem,
    transform_to_backward,
)

__all__ = [
    "Connectivity",
    "Direction",
    "SearchDirection",
    "SearchState",
    "StaticBoard",
    "build_forward_problem",
    "transform_to_backward",
]
