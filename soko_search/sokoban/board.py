from __future__ import annotations

import random
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import IntFlag
from typing import TypeAlias

from .geometry import Direction, Position

ZobristTable: TypeAlias = tuple[tuple[int, ...], ...]


class CellFlag(IntFlag):
    FLOOR = 1 << 0
    WALL = 1 << 1
    GOAL = 1 << 2
    DEAD = 1 << 3


_FLOOR = int(CellFlag.FLOOR)
_WALL = int(CellFlag.WALL)
_GOAL = int(CellFlag.GOAL)
_DEAD = int(CellFlag.DEAD)

# The two walls closing each corner pattern, checked in this order.
_CORNERS: tuple[tuple[Direction, Direction], ...] = (
    (Direction.UP, Direction.LEFT),
    (Direction.UP, Direction.RIGHT),
    (Direction.RIGHT, Direction.DOWN),
    (Direction.LEFT, Direction.DOWN),
)


def _padded_grid(
    *,
    rows: int,
    cols: int,
    walls: Iterable[Position],
    goals: Iterable[Position],
) -> list[list[int]]:
    grid = [[_WALL] * (cols + 2) for _ in range(rows + 2)]
    for row in range(rows):
        for col in range(cols):
            grid[row + 1][col + 1] = _FLOOR
    for row, col in walls:
        grid[row + 1][col + 1] = _WALL
    for row, col in goals:
        grid[row + 1][col + 1] |= _GOAL
    return grid


def _raw_flags(grid: Sequence[Sequence[int]], pos: Position) -> int:
    row = pos[0] + 1
    col = pos[1] + 1
    if 0 <= row < len(grid) and 0 <= col < len(grid[0]):
        return grid[row][col]
    return _WALL


def _corner_walls(
    grid: list[list[int]], pos: Position
) -> list[tuple[Direction, Direction]]:
    return [
        (first, second)
        for first, second in _CORNERS
        if _raw_flags(grid, first.step(pos)) == _WALL
        and _raw_flags(grid, second.step(pos)) == _WALL
    ]


def _propagate_along_wall(
    grid: list[list[int]],
    *,
    corner: Position,
    walk: Direction,
    side: Direction,
    dead: set[Position],
) -> None:
    trail: list[Position] = []
    pos = walk.step(corner)
    while True:
        flags = _raw_flags(grid, pos)
        if flags & _GOAL:
            return
        if flags == _WALL:
            dead.update(trail)
            return
        if _raw_flags(grid, side.step(pos)) != _WALL:
            return
        trail.append(pos)
        pos = walk.step(pos)


def compute_dead_squares(
    *,
    rows: int,
    cols: int,
    walls: Iterable[Position],
    goals: Iterable[Position],
) -> frozenset[Position]:
    """Mark squares from which a box can never be pushed onto a goal.

    A non-goal square closed by two perpendicular walls is dead. From such a
    corner the analysis walks along each of the two walls; when the walk
    reaches another wall without meeting a goal or an opening on the wall
    side, every square on the way is dead too. The result under-approximates
    the true dead set but never contains a square that can reach a goal.

    Example, where ``.`` is a goal and ``x`` marks a dead interior square::

        #########                  #########
        #       #  #####           #xxxxxxx#  #####
        #       ####   #           #x      ####xxx#
        #              #    ->     #x            x#
        #   .          #           #x  .         x#
        #              #           #xxxxxxxxxxxxxx#
        ################           ################
    """
    grid = _padded_grid(rows=rows, cols=cols, walls=walls, goals=goals)
    dead: set[Position] = set()
    for row in range(rows):
        for col in range(cols):
            pos = (row, col)
            if _raw_flags(grid, pos) != _FLOOR:
                continue
            corners = _corner_walls(grid, pos)
            if not corners:
                continue
            dead.add(pos)
            for first, second in corners:
                _propagate_along_wall(
                    grid, corner=pos, walk=second.inverse, side=first, dead=dead
                )
                _propagate_along_wall(
                    grid, corner=pos, walk=first.inverse, side=second, dead=dead
                )
    return frozenset(dead)


def make_zobrist_table(
    *, rows: int, cols: int, seed: int | None = None
) -> ZobristTable:
    rng = random.Random(seed)
    return tuple(
        tuple(rng.getrandbits(64) for _ in range(cols + 2)) for _ in range(rows + 2)
    )


@dataclass(frozen=True, slots=True)
class StaticBoard:
    """Walls, goals and dead squares of one puzzle, padded by a wall border.

    Lookups outside the padded grid answer ``WALL`` so neighbour probes never
    fail.
    """

    rows: int
    cols: int
    cells: tuple[tuple[int, ...], ...] = field(repr=False)
    goals: tuple[Position, ...]
    zobrist: ZobristTable = field(repr=False, compare=False)

    def flags_at(self, pos: Position) -> CellFlag:
        return CellFlag(_raw_flags(self.cells, pos))

    def raw_flags(self, pos: Position) -> int:
        return _raw_flags(self.cells, pos)

    def in_bounds(self, pos: Position) -> bool:
        row, col = pos
        return 0 <= row < self.rows and 0 <= col < self.cols

    def is_floor(self, pos: Position) -> bool:
        return bool(_raw_flags(self.cells, pos) & _FLOOR)

    def is_wall(self, pos: Position) -> bool:
        return _raw_flags(self.cells, pos) == _WALL

    def is_goal(self, pos: Position) -> bool:
        return bool(_raw_flags(self.cells, pos) & _GOAL)

    def is_dead(self, pos: Position) -> bool:
        return bool(_raw_flags(self.cells, pos) & _DEAD)

    def is_pushable_to(self, pos: Position) -> bool:
        flags = _raw_flags(self.cells, pos)
        return flags != _WALL and not flags & _DEAD

    def positions(self) -> Iterator[Position]:
        for row in range(self.rows):
            for col in range(self.cols):
                yield (row, col)

    @property
    def walls(self) -> frozenset[Position]:
        return frozenset(pos for pos in self.positions() if self.is_wall(pos))

    @property
    def dead_squares(self) -> frozenset[Position]:
        return frozenset(pos for pos in self.positions() if self.is_dead(pos))

    def zobrist_value(self, pos: Position) -> int:
        return self.zobrist[pos[0] + 1][pos[1] + 1]

    def with_goals(self, goals: Iterable[Position]) -> StaticBoard:
        """Same walls and hash table with a different goal set."""
        return build_static_board(
            rows=self.rows,
            cols=self.cols,
            walls=self.walls,
            goals=goals,
            zobrist=self.zobrist,
        )

    def to_text(self) -> str:
        lines: list[str] = []
        for row in range(self.rows):
            chars: list[str] = []
            for col in range(self.cols):
                flags = _raw_flags(self.cells, (row, col))
                if flags == _WALL:
                    chars.append("#")
                elif flags & _DEAD:
                    chars.append("x")
                elif flags & _GOAL:
                    chars.append(".")
                else:
                    chars.append(" ")
            lines.append("".join(chars).rstrip())
        return "\n".join(lines)


def build_static_board(
    *,
    rows: int,
    cols: int,
    walls: Iterable[Position],
    goals: Iterable[Position],
    zobrist: ZobristTable | None = None,
    seed: int | None = None,
) -> StaticBoard:
    if rows < 1 or cols < 1:
        raise ValueError("board must have at least one row and one column")
    walls_set = frozenset(walls)
    goal_list = tuple(goals)
    grid = _padded_grid(rows=rows, cols=cols, walls=walls_set, goals=goal_list)
    dead = compute_dead_squares(rows=rows, cols=cols, walls=walls_set, goals=goal_list)
    for row, col in dead:
        grid[row + 1][col + 1] |= _DEAD

    if zobrist is None:
        zobrist = make_zobrist_table(rows=rows, cols=cols, seed=seed)
    elif len(zobrist) != rows + 2 or any(len(line) != cols + 2 for line in zobrist):
        raise ValueError("zobrist table does not match the padded board size")

    return StaticBoard(
        rows=rows,
        cols=cols,
        cells=tuple(tuple(line) for line in grid),
        goals=goal_list,
        zobrist=zobrist,
    )
