from __future__ import annotations

from enum import Enum
from typing import TypeAlias

from .errors import InvalidActionError

Position: TypeAlias = tuple[int, int]


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    # Sentinels used by connectivity maps: NULL marks an origin square,
    # NONE a square that was never reached.
    NULL = "null"
    NONE = "none"

    @property
    def delta(self) -> tuple[int, int]:
        return DIRECTION_DELTAS[self]

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]

    @property
    def inverse(self) -> Direction:
        return _INVERSES[self]

    @property
    def is_step(self) -> bool:
        return self in ACTION_INDEX

    def step(self, pos: Position, count: int = 1) -> Position:
        dr, dc = DIRECTION_DELTAS[self]
        return (pos[0] + dr * count, pos[1] + dc * count)


ACTION_SPACE: tuple[Direction, ...] = (
    Direction.UP,
    Direction.DOWN,
    Direction.LEFT,
    Direction.RIGHT,
)
ACTION_INDEX: dict[Direction, int] = {
    direction: idx for idx, direction in enumerate(ACTION_SPACE)
}

DIRECTION_DELTAS: dict[Direction, tuple[int, int]] = {
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
    Direction.NULL: (0, 0),
    Direction.NONE: (0, 0),
}

_GLYPHS: dict[Direction, str] = {
    Direction.UP: "U",
    Direction.DOWN: "D",
    Direction.LEFT: "L",
    Direction.RIGHT: "R",
    Direction.NULL: "X",
    Direction.NONE: "-",
}

_INVERSES: dict[Direction, Direction] = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
    Direction.NULL: Direction.NULL,
    Direction.NONE: Direction.NONE,
}

_GLYPH_LOOKUP: dict[str, Direction] = {
    _GLYPHS[direction]: direction for direction in ACTION_SPACE
}


def parse_direction(action: object) -> Direction:
    if isinstance(action, Direction) and action.is_step:
        return action
    if isinstance(action, int) and not isinstance(action, bool):
        if 0 <= action < len(ACTION_SPACE):
            return ACTION_SPACE[action]
        raise InvalidActionError(f"action int must be in [0, {len(ACTION_SPACE) - 1}]")

    if isinstance(action, str):
        normalized = action.strip()
        if len(normalized) == 1 and normalized.upper() in _GLYPH_LOOKUP:
            return _GLYPH_LOOKUP[normalized.upper()]
        normalized = normalized.lower()
        for direction in ACTION_SPACE:
            if direction.value == normalized:
                return direction
    raise InvalidActionError(
        "action must be a direction (up/down/left/right), a LURD glyph, "
        "or int index (0-3)"
    )
