from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .geometry import Position


@dataclass(frozen=True, slots=True)
class BoardSnapshot:
    rows: int
    cols: int
    walls: frozenset[Position]
    boxes: frozenset[Position]
    goals: frozenset[Position]
    player: Position | None

    def to_xsb(self) -> str:
        board = [[" " for _ in range(self.cols)] for _ in range(self.rows)]
        for row, col in self.walls:
            board[row][col] = "#"
        for row, col in self.goals:
            if board[row][col] != "#":
                board[row][col] = "."
        for row, col in self.boxes:
            if board[row][col] == ".":
                board[row][col] = "*"
            else:
                board[row][col] = "$"
        if self.player is not None:
            player_row, player_col = self.player
            if board[player_row][player_col] == ".":
                board[player_row][player_col] = "+"
            else:
                board[player_row][player_col] = "@"
        return "\n".join("".join(row).rstrip() for row in board)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "cols": self.cols,
            "walls": [list(pos) for pos in sorted(self.walls)],
            "boxes": [list(pos) for pos in sorted(self.boxes)],
            "goals": [list(pos) for pos in sorted(self.goals)],
            "player": None if self.player is None else list(self.player),
            "xsb": self.to_xsb(),
        }
