from __future__ import annotations

from collections import deque
from collections.abc import Callable

from .board import StaticBoard
from .errors import ReachabilityError
from .geometry import ACTION_SPACE, Direction, Position


class Connectivity:
    """Player reachability for one box configuration.

    Each square holds ``Direction.NONE`` when unreached, ``Direction.NULL``
    for an origin square, or the step that first reached it during the flood
    fill. Two maps are equal when they reach exactly the same squares; the
    recorded directions do not take part in equality.
    """

    __slots__ = ("rows", "cols", "_moves", "reachable")

    def __init__(
        self,
        *,
        rows: int,
        cols: int,
        moves: list[list[Direction]],
        reachable: frozenset[Position],
    ) -> None:
        self.rows = rows
        self.cols = cols
        self._moves = moves
        self.reachable = reachable

    @classmethod
    def flood(
        cls,
        board: StaticBoard,
        *,
        origin: Position | None,
        is_occupied: Callable[[Position], bool],
    ) -> Connectivity:
        moves = [[Direction.NONE] * (board.cols + 2) for _ in range(board.rows + 2)]
        reached: list[Position] = []

        if origin is None:
            # Any free square may serve as the start (backward search).
            for pos in board.positions():
                if not is_occupied(pos):
                    moves[pos[0] + 1][pos[1] + 1] = Direction.NULL
                    reached.append(pos)
        else:
            moves[origin[0] + 1][origin[1] + 1] = Direction.NULL
            reached.append(origin)
            queue: deque[Position] = deque([origin])
            while queue:
                current = queue.popleft()
                for direction in ACTION_SPACE:
                    nxt = direction.step(current)
                    if moves[nxt[0] + 1][nxt[1] + 1] is not Direction.NONE:
                        continue
                    if is_occupied(nxt):
                        continue
                    moves[nxt[0] + 1][nxt[1] + 1] = direction
                    reached.append(nxt)
                    queue.append(nxt)

        return cls(
            rows=board.rows,
            cols=board.cols,
            moves=moves,
            reachable=frozenset(reached),
        )

    def direction_at(self, pos: Position) -> Direction:
        row = pos[0] + 1
        col = pos[1] + 1
        if 0 <= row < self.rows + 2 and 0 <= col < self.cols + 2:
            return self._moves[row][col]
        return Direction.NONE

    def is_reachable(self, pos: Position) -> bool:
        return self.direction_at(pos) is not Direction.NONE

    def __contains__(self, pos: object) -> bool:
        return pos in self.reachable

    def __len__(self) -> int:
        return len(self.reachable)

    def backtrack_path(self, target: Position) -> list[Direction]:
        """Steps leading from the origin to ``target``, in walking order."""
        if not self.is_reachable(target):
            raise ReachabilityError(
                f"backtracking started on unreachable square {target}"
            )

        steps: list[Direction] = []
        pos = target
        move = self.direction_at(pos)
        while move is not Direction.NULL:
            if move is Direction.NONE:
                raise ReachabilityError(
                    f"backtracking led to unreachable square {pos}"
                )
            steps.append(move)
            pos = move.inverse.step(pos)
            move = self.direction_at(pos)
        steps.reverse()
        return steps

    def backtrack_path_string(self, target: Position) -> str:
        return "".join(step.glyph for step in self.backtrack_path(target)).lower()

    def position_sequence(self, target: Position) -> list[Position]:
        steps = self.backtrack_path(target)
        pos = target
        for step in reversed(steps):
            pos = step.inverse.step(pos)
        sequence = [pos]
        for step in steps:
            pos = step.step(pos)
            sequence.append(pos)
        return sequence

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Connectivity):
            return NotImplemented
        return self.reachable == other.reachable

    def __hash__(self) -> int:
        return hash(self.reachable)

    def __repr__(self) -> str:
        return f"Connectivity(reachable={len(self.reachable)})"

    def to_text(self) -> str:
        return "\n".join(
            "".join(self._moves[row][col].glyph for col in range(1, self.cols + 1))
            for row in range(1, self.rows + 1)
        )
