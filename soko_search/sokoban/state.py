from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from .board import StaticBoard
from .connectivity import Connectivity
from .errors import UnsupportedModeError
from .geometry import ACTION_SPACE, Direction, Position

MoveKind = Literal["push", "pull"]

_PERPENDICULAR: dict[Direction, tuple[Direction, Direction]] = {
    Direction.UP: (Direction.LEFT, Direction.RIGHT),
    Direction.DOWN: (Direction.LEFT, Direction.RIGHT),
    Direction.LEFT: (Direction.UP, Direction.DOWN),
    Direction.RIGHT: (Direction.UP, Direction.DOWN),
}


class SearchDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True, slots=True)
class BoxMove:
    box_index: int
    box_from: Position
    box_to: Position
    direction: Direction
    kind: MoveKind

    @property
    def walk_target(self) -> Position:
        """Square the player walks to before moving the box."""
        if self.kind == "push":
            return self.direction.inverse.step(self.box_from)
        return self.box_to

    @property
    def player_after(self) -> Position:
        if self.kind == "push":
            return self.box_from
        return self.direction.step(self.box_from, 2)


def zobrist_hash(
    board: StaticBoard,
    reachable: Iterable[Position],
    boxes: Iterable[Position],
) -> int:
    value = 0
    for pos in reachable:
        value ^= board.zobrist_value(pos)
    for pos in boxes:
        value ^= board.zobrist_value(pos)
    return value


@dataclass(frozen=True, slots=True, eq=False)
class SearchState:
    """One node of the push (forward) or pull (backward) search graph.

    Identity is the box set plus the player's reachable region: the player
    square itself, the search direction and the parent link are ignored by
    ``==`` and ``hash``.
    """

    board: StaticBoard = field(repr=False)
    direction: SearchDirection
    boxes: tuple[Position, ...]
    player: Position | None
    box_set: frozenset[Position] = field(repr=False)
    connectivity: Connectivity = field(repr=False)
    hash: int
    player_goal: Position | None = None
    parent: SearchState | None = field(default=None, repr=False)
    move: BoxMove | None = None
    depth: int = 0

    @classmethod
    def create(
        cls,
        board: StaticBoard,
        boxes: Iterable[Position],
        *,
        player: Position | None,
        direction: SearchDirection = SearchDirection.FORWARD,
        player_goal: Position | None = None,
        parent: SearchState | None = None,
        move: BoxMove | None = None,
    ) -> SearchState:
        if direction is SearchDirection.BACKWARD and player_goal is None:
            raise ValueError("backward states require the forward player start")
        if direction is SearchDirection.FORWARD and player is None:
            raise ValueError("forward states require a player position")

        box_tuple = tuple(boxes)
        box_set = frozenset(box_tuple)
        if len(box_set) != len(box_tuple):
            raise ValueError(f"boxes overlap: {box_tuple}")

        def is_occupied(pos: Position) -> bool:
            return pos in box_set or board.is_wall(pos)

        connectivity = Connectivity.flood(board, origin=player, is_occupied=is_occupied)
        return cls(
            board=board,
            direction=direction,
            boxes=box_tuple,
            player=player,
            box_set=box_set,
            connectivity=connectivity,
            hash=zobrist_hash(board, connectivity.reachable, box_tuple),
            player_goal=player_goal,
            parent=parent,
            move=move,
            depth=0 if parent is None else parent.depth + 1,
        )

    def retagged(
        self,
        direction: SearchDirection,
        *,
        player_goal: Position | None = None,
    ) -> SearchState:
        """Fresh root with the same boxes and player in another search direction."""
        return SearchState.create(
            self.board,
            self.boxes,
            player=self.player,
            direction=direction,
            player_goal=player_goal,
        )

    def is_occupied(self, pos: Position) -> bool:
        return pos in self.box_set or self.board.is_wall(pos)

    def box_at(self, pos: Position) -> bool:
        return pos in self.box_set

    def boxes_on_goals(self) -> int:
        return sum(1 for box in self.boxes if self.board.is_goal(box))

    def is_solved(self) -> bool:
        if not all(self.board.is_goal(box) for box in self.boxes):
            return False
        if self.direction is SearchDirection.BACKWARD and self.player_goal is not None:
            return self.connectivity.is_reachable(self.player_goal)
        return True

    def can_push(self, box_index: int, direction: Direction) -> bool:
        box = self.boxes[box_index]
        destination = direction.step(box)
        return (
            self.connectivity.is_reachable(direction.inverse.step(box))
            and self.board.is_pushable_to(destination)
            and destination not in self.box_set
        )

    def can_pull(self, box_index: int, direction: Direction) -> bool:
        box = self.boxes[box_index]
        destination = direction.step(box)
        return (
            self.connectivity.is_reachable(destination)
            and self.connectivity.is_reachable(direction.step(box, 2))
            and destination not in self.box_set
        )

    def push(self, box_index: int, direction: Direction) -> SearchState:
        box = self.boxes[box_index]
        return self._moved(
            BoxMove(
                box_index=box_index,
                box_from=box,
                box_to=direction.step(box),
                direction=direction,
                kind="push",
            )
        )

    def pull(self, box_index: int, direction: Direction) -> SearchState:
        box = self.boxes[box_index]
        return self._moved(
            BoxMove(
                box_index=box_index,
                box_from=box,
                box_to=direction.step(box),
                direction=direction,
                kind="pull",
            )
        )

    def _moved(self, move: BoxMove) -> SearchState:
        boxes = list(self.boxes)
        boxes[move.box_index] = move.box_to
        return SearchState.create(
            self.board,
            boxes,
            player=move.player_after,
            direction=self.direction,
            player_goal=self.player_goal,
            parent=self,
            move=move,
        )

    def _in_tunnel(self, box_index: int, direction: Direction) -> bool:
        box = self.boxes[box_index]
        if self.board.is_goal(box):
            return False
        return all(
            self.board.is_wall(side.step(box)) for side in _PERPENDICULAR[direction]
        )

    def tunnel_macro(self, box_index: int, direction: Direction) -> SearchState:
        """Push a box and keep pushing while it slides through a wall tunnel.

        Every intermediate push is a real ancestor of the returned state, so
        the result matches performing the pushes one at a time.
        """
        if self.direction is SearchDirection.BACKWARD:
            raise UnsupportedModeError("tunnel macros are not supported in backward search")
        state = self.push(box_index, direction)
        while state._in_tunnel(box_index, direction) and state.can_push(
            box_index, direction
        ):
            state = state.push(box_index, direction)
        return state

    def get_children(self, *, tunnel_macros: bool = False) -> list[SearchState]:
        if self.direction is SearchDirection.BACKWARD:
            if tunnel_macros:
                raise UnsupportedModeError(
                    "tunnel macros are not supported in backward search"
                )
            return [
                self.pull(box_index, direction)
                for box_index in range(len(self.boxes))
                for direction in ACTION_SPACE
                if self.can_pull(box_index, direction)
            ]

        children: list[SearchState] = []
        for box_index in range(len(self.boxes)):
            for direction in ACTION_SPACE:
                if not self.can_push(box_index, direction):
                    continue
                if tunnel_macros:
                    children.append(self.tunnel_macro(box_index, direction))
                else:
                    children.append(self.push(box_index, direction))
        return children

    def player_path(self) -> list[Direction]:
        """Player steps from the parent's position through this state's box move.

        Empty for a root. When the parent has no concrete player (backward
        root) only the box move itself is known.
        """
        if self.parent is None or self.move is None:
            return []
        walk = self.parent.connectivity.backtrack_path(self.move.walk_target)
        return [*walk, self.move.direction]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchState):
            return NotImplemented
        if self is other:
            return True
        return (
            self.box_set == other.box_set and self.connectivity == other.connectivity
        )

    def __hash__(self) -> int:
        return self.hash
