from __future__ import annotations

from .errors import IllegalMoveError, InvalidActionError
from .geometry import Direction, Position, parse_direction
from .level_loader import SokobanLevel
from .snapshot import BoardSnapshot
from .state import SearchDirection, SearchState


def solution_path(state: SearchState) -> list[SearchState]:
    """States from the root to ``state``, following parent links."""
    path: list[SearchState] = []
    current: SearchState | None = state
    while current is not None:
        path.append(current)
        current = current.parent
    path.reverse()
    return path


def step_moves(state: SearchState) -> str:
    """LURD text for the box move that produced ``state``.

    Walking steps are lowercase and the final box move is uppercase.
    """
    steps = state.player_path()
    if not steps:
        return ""
    walk = "".join(step.glyph for step in steps[:-1]).lower()
    return walk + steps[-1].glyph


def solution_moves(state: SearchState) -> str:
    return "".join(step_moves(node) for node in solution_path(state)[1:])


def backward_to_forward(
    solved_backward: SearchState,
    forward_root: SearchState,
) -> SearchState:
    """Replay a pull solution as pushes from the forward root.

    Each pull of box ``i`` in direction ``d`` is undone by pushing the same
    box in ``d.inverse``; walking the pulls from last to first yields the
    forward push sequence.
    """
    if solved_backward.direction is not SearchDirection.BACKWARD:
        raise ValueError("expected a backward search state")
    if forward_root.direction is not SearchDirection.FORWARD:
        raise ValueError("expected a forward root state")

    path = solution_path(solved_backward)
    if solved_backward.box_set != forward_root.box_set:
        raise ValueError("backward solution does not end at the forward start layout")

    # Box indices follow the backward ordering, so restart from the forward
    # player square with the boxes listed in that order.
    state = SearchState.create(
        forward_root.board,
        solved_backward.boxes,
        player=forward_root.player,
        direction=SearchDirection.FORWARD,
    )
    for node in reversed(path[1:]):
        move = node.move
        if move is None:
            raise ValueError("backward path is missing a move record")
        state = state.push(move.box_index, move.direction.inverse)
    return state


def _parse_move(char: str) -> Direction:
    try:
        return parse_direction(char)
    except InvalidActionError as exc:
        raise IllegalMoveError(f"unknown move {char!r}") from exc


def replay_moves(level: SokobanLevel, moves: str) -> list[BoardSnapshot]:
    """Play LURD moves from the level start, one snapshot per move plus the start."""
    boxes: set[Position] = set(level.boxes_start)
    player = level.player_start
    goals = frozenset(level.goals)

    def _blocked(pos: Position) -> bool:
        row, col = pos
        if not (0 <= row < level.rows and 0 <= col < level.cols):
            return True
        return pos in level.walls

    def _snapshot() -> BoardSnapshot:
        return BoardSnapshot(
            rows=level.rows,
            cols=level.cols,
            walls=level.walls,
            boxes=frozenset(boxes),
            goals=goals,
            player=player,
        )

    snapshots = [_snapshot()]
    for index, char in enumerate(moves):
        if char.isspace():
            continue
        direction = _parse_move(char)
        target = direction.step(player)
        if _blocked(target):
            raise IllegalMoveError(f"move {index} ({char}) walks into a wall")
        if target in boxes:
            beyond = direction.step(target)
            if _blocked(beyond):
                raise IllegalMoveError(f"move {index} ({char}) pushes a box into a wall")
            if beyond in boxes:
                raise IllegalMoveError(f"move {index} ({char}) pushes two boxes at once")
            boxes.remove(target)
            boxes.add(beyond)
        elif char.isupper():
            raise IllegalMoveError(f"move {index} ({char}) is marked as a push but moves no box")
        player = target
        snapshots.append(_snapshot())
    return snapshots


def is_solution(level: SokobanLevel, moves: str) -> bool:
    try:
        final = replay_moves(level, moves)[-1]
    except IllegalMoveError:
        return False
    return final.boxes == final.goals


def state_snapshot(state: SearchState) -> BoardSnapshot:
    return BoardSnapshot(
        rows=state.board.rows,
        cols=state.board.cols,
        walls=state.board.walls,
        boxes=state.box_set,
        goals=frozenset(state.board.goals),
        player=state.player,
    )
