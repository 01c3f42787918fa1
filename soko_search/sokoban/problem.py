from __future__ import annotations

from dataclasses import dataclass

from .board import StaticBoard, build_static_board
from .errors import InvalidLevelError
from .level_loader import SokobanLevel
from .state import SearchDirection, SearchState


@dataclass(frozen=True, slots=True)
class SokobanProblem:
    level: SokobanLevel
    board: StaticBoard
    initial_state: SearchState

    @property
    def direction(self) -> SearchDirection:
        return self.initial_state.direction

    def backward(self) -> SokobanProblem:
        backward_root = transform_to_backward(self.initial_state)
        return SokobanProblem(
            level=self.level,
            board=backward_root.board,
            initial_state=backward_root,
        )


def validate_layout(level: SokobanLevel) -> None:
    """Fail fast on layouts that break the board input contract."""

    def _in_bounds(pos: tuple[int, int]) -> bool:
        return 0 <= pos[0] < level.rows and 0 <= pos[1] < level.cols

    for name, cells in (
        ("wall", level.walls),
        ("goal", level.goals),
        ("box", level.boxes_start),
        ("player", (level.player_start,)),
    ):
        for pos in cells:
            if not _in_bounds(pos):
                raise InvalidLevelError(
                    f"level {level.level_id} has {name} out of bounds at {pos}"
                )
            if name != "wall" and pos in level.walls:
                raise InvalidLevelError(
                    f"level {level.level_id} has {name} on a wall at {pos}"
                )

    if len(set(level.boxes_start)) != len(level.boxes_start):
        raise InvalidLevelError(f"level {level.level_id} has overlapping boxes")
    if len(set(level.goals)) != len(level.goals):
        raise InvalidLevelError(f"level {level.level_id} has duplicate goals")
    if level.player_start in level.boxes_start:
        raise InvalidLevelError(
            f"level {level.level_id} has the player on a box at {level.player_start}"
        )


def build_forward_problem(
    level: SokobanLevel,
    *,
    hash_seed: int | None = None,
) -> SokobanProblem:
    validate_layout(level)
    board = build_static_board(
        rows=level.rows,
        cols=level.cols,
        walls=level.walls,
        goals=level.goals,
        seed=hash_seed,
    )
    initial_state = SearchState.create(
        board,
        level.boxes_start,
        player=level.player_start,
        direction=SearchDirection.FORWARD,
    )
    return SokobanProblem(level=level, board=board, initial_state=initial_state)


def transform_to_backward(state: SearchState) -> SearchState:
    """Swap goal and box roles to start a pull search from the solved layout.

    Boxes start on the forward goals, the forward boxes become goals, and
    the forward player square becomes the extra goal condition. The player
    may start anywhere, and the Zobrist table is shared with the forward
    board so equal configurations hash alike in both directions.
    """
    if state.direction is not SearchDirection.FORWARD or state.player is None:
        raise ValueError("only a forward state with a player can be transformed")
    backward_board = state.board.with_goals(state.boxes)
    return SearchState.create(
        backward_board,
        state.board.goals,
        player=None,
        direction=SearchDirection.BACKWARD,
        player_goal=state.player,
    )
