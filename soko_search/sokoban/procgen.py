from __future__ import annotations

import random
from collections import deque

from .geometry import ACTION_SPACE, Direction, Position
from .level_loader import SokobanLevel
from .replay import is_solution
from .snapshot import BoardSnapshot


def parse_grid_size(value: str) -> tuple[int, int]:
    """Parse ``'<rows>x<cols>'``."""
    parts = value.strip().lower().split("x")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ValueError(f"invalid grid size {value!r}; expected '<rows>x<cols>'")
    return (int(parts[0]), int(parts[1]))


def _interior_cells(rows: int, cols: int) -> list[Position]:
    return [(row, col) for row in range(1, rows - 1) for col in range(1, cols - 1)]


def _perimeter_walls(rows: int, cols: int) -> set[Position]:
    walls: set[Position] = set()
    for row in range(rows):
        walls.update({(row, 0), (row, cols - 1)})
    for col in range(cols):
        walls.update({(0, col), (rows - 1, col)})
    return walls


def _is_connected(open_cells: set[Position]) -> bool:
    if not open_cells:
        return False
    start = next(iter(open_cells))
    seen: set[Position] = {start}
    queue: deque[Position] = deque([start])
    while queue:
        current = queue.popleft()
        for direction in ACTION_SPACE:
            nxt = direction.step(current)
            if nxt in open_cells and nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return seen == open_cells


def _sample_walls(
    *,
    rows: int,
    cols: int,
    n_boxes: int,
    wall_density: float,
    rng: random.Random,
    max_tries: int,
) -> set[Position]:
    perimeter = _perimeter_walls(rows, cols)
    interior = _interior_cells(rows, cols)

    # Leave room for goals, the player and some movement.
    min_open_cells = (2 * n_boxes) + 3
    max_walls = max(0, len(interior) - min_open_cells)
    target_walls = min(max_walls, max(0, int(round(wall_density * len(interior)))))

    for _ in range(max_tries):
        sampled = set(rng.sample(interior, target_walls)) if target_walls else set()
        if _is_connected(set(interior) - sampled):
            return perimeter | sampled
    return perimeter


def _reverse_pulls(
    walls: set[Position], boxes: set[Position], player: Position
) -> list[Direction]:
    # A reverse pull in ``d`` moves the box at player+d onto the player square
    # while the player steps back to player-d.
    return [
        direction
        for direction in ACTION_SPACE
        if direction.step(player) in boxes
        and direction.inverse.step(player) not in walls
        and direction.inverse.step(player) not in boxes
    ]


def _reverse_walks(
    walls: set[Position], boxes: set[Position], player: Position
) -> list[Direction]:
    return [
        direction
        for direction in ACTION_SPACE
        if direction.step(player) not in walls and direction.step(player) not in boxes
    ]


def _validate_shape(rows: int, cols: int, n_boxes: int, wall_density: float) -> None:
    if rows < 5 or cols < 5:
        raise ValueError("rows and cols must both be >= 5")
    if n_boxes < 1:
        raise ValueError("n_boxes must be >= 1")
    interior_count = (rows - 2) * (cols - 2)
    if n_boxes >= interior_count:
        raise ValueError(
            f"n_boxes={n_boxes} is too large for grid {rows}x{cols}; "
            f"maximum is {interior_count - 1}"
        )
    if wall_density < 0.0 or wall_density > 0.35:
        raise ValueError("wall_density must be within [0.0, 0.35]")


def generate_procedural_level_with_solution(
    *,
    rows: int,
    cols: int,
    n_boxes: int,
    seed: int | None = None,
    level_id: str | None = None,
    wall_density: float = 0.08,
    scramble_steps: int | None = None,
    max_generation_attempts: int = 64,
) -> tuple[SokobanLevel, str]:
    """Scramble a solved layout with reverse moves; return the level and a LURD solution."""
    _validate_shape(rows, cols, n_boxes, wall_density)
    if max_generation_attempts < 1:
        raise ValueError("max_generation_attempts must be >= 1")

    rng = random.Random(seed)
    resolved_level_id = level_id or (
        f"procgen:{rows}x{cols}:b{n_boxes}:s{seed if seed is not None else 'random'}"
    )
    target_steps = (
        int(scramble_steps)
        if scramble_steps is not None
        else max(20, n_boxes * (rows + cols))
    )
    if target_steps < 1:
        raise ValueError("scramble_steps must be >= 1 when provided")

    for _ in range(max_generation_attempts):
        walls = _sample_walls(
            rows=rows,
            cols=cols,
            n_boxes=n_boxes,
            wall_density=wall_density,
            rng=rng,
            max_tries=32,
        )
        open_cells = [cell for cell in _interior_cells(rows, cols) if cell not in walls]
        if len(open_cells) < n_boxes + 1:
            continue

        goals = rng.sample(open_cells, n_boxes)
        player_candidates = [cell for cell in open_cells if cell not in goals]
        boxes = set(goals)
        player = rng.choice(player_candidates)
        forward_moves: list[str] = []
        pull_count = 0

        for _ in range(target_steps):
            pulls = _reverse_pulls(walls, boxes, player)
            walks = _reverse_walks(walls, boxes, player)
            if not pulls and not walks:
                break

            if pulls and (not walks or rng.random() < 0.72):
                direction = rng.choice(pulls)
                boxes.remove(direction.step(player))
                boxes.add(player)
                player = direction.inverse.step(player)
                # Undone by a forward push in the same direction.
                forward_moves.append(direction.glyph)
                pull_count += 1
                continue

            direction = rng.choice(walks)
            player = direction.step(player)
            forward_moves.append(direction.inverse.glyph.lower())

        if pull_count < max(1, n_boxes // 2) or boxes == set(goals):
            continue

        snapshot = BoardSnapshot(
            rows=rows,
            cols=cols,
            walls=frozenset(walls),
            boxes=frozenset(boxes),
            goals=frozenset(goals),
            player=player,
        )
        level = SokobanLevel(
            level_id=resolved_level_id,
            title=f"Procedural {rows}x{cols} ({n_boxes} boxes)",
            rows=rows,
            cols=cols,
            xsb=snapshot.to_xsb(),
            walls=frozenset(walls),
            goals=tuple(sorted(goals)),
            boxes_start=tuple(sorted(boxes)),
            player_start=player,
            n_boxes=n_boxes,
        )
        solution = "".join(reversed(forward_moves))
        if not is_solution(level, solution):
            raise RuntimeError("procedural generation produced an unsolved replay sequence")
        return (level, solution)

    raise RuntimeError(
        "Failed to generate a procedural Sokoban level that satisfies constraints."
    )


def generate_procedural_levels(
    *,
    rows: int,
    cols: int,
    n_boxes: int,
    count: int,
    seed: int | None = 0,
    wall_density: float = 0.08,
    scramble_steps: int | None = None,
) -> list[SokobanLevel]:
    if count < 1:
        raise ValueError("count must be >= 1")
    levels: list[SokobanLevel] = []
    for idx in range(count):
        level_seed = None if seed is None else int(seed) + idx
        level, _solution = generate_procedural_level_with_solution(
            rows=rows,
            cols=cols,
            n_boxes=n_boxes,
            seed=level_seed,
            level_id=f"procgen:{rows}x{cols}:b{n_boxes}:i{idx + 1}",
            wall_density=wall_density,
            scramble_steps=scramble_steps,
        )
        levels.append(level)
    return levels
