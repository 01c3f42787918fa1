from __future__ import annotations

import base64
import io
from collections.abc import Iterable

from ..vision_types import StateImage
from .geometry import Position
from .replay import state_snapshot
from .snapshot import BoardSnapshot
from .state import SearchState

COLORS: dict[str, str] = {
    "floor": "#f4efe2",
    "reachable": "#dcecc8",
    "dead": "#e8c4c4",
    "wall": "#2f3542",
    "goal": "#ffd166",
    "box": "#9c6644",
    "box_on_goal": "#2a9d8f",
    "player": "#e63946",
    "player_on_goal": "#5e60ce",
    "grid": "#d9d2c5",
    "border": "#7a7468",
    "text": "#1f2937",
}


def _safe_inset(tile_size: int, desired: int) -> int:
    # Keep inner geometry non-inverted for small tiles.
    return min(max(desired, 0), max(0, (tile_size - 1) // 2))


def _load_pil():
    try:
        from PIL import Image, ImageDraw, ImageFont
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "Missing pillow. Install with: pip install 'soko-search[viz]'"
        ) from exc
    return Image, ImageDraw, ImageFont


def render_board_image(
    snapshot: BoardSnapshot,
    *,
    tile_size: int = 48,
    label_grid: bool = True,
    background: str = "white",
    dead_squares: Iterable[Position] = (),
    reachable: Iterable[Position] = (),
) -> StateImage:
    if tile_size < 8:
        raise ValueError("tile_size must be >= 8")

    Image, ImageDraw, ImageFont = _load_pil()

    board_width = snapshot.cols * tile_size
    board_height = snapshot.rows * tile_size
    outer_pad = max(2, tile_size // 12)
    gutter = tile_size if label_grid else 0

    width = gutter + board_width + outer_pad * 2
    height = gutter + board_height + outer_pad * 2
    origin_x = gutter + outer_pad
    origin_y = gutter + outer_pad

    img = Image.new("RGB", (width, height), background)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    def tile(pos: Position, inset: int = 0) -> tuple[int, int, int, int]:
        row, col = pos
        x0 = origin_x + col * tile_size
        y0 = origin_y + row * tile_size
        return (
            x0 + inset,
            y0 + inset,
            x0 + tile_size - 1 - inset,
            y0 + tile_size - 1 - inset,
        )

    reachable_set = frozenset(reachable)
    dead_set = frozenset(dead_squares)
    for row in range(snapshot.rows):
        for col in range(snapshot.cols):
            pos = (row, col)
            fill = COLORS["floor"]
            if pos in dead_set:
                fill = COLORS["dead"]
            elif pos in reachable_set:
                fill = COLORS["reachable"]
            draw.rectangle(tile(pos), fill=fill)

    goal_inset = _safe_inset(tile_size, max(1, tile_size // 4))
    for pos in sorted(snapshot.goals):
        draw.ellipse(tile(pos, goal_inset), fill=COLORS["goal"], outline=COLORS["border"])

    for pos in sorted(snapshot.walls):
        draw.rectangle(tile(pos), fill=COLORS["wall"], outline="#1b1f28")

    box_inset = _safe_inset(tile_size, max(2, tile_size // 8))
    for pos in sorted(snapshot.boxes):
        x0, y0, x1, y1 = tile(pos, box_inset)
        box_color = COLORS["box_on_goal"] if pos in snapshot.goals else COLORS["box"]
        draw.rectangle((x0, y0, x1, y1), fill=box_color, outline=COLORS["border"])
        draw.line((x0, y0, x1, y1), fill=COLORS["border"], width=1)
        draw.line((x0, y1, x1, y0), fill=COLORS["border"], width=1)

    if snapshot.player is not None:
        player_color = (
            COLORS["player_on_goal"]
            if snapshot.player in snapshot.goals
            else COLORS["player"]
        )
        player_inset = _safe_inset(tile_size, max(3, tile_size // 5))
        draw.ellipse(
            tile(snapshot.player, player_inset),
            fill=player_color,
            outline=COLORS["border"],
        )

    for row in range(snapshot.rows + 1):
        y = origin_y + row * tile_size
        draw.line((origin_x, y, origin_x + board_width, y), fill=COLORS["grid"], width=1)
    for col in range(snapshot.cols + 1):
        x = origin_x + col * tile_size
        draw.line((x, origin_y, x, origin_y + board_height), fill=COLORS["grid"], width=1)
    draw.rectangle(
        (origin_x, origin_y, origin_x + board_width, origin_y + board_height),
        outline=COLORS["border"],
        width=1,
    )

    if label_grid:
        for col in range(snapshot.cols):
            label = str(col)
            left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
            x = origin_x + col * tile_size + tile_size // 2
            draw.text(
                (x - (right - left) / 2, max(0, outer_pad + (gutter - (bottom - top)) / 2)),
                label,
                fill=COLORS["text"],
                font=font,
            )
        for row in range(snapshot.rows):
            label = str(row)
            left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
            y = origin_y + row * tile_size + tile_size // 2
            draw.text(
                (max(0, outer_pad + (gutter - (right - left)) / 2), y - (bottom - top) / 2),
                label,
                fill=COLORS["text"],
                font=font,
            )

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    data_base64 = base64.b64encode(buffer.getvalue()).decode("ascii")
    return StateImage(
        mime_type="image/png",
        data_base64=data_base64,
        data_url=f"data:image/png;base64,{data_base64}",
        width=width,
        height=height,
    )


def render_search_state_image(
    state: SearchState,
    *,
    show_dead: bool = True,
    show_reachable: bool = True,
    **kwargs: object,
) -> StateImage:
    return render_board_image(
        state_snapshot(state),
        dead_squares=state.board.dead_squares if show_dead else (),
        reachable=state.connectivity.reachable if show_reachable else (),
        **kwargs,
    )
