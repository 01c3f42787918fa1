from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path

from .board import compute_dead_squares
from .errors import InvalidLevelError
from .geometry import Position
from .snapshot import BoardSnapshot

_VALID_XSB_CHARS = {"#", " ", "@", "+", "$", "*", "."}


@dataclass(frozen=True, slots=True)
class SokobanLevel:
    level_id: str
    title: str | None
    rows: int
    cols: int
    xsb: str
    walls: frozenset[Position]
    goals: tuple[Position, ...]
    boxes_start: tuple[Position, ...]
    player_start: Position
    n_boxes: int

    def snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            rows=self.rows,
            cols=self.cols,
            walls=self.walls,
            boxes=frozenset(self.boxes_start),
            goals=frozenset(self.goals),
            player=self.player_start,
        )


@dataclass(frozen=True, slots=True)
class LevelSet:
    name: str
    description: str
    levels: tuple[SokobanLevel, ...]


def default_levels_dir() -> Path:
    return Path(__file__).resolve().parent / "levels"


def _split_level_blocks(text: str) -> list[tuple[list[str], list[str]]]:
    blocks: list[tuple[list[str], list[str]]] = []
    current_lines: list[str] = []
    current_comments: list[str] = []

    def _flush_block() -> None:
        nonlocal current_lines, current_comments
        if current_lines:
            blocks.append((current_lines, current_comments))
            current_lines = []
            current_comments = []

    for raw_line in text.splitlines():
        if raw_line.startswith(";"):
            if current_lines:
                _flush_block()
            current_comments.append(raw_line[1:].strip())
            continue

        if raw_line.strip() == "":
            _flush_block()
            continue

        current_lines.append(raw_line.rstrip("\r"))

    _flush_block()
    return blocks


def _normalize_title(level_id: str, comments: list[str]) -> str | None:
    for comment in comments:
        text = comment.strip()
        if not text or text == level_id:
            continue
        return text
    return None


def parse_level_rows(
    lines: list[str],
    *,
    level_id: str = "inline:1",
    title: str | None = None,
) -> SokobanLevel:
    if not lines:
        raise InvalidLevelError(f"level {level_id} is empty")

    cols = max(len(line) for line in lines)
    rows = len(lines)

    walls: set[Position] = set()
    boxes: list[Position] = []
    goals: list[Position] = []
    player: Position | None = None

    for row_idx, line in enumerate(lines):
        # Short rows read as floor for their missing columns.
        for col_idx in range(cols):
            char = line[col_idx] if col_idx < len(line) else " "
            if char not in _VALID_XSB_CHARS:
                raise InvalidLevelError(
                    f"level {level_id} has invalid character {char!r} at ({row_idx}, {col_idx})"
                )

            pos = (row_idx, col_idx)
            if char == "#":
                walls.add(pos)
            if char in {"$", "*"}:
                boxes.append(pos)
            if char in {".", "+", "*"}:
                goals.append(pos)
            if char in {"@", "+"}:
                if player is not None:
                    raise InvalidLevelError(
                        f"level {level_id} has multiple player positions"
                    )
                player = pos

    if player is None:
        raise InvalidLevelError(f"level {level_id} has no player position")
    if not boxes:
        raise InvalidLevelError(f"level {level_id} has no boxes")
    if len(boxes) != len(goals):
        raise InvalidLevelError(
            f"level {level_id} has {len(boxes)} boxes but {len(goals)} goals"
        )

    snapshot = BoardSnapshot(
        rows=rows,
        cols=cols,
        walls=frozenset(walls),
        boxes=frozenset(boxes),
        goals=frozenset(goals),
        player=player,
    )
    return SokobanLevel(
        level_id=level_id,
        title=title,
        rows=rows,
        cols=cols,
        xsb=snapshot.to_xsb(),
        walls=frozenset(walls),
        goals=tuple(goals),
        boxes_start=tuple(boxes),
        player_start=player,
        n_boxes=len(boxes),
    )


def parse_xsb_levels(text: str, *, set_name: str) -> list[SokobanLevel]:
    blocks = _split_level_blocks(text)
    if not blocks:
        raise InvalidLevelError("no levels found in XSB content")

    levels: list[SokobanLevel] = []
    for index, (lines, comments) in enumerate(blocks, start=1):
        level_id = f"{set_name}:{index}"
        levels.append(
            parse_level_rows(
                lines,
                level_id=level_id,
                title=_normalize_title(level_id, comments),
            )
        )
    return levels


def load_level_set(path: str | Path) -> LevelSet:
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(path_obj)
    levels = parse_xsb_levels(path_obj.read_text(), set_name=path_obj.stem)
    return LevelSet(
        name=path_obj.stem,
        description=f"Loaded from {path_obj.name}",
        levels=tuple(levels),
    )


def list_bundled_level_sets(levels_dir: Path | None = None) -> list[str]:
    resolved_dir = levels_dir or default_levels_dir()
    return sorted(path.stem for path in resolved_dir.glob("*.xsb"))


def load_bundled_level_set(
    set_name: str,
    levels_dir: Path | None = None,
) -> LevelSet:
    resolved_dir = levels_dir or default_levels_dir()
    xsb_path = resolved_dir / f"{set_name}.xsb"
    if not xsb_path.exists():
        raise InvalidLevelError(f"unknown bundled level set: {set_name}")
    return LevelSet(
        name=set_name,
        description=f"Bundled level set '{set_name}'",
        levels=tuple(parse_xsb_levels(xsb_path.read_text(), set_name=set_name)),
    )


def load_level_by_id(
    level_id: str,
    *,
    levels_dir: Path | None = None,
) -> SokobanLevel:
    if ":" not in level_id:
        raise InvalidLevelError(
            f"level id must look like '<set>:<index>', got {level_id!r}"
        )
    set_name, idx_str = level_id.split(":", 1)
    if not idx_str.isdigit() or int(idx_str) < 1:
        raise InvalidLevelError(
            f"level id must look like '<set>:<index>', got {level_id!r}"
        )

    level_set = load_bundled_level_set(set_name, levels_dir=levels_dir)
    level_index = int(idx_str)
    if level_index > len(level_set.levels):
        raise InvalidLevelError(f"level id not found: {level_id}")
    return level_set.levels[level_index - 1]


def describe_level(level: SokobanLevel) -> str:
    dead = compute_dead_squares(
        rows=level.rows,
        cols=level.cols,
        walls=level.walls,
        goals=level.goals,
    )
    board = [list(line.ljust(level.cols)) for line in level.xsb.splitlines()]
    for row, col in dead:
        if board[row][col] == " ":
            board[row][col] = "x"
    header = level.level_id if level.title is None else f"{level.level_id} ({level.title})"
    lines = [
        header,
        "\n".join("".join(line).rstrip() for line in board),
        f"boxes={level.n_boxes} dead_squares={len(dead)}",
    ]
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show Sokoban levels with their dead squares marked 'x'."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--level-file", help="Path to an .xsb file.")
    source.add_argument(
        "--level-set",
        default="starter",
        help="Name of a bundled level set (default: starter).",
    )
    parser.add_argument(
        "--level-index",
        type=int,
        action="append",
        default=[],
        help="1-based level index to show (repeatable; default: all).",
    )
    args = parser.parse_args(argv)

    try:
        if args.level_file:
            level_set = load_level_set(args.level_file)
        else:
            level_set = load_bundled_level_set(args.level_set)
    except (InvalidLevelError, FileNotFoundError) as exc:
        print(f"Could not load levels: {exc}", file=sys.stderr)
        return 2

    wanted = set(args.level_index)
    for index, level in enumerate(level_set.levels, start=1):
        if wanted and index not in wanted:
            continue
        print(describe_level(level))
        print()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
