from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from soko_search.bench.search import solve_level
from soko_search.config import resolve_search_config
from soko_search.sokoban.errors import IllegalMoveError, InvalidLevelError
from soko_search.sokoban.level_loader import (
    SokobanLevel,
    load_bundled_level_set,
    load_level_set,
)
from soko_search.sokoban.problem import build_forward_problem
from soko_search.sokoban.replay import replay_moves
from soko_search.sokoban.snapshot import BoardSnapshot


def _safe_path_part(value: Any, *, fallback: str = "unknown") -> str:
    text = str(value).strip().replace("/", "_").replace("\\", "_").replace(":", "_")
    if text in {"", ".", ".."}:
        return fallback
    return text


def _playback_steps(level: SokobanLevel, moves: str) -> list[dict[str, Any]]:
    snapshots = replay_moves(level, moves)
    played = [char for char in moves if not char.isspace()]
    steps: list[dict[str, Any]] = []
    pushes = 0
    for index, snapshot in enumerate(snapshots):
        action = None if index == 0 else played[index - 1]
        if action is not None and action.isupper():
            pushes += 1
        steps.append(
            {
                "index": index,
                "action": action,
                "totals": {
                    "moves": index,
                    "pushes": pushes,
                    "boxes_on_goals": len(snapshot.boxes & snapshot.goals),
                },
                "snapshot": snapshot,
            }
        )
    return steps


def render_ascii(level: SokobanLevel, moves: str) -> str:
    lines: list[str] = []
    for step in _playback_steps(level, moves):
        totals = step["totals"]
        lines.append(
            f"Step {step['index']}: moves={totals['moves']} pushes={totals['pushes']} "
            f"boxes_on_goals={totals['boxes_on_goals']}"
        )
        lines.append(f"Action: {step['action']}")
        lines.append(step["snapshot"].to_xsb())
        lines.append("")
    return "\n".join(lines)


def render_html(level: SokobanLevel, moves: str) -> str:
    payload = {
        "metadata": {
            "level_id": level.level_id,
            "title": level.title,
            "moves": moves,
        },
        "steps": [
            {
                "index": step["index"],
                "action": step["action"],
                "totals": step["totals"],
                "xsb": step["snapshot"].to_xsb(),
            }
            for step in _playback_steps(level, moves)
        ],
    }
    data = json.dumps(payload)
    template = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8" />
  <title>Sokoban Solution Playback</title>
  <style>
    body { font-family: sans-serif; margin: 20px; }
    .controls button { margin-right: 8px; }
    pre { background: #f7f7f7; padding: 10px; overflow: auto; }
    .meta { color: #666; font-size: 12px; margin-bottom: 12px; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .panel { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
  </style>
</head>
<body>
  <h2>Sokoban Solution Playback</h2>
  <div class="meta" id="meta"></div>
  <div class="controls">
    <button onclick="prevStep()">Prev</button>
    <button onclick="nextStep()">Next</button>
    <input type="range" id="slider" min="0" value="0" step="1" />
  </div>
  <div class="grid">
    <div class="panel">
      <h3>Board</h3>
      <pre id="board"></pre>
    </div>
    <div class="panel">
      <h3>Move</h3>
      <pre id="action"></pre>
      <h3>Totals</h3>
      <pre id="totals"></pre>
    </div>
  </div>
  <script>
    const payload = __DATA__;
    const steps = payload.steps || [];
    const slider = document.getElementById("slider");
    const meta = document.getElementById("meta");
    const board = document.getElementById("board");
    const actionEl = document.getElementById("action");
    const totalsEl = document.getElementById("totals");
    let idx = 0;
    slider.max = Math.max(steps.length - 1, 0);

    function render() {
      if (!steps.length) return;
      const step = steps[idx];
      meta.textContent = `${payload.metadata.level_id} | step ${step.index} of ${steps.length - 1}`;
      board.textContent = step.xsb || "";
      actionEl.textContent = step.action || "(start)";
      totalsEl.textContent = JSON.stringify(step.totals || {}, null, 2);
      slider.value = idx;
    }
    function nextStep() { idx = Math.min(idx + 1, steps.length - 1); render(); }
    function prevStep() { idx = Math.max(idx - 1, 0); render(); }
    slider.addEventListener("input", (e) => {
      idx = parseInt(e.target.value, 10);
      render();
    });
    render();
  </script>
</body>
</html>"""
    return template.replace("__DATA__", data)


def render_png_frames(
    level: SokobanLevel,
    moves: str,
    out_dir: Path,
    *,
    tile_size: int = 48,
    show_dead: bool = True,
) -> list[Path]:
    from soko_search.sokoban.vision import render_board_image

    dead: frozenset = frozenset()
    if show_dead:
        dead = build_forward_problem(level).board.dead_squares

    out_dir.mkdir(parents=True, exist_ok=True)
    paths: list[Path] = []
    for step in _playback_steps(level, moves):
        snapshot: BoardSnapshot = step["snapshot"]
        image = render_board_image(snapshot, tile_size=tile_size, dead_squares=dead)
        path = out_dir / f"frame_{step['index']:04d}.png"
        path.write_bytes(image.to_bytes())
        paths.append(path)
    return paths


def _load_level(args: argparse.Namespace) -> SokobanLevel:
    if args.level_file:
        level_set = load_level_set(args.level_file)
    else:
        level_set = load_bundled_level_set(args.level_set)
    if not 1 <= args.level_index <= len(level_set.levels):
        raise InvalidLevelError(
            f"level index {args.level_index} out of range for {level_set.name} "
            f"({len(level_set.levels)} levels)"
        )
    return level_set.levels[args.level_index - 1]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Render a Sokoban solution playback.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--level-file", help="Path to an .xsb file.")
    source.add_argument("--level-set", default="starter")
    parser.add_argument("--level-index", type=int, default=1)
    parser.add_argument("--moves", help="LURD move string; solved by search when omitted.")
    parser.add_argument("--config", help="JSON search settings used when solving.")
    parser.add_argument("--out-dir", default="artifacts/renders/sokoban")
    parser.add_argument("--format", choices=["html", "ascii", "png"], default="html")
    parser.add_argument("--tile-size", type=int, default=48)
    args = parser.parse_args(argv)

    try:
        level = _load_level(args)
    except (InvalidLevelError, FileNotFoundError) as exc:
        print(f"Could not load level: {exc}", file=sys.stderr)
        return 2

    moves = args.moves
    if moves is None:
        try:
            config = resolve_search_config(args.config)
        except (ValueError, FileNotFoundError) as exc:
            print(f"Invalid search config: {exc}", file=sys.stderr)
            return 2
        report = solve_level(level, config)
        if report.moves is None:
            print(f"No solution found for {level.level_id}.", file=sys.stderr)
            return 1
        moves = report.moves

    out_base = Path(args.out_dir) / _safe_path_part(level.level_id, fallback="level")
    out_base.mkdir(parents=True, exist_ok=True)
    try:
        if args.format == "ascii":
            (out_base / "playback.txt").write_text(render_ascii(level, moves))
        elif args.format == "png":
            render_png_frames(level, moves, out_base / "frames", tile_size=args.tile_size)
        else:
            (out_base / "index.html").write_text(render_html(level, moves))
    except IllegalMoveError as exc:
        print(f"Moves do not replay on {level.level_id}: {exc}", file=sys.stderr)
        return 2

    print(f"Rendered to: {out_base}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
