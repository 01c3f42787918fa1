from __future__ import annotations

import argparse
import json
import sys
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from soko_search.bench.progress import (
    NoopSearchProgressReporter,
    SearchProgressReporter,
    build_search_progress_reporter,
)
from soko_search.config import SearchConfig, resolve_search_config
from soko_search.sokoban.errors import InvalidLevelError, SokobanError
from soko_search.sokoban.level_loader import (
    SokobanLevel,
    load_bundled_level_set,
    load_level_set,
)
from soko_search.sokoban.problem import build_forward_problem
from soko_search.sokoban.replay import backward_to_forward, is_solution, solution_moves
from soko_search.sokoban.state import SearchDirection, SearchState

# Expansions between progress callbacks.
REPORT_EVERY = 256


class StateTable:
    """Visited set keyed by Zobrist hash with equality checks inside a bucket."""

    def __init__(self) -> None:
        self._buckets: dict[int, list[SearchState]] = {}
        self._size = 0

    def add(self, state: SearchState) -> bool:
        """Insert ``state``; False when an equal state is already present."""
        bucket = self._buckets.setdefault(state.hash, [])
        for existing in bucket:
            if existing == state:
                return False
        bucket.append(state)
        self._size += 1
        return True

    def __contains__(self, state: object) -> bool:
        if not isinstance(state, SearchState):
            return False
        return any(existing == state for existing in self._buckets.get(state.hash, ()))

    def __len__(self) -> int:
        return self._size

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)


@dataclass(frozen=True, slots=True)
class SearchResult:
    solved: bool
    state: SearchState | None
    expanded: int
    generated: int
    elapsed_s: float
    strategy: str
    direction: str
    limit_reached: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "solved": self.solved,
            "expanded": self.expanded,
            "generated": self.generated,
            "elapsed_s": round(self.elapsed_s, 6),
            "strategy": self.strategy,
            "direction": self.direction,
            "limit_reached": self.limit_reached,
            "depth": None if self.state is None else self.state.depth,
        }


def _validate_limits(max_states: int, max_depth: int | None) -> None:
    if max_states < 1:
        raise ValueError("max_states must be >= 1")
    if max_depth is not None and max_depth < 1:
        raise ValueError("max_depth must be >= 1")


def _search(
    root: SearchState,
    *,
    strategy: str,
    max_states: int,
    max_depth: int | None,
    tunnel_macros: bool,
    progress: SearchProgressReporter | None,
) -> SearchResult:
    _validate_limits(max_states, max_depth)
    reporter = progress or NoopSearchProgressReporter()
    started = time.perf_counter()
    direction = root.direction.value

    def _result(
        state: SearchState | None, expanded: int, generated: int, *, limit: bool = False
    ) -> SearchResult:
        reporter.on_expand(expanded=expanded, frontier=len(frontier), depth=deepest)
        return SearchResult(
            solved=state is not None,
            state=state,
            expanded=expanded,
            generated=generated,
            elapsed_s=time.perf_counter() - started,
            strategy=strategy,
            direction=direction,
            limit_reached=limit,
        )

    frontier: deque[SearchState] = deque([root])
    deepest = 0
    if root.is_solved():
        return _result(root, 0, 0)

    seen = StateTable()
    seen.add(root)
    take: Callable[[], SearchState] = (
        frontier.popleft if strategy == "bfs" else frontier.pop
    )
    expanded = 0
    generated = 0

    while frontier:
        if expanded >= max_states:
            return _result(None, expanded, generated, limit=True)
        state = take()
        if max_depth is not None and state.depth >= max_depth:
            continue
        expanded += 1
        deepest = max(deepest, state.depth)
        if expanded % REPORT_EVERY == 0:
            reporter.on_expand(expanded=expanded, frontier=len(frontier), depth=deepest)

        children = state.get_children(tunnel_macros=tunnel_macros)
        if strategy == "dfs":
            # The stack pops the last entry, so push in reverse to explore
            # children in generation order.
            children.reverse()
        for child in children:
            generated += 1
            if not seen.add(child):
                continue
            if child.is_solved():
                deepest = max(deepest, child.depth)
                return _result(child, expanded, generated)
            frontier.append(child)

    return _result(None, expanded, generated)


def breadth_first_search(
    root: SearchState,
    *,
    max_states: int = 1_000_000,
    max_depth: int | None = None,
    tunnel_macros: bool = False,
    progress: SearchProgressReporter | None = None,
) -> SearchResult:
    """Level-order search; the first solution found uses the fewest box moves."""
    return _search(
        root,
        strategy="bfs",
        max_states=max_states,
        max_depth=max_depth,
        tunnel_macros=tunnel_macros,
        progress=progress,
    )


def depth_first_search(
    root: SearchState,
    *,
    max_states: int = 1_000_000,
    max_depth: int | None = None,
    tunnel_macros: bool = False,
    progress: SearchProgressReporter | None = None,
) -> SearchResult:
    return _search(
        root,
        strategy="dfs",
        max_states=max_states,
        max_depth=max_depth,
        tunnel_macros=tunnel_macros,
        progress=progress,
    )


STRATEGY_FUNCS: dict[str, Callable[..., SearchResult]] = {
    "bfs": breadth_first_search,
    "dfs": depth_first_search,
}


@dataclass(frozen=True, slots=True)
class SolveReport:
    level_id: str
    result: SearchResult
    moves: str | None
    pushes: int | None

    @property
    def solved(self) -> bool:
        return self.result.solved

    def to_dict(self) -> dict[str, Any]:
        return {
            "level_id": self.level_id,
            "moves": self.moves,
            "pushes": self.pushes,
            **self.result.to_dict(),
        }


def solve_level(
    level: SokobanLevel,
    config: SearchConfig | None = None,
    progress: SearchProgressReporter | None = None,
) -> SolveReport:
    config = config or SearchConfig()
    problem = build_forward_problem(level, hash_seed=config.hash_seed)
    forward_root = problem.initial_state
    root = forward_root
    if config.direction == SearchDirection.BACKWARD.value:
        root = problem.backward().initial_state

    owned_reporter = progress is None
    reporter = progress or build_search_progress_reporter(
        enabled=config.progress,
        total_states=config.max_states,
        refresh_s=config.progress_refresh_s,
        explicit_request=config.progress,
        desc=level.level_id,
    )
    try:
        result = STRATEGY_FUNCS[config.strategy](
            root,
            max_states=config.max_states,
            max_depth=config.max_depth,
            tunnel_macros=config.tunnel_macros,
            progress=reporter,
        )
    finally:
        if owned_reporter:
            reporter.close()

    if not result.solved or result.state is None:
        return SolveReport(level_id=level.level_id, result=result, moves=None, pushes=None)

    final = result.state
    if final.direction is SearchDirection.BACKWARD:
        final = backward_to_forward(final, forward_root)
    moves = solution_moves(final)
    if not is_solution(level, moves):
        raise RuntimeError(f"search produced moves that do not solve {level.level_id}")
    return SolveReport(
        level_id=level.level_id,
        result=result,
        moves=moves,
        pushes=final.depth,
    )


def _load_levels(args: argparse.Namespace) -> list[SokobanLevel]:
    if args.level_file:
        level_set = load_level_set(args.level_file)
    else:
        level_set = load_bundled_level_set(args.level_set)
    wanted = set(args.level_index)
    return [
        level
        for index, level in enumerate(level_set.levels, start=1)
        if not wanted or index in wanted
    ]


def _format_report(report: SolveReport) -> str:
    result = report.result
    status = "solved" if report.solved else ("limit" if result.limit_reached else "unsolved")
    line = (
        f"{report.level_id}: {status} strategy={result.strategy} "
        f"direction={result.direction} expanded={result.expanded} "
        f"generated={result.generated} time={result.elapsed_s:.3f}s"
    )
    if report.moves is not None:
        line += f" pushes={report.pushes} moves={report.moves}"
    return line


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Solve Sokoban levels by state search.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--level-file", help="Path to an .xsb file.")
    source.add_argument(
        "--level-set",
        default="starter",
        help="Name of a bundled level set (default: starter).",
    )
    parser.add_argument("--level-index", type=int, action="append", default=[])
    parser.add_argument("--config", help="JSON file with search settings.")
    parser.add_argument("--strategy", choices=["bfs", "dfs"], default=None)
    parser.add_argument("--direction", choices=["forward", "backward"], default=None)
    parser.add_argument("--max-states", type=int, default=None)
    parser.add_argument("--max-depth", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None, help="Zobrist table seed.")
    parser.add_argument(
        "--tunnel-macros",
        action=argparse.BooleanOptionalAction,
        default=None,
    )
    parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
    )
    parser.add_argument("--json", action="store_true", help="Print reports as JSON.")
    args = parser.parse_args(argv)

    try:
        config = resolve_search_config(
            args.config,
            {
                "strategy": args.strategy,
                "direction": args.direction,
                "max_states": args.max_states,
                "max_depth": args.max_depth,
                "hash_seed": args.seed,
                "tunnel_macros": args.tunnel_macros,
                "progress": args.progress,
            },
        )
    except (ValueError, FileNotFoundError) as exc:
        print(f"Invalid search config: {exc}", file=sys.stderr)
        return 2

    try:
        levels = _load_levels(args)
    except (InvalidLevelError, FileNotFoundError) as exc:
        print(f"Could not load levels: {exc}", file=sys.stderr)
        return 2
    if not levels:
        print("No levels selected.", file=sys.stderr)
        return 2

    reports: list[SolveReport] = []
    for level in levels:
        try:
            report = solve_level(level, config)
        except SokobanError as exc:
            print(f"{level.level_id}: {exc}", file=sys.stderr)
            return 2
        reports.append(report)
        if not args.json:
            print(_format_report(report), flush=True)

    if args.json:
        print(json.dumps([report.to_dict() for report in reports], indent=2))
    return 0 if all(report.solved for report in reports) else 1


if __name__ == "__main__":
    raise SystemExit(main())
