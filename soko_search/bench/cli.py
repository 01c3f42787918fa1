from __future__ import annotations

import sys
from typing import Callable

from soko_search.bench import render, search
from soko_search.sokoban import level_loader


COMMANDS: dict[str, tuple[str, Callable[[list[str]], int]]] = {
    "solve": ("Solve levels by forward or backward search", search.main),
    "analyze": ("Show levels with dead squares marked", level_loader.main),
    "render": ("Render a solution playback (html/ascii/png)", render.main),
}


def _print_help() -> None:
    print("soko-search <command> [args]\n")
    print("Commands:")
    for name, (desc, _) in COMMANDS.items():
        print(f"  {name:20s} {desc}")


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in {"-h", "--help"}:
        _print_help()
        return 0

    command = args.pop(0)
    if command not in COMMANDS:
        print(f"Unknown command: {command}\n")
        _print_help()
        return 2

    _, handler = COMMANDS[command]
    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
