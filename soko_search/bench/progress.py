from __future__ import annotations

import importlib
import sys
from typing import Any


class SearchProgressReporter:
    def on_expand(self, *, expanded: int, frontier: int, depth: int) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class NoopSearchProgressReporter(SearchProgressReporter):
    def on_expand(self, *, expanded: int, frontier: int, depth: int) -> None:  # noqa: ARG002
        return

    def close(self) -> None:
        return


class TqdmSearchProgressReporter(SearchProgressReporter):
    def __init__(
        self,
        *,
        total_states: int,
        refresh_s: float,
        tqdm_cls: Any,
        desc: str = "States",
    ) -> None:
        self._expanded = 0
        self._max_depth = 0
        self._bar = tqdm_cls(
            total=max(0, int(total_states)),
            desc=desc,
            unit="state",
            dynamic_ncols=True,
            mininterval=float(refresh_s),
            file=sys.stderr,
            leave=True,
        )

    def on_expand(self, *, expanded: int, frontier: int, depth: int) -> None:
        delta = max(0, int(expanded) - self._expanded)
        self._expanded = max(self._expanded, int(expanded))
        self._max_depth = max(self._max_depth, int(depth))
        self._bar.set_postfix(
            {"frontier": str(frontier), "depth": str(self._max_depth)},
            refresh=False,
        )
        if delta:
            self._bar.update(delta)

    def close(self) -> None:
        self._bar.close()


def build_search_progress_reporter(
    *,
    enabled: bool,
    total_states: int,
    refresh_s: float,
    explicit_request: bool,
    desc: str = "States",
) -> SearchProgressReporter:
    if not enabled or total_states <= 0:
        return NoopSearchProgressReporter()

    try:
        tqdm_module = importlib.import_module("tqdm")
    except ImportError:
        if explicit_request:
            print(
                "Progress requested but missing dependency: tqdm. Install with "
                "pip install 'soko-search[bench]'.",
                file=sys.stderr,
                flush=True,
            )
        return NoopSearchProgressReporter()

    tqdm_cls = getattr(tqdm_module, "tqdm", None)
    if tqdm_cls is None:
        if explicit_request:
            print(
                "Progress requested but tqdm could not be loaded. Install with "
                "pip install 'soko-search[bench]'.",
                file=sys.stderr,
                flush=True,
            )
        return NoopSearchProgressReporter()
    return TqdmSearchProgressReporter(
        total_states=total_states,
        refresh_s=refresh_s,
        tqdm_cls=tqdm_cls,
        desc=desc,
    )
