from __future__ import annotations

import dataclasses
from typing import Callable, Iterator, Mapping

from .history_days import sparsify
from .models import RepositoryTimeline, Snapshot

StateVector = dict[str, "Snapshot | None"]


@dataclasses.dataclass
class RepoCursor:
    timeline: RepositoryTimeline
    index: int = 0
    current: Snapshot | None = None

    def advance_to(self, ts: int) -> Snapshot | None:
        points = self.timeline
        i = self.index
        while i < len(points) and points[i][0] <= ts:
            self.current = points[i][1]
            i += 1
        self.index = i
        return self.current


def merged_timestamps(timelines: Mapping[str, RepositoryTimeline], *, sparse: bool) -> list[int]:
    all_ts: set[int] = set()
    for points in timelines.values():
        all_ts.update(ts for ts, _snap in points)
    ordered = sorted(all_ts)
    if sparse:
        return sparsify(ordered, key=int)
    return ordered


class TimelineMerger:
    """
    Forward-fills every repository onto a common timeline.

    Each repository gets an index cursor into its timeline. `state_at(t)` moves
    every cursor past all entries at or before `t` and reports the latest
    snapshot per repository (None until the repository's first entry). Calls
    must come in non-decreasing `t` order, so every timeline is walked once
    over the whole merge.
    """

    def __init__(self, timelines: Mapping[str, RepositoryTimeline], *, sparse: bool) -> None:
        self._cursors: dict[str, RepoCursor] = {
            repo: RepoCursor(timeline=tuple(points)) for repo, points in timelines.items() if points
        }
        self.timeline: list[int] = merged_timestamps(
            {repo: c.timeline for repo, c in self._cursors.items()},
            sparse=sparse,
        )
        self._last_ts: int | None = None

    @property
    def repos(self) -> list[str]:
        return list(self._cursors)

    def state_at(self, ts: int) -> StateVector:
        if self._last_ts is not None and ts < self._last_ts:
            raise ValueError(f"state_at({ts}) after state_at({self._last_ts}): cursors only move forward")
        self._last_ts = ts
        return {repo: cursor.advance_to(ts) for repo, cursor in self._cursors.items()}

    def states(self) -> Iterator[tuple[int, StateVector]]:
        for ts in self.timeline:
            yield ts, self.state_at(ts)


def merge_timelines(
    timelines: Mapping[str, RepositoryTimeline],
    *,
    sparse: bool,
) -> tuple[list[int], Callable[[int], StateVector]]:
    merger = TimelineMerger(timelines, sparse=sparse)
    return list(merger.timeline), merger.state_at
