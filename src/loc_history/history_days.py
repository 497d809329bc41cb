from __future__ import annotations

import datetime as dt
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

SECONDS_PER_DAY = 86_400


def day_index(ts: int) -> int:
    """Whole UTC calendar days since the epoch (floor, so negative timestamps work too)."""
    return int(ts) // SECONDS_PER_DAY


def day_iso(ts: int) -> str:
    return dt.datetime.fromtimestamp(int(ts), tz=dt.timezone.utc).date().isoformat()


def timestamp_iso(ts: int) -> str:
    return dt.datetime.fromtimestamp(int(ts), tz=dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _first(item: object) -> int:
    return int(item[0])  # type: ignore[index]


def sparsify(items: Iterable[T], key: Callable[[T], int] = _first) -> list[T]:
    """
    Keep at most one item per UTC calendar day: the first item seen after the
    day changes. `items` must already be in chronological order.

    The first item is always kept. `key` extracts the timestamp; by default the
    item is a tuple whose first element is the timestamp. Plain ints can be
    passed with `key=int`.
    """
    out: list[T] = []
    last_day: int | None = None
    for item in items:
        day = day_index(key(item))
        if last_day is not None and day - last_day < 1:
            continue
        out.append(item)
        last_day = day
    return out
