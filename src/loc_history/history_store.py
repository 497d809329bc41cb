from __future__ import annotations

from .models import RepositoryTimeline, Snapshot


class SnapshotStore:
    """Per-repository timelines for a single run, repositories in insertion order."""

    def __init__(self) -> None:
        self._timelines: dict[str, list[tuple[int, Snapshot]]] = {}

    def add_repo(self, repo: str) -> None:
        self._timelines.setdefault(repo, [])

    def add(self, repo: str, ts: int, snapshot: Snapshot) -> None:
        points = self._timelines.setdefault(repo, [])
        if points and int(ts) < points[-1][0]:
            raise ValueError(f"snapshot for {repo!r} at {ts} is older than the previous one at {points[-1][0]}")
        points.append((int(ts), snapshot))

    def repos(self) -> list[str]:
        return list(self._timelines)

    def timeline(self, repo: str) -> RepositoryTimeline:
        return tuple(self._timelines.get(repo, ()))

    def timelines(self) -> dict[str, RepositoryTimeline]:
        return {repo: tuple(points) for repo, points in self._timelines.items()}

    def __len__(self) -> int:
        return sum(len(points) for points in self._timelines.values())


class LanguageRegistry:
    """
    Ordered set of language names, most recently discovered first.

    A language not seen before goes to the front; registering a known language
    leaves the order untouched. Nothing is ever removed.
    """

    def __init__(self) -> None:
        self._order: list[str] = []
        self._seen: set[str] = set()

    def register(self, lang: str) -> None:
        if lang in self._seen:
            return
        self._seen.add(lang)
        self._order.insert(0, lang)

    def ordered_languages(self) -> tuple[str, ...]:
        return tuple(self._order)

    def __contains__(self, lang: object) -> bool:
        return lang in self._seen

    def __len__(self) -> int:
        return len(self._order)


def registry_from_timelines(timelines: dict[str, RepositoryTimeline]) -> LanguageRegistry:
    registry = LanguageRegistry()
    for points in timelines.values():
        for _ts, snapshot in points:
            for lang in snapshot:
                registry.register(lang)
    return registry


def registry_from_store(store: SnapshotStore) -> LanguageRegistry:
    return registry_from_timelines(store.timelines())
