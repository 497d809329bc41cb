from __future__ import annotations

import dataclasses
import types
from typing import Mapping

MODE_TOTAL = "total"
MODE_BY_LANGUAGE = "by_language"


@dataclasses.dataclass(frozen=True)
class LanguageMetric:
    code_lines: int = 0
    comment_lines: int = 0

    def __post_init__(self) -> None:
        if self.code_lines < 0 or self.comment_lines < 0:
            raise ValueError(f"line counts must be non-negative: {self!r}")

    @property
    def total_lines(self) -> int:
        return self.code_lines + self.comment_lines


Snapshot = Mapping[str, LanguageMetric]
RepositoryTimeline = tuple[tuple[int, Snapshot], ...]


def make_snapshot(metrics: Mapping[str, LanguageMetric]) -> Snapshot:
    """Freeze a language -> metric mapping, keeping the producer's key order."""
    return types.MappingProxyType(dict(metrics))


@dataclasses.dataclass(frozen=True)
class HistoryRow:
    timestamp: int
    values: tuple[int, ...]


@dataclasses.dataclass
class HistoryTable:
    mode: str
    include_comments: bool
    columns: list[str]
    rows: list[HistoryRow]
    languages: list[str]
    repos: list[str]


@dataclasses.dataclass
class RepoSource:
    key: str
    label: str
    path: str
    remote: str = ""
    remote_canonical: str = ""
    duplicates: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class RepoHistory:
    source: RepoSource
    points: list[tuple[int, str, Snapshot]]  # (timestamp, revision, snapshot)
    revisions_total: int = 0
    revisions_sampled: int = 0
    failed_revisions: list[str] = dataclasses.field(default_factory=list)
    clamped_revisions: int = 0  # commit times raised to an earlier commit's time
    errors: list[str] = dataclasses.field(default_factory=list)
    excluded: bool = False

    @property
    def first_timestamp(self) -> int | None:
        return self.points[0][0] if self.points else None

    @property
    def last_timestamp(self) -> int | None:
        return self.points[-1][0] if self.points else None
