"""
Turn forward-filled repository states into output rows.

TOTAL mode reports "Code" and, when comments are included, "Comments". The
"Comments" value is code + comment lines, not comment lines alone: the two
columns are meant to be drawn as stacked areas with the larger one first.
BY_LANGUAGE mode reports one column per language, code and comment lines
folded into a single number per language.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from .history_merge import StateVector, TimelineMerger
from .history_store import registry_from_timelines
from .models import MODE_BY_LANGUAGE, MODE_TOTAL, HistoryRow, HistoryTable, RepositoryTimeline

TOTAL_COLUMNS = ["Code", "Comments"]


def output_columns(mode: str, include_comments: bool, languages: Sequence[str]) -> list[str]:
    if mode == MODE_BY_LANGUAGE:
        return list(languages)
    if mode == MODE_TOTAL:
        return list(TOTAL_COLUMNS) if include_comments else TOTAL_COLUMNS[:1]
    raise ValueError(f"Unknown aggregation mode: {mode!r}")


def total_lines(state: StateVector) -> tuple[int, int]:
    code = 0
    comment = 0
    for snapshot in state.values():
        if snapshot is None:
            continue
        for metric in snapshot.values():
            code += metric.code_lines
            comment += metric.comment_lines
    return code, comment


def language_lines(state: StateVector, languages: Sequence[str], include_comments: bool) -> list[int]:
    out: list[int] = []
    for lang in languages:
        n = 0
        for snapshot in state.values():
            if snapshot is None:
                continue
            metric = snapshot.get(lang)
            if metric is None:
                continue
            n += metric.code_lines
            if include_comments:
                n += metric.comment_lines
        out.append(n)
    return out


def aggregate_state(
    state: StateVector,
    *,
    mode: str,
    include_comments: bool,
    languages: Sequence[str] = (),
) -> list[int]:
    if mode == MODE_BY_LANGUAGE:
        return language_lines(state, languages, include_comments)
    if mode == MODE_TOTAL:
        code, comment = total_lines(state)
        if include_comments:
            return [code, code + comment]
        return [code]
    raise ValueError(f"Unknown aggregation mode: {mode!r}")


def build_history(
    timelines: Mapping[str, RepositoryTimeline],
    *,
    sparse: bool,
    by_language: bool,
    include_comments: bool,
) -> HistoryTable:
    mode = MODE_BY_LANGUAGE if by_language else MODE_TOTAL
    languages = list(registry_from_timelines(dict(timelines)).ordered_languages())
    columns = output_columns(mode, include_comments, languages)

    merger = TimelineMerger(timelines, sparse=sparse)
    rows: list[HistoryRow] = []
    for ts, state in merger.states():
        values = aggregate_state(state, mode=mode, include_comments=include_comments, languages=languages)
        rows.append(HistoryRow(timestamp=ts, values=tuple(values)))

    return HistoryTable(
        mode=mode,
        include_comments=include_comments,
        columns=columns,
        rows=rows,
        languages=languages,
        repos=merger.repos,
    )
