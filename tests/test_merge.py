from __future__ import annotations

import datetime as dt

import pytest

from loc_history.history_merge import RepoCursor, TimelineMerger, merge_timelines, merged_timestamps
from loc_history.models import LanguageMetric, make_snapshot

DAY = 86_400


def _snap(code: int) -> object:
    return make_snapshot({"go": LanguageMetric(code_lines=code)})


def test_merge_forward_fills_each_repo() -> None:
    a1, a2 = _snap(1), _snap(2)
    b1 = _snap(10)
    timelines = {"a": ((100, a1), (300, a2)), "b": ((200, b1),)}

    timeline, state_at = merge_timelines(timelines, sparse=False)
    assert timeline == [100, 200, 300]
    assert state_at(100) == {"a": a1, "b": None}
    assert state_at(200) == {"a": a1, "b": b1}
    assert state_at(300) == {"a": a2, "b": b1}


def test_state_before_first_snapshot_is_absent_and_converges_after_last() -> None:
    r1 = ((1000, _snap(1)), (2000, _snap(2)), (3000, _snap(3)))
    merger = TimelineMerger({"r": r1, "s": ((50, _snap(9)),)}, sparse=False)
    assert merger.state_at(999)["r"] is None
    for t in (3000, 3001, 10_000):
        assert merger.state_at(t)["r"] is r1[-1][1]


def test_state_never_reverts_to_absent() -> None:
    merger = TimelineMerger({"r": ((10, _snap(1)),), "s": ((20, _snap(2)), (40, _snap(3)))}, sparse=False)
    seen_present = False
    for _ts, state in merger.states():
        if state["r"] is not None:
            seen_present = True
        elif seen_present:
            raise AssertionError("repository state went back to absent")
    assert seen_present


def test_equal_timestamps_last_one_wins() -> None:
    first, second = _snap(1), _snap(2)
    timeline, state_at = merge_timelines({"r": ((10, first), (10, second))}, sparse=False)
    assert timeline == [10]
    assert state_at(10)["r"] is second


def test_sparse_merge_keeps_first_point_per_day_across_repos() -> None:
    d0 = int(dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc).timestamp())
    late_a = _snap(2)
    timelines = {
        "a": ((d0 + 3600, _snap(1)), (d0 + DAY + 7200, late_a)),
        "b": ((d0 + 1800, _snap(5)), (d0 + DAY + 3600, _snap(6))),
    }
    timeline, state_at = merge_timelines(timelines, sparse=True)
    assert timeline == [d0 + 1800, d0 + DAY + 3600]
    assert state_at(d0 + 1800)["a"] is None
    # the dropped point for "a" at d0+1h is still folded in later
    assert state_at(d0 + DAY + 3600)["a"] is timelines["a"][0][1]
    assert merged_timestamps(timelines, sparse=False) == sorted(t for tl in timelines.values() for t, _ in tl)


def test_empty_inputs_give_empty_timeline() -> None:
    timeline, state_at = merge_timelines({}, sparse=True)
    assert timeline == []
    assert state_at(0) == {}

    merger = TimelineMerger({"empty": (), "r": ((5, _snap(1)),)}, sparse=False)
    assert merger.repos == ["r"]
    assert merger.timeline == [5]


def test_state_at_refuses_to_go_backwards() -> None:
    _timeline, state_at = merge_timelines({"r": ((5, _snap(1)),)}, sparse=False)
    state_at(10)
    state_at(10)
    with pytest.raises(ValueError):
        state_at(9)


def test_cursor_scans_each_entry_once() -> None:
    cursor = RepoCursor(timeline=tuple((t, _snap(t)) for t in range(0, 100, 10)))
    cursor.advance_to(35)
    assert cursor.index == 4
    cursor.advance_to(35)
    assert cursor.index == 4
    cursor.advance_to(1_000)
    assert cursor.index == 10
    assert cursor.current is cursor.timeline[-1][1]
