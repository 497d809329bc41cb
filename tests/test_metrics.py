from __future__ import annotations

import json
from pathlib import Path

import pytest

from loc_history.metrics import MetricsError, measure_tree, metrics_command, parse_cloc_json, parse_tokei_json


def test_parse_cloc_json_keeps_tool_order_and_skips_totals() -> None:
    text = json.dumps(
        {
            "header": {"cloc_version": "2.00"},
            "Python": {"nFiles": 2, "blank": 4, "comment": 3, "code": 40},
            "Go": {"nFiles": 1, "blank": 0, "comment": 1, "code": 7},
            "SUM": {"nFiles": 3, "blank": 4, "comment": 4, "code": 47},
        }
    )
    snap = parse_cloc_json(text)
    assert list(snap) == ["Python", "Go"]
    assert snap["Python"].code_lines == 40
    assert snap["Python"].comment_lines == 3
    assert snap["Go"].total_lines == 8


def test_parse_cloc_json_empty_output_is_empty_snapshot() -> None:
    assert dict(parse_cloc_json("")) == {}
    with pytest.raises(MetricsError):
        parse_cloc_json("{not json")
    with pytest.raises(MetricsError):
        parse_cloc_json("[1, 2]")


def test_parse_tokei_json_current_and_legacy_layouts() -> None:
    text = json.dumps(
        {
            "Rust": {"blanks": 3, "code": 30, "comments": 5, "reports": [], "children": {}, "inaccurate": False},
            "Toml": {"stats": {"blanks": 0, "code": 4, "comments": 1}},
            "Total": {"blanks": 3, "code": 34, "comments": 6},
        }
    )
    snap = parse_tokei_json(text)
    assert list(snap) == ["Rust", "Toml"]
    assert (snap["Rust"].code_lines, snap["Rust"].comment_lines) == (30, 5)
    assert (snap["Toml"].code_lines, snap["Toml"].comment_lines) == (4, 1)


def test_negative_or_garbage_counts_become_zero() -> None:
    snap = parse_cloc_json(json.dumps({"C": {"code": "x", "comment": -3}}))
    assert (snap["C"].code_lines, snap["C"].comment_lines) == (0, 0)


def test_metrics_command_excludes_git_dir() -> None:
    cmd = metrics_command("cloc", Path("/tmp/tree"), ["node_modules"])
    assert cmd[0] == "cloc"
    assert "--exclude-dir=.git,node_modules" in cmd
    assert cmd[-1] == "/tmp/tree"
    assert metrics_command("tokei", Path("/tmp/tree"))[:3] == ["tokei", "--output", "json"]
    with pytest.raises(MetricsError):
        metrics_command("wc", Path("/tmp/tree"))


def test_measure_tree_runs_tool(tmp_path: Path, fake_cloc: Path) -> None:
    tree = tmp_path / "tree"
    (tree / "pkg").mkdir(parents=True)
    (tree / "pkg" / "a.py").write_text("# header\nx = 1\n\ny = 2\n", encoding="utf-8")
    (tree / "main.go").write_text("package main\n// c\n", encoding="utf-8")

    snap = measure_tree(tree, tool="cloc")
    assert (snap["Python"].code_lines, snap["Python"].comment_lines) == (2, 1)
    assert (snap["Go"].code_lines, snap["Go"].comment_lines) == (1, 1)


def test_measure_tree_reports_tool_failure(tmp_path: Path, fake_cloc: Path) -> None:
    tree = tmp_path / "tree"
    tree.mkdir()
    (tree / "BROKEN").write_text("", encoding="utf-8")
    with pytest.raises(MetricsError, match="exited 3"):
        measure_tree(tree, tool="cloc")


def test_measure_tree_missing_tool(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PATH", str(tmp_path / "nothing-here"))
    with pytest.raises(MetricsError, match="not found"):
        measure_tree(tmp_path, tool="tokei")
