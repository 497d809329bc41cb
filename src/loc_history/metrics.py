from __future__ import annotations

import json
import subprocess
from pathlib import Path

from .models import LanguageMetric, Snapshot, make_snapshot

SUPPORTED_TOOLS = ("cloc", "tokei")


class MetricsError(RuntimeError):
    pass


def metrics_command(tool: str, path: Path, exclude_dirnames: list[str] | None = None) -> list[str]:
    excluded = sorted({".git", *(exclude_dirnames or [])})
    if tool == "cloc":
        return ["cloc", "--json", "--quiet", f"--exclude-dir={','.join(excluded)}", str(path)]
    if tool == "tokei":
        cmd = ["tokei", "--output", "json"]
        for d in excluded:
            cmd += ["--exclude", d]
        return cmd + [str(path)]
    raise MetricsError(f"Unsupported metrics tool: {tool!r} (expected one of {', '.join(SUPPORTED_TOOLS)})")


def _as_count(value: object) -> int:
    try:
        n = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def parse_cloc_json(text: str) -> Snapshot:
    if not text.strip():
        # cloc prints nothing at all for a tree without recognized files.
        return make_snapshot({})
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MetricsError(f"cloc produced invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MetricsError("cloc JSON output is not an object")

    metrics: dict[str, LanguageMetric] = {}
    for lang, st in data.items():
        if lang in ("header", "SUM") or not isinstance(st, dict):
            continue
        metrics[str(lang)] = LanguageMetric(code_lines=_as_count(st.get("code")), comment_lines=_as_count(st.get("comment")))
    return make_snapshot(metrics)


def parse_tokei_json(text: str) -> Snapshot:
    try:
        data = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise MetricsError(f"tokei produced invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MetricsError("tokei JSON output is not an object")

    metrics: dict[str, LanguageMetric] = {}
    for lang, st in data.items():
        if lang == "Total" or not isinstance(st, dict):
            continue
        # tokei < 12 nests the counters under "stats"
        if "code" not in st and isinstance(st.get("stats"), dict):
            st = st["stats"]
        metrics[str(lang)] = LanguageMetric(code_lines=_as_count(st.get("code")), comment_lines=_as_count(st.get("comments")))
    return make_snapshot(metrics)


def measure_tree(
    path: Path,
    *,
    tool: str = "cloc",
    exclude_dirnames: list[str] | None = None,
    timeout_s: int = 600,
) -> Snapshot:
    cmd = metrics_command(tool, path, exclude_dirnames)
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_s)
    except FileNotFoundError as e:
        raise MetricsError(f"{tool} not found on PATH; install it or pick another tool with --tool") from e
    except subprocess.TimeoutExpired as e:
        raise MetricsError(f"{tool} timed out after {timeout_s}s on {path}") from e

    if proc.returncode != 0:
        raise MetricsError(f"{tool} exited {proc.returncode}: {proc.stderr.strip()[:500]}")

    if tool == "cloc":
        return parse_cloc_json(proc.stdout)
    return parse_tokei_json(proc.stdout)
