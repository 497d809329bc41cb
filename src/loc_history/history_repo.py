from __future__ import annotations

import tempfile
from pathlib import Path

from .git import checkout_revision, clone_repo, list_revisions
from .history_days import sparsify
from .history_periods import Window
from .metrics import MetricsError, measure_tree
from .models import RepoHistory, RepoSource

ON_ERROR_EXCLUDE = "exclude"
ON_ERROR_SKIP = "skip"


def clamp_revision_times(revisions: list[tuple[int, str]]) -> tuple[list[tuple[int, str]], int]:
    """
    Make commit times non-decreasing in log order.

    `git log --reverse` follows parents, not dates, so committer times can step
    backwards after clock skew or imported history. Such a commit takes the time of the latest commit before it. Returns the
    adjusted list and how many times were raised.
    """
    out: list[tuple[int, str]] = []
    clamped = 0
    latest: int | None = None
    for ts, sha in revisions:
        if latest is not None and ts < latest:
            ts = latest
            clamped += 1
        latest = ts
        out.append((ts, sha))
    return out, clamped


def sample_revisions(revisions: list[tuple[int, str]], *, sparse: bool, max_commits: int = 0) -> list[tuple[int, str]]:
    picked = list(revisions)
    if max_commits and max_commits > 0:
        picked = picked[-max_commits:]
    if sparse:
        picked = sparsify(picked)
    return picked


def collect_repo_history(
    source: RepoSource,
    *,
    ref: str,
    first_parent: bool,
    window: Window,
    max_commits: int,
    sparse: bool,
    tool: str,
    exclude_dirnames: list[str],
    metrics_timeout_s: int,
    on_snapshot_error: str,
    work_dir: Path,
) -> RepoHistory:
    repo = Path(source.path)
    result = RepoHistory(source=source, points=[])

    revisions, errs = list_revisions(repo, ref, first_parent=first_parent, since=window.since_arg, until=window.until_arg)
    revisions, result.clamped_revisions = clamp_revision_times(revisions)
    result.errors.extend(errs)
    result.revisions_total = len(revisions)
    if not revisions:
        result.excluded = True
        if not errs:
            result.errors.append(f"no commits reachable from {ref!r} in the selected window")
        return result

    sampled = sample_revisions(revisions, sparse=sparse, max_commits=max_commits)
    result.revisions_sampled = len(sampled)

    work_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(prefix="loc-history-", dir=str(work_dir)) as tmp:
        tree = Path(tmp) / "tree"
        ok, err = clone_repo(str(repo), tree, shared=True)
        if not ok:
            result.errors.append(err)
            result.excluded = True
            return result

        for ts, sha in sampled:
            ok, err = checkout_revision(tree, sha)
            if ok:
                try:
                    snapshot = measure_tree(tree, tool=tool, exclude_dirnames=exclude_dirnames, timeout_s=metrics_timeout_s)
                except MetricsError as e:
                    ok, err = False, f"{sha[:12]}: {e}"
            if not ok:
                result.failed_revisions.append(sha)
                result.errors.append(err)
                if on_snapshot_error == ON_ERROR_EXCLUDE:
                    result.excluded = True
                    result.points = []
                    return result
                continue
            result.points.append((ts, sha, snapshot))

    if not result.points:
        result.excluded = True
    return result
