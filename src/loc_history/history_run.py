from __future__ import annotations

import argparse
import datetime as dt
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from .config import ensure_config_file, load_config, with_defaults
from .history_aggregate import build_history
from .history_periods import Window, parse_window
from .history_render import render_summary
from .history_repo import ON_ERROR_SKIP, collect_repo_history
from .history_selection import select_repos
from .history_store import SnapshotStore
from .history_write import (
    ensure_dir,
    write_gnuplot,
    write_history_csv,
    write_history_json,
    write_repo_selection_csv,
    write_repos_csv,
)
from .models import HistoryTable, RepoHistory


def format_startup_header(
    *,
    repos: list[str],
    root: Path | None,
    config_path: Path,
    config_missing: bool,
    window: Window,
    ref: str,
    tool: str,
    jobs: int,
    sparse: bool,
    by_language: bool,
    include_comments: bool,
    on_snapshot_error: str,
) -> str:
    sources = ", ".join(repos) if repos else "(none on the command line)"
    lines = [
        "┌──────────────────────────────────────────────────────────────┐",
        "│                       git-loc-history                        │",
        "└──────────────────────────────────────────────────────────────┘",
        "",
        "Run plan:",
        f"1) Config: {config_path}{' (will be created)' if config_missing else ''}",
        f"2) Repos: {sources}" + (f" + git roots under {root}" if root is not None else ""),
        f"3) Sample history: ref={ref} window={window.label} {'one commit per day' if sparse else 'every commit'}",
        f"4) Measure each sample with {tool} ({jobs} parallel repos, on error: {on_snapshot_error})",
        f"5) Write series: {'per language' if by_language else 'totals'}, comments {'on' if include_comments else 'off'}",
        "",
        "Repositories are read-only: samples are checked out in scratch clones.",
        "",
    ]
    return "\n".join(lines)


def collect_histories(
    sources: list,
    *,
    args: argparse.Namespace,
    config: dict,
    tool: str,
    on_snapshot_error: str,
    window: Window,
    work_dir: Path,
) -> list[RepoHistory]:
    with ThreadPoolExecutor(max_workers=max(1, int(args.jobs))) as ex:
        futs = {
            ex.submit(
                collect_repo_history,
                src,
                ref=str(args.ref),
                first_parent=not bool(args.all_parents),
                window=window,
                max_commits=int(args.max_commits),
                sparse=not bool(args.no_sparse),
                tool=tool,
                exclude_dirnames=list(config["exclude_dirnames"]),
                metrics_timeout_s=int(config["metrics_timeout_s"]),
                on_snapshot_error=on_snapshot_error,
                work_dir=work_dir,
            ): idx
            for idx, src in enumerate(sources)
        }
        by_index: dict[int, RepoHistory] = {}
        for i, fut in enumerate(as_completed(futs), start=1):
            h = fut.result()
            by_index[futs[fut]] = h
            status = "excluded" if h.excluded else f"{len(h.points)} snapshots"
            if h.clamped_revisions:
                status += f", {h.clamped_revisions} out-of-order commit times clamped"
            print(f"[{i}/{len(futs)}] {h.source.label}: {status}")
            for err in h.errors[:3]:
                print(f"    {err}", file=sys.stderr)
    # Input order, not completion order; language discovery order depends on it.
    return [by_index[i] for i in range(len(sources))]


def store_from_histories(histories: list[RepoHistory]) -> SnapshotStore:
    store = SnapshotStore()
    for h in histories:
        if h.excluded:
            continue
        for ts, _sha, snapshot in h.points:
            store.add(h.source.label, ts, snapshot)
    return store


def write_outputs(
    *,
    report_dir: Path,
    table: HistoryTable,
    histories: list[RepoHistory],
    selection_rows: list[dict[str, str]],
    meta: dict[str, object],
) -> None:
    ensure_dir(report_dir)
    write_history_csv(report_dir / "history.csv", table)
    write_history_json(report_dir / "history.json", table, meta=meta)
    write_gnuplot(report_dir / "history.dat", report_dir / "history.gp", table, title="Lines of code over time")
    write_repos_csv(report_dir / "repos.csv", histories)
    write_repo_selection_csv(report_dir / "repo_selection.csv", selection_rows)
    (report_dir / "summary.txt").write_text(render_summary(table, histories), encoding="utf-8")


def run_history(*, args: argparse.Namespace) -> int:
    try:
        window = parse_window(str(args.since or ""), str(args.until or ""))
    except ValueError as e:
        raise SystemExit(str(e)) from None

    config_missing = bool(args.config) and not args.config.exists()
    if config_missing and args.write_config:
        candidate_template = args.config.resolve().parent / "config-template.json"
        raw = ensure_config_file(
            config_path=args.config,
            template_path=candidate_template if candidate_template.exists() else Path("config-template.json").resolve(),
        )
    else:
        raw = load_config(args.config)
    config = with_defaults(raw)
    tool = str(args.tool or config["metrics_tool"])
    on_snapshot_error = ON_ERROR_SKIP if bool(args.keep_going) else str(config["on_snapshot_error"])

    root = args.root.resolve() if args.root is not None else None
    print(
        format_startup_header(
            repos=list(args.repos),
            root=root,
            config_path=args.config,
            config_missing=config_missing and bool(args.write_config),
            window=window,
            ref=str(args.ref),
            tool=tool,
            jobs=int(args.jobs),
            sparse=not bool(args.no_sparse),
            by_language=bool(args.by_language),
            include_comments=not bool(args.no_comments),
            on_snapshot_error=on_snapshot_error,
        )
    )

    if not args.repos and root is None:
        print("No repositories given; pass paths/URLs or --root.", file=sys.stderr)
        return 2

    work_base = Path(str(config.get("work_dir") or "")).expanduser() if config.get("work_dir") else None
    if work_base is not None:
        ensure_dir(work_base)
    with tempfile.TemporaryDirectory(prefix="loc-history-run-", dir=str(work_base) if work_base else None) as tmp:
        work_dir = Path(tmp)
        sources, selection_rows = select_repos(
            list(args.repos),
            scan_root=root,
            exclude_dirnames=set(config["exclude_dirnames"]) | {".git"},
            excluded_repos=list(config["excluded_repos"]),
            remote_name_priority=list(config["remote_name_priority"]),
            dedupe=str(args.dedupe),
            clone_dir=work_dir / "clones",
        )
        if not sources:
            print("No usable git repositories found.", file=sys.stderr)
            return 2
        print(f"Collecting history for {len(sources)} repos...")
        histories = collect_histories(
            sources,
            args=args,
            config=config,
            tool=tool,
            on_snapshot_error=on_snapshot_error,
            window=window,
            work_dir=work_dir / "trees",
        )

    store = store_from_histories(histories)
    table = build_history(
        store.timelines(),
        sparse=not bool(args.no_sparse),
        by_language=bool(args.by_language),
        include_comments=not bool(args.no_comments),
    )

    if args.output_dir is not None:
        report_dir = args.output_dir.resolve()
    else:
        reports_root = Path("reports").resolve()
        report_dir = reports_root / dt.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        ensure_dir(report_dir)
        (reports_root / "latest.txt").write_text(str(report_dir.relative_to(reports_root)) + "\n", encoding="utf-8")

    meta: dict[str, object] = {
        "generated_at": dt.datetime.now(tz=dt.timezone.utc).isoformat(),
        "ref": str(args.ref),
        "window": {"since": window.start.isoformat() if window.start else None, "until": window.end.isoformat() if window.end else None},
        "sparse": not bool(args.no_sparse),
        "first_parent": not bool(args.all_parents),
        "metrics_tool": tool,
        "on_snapshot_error": on_snapshot_error,
    }
    write_outputs(report_dir=report_dir, table=table, histories=histories, selection_rows=selection_rows, meta=meta)

    print("")
    print(render_summary(table, histories))
    if not table.rows:
        print(f"No snapshots collected. Details in: {report_dir}", file=sys.stderr)
        return 2
    print(f"Done. Reports in: {report_dir}")
    return 0
