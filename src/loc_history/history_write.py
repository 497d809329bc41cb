from __future__ import annotations

import csv
import json
from pathlib import Path

from .history_days import day_iso, timestamp_iso
from .models import MODE_TOTAL, HistoryTable, RepoHistory


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: object) -> None:
    path.write_text(json.dumps(data, indent=2, sort_keys=False), encoding="utf-8")


def column_descriptions(table: HistoryTable) -> dict[str, str]:
    if table.mode == MODE_TOTAL:
        out = {"Code": "code lines summed over all repositories and languages"}
        if table.include_comments:
            out["Comments"] = "code + comment lines (stacked total, not comment lines alone)"
        return out
    what = "code + comment lines" if table.include_comments else "code lines"
    return {lang: f"{what} for {lang}, summed over all repositories" for lang in table.columns}


def write_history_csv(path: Path, table: HistoryTable) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["timestamp", "date", *table.columns])
        for row in table.rows:
            writer.writerow([row.timestamp, day_iso(row.timestamp), *row.values])


def write_history_json(path: Path, table: HistoryTable, *, meta: dict[str, object]) -> None:
    write_json(
        path,
        {
            **meta,
            "mode": table.mode,
            "include_comments": table.include_comments,
            "repos": table.repos,
            "languages": table.languages,
            "columns": table.columns,
            "column_descriptions": column_descriptions(table),
            "rows": [
                {"timestamp": row.timestamp, "time": timestamp_iso(row.timestamp), "values": list(row.values)}
                for row in table.rows
            ],
        },
    )


def write_gnuplot(dat_path: Path, gp_path: Path, table: HistoryTable, *, title: str) -> None:
    with dat_path.open("w", encoding="utf-8") as f:
        f.write("# timestamp " + " ".join(c.replace(" ", "_") for c in table.columns) + "\n")
        for row in table.rows:
            f.write(" ".join(str(v) for v in (row.timestamp, *row.values)) + "\n")

    # Larger areas first so smaller ones stay visible on top.
    order = list(range(len(table.columns)))
    if table.rows:
        last = table.rows[-1].values
        order.sort(key=lambda i: -last[i])
    else:
        order.reverse()

    lines = [
        f'set title "{title}"',
        "set xdata time",
        'set timefmt "%s"',
        'set format x "%Y-%m-%d"',
        "set xtics rotate by -45",
        'set ylabel "Lines"',
        "set key top left",
        "set style fill transparent solid 0.5 noborder",
        "set terminal pngcairo size 1280,720",
        f'set output "{gp_path.with_suffix(".png").name}"',
    ]
    if not table.columns:
        lines.append("# no columns to plot")
    else:
        parts = [f'"{dat_path.name}" using 1:{i + 2} with filledcurves x1 title "{table.columns[i]}"' for i in order]
        lines.append("plot " + ", \\\n     ".join(parts))
    gp_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def write_repos_csv(path: Path, histories: list[RepoHistory]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "repo",
                "repo_path",
                "remote_canonical",
                "duplicate_paths",
                "status",
                "revisions_total",
                "revisions_sampled",
                "snapshots",
                "failed_revisions",
                "clamped_revisions",
                "first_snapshot",
                "last_snapshot",
                "errors",
            ]
        )
        for h in histories:
            first = h.first_timestamp
            last = h.last_timestamp
            writer.writerow(
                [
                    h.source.label,
                    h.source.path,
                    h.source.remote_canonical,
                    ";".join(h.source.duplicates),
                    "excluded" if h.excluded else "included",
                    h.revisions_total,
                    h.revisions_sampled,
                    len(h.points),
                    len(h.failed_revisions),
                    h.clamped_revisions,
                    timestamp_iso(first) if first is not None else "",
                    timestamp_iso(last) if last is not None else "",
                    " | ".join(h.errors),
                ]
            )


def write_repo_selection_csv(path: Path, rows: list[dict[str, str]]) -> None:
    if not rows:
        return
    fieldnames: list[str] = []
    for r in rows:
        for k in r.keys():
            if k not in fieldnames:
                fieldnames.append(k)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in rows:
            writer.writerow(r)
