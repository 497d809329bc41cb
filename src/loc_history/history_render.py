from __future__ import annotations

from .history_days import day_iso
from .models import MODE_TOTAL, HistoryTable, RepoHistory

SUMMARY_BANNER = r"""
+------------------------------------------------------------------------+
|                            LINES OF CODE HISTORY                       |
+------------------------------------------------------------------------+
""".strip("\n")


def fmt_int(n: int) -> str:
    n = int(n)
    sign = "-" if n < 0 else ""
    a = abs(n)
    for div, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if a >= div:
            v = a / div
            s = f"{v:.1f}" if v < 100 else f"{v:.0f}"
            if s.endswith(".0"):
                s = s[:-2]
            return f"{sign}{s}{suffix}"
    return f"{sign}{a}"


def pct_change(before: int, after: int) -> str:
    if before == 0:
        return "n/a" if after == 0 else "+inf"
    pct = round(((after - before) / before) * 100)
    sign = "+" if pct >= 0 else "-"
    return f"{sign}{fmt_int(abs(pct))}%"


def trunc(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    if max_len <= 1:
        return s[:max_len]
    return s[: max_len - 1] + "…"


def bar(value: int, max_value: int, width: int = 22) -> str:
    if max_value <= 0:
        filled = 0
    else:
        filled = int(round((value / max_value) * width))
    filled = max(0, min(width, filled))
    return "[" + ("#" * filled) + ("-" * (width - filled)) + "]"


def render_summary(table: HistoryTable, histories: list[RepoHistory], *, top_n: int = 15) -> str:
    lines: list[str] = [SUMMARY_BANNER, ""]
    included = [h for h in histories if not h.excluded]
    excluded = [h for h in histories if h.excluded]
    lines.append(f"Repos: {len(included)} included, {len(excluded)} excluded")
    lines.append(f"Mode: {'total' if table.mode == MODE_TOTAL else 'by language'}, comments {'included' if table.include_comments else 'excluded'}")

    if not table.rows:
        lines.append("")
        lines.append("No snapshots collected; nothing to report.")
        return "\n".join(lines) + "\n"

    first = table.rows[0]
    last = table.rows[-1]
    lines.append(f"Timeline: {day_iso(first.timestamp)} -> {day_iso(last.timestamp)} ({len(table.rows)} points)")
    lines.append("")

    cols = list(zip(table.columns, first.values, last.values))
    if table.mode != MODE_TOTAL:
        cols.sort(key=lambda c: (-c[2], c[0]))
    shown = cols[:top_n]
    max_value = max((c[2] for c in shown), default=0)
    width = max((len(trunc(c[0], 24)) for c in shown), default=4)
    for name, start, end in shown:
        lines.append(f"  {trunc(name, 24):<{width}}  {bar(end, max_value)}  {fmt_int(end):>7}  ({pct_change(start, end)} since start)")
    if len(cols) > len(shown):
        lines.append(f"  ... {len(cols) - len(shown)} more")
    if table.mode == MODE_TOTAL and table.include_comments:
        lines.append("")
        lines.append("Note: 'Comments' is code + comment lines (stacked total).")

    if excluded:
        lines.append("")
        lines.append("Excluded repos:")
        for h in excluded:
            reason = h.errors[0] if h.errors else "no snapshots"
            lines.append(f"  - {h.source.label}: {trunc(reason, 100)}")
    return "\n".join(lines) + "\n"
