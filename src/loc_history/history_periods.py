from __future__ import annotations

import dataclasses
import datetime as dt


@dataclasses.dataclass(frozen=True)
class Window:
    start: dt.date | None = None  # inclusive
    end: dt.date | None = None  # exclusive

    @property
    def since_arg(self) -> str:
        return f"{self.start.isoformat()}T00:00:00Z" if self.start else ""

    @property
    def until_arg(self) -> str:
        return f"{self.end.isoformat()}T00:00:00Z" if self.end else ""

    @property
    def label(self) -> str:
        if not self.start and not self.end:
            return "all"
        a = self.start.isoformat() if self.start else "start"
        b = self.end.isoformat() if self.end else "now"
        return f"{a}_to_{b}"


def parse_date_arg(value: str) -> dt.date | None:
    s = (value or "").strip()
    if not s:
        return None
    if len(s) == 4 and s.isdigit():
        return dt.date(int(s), 1, 1)
    if len(s) == 7 and s[4] == "-" and s[:4].isdigit() and s[5:].isdigit():
        return dt.date(int(s[:4]), int(s[5:]), 1)
    try:
        return dt.date.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Invalid date: {value!r} (expected YYYY, YYYY-MM or YYYY-MM-DD)") from None


def parse_window(since: str, until: str) -> Window:
    w = Window(start=parse_date_arg(since), end=parse_date_arg(until))
    if w.start and w.end and w.end <= w.start:
        raise ValueError(f"--until ({w.end}) must be after --since ({w.start})")
    return w


def slugify(s: str) -> str:
    s = (s or "").strip()
    out: list[str] = []
    for ch in s:
        if ch.isalnum() or ch in ("-", "_"):
            out.append(ch)
        else:
            out.append("-")
    slug = "".join(out).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug or "run"
