from __future__ import annotations

import hashlib
from pathlib import Path

from .git import (
    canonicalize_remote,
    clone_repo,
    discover_git_roots,
    get_last_commit_ts,
    get_remote_urls,
    get_repo_toplevel,
    is_remote_url,
    select_remote,
)
from .history_periods import slugify
from .models import RepoSource


def _repo_key_for(dedupe_key: str) -> str:
    s = (dedupe_key or "").strip()
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def _is_excluded(path: str, remote_canonical: str, excluded_repos: list[str]) -> bool:
    for ex in excluded_repos:
        ex = str(ex or "").strip()
        if not ex:
            continue
        if remote_canonical and canonicalize_remote(ex) == remote_canonical:
            return True
        try:
            if Path(ex).expanduser().resolve() == Path(path):
                return True
        except OSError:
            continue
    return False


def _unique_label(label: str, taken: set[str]) -> str:
    out = label
    n = 2
    while out in taken:
        out = f"{label}#{n}"
        n += 1
    taken.add(out)
    return out


def select_repos(
    specs: list[str],
    *,
    scan_root: Path | None,
    exclude_dirnames: set[str],
    excluded_repos: list[str],
    remote_name_priority: list[str],
    dedupe: str,
    clone_dir: Path,
) -> tuple[list[RepoSource], list[dict[str, str]]]:
    """
    Resolve command-line repository specs (paths or remote URLs) and, when
    `scan_root` is given, every git root below it. Remote URLs are cloned into
    `clone_dir`. Returns the repositories in input order plus one selection row
    per candidate.
    """
    candidates: list[tuple[str, Path | None, str]] = []  # (spec, local path, remote url)
    for spec in specs:
        s = str(spec or "").strip()
        if not s:
            continue
        if is_remote_url(s):
            candidates.append((s, None, s))
        else:
            candidates.append((s, Path(s).expanduser(), ""))
    if scan_root is not None:
        for root in discover_git_roots(scan_root, exclude_dirnames):
            candidates.append((str(root), root, ""))

    by_key: dict[str, dict] = {}
    selection_rows: list[dict[str, str]] = []
    for spec, local, url in candidates:
        if local is None:
            canon = canonicalize_remote(url)
            if _is_excluded("", canon, excluded_repos):
                selection_rows.append({"candidate": spec, "status": "skipped", "reason": "excluded_repos", "remote_canonical": canon})
                continue
            if dedupe == "remote" and canon in by_key:
                by_key[canon]["dups"].append(spec)
                selection_rows.append({"candidate": spec, "status": "duplicate", "remote_canonical": canon})
                continue
            dest = clone_dir / slugify(canon or url)
            if dest.exists() and get_repo_toplevel(dest) == dest.resolve():
                ok, err = True, ""
            else:
                print(f"Cloning {url} ...")
                ok, err = clone_repo(url, dest)
            if not ok:
                selection_rows.append({"candidate": spec, "status": "skipped", "reason": "clone_failed", "error": err})
                continue
            top = dest.resolve()
            remote_canonical = canon
        else:
            top = get_repo_toplevel(local)
            if top is None:
                selection_rows.append({"candidate": spec, "status": "skipped", "reason": "not_a_git_repo"})
                continue
            remotes = get_remote_urls(top)
            _, url, remote_canonical = select_remote(remotes, priority=remote_name_priority)
            if _is_excluded(str(top), remote_canonical, excluded_repos):
                selection_rows.append(
                    {"candidate": spec, "repo_path": str(top), "status": "skipped", "reason": "excluded_repos", "remote_canonical": remote_canonical}
                )
                continue

        if dedupe == "remote" and remote_canonical:
            dedupe_key = remote_canonical
        else:
            dedupe_key = str(top)

        entry = by_key.get(dedupe_key)
        if entry is None:
            by_key[dedupe_key] = {"repo": top, "remote": url, "remote_canonical": remote_canonical, "dups": [], "last_ts": None}
            selection_rows.append(
                {
                    "candidate": spec,
                    "repo_path": str(top),
                    "status": "included",
                    "dedupe_key": dedupe_key,
                    "remote_canonical": remote_canonical,
                }
            )
            continue

        if str(top) == str(entry["repo"]):
            selection_rows.append({"candidate": spec, "repo_path": str(top), "status": "duplicate", "dedupe_key": dedupe_key})
            continue

        # Several clones of one remote: keep the one with the newest commit.
        cand_ts = get_last_commit_ts(top)
        if entry["last_ts"] is None:
            entry["last_ts"] = get_last_commit_ts(entry["repo"])
        entry_ts = entry["last_ts"]
        if cand_ts is not None and (entry_ts is None or cand_ts > entry_ts):
            prev = str(entry["repo"])
            entry["dups"].append(prev)
            entry["repo"] = top
            entry["last_ts"] = cand_ts
            selection_rows.append(
                {"candidate": spec, "repo_path": str(top), "status": "included", "dedupe_key": dedupe_key, "note": f"replaced_clone:{prev}"}
            )
        else:
            entry["dups"].append(str(top))
            selection_rows.append(
                {"candidate": spec, "repo_path": str(top), "status": "duplicate", "dedupe_key": dedupe_key, "note": f"kept_clone:{entry['repo']}"}
            )

    taken: set[str] = set()
    repos: list[RepoSource] = []
    for dedupe_key, v in by_key.items():
        label = v["remote_canonical"] or Path(v["repo"]).name
        repos.append(
            RepoSource(
                key=_repo_key_for(dedupe_key),
                label=_unique_label(label, taken),
                path=str(v["repo"]),
                remote=v["remote"],
                remote_canonical=v["remote_canonical"],
                duplicates=list(v["dups"]),
            )
        )
    return repos, selection_rows
