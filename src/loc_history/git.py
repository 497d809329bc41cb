from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse


def run_git(args: list[str], cwd: Path, timeout_s: int = 300) -> tuple[int, str, str]:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        return 124, "", f"git {' '.join(args[:2])} timed out after {timeout_s}s"
    return proc.returncode, proc.stdout, proc.stderr


def discover_git_roots(root: Path, exclude_dirnames: set[str]) -> list[Path]:
    roots: list[Path] = []

    def onerror(err: OSError) -> None:
        _ = err

    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        has_git = ".git" in dirnames or ".git" in filenames
        if has_git:
            roots.append(Path(dirpath))
        dirnames[:] = sorted(d for d in dirnames if d not in exclude_dirnames and d != ".git")
    return roots


def get_repo_toplevel(candidate: Path) -> Optional[Path]:
    if not candidate.is_dir():
        return None
    code, out, _ = run_git(["rev-parse", "--show-toplevel"], cwd=candidate)
    if code != 0:
        return None
    try:
        return Path(out.strip()).resolve()
    except OSError:
        return None


def is_remote_url(spec: str) -> bool:
    s = (spec or "").strip()
    if "://" in s:
        return True
    # scp-like syntax: git@host:org/repo.git
    head = s.split(":", 1)[0]
    return ":" in s and "@" in head and "/" not in head


def canonicalize_remote(remote: str) -> str:
    r = (remote or "").strip()
    if not r:
        return ""

    if "://" not in r and ":" in r and "@" in r.split(":", 1)[0]:
        left, path = r.split(":", 1)
        host = left.split("@", 1)[1]
        canon = f"{host}/{path}"
    else:
        parsed = urlparse(r)
        if parsed.scheme and parsed.netloc:
            host = parsed.netloc
            if "@" in host:
                host = host.split("@", 1)[1]
            canon = f"{host}/{parsed.path.lstrip('/')}"
        else:
            canon = r

    canon = canon.rstrip("/")
    if canon.endswith(".git"):
        canon = canon[:-4]
    return canon.lower()


def get_remote_urls(repo: Path) -> dict[str, str]:
    code, out, _ = run_git(["config", "--get-regexp", r"^remote\..*\.url$"], cwd=repo)
    if code != 0:
        return {}
    remotes: dict[str, str] = {}
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            key, url = line.split(None, 1)
        except ValueError:
            continue
        if not key.startswith("remote.") or not key.endswith(".url"):
            continue
        name = key[len("remote.") : -len(".url")]
        url = url.strip()
        if name and url:
            remotes[name] = url
    return remotes


def select_remote(remotes: dict[str, str], *, priority: list[str]) -> tuple[str, str, str]:
    if not remotes:
        return "", "", ""

    prio_index = {name: i for i, name in enumerate(priority)}

    def sort_key(t: tuple[str, str]) -> tuple[int, str]:
        name = t[0]
        return (prio_index.get(name, 10_000), name.lower())

    name, url = sorted(remotes.items(), key=sort_key)[0]
    return name, url, canonicalize_remote(url)


def get_last_commit_ts(repo: Path, ref: str = "HEAD") -> int | None:
    code, out, _ = run_git(["log", "-n", "1", "--format=%ct", ref, "--"], cwd=repo)
    if code != 0:
        return None
    try:
        return int(out.strip())
    except ValueError:
        return None


def list_revisions(
    repo: Path,
    ref: str = "HEAD",
    *,
    first_parent: bool = True,
    since: str = "",
    until: str = "",
    timeout_s: int = 300,
) -> tuple[list[tuple[int, str]], list[str]]:
    """
    Oldest-first (commit timestamp, sha) pairs reachable from `ref`.

    Returns the pairs and a list of error strings; a failing `git log` yields
    no pairs and one error.
    """
    args = ["log", "--reverse", "--format=%ct %H"]
    if first_parent:
        args.append("--first-parent")
    if since:
        args.append(f"--since={since}")
    if until:
        args.append(f"--until={until}")
    args += [ref, "--"]

    code, out, err = run_git(args, cwd=repo, timeout_s=timeout_s)
    if code != 0:
        return [], [f"git log exited {code}: {err.strip()[:500]}"]

    revisions: list[tuple[int, str]] = []
    errors: list[str] = []
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split(" ", 1)
        if len(parts) != 2:
            errors.append(f"unparseable git log line: {line[:200]!r}")
            continue
        try:
            ts = int(parts[0])
        except ValueError:
            errors.append(f"unparseable commit time: {line[:200]!r}")
            continue
        revisions.append((ts, parts[1].strip()))
    return revisions, errors


def clone_repo(source: str, dest: Path, *, shared: bool = False, timeout_s: int = 1800) -> tuple[bool, str]:
    dest.parent.mkdir(parents=True, exist_ok=True)
    args = ["clone", "--quiet", "--no-checkout"]
    if shared:
        args.append("--shared")
    args += [source, str(dest)]
    code, _, err = run_git(args, cwd=dest.parent, timeout_s=timeout_s)
    if code != 0:
        return False, f"git clone exited {code}: {err.strip()[:500]}"
    return True, ""


def checkout_revision(worktree: Path, sha: str, timeout_s: int = 600) -> tuple[bool, str]:
    code, _, err = run_git(["checkout", "--force", "--quiet", "--detach", sha], cwd=worktree, timeout_s=timeout_s)
    if code != 0:
        return False, f"git checkout {sha[:12]} exited {code}: {err.strip()[:500]}"
    # Drop files an earlier revision left behind outside the index.
    code, _, err = run_git(["clean", "-d", "--force", "--quiet", "-x"], cwd=worktree, timeout_s=timeout_s)
    if code != 0:
        return False, f"git clean exited {code}: {err.strip()[:500]}"
    return True, ""
