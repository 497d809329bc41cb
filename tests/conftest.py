from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

FAKE_CLOC = '''
import json
import os
import sys

LANGS = {".py": ("Python", "#"), ".go": ("Go", "//")}


def main() -> int:
    root = sys.argv[-1]
    if os.path.exists(os.path.join(root, "BROKEN")):
        sys.stderr.write("cannot parse tree\\n")
        return 3
    out = {"header": {"cloc_version": "fake"}}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != ".git")
        for fn in sorted(filenames):
            ext = os.path.splitext(fn)[1]
            if ext not in LANGS:
                continue
            lang, marker = LANGS[ext]
            st = out.setdefault(lang, {"nFiles": 0, "blank": 0, "comment": 0, "code": 0})
            st["nFiles"] += 1
            with open(os.path.join(dirpath, fn), encoding="utf-8") as f:
                for line in f:
                    s = line.strip()
                    if not s:
                        st["blank"] += 1
                    elif s.startswith(marker):
                        st["comment"] += 1
                    else:
                        st["code"] += 1
    if len(out) == 1:
        return 0
    sys.stdout.write(json.dumps(out))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
'''


def run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def init_repo(repo: Path, *, remote: str = "") -> Path:
    repo.mkdir(parents=True, exist_ok=True)
    run(["git", "init", "--quiet"], cwd=repo)
    run(["git", "config", "user.name", "Test User"], cwd=repo)
    run(["git", "config", "user.email", "test@example.com"], cwd=repo)
    run(["git", "config", "commit.gpgsign", "false"], cwd=repo)
    if remote:
        run(["git", "remote", "add", "origin", remote], cwd=repo)
    return repo


def commit_files(repo: Path, files: dict[str, str | None], *, date: str) -> str:
    for name, content in files.items():
        p = repo / name
        if content is None:
            run(["git", "rm", "--quiet", name], cwd=repo)
            continue
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        run(["git", "add", name], cwd=repo)
    env = os.environ.copy()
    env["GIT_AUTHOR_DATE"] = date
    env["GIT_COMMITTER_DATE"] = date
    run(["git", "commit", "--quiet", "-m", f"update at {date}"], cwd=repo, env=env)
    return run(["git", "rev-parse", "HEAD"], cwd=repo).strip()


@pytest.fixture
def fake_cloc(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    bin_dir = tmp_path / "fake-bin"
    bin_dir.mkdir()
    script = bin_dir / "cloc"
    script.write_text(f"#!{sys.executable}\n" + FAKE_CLOC.lstrip("\n"), encoding="utf-8")
    script.chmod(0o755)
    monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep + os.environ.get("PATH", ""))
    return script
