from __future__ import annotations

import argparse
import os
from pathlib import Path

from .history_run import run_history
from .metrics import SUPPORTED_TOOLS


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Plot how lines of code evolve over the git history of one or more repos.")
    parser.add_argument("repos", nargs="*", default=[], help="Repository paths or clone URLs.")
    parser.add_argument("--root", type=Path, default=None, help="Also analyze every git repo found under this directory.")
    parser.add_argument("--config", type=Path, default=Path("config.json"), help="Path to config.json.")
    parser.add_argument("--write-config", action="store_true", help="Create --config with defaults when it does not exist.")
    parser.add_argument("--ref", type=str, default="HEAD", help="Ref whose history is sampled in every repo.")
    parser.add_argument("--since", type=str, default="", help="Only sample commits on/after this date (YYYY, YYYY-MM, YYYY-MM-DD).")
    parser.add_argument("--until", type=str, default="", help="Only sample commits before this date.")
    parser.add_argument("--max-commits", type=int, default=0, help="Sample only the newest N commits per repo (0 = no limit).")
    parser.add_argument("--all-parents", action="store_true", help="Follow merged branches instead of first-parent history.")
    parser.add_argument("--no-sparse", action="store_true", help="Sample every commit instead of one per calendar day.")
    parser.add_argument("--by-language", action="store_true", help="One series per language instead of totals.")
    parser.add_argument("--no-comments", action="store_true", help="Count code lines only.")
    parser.add_argument("--tool", choices=list(SUPPORTED_TOOLS), default="", help="Metrics tool (overrides `metrics_tool`).")
    parser.add_argument("--jobs", type=int, default=max(1, min(8, (os.cpu_count() or 4))), help="Repos measured in parallel.")
    parser.add_argument("--dedupe", choices=["remote", "path"], default="remote", help="Dedupe repos by remote or by path.")
    parser.add_argument("--keep-going", action="store_true", help="Skip failed samples instead of dropping the repo.")
    parser.add_argument("--output-dir", type=Path, default=None, help="Write reports here instead of reports/<timestamp>/.")
    return parser


def main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.jobs < 1:
        parser.error("--jobs must be >= 1")
    if args.max_commits < 0:
        parser.error("--max-commits must be >= 0")
    return run_history(args=args)
