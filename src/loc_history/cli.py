from __future__ import annotations

import sys

from . import history_cli


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] == "--version":
        from importlib.metadata import PackageNotFoundError, version

        try:
            print(f"git-loc-history {version('git-loc-history')}")
        except PackageNotFoundError:
            print("git-loc-history (not installed)")
        return 0
    return history_cli.main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
