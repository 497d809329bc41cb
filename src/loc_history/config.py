from __future__ import annotations

import json
import shutil
import sys
from pathlib import Path

from .metrics import SUPPORTED_TOOLS

DEFAULT_CONFIG: dict = {
    "metrics_tool": "cloc",
    "metrics_timeout_s": 600,
    "on_snapshot_error": "exclude",
    "exclude_dirnames": [".git", ".venv", "node_modules", "vendor", "dist", "build", "target", "__pycache__"],
    "excluded_repos": [],
    "remote_name_priority": ["origin", "upstream"],
    "work_dir": "",
}


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON in {config_path}: {e}") from None
    if not isinstance(data, dict):
        raise SystemExit(f"Config {config_path} must contain a JSON object")
    return data


def save_config(config_path: Path, config: dict) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def infer_metrics_tool() -> str:
    for tool in SUPPORTED_TOOLS:
        if shutil.which(tool):
            return tool
    return ""


def with_defaults(config: dict) -> dict:
    out = json.loads(json.dumps(DEFAULT_CONFIG))
    out.update({k: v for k, v in config.items() if v is not None})

    tool = str(out.get("metrics_tool") or "cloc").strip().lower()
    if tool not in SUPPORTED_TOOLS:
        raise SystemExit(f"config: metrics_tool must be one of {', '.join(SUPPORTED_TOOLS)}, got {tool!r}")
    out["metrics_tool"] = tool

    policy = str(out.get("on_snapshot_error") or "exclude").strip().lower()
    if policy not in ("exclude", "skip"):
        raise SystemExit(f"config: on_snapshot_error must be 'exclude' or 'skip', got {policy!r}")
    out["on_snapshot_error"] = policy

    try:
        out["metrics_timeout_s"] = int(out.get("metrics_timeout_s") or DEFAULT_CONFIG["metrics_timeout_s"])
    except (TypeError, ValueError):
        raise SystemExit(f"config: metrics_timeout_s must be an integer, got {out.get('metrics_timeout_s')!r}") from None

    for key in ("exclude_dirnames", "excluded_repos", "remote_name_priority"):
        if not isinstance(out.get(key), list):
            raise SystemExit(f"config: {key} must be a list")
    return out


def ensure_config_file(*, config_path: Path, template_path: Path | None = None, interactive: bool | None = None) -> dict:
    """
    If `config_path` does not exist, create it from `template_path` (or the
    built-in defaults), pick a metrics tool that is actually installed, then
    re-load and return the config dict.
    """
    if config_path.exists():
        return load_config(config_path)

    if template_path is not None and template_path.exists():
        config = json.loads(template_path.read_text(encoding="utf-8"))
    else:
        config = json.loads(json.dumps(DEFAULT_CONFIG))

    if not shutil.which(str(config.get("metrics_tool") or "")):
        found = infer_metrics_tool()
        if found:
            config["metrics_tool"] = found

    save_config(config_path, config)

    if interactive is None:
        interactive = sys.stdin.isatty() and sys.stdout.isatty()
    if interactive:
        print(f"\nWrote new config: {config_path}")
        print(f"- metrics_tool: {config.get('metrics_tool')!r}")
        print(f"- on_snapshot_error: {config.get('on_snapshot_error')!r}")

    return load_config(config_path)
