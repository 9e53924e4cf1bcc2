"""Configuration and runtime directory bootstrapping."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

DATA_DIR_ENV = "WEBLET_HOME"

DEFAULT_CONFIG: dict[str, Any] = {
    "launch": {
        "wait_budget_seconds": 4.0,
        "poll_interval_seconds": 0.2,
        "stale_after_seconds": 10.0,
    },
    "probe": {
        "command_timeout_seconds": 2.0,
    },
    "browser": {
        "candidates": ["google-chrome", "chromium", "chromium-browser"],
    },
    "window": {
        "width": 1200,
        "height": 800,
    },
    "logging": {
        "level": "INFO",
    },
}

RUNTIME_SUBDIRS = ("data", "locks", "sockets", "icons", "logs")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_data_dir(root: Path | None = None) -> Path:
    """Return the data directory: explicit root, then $WEBLET_HOME, then ~/.weblet."""
    if root is not None:
        return root.expanduser().resolve()
    env_root = os.environ.get(DATA_DIR_ENV)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return (Path.home() / ".weblet").resolve()


def ensure_runtime_dirs(data_dir: Path) -> dict[str, Path]:
    """Ensure the data directory layout exists and return resolved paths."""
    paths = {"root": data_dir}
    data_dir.mkdir(parents=True, exist_ok=True)
    for name in RUNTIME_SUBDIRS:
        path = data_dir / name
        path.mkdir(parents=True, exist_ok=True)
        paths[f"{name}_dir"] = path
    paths["weblets_file"] = data_dir / "weblets.json"
    paths["settings_file"] = data_dir / "weblet.json"
    return paths


def load_effective_config(data_dir: Path) -> dict[str, Any]:
    """Merge built-in defaults with the user's config.yaml."""
    user_cfg = load_yaml(data_dir / "config.yaml")
    return merge_dicts(DEFAULT_CONFIG, user_cfg)


def configure_logging(config: dict[str, Any], verbose: bool = False) -> None:
    level_name = "DEBUG" if verbose else str(config.get("logging", {}).get("level", "INFO"))
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("weblet").setLevel(level)
