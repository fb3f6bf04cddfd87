"""Configuration and runtime bootstrapping."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": {"level": "INFO"},
    "paths": {
        "db_path": "workspace/goals.db",
        "audit_log_path": "logs/goal_audit.jsonl",
    },
    "engine": {
        "max_track_retries": 3,
        "history_limit": 10,
        "cache_enabled": True,
    },
    "templates": {
        "catalog_path": "config/goal_templates.yaml",
        "seed_on_startup": True,
    },
}


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


def ensure_runtime_dirs(root: Path, config: dict[str, Any]) -> dict[str, Path]:
    """Ensure database and log directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    db_path = (root / paths_cfg.get("db_path", "workspace/goals.db")).resolve()
    audit_log_path = (root / paths_cfg.get("audit_log_path", "logs/goal_audit.jsonl")).resolve()
    catalog_path = (
        root / config.get("templates", {}).get("catalog_path", "config/goal_templates.yaml")
    ).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    audit_log_path.parent.mkdir(parents=True, exist_ok=True)

    return {
        "db_path": db_path,
        "audit_log_path": audit_log_path,
        "catalog_path": catalog_path,
    }


def load_effective_config(root: Path) -> dict[str, Any]:
    """Built-in defaults overlaid with ``config/default.yaml``."""
    return merge_dicts(DEFAULT_CONFIG, load_yaml(root / "config" / "default.yaml"))


def configure_logging(config: dict[str, Any]) -> None:
    level_name = str(config.get("logging", {}).get("level", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {level_name}")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("ge").setLevel(level)
