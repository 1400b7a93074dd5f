"""Configuration loading and runtime path bootstrapping."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": {"level": "INFO"},
    "paths": {
        "db_path": "workspace/cognitive.db",
        "audit_log_path": "logs/audit.jsonl",
        "memory_export_path": "workspace/MEMORY.md",
        "heartbeat_path": "workspace/HEARTBEAT.md",
        "daily_log_dir": "workspace/memory",
        "lock_path": "workspace/cycle.lock",
    },
    "world_state": {
        "max_beliefs": 50,
        "max_signals": 100,
        "belief_decay_hours": 24,
        "moving_market_threshold": 0.03,
        "position_loss_threshold": -0.1,
    },
    "goals": {
        "max_active_goals": 20,
        "stale_after_days": 7,
        "urgency_window_hours": 24,
        "urgency_weight": 30,
    },
    "memory": {"max_episodes": 500, "recent_window": 50},
    "loop": {
        "cooldown_seconds": 10,
        "max_cycles_per_hour": 100,
        "lock": "process",
        "stale_lock_seconds": 300,
        "arbitrage_priority_threshold": 70,
        "whale_priority_threshold": 60,
        "immediate_action_strength": 0.8,
    },
    "coordinator": {"response_deadline_seconds": 60, "stuck_after_seconds": 300},
    "executor": {"default_timeout_ms": 60000},
    "skills": {},
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
    """Ensure database, log and export directories exist and return resolved paths."""
    paths_cfg = config.get("paths", {})
    defaults = DEFAULT_CONFIG["paths"]
    resolved: dict[str, Path] = {}
    for key, default in defaults.items():
        resolved[key] = (root / paths_cfg.get(key, default)).resolve()

    for key, path in resolved.items():
        target = path if key == "daily_log_dir" else path.parent
        target.mkdir(parents=True, exist_ok=True)
    return resolved


def load_effective_config(root: Path) -> dict[str, Any]:
    """Built-in defaults overlaid with config/default.yaml and config/agents.yaml."""
    config_dir = root / "config"
    default_cfg = load_yaml(config_dir / "default.yaml")
    agents_cfg = load_yaml(config_dir / "agents.yaml")

    merged = merge_dicts(DEFAULT_CONFIG, default_cfg)
    if agents_cfg.get("agents"):
        merged["agents"] = agents_cfg["agents"]
    return merged
