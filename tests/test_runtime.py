"""Config loading and runtime wiring tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.orchestrator import Orchestrator
from core.policy_runtime import ensure_runtime_dirs, load_effective_config, load_yaml, merge_dicts
from governance.cycle_lock import FileCycleLock, InProcessCycleLock
from memory.types.world import SignalType


def test_merge_dicts_is_recursive() -> None:
    base = {"loop": {"cooldown_seconds": 10, "lock": "process"}, "skills": {}}
    merged = merge_dicts(base, {"loop": {"cooldown_seconds": 0}})

    assert merged == {"loop": {"cooldown_seconds": 0, "lock": "process"}, "skills": {}}
    assert base["loop"]["cooldown_seconds"] == 10


def test_load_yaml_rejects_non_mappings(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    assert load_yaml(tmp_path / "missing.yaml") == {}
    with pytest.raises(ValueError):
        load_yaml(path)


def test_effective_config_overlays_files(tmp_path: Path) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(
        "loop:\n  cooldown_seconds: 0\n  lock: file\n", encoding="utf-8"
    )
    (config_dir / "agents.yaml").write_text(
        "agents:\n  - id: solo\n    name: Solo\n    role: analyst\n", encoding="utf-8"
    )

    config = load_effective_config(tmp_path)
    assert config["loop"]["cooldown_seconds"] == 0
    assert config["loop"]["max_cycles_per_hour"] == 100
    assert config["world_state"]["max_beliefs"] == 50
    assert config["agents"][0]["id"] == "solo"


def test_runtime_dirs_are_created(tmp_path: Path) -> None:
    paths = ensure_runtime_dirs(tmp_path, {"paths": {"db_path": "data/x.db"}})

    assert paths["db_path"] == (tmp_path / "data" / "x.db").resolve()
    assert paths["db_path"].parent.is_dir()
    assert paths["daily_log_dir"].is_dir()
    assert paths["audit_log_path"].parent.is_dir()


def test_orchestrator_wires_a_working_loop(tmp_path: Path) -> None:
    bundle = Orchestrator(root=tmp_path).build()

    assert isinstance(bundle.cognitive_loop.cycle_lock, InProcessCycleLock)
    assert sorted(bundle.coordinator.agents) == ["analyst", "orchestrator", "scout", "trader"]
    assert "verify_arbitrage" in bundle.skill_registry

    bundle.cognitive_loop.inject_signal(
        SignalType.ARBITRAGE_OPPORTUNITY, "scanner", "ETH arbitrage across venues", 0.9
    )
    result = bundle.cognitive_loop.run_cycle()

    assert result.success is True
    assert "Action: success" in result.summary
    assert bundle.paths["memory_export_path"].exists()
    skills = [e["skill"] for e in bundle.audit_logger.read_events()]
    assert skills == ["verify_arbitrage", "assess_risk", "send_alert"]


def test_orchestrator_uses_file_lock_when_configured(tmp_path: Path) -> None:
    config = merge_dicts(load_effective_config(tmp_path), {"loop": {"lock": "file"}})
    bundle = Orchestrator(root=tmp_path, config=config).build()

    lock = bundle.cognitive_loop.cycle_lock
    assert isinstance(lock, FileCycleLock)
    assert lock.lock_path == bundle.paths["lock_path"]


def test_cooldown_holds_across_separately_built_runtimes(tmp_path: Path) -> None:
    first = Orchestrator(root=tmp_path).build()
    assert first.cognitive_loop.run_cycle().success is True

    second = Orchestrator(root=tmp_path).build()
    result = second.cognitive_loop.run_cycle()

    assert result.success is False
    assert result.summary == "Cycle skipped: cooldown period"
    assert second.state_manager.state.metrics.total_cycles == 1
