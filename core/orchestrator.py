"""Top-level application orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from agents.coordinator import MultiAgentCoordinator
from agents.definitions import load_agent_definitions
from core.cognitive_loop import CognitiveLoop
from core.event_bus import EventBus
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.state_export import StateExporter
from core.state_manager import StateManager
from executor.skill_executor import SkillExecutor
from governance.audit_logger import AuditLogger
from governance.cycle_lock import CycleLock, FileCycleLock, InProcessCycleLock
from governance.rate_limiter import RateLimiter
from memory.episodic_memory import EpisodicMemory
from memory.stores.sql_store import SQLStore
from planner.goal_manager import GoalManager
from planner.task_decomposer import TaskDecomposer
from skills.skill_registry import SkillRegistry, build_default_registry
from world_model.world_state import WorldStateStore


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    paths: dict[str, Path]
    world_state: WorldStateStore
    goal_manager: GoalManager
    memory: EpisodicMemory
    coordinator: MultiAgentCoordinator
    state_manager: StateManager
    exporter: StateExporter
    skill_registry: SkillRegistry
    audit_logger: AuditLogger
    cognitive_loop: CognitiveLoop


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, config: dict[str, Any] | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.config = config

    def build(self) -> RuntimeBundle:
        config = self.config if self.config is not None else load_effective_config(self.root)
        paths = ensure_runtime_dirs(self.root, config)

        sql_store = SQLStore(paths["db_path"])
        sql_store.create_all()

        world_cfg = config.get("world_state", {})
        world_state = WorldStateStore(
            sql_store,
            max_beliefs=int(world_cfg.get("max_beliefs", 50)),
            max_signals=int(world_cfg.get("max_signals", 100)),
            belief_decay_hours=float(world_cfg.get("belief_decay_hours", 24)),
            moving_market_threshold=float(world_cfg.get("moving_market_threshold", 0.03)),
            position_loss_threshold=float(world_cfg.get("position_loss_threshold", -0.1)),
        )
        goals_cfg = config.get("goals", {})
        goal_manager = GoalManager(
            sql_store,
            max_active_goals=int(goals_cfg.get("max_active_goals", 20)),
            stale_after_days=float(goals_cfg.get("stale_after_days", 7)),
            urgency_window_hours=float(goals_cfg.get("urgency_window_hours", 24)),
            urgency_weight=float(goals_cfg.get("urgency_weight", 30)),
        )
        memory_cfg = config.get("memory", {})
        memory = EpisodicMemory(
            sql_store,
            max_episodes=int(memory_cfg.get("max_episodes", 500)),
            recent_window=int(memory_cfg.get("recent_window", 50)),
            daily_log_dir=paths.get("daily_log_dir"),
        )
        coordinator_cfg = config.get("coordinator", {})
        coordinator = MultiAgentCoordinator(
            sql_store,
            goal_manager,
            memory=memory,
            definitions=load_agent_definitions(config),
            response_deadline_seconds=float(coordinator_cfg.get("response_deadline_seconds", 60)),
            stuck_after_seconds=float(coordinator_cfg.get("stuck_after_seconds", 300)),
        )
        state_manager = StateManager(sql_store)
        exporter = StateExporter(
            world_state=world_state,
            goal_manager=goal_manager,
            memory=memory,
            state_manager=state_manager,
            coordinator=coordinator,
            memory_export_path=paths.get("memory_export_path"),
            heartbeat_path=paths.get("heartbeat_path"),
        )

        skill_registry = build_default_registry(
            config=config, world_state=world_state, exporter=exporter
        )
        audit_logger = AuditLogger(paths["audit_log_path"])
        executor = SkillExecutor(
            skill_registry,
            audit_logger=audit_logger,
            default_timeout_ms=int(config.get("executor", {}).get("default_timeout_ms", 60_000)),
        )

        loop_cfg = config.get("loop", {})
        cognitive_loop = CognitiveLoop(
            world_state=world_state,
            goal_manager=goal_manager,
            memory=memory,
            executor=executor,
            state_manager=state_manager,
            decomposer=TaskDecomposer(),
            rate_limiter=RateLimiter(
                cooldown_seconds=float(loop_cfg.get("cooldown_seconds", 10)),
                max_cycles_per_hour=int(loop_cfg.get("max_cycles_per_hour", 100)),
                sql_store=sql_store,
            ),
            cycle_lock=self._cycle_lock(loop_cfg, paths),
            event_bus=EventBus(),
            exporter=exporter,
            arbitrage_priority_threshold=float(loop_cfg.get("arbitrage_priority_threshold", 70)),
            whale_priority_threshold=float(loop_cfg.get("whale_priority_threshold", 60)),
            immediate_action_strength=float(loop_cfg.get("immediate_action_strength", 0.8)),
        )

        return RuntimeBundle(
            config=config,
            paths=paths,
            world_state=world_state,
            goal_manager=goal_manager,
            memory=memory,
            coordinator=coordinator,
            state_manager=state_manager,
            exporter=exporter,
            skill_registry=skill_registry,
            audit_logger=audit_logger,
            cognitive_loop=cognitive_loop,
        )

    @staticmethod
    def _cycle_lock(loop_cfg: dict[str, Any], paths: dict[str, Path]) -> CycleLock:
        if str(loop_cfg.get("lock", "process")).lower() == "file":
            return FileCycleLock(
                paths["lock_path"],
                stale_age_seconds=float(loop_cfg.get("stale_lock_seconds", 300)),
            )
        return InProcessCycleLock()
