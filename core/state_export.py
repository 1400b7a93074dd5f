"""Operator-facing exports of cognitive state."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agents.coordinator import MultiAgentCoordinator
    from core.state_manager import StateManager
    from memory.episodic_memory import EpisodicMemory
    from planner.goal_manager import GoalManager
    from world_model.world_state import WorldStateStore

logger = logging.getLogger("cog.export")


class StateExporter:
    """Renders summaries and writes the memory export and heartbeat files."""

    def __init__(
        self,
        world_state: WorldStateStore,
        goal_manager: GoalManager,
        memory: EpisodicMemory,
        state_manager: StateManager,
        coordinator: MultiAgentCoordinator | None = None,
        memory_export_path: Path | None = None,
        heartbeat_path: Path | None = None,
    ) -> None:
        self.world_state = world_state
        self.goal_manager = goal_manager
        self.memory = memory
        self.state_manager = state_manager
        self.coordinator = coordinator
        self.memory_export_path = memory_export_path
        self.heartbeat_path = heartbeat_path

    def summary(self) -> str:
        """Combined world, goal, memory and agent digest."""
        state = self.state_manager.state
        metrics = state.metrics
        sections = [
            "# Agent Cognitive State",
            "",
            f"## Current Phase: {state.current_phase}",
            f"## Focus: {state.working_memory.current_focus or 'none'}",
            "",
            self.world_state.summary(),
            self.goal_manager.summary(),
            self.memory.summary(),
        ]
        if self.coordinator is not None:
            sections.append(self.coordinator.summary())
        sections.extend(
            [
                "## Metrics",
                f"- Total Cycles: {metrics.total_cycles}",
                f"- Goals Achieved: {metrics.goals_achieved}",
                f"- Goals Failed: {metrics.goals_failed}",
                f"- Avg Cycle Time: {metrics.average_cycle_time:.0f}ms",
                f"- Calibration: {metrics.calibration_score:.4f}",
                "",
            ]
        )
        return "\n".join(sections)

    def metrics_snapshot(self) -> dict[str, Any]:
        metrics = self.state_manager.state.metrics
        return {
            "total_cycles": metrics.total_cycles,
            "goals_achieved": metrics.goals_achieved,
            "goals_failed": metrics.goals_failed,
            "average_cycle_time": metrics.average_cycle_time,
            "average_goal_completion_time": metrics.average_goal_completion_time,
            "calibration_score": metrics.calibration_score,
            "last_cycle_time": metrics.last_cycle_time,
        }

    def write_memory_export(self) -> Path | None:
        """Write lessons and bias corrections as markdown; None when unconfigured."""
        if self.memory_export_path is None:
            return None
        self.memory_export_path.parent.mkdir(parents=True, exist_ok=True)
        self.memory_export_path.write_text(self.memory.format_for_export(), encoding="utf-8")
        logger.debug("Wrote memory export to %s", self.memory_export_path)
        return self.memory_export_path

    def render_heartbeat(self) -> str:
        goals = self.goal_manager.get_goals_by_priority()
        signals = self.world_state.get_unprocessed_signals()
        lines = [
            "# Agent Heartbeat",
            "",
            f"*Last updated: {datetime.now(UTC).isoformat()}*",
            "",
            "## Current Focus",
            "",
        ]
        if goals:
            top = goals[0]
            lines.extend(
                [
                    f"**{top.description}**",
                    f"- Type: {top.type}",
                    f"- Priority: {top.priority}",
                    f"- Status: {top.status}",
                    "",
                ]
            )
        else:
            lines.extend(["No active goals. Consider generating proactive opportunities.", ""])

        lines.extend([f"## Pending Signals ({len(signals)})", ""])
        if signals:
            for signal in signals[:5]:
                lines.append(f"- [{signal.type}] {signal.content[:60]}")
            if len(signals) > 5:
                lines.append(f"- ... and {len(signals) - 5} more")
        else:
            lines.append("No pending signals.")

        lines.extend(["", f"## Active Goals ({len(goals)})", ""])
        for goal in goals[:5]:
            lines.append(f"- [{goal.status}] **[{goal.priority}]** {goal.description}")
        return "\n".join(lines) + "\n"

    def write_heartbeat(self) -> Path | None:
        if self.heartbeat_path is None:
            return None
        self.heartbeat_path.parent.mkdir(parents=True, exist_ok=True)
        self.heartbeat_path.write_text(self.render_heartbeat(), encoding="utf-8")
        logger.debug("Wrote heartbeat to %s", self.heartbeat_path)
        return self.heartbeat_path
