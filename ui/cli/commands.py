"""Typer command handlers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from memory.types.goals import GoalType
from memory.types.world import SignalType


def _runtime(root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build()
    _configure_logging(bundle.config)
    return bundle


def _configure_logging(config: dict) -> None:
    level_name = str(config.get("logging", {}).get("level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cycle_run(count: int = 1) -> None:
    """Attempt ``count`` cycles; skipped cycles are reported, not retried."""
    bundle = _runtime()
    for _ in range(count):
        result = bundle.cognitive_loop.run_cycle()
        typer.echo(result.summary)
        if result.plan is not None:
            for step in result.plan.steps:
                typer.echo(f"- [{step.status}] {step.action} ({step.skill})")


def signal_inject(signal_type: str, content: str, strength: float, source: str) -> None:
    """Inject a signal."""
    try:
        kind = SignalType(signal_type)
    except ValueError:
        valid = ", ".join(t.value for t in SignalType)
        raise typer.BadParameter(f"Unknown signal type {signal_type!r}; expected one of: {valid}") from None
    bundle = _runtime()
    signal = bundle.cognitive_loop.inject_signal(kind, source, content, strength)
    typer.echo(f"Injected signal {signal.id}: [{signal.type}] {signal.content}")


def goals_add(description: str, goal_type: str, priority: int) -> None:
    """Add a new goal."""
    try:
        kind = GoalType(goal_type)
    except ValueError:
        valid = ", ".join(t.value for t in GoalType)
        raise typer.BadParameter(f"Unknown goal type {goal_type!r}; expected one of: {valid}") from None
    bundle = _runtime()
    goal = bundle.goal_manager.create_goal(kind, description, priority=priority)
    typer.echo(f"Added goal {goal.id}: {goal.description}")


def goals_list(all_goals: bool = False) -> None:
    """List goals."""
    bundle = _runtime()
    manager = bundle.goal_manager
    goals = manager.goals if all_goals else manager.get_goals_by_priority()
    typer.echo(json.dumps([g.model_dump(mode="json") for g in goals], indent=2))


def beliefs_list(query: str = "") -> None:
    """List beliefs."""
    bundle = _runtime()
    for belief in bundle.world_state.get_beliefs(query or None):
        typer.echo(f"[{belief.confidence:.2f}] {belief.content} ({belief.source})")


def agents_status() -> None:
    """Show agents."""
    bundle = _runtime()
    typer.echo(bundle.coordinator.summary())


def agents_coordinate() -> None:
    """Run coordination."""
    bundle = _runtime()
    result = bundle.coordinator.coordinate()
    typer.echo(json.dumps(result, indent=2))


def agents_delegate(
    description: str, goal_type: str, priority: int, capabilities: list[str]
) -> None:
    """Delegate a task to an agent."""
    bundle = _runtime()
    assignment = bundle.coordinator.delegate_goal(
        description, goal_type, priority=priority, required_capabilities=capabilities or None
    )
    if assignment is None:
        typer.echo("No suitable agent available.")
        raise typer.Exit(code=1)
    typer.echo(f"Delegated goal {assignment['goal_id']} to {assignment['agent_id']}")


def state_show() -> None:
    """Show cognitive state."""
    bundle = _runtime()
    typer.echo(bundle.exporter.summary())


def state_metrics() -> None:
    """Show metrics."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.exporter.metrics_snapshot(), indent=2))


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))


def skills_list() -> None:
    """List skills and enabled flags."""
    bundle = _runtime()
    for skill in bundle.skill_registry.list_skills():
        typer.echo(f"{skill.name}: {'enabled' if skill.enabled else 'disabled'} ({skill.kind})")
