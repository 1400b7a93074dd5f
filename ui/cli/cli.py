"""CLI entrypoint for the cognitive core."""

from __future__ import annotations

import typer

from ui.cli import commands

app = typer.Typer(help="Autonomous Cognitive Core")
cycle_app = typer.Typer(help="Cognitive cycle commands")
signal_app = typer.Typer(help="Signal commands")
goals_app = typer.Typer(help="Goal commands")
beliefs_app = typer.Typer(help="Belief commands")
agents_app = typer.Typer(help="Multi-agent commands")
state_app = typer.Typer(help="Cognitive state commands")
config_app = typer.Typer(help="Configuration commands")
skills_app = typer.Typer(help="Skill commands")


@cycle_app.command("run")
def cycle_run_cmd(
    count: int = typer.Option(1, min=1, help="Number of cycles to attempt"),
) -> None:
    """Run one or more cognitive cycles."""
    commands.cycle_run(count=count)


@signal_app.command("inject")
def signal_inject_cmd(
    signal_type: str = typer.Argument(..., help="Signal type, e.g. arbitrage_opportunity"),
    content: str = typer.Argument(..., help="Signal content"),
    strength: float = typer.Option(0.5, min=0.0, max=1.0, help="Signal strength"),
    source: str = typer.Option("cli", help="Signal source"),
) -> None:
    """Inject an external signal into the world state."""
    commands.signal_inject(signal_type=signal_type, content=content, strength=strength, source=source)


@goals_app.command("add")
def goals_add_cmd(
    description: str = typer.Argument(..., help="Goal description text"),
    goal_type: str = typer.Option("research", "--type", help="Goal type"),
    priority: int = typer.Option(50, min=0, max=100, help="Goal priority (0-100)"),
) -> None:
    """Add a new goal."""
    commands.goals_add(description=description, goal_type=goal_type, priority=priority)


@goals_app.command("list")
def goals_list_cmd(
    all_goals: bool = typer.Option(False, "--all", help="Include finished goals"),
) -> None:
    """List goals by effective priority."""
    commands.goals_list(all_goals=all_goals)


@beliefs_app.command("list")
def beliefs_list_cmd(query: str = typer.Option("", help="Substring filter")) -> None:
    """List live beliefs."""
    commands.beliefs_list(query=query)


@agents_app.command("status")
def agents_status_cmd() -> None:
    """Show agent status."""
    commands.agents_status()


@agents_app.command("coordinate")
def agents_coordinate_cmd() -> None:
    """Run one coordination pass."""
    commands.agents_coordinate()


@agents_app.command("delegate")
def agents_delegate_cmd(
    description: str = typer.Argument(..., help="Task description"),
    goal_type: str = typer.Option("research", "--type", help="Goal type"),
    priority: int = typer.Option(50, min=0, max=100),
    capability: list[str] = typer.Option([], "--capability", help="Required capability"),
) -> None:
    """Create a goal and delegate it to the best agent."""
    commands.agents_delegate(
        description=description,
        goal_type=goal_type,
        priority=priority,
        capabilities=capability,
    )


@state_app.command("show")
def state_show_cmd() -> None:
    """Show the combined cognitive state summary."""
    commands.state_show()


@state_app.command("metrics")
def state_metrics_cmd() -> None:
    """Show cognitive metrics."""
    commands.state_metrics()


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


@skills_app.command("list")
def skills_list_cmd() -> None:
    """List skill status."""
    commands.skills_list()


app.add_typer(cycle_app, name="cycle")
app.add_typer(signal_app, name="signal")
app.add_typer(goals_app, name="goals")
app.add_typer(beliefs_app, name="beliefs")
app.add_typer(agents_app, name="agents")
app.add_typer(state_app, name="state")
app.add_typer(config_app, name="config")
app.add_typer(skills_app, name="skills")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
