"""Static agent definitions."""

from __future__ import annotations

from typing import Any

from memory.types.agents import AgentDefinition, AgentRole

DEFAULT_AGENT_DEFINITIONS: list[AgentDefinition] = [
    AgentDefinition(
        id="orchestrator",
        name="Orchestrator",
        role=AgentRole.ORCHESTRATOR,
        capabilities=["coordination", "planning", "conflict_resolution", "goal_generation"],
        model_tier="opus",
        max_concurrent_goals=5,
        system_prompt=(
            "Central coordinator. Generates and prioritises goals, delegates work to "
            "specialists and settles conflicts between them."
        ),
    ),
    AgentDefinition(
        id="scout",
        name="Scout",
        role=AgentRole.SCOUT,
        capabilities=["market_scanning", "arbitrage_detection", "news_monitoring", "whale_tracking"],
        model_tier="haiku",
        max_concurrent_goals=10,
        system_prompt=(
            "Fast scanner. Watches incoming feeds for opportunities and flags anything "
            "interesting for deeper analysis."
        ),
    ),
    AgentDefinition(
        id="analyst",
        name="Analyst",
        role=AgentRole.ANALYST,
        capabilities=[
            "deep_research",
            "probability_estimation",
            "claim_verification",
            "calibration",
        ],
        model_tier="opus",
        max_concurrent_goals=3,
        system_prompt=(
            "Careful researcher. Verifies claims, estimates probabilities and watches "
            "for calibration drift."
        ),
    ),
    AgentDefinition(
        id="trader",
        name="Trader",
        role=AgentRole.TRADER,
        capabilities=[
            "trade_execution",
            "risk_management",
            "position_monitoring",
            "portfolio_management",
        ],
        model_tier="sonnet",
        max_concurrent_goals=5,
        system_prompt=(
            "Executor. Carries out authorised actions with risk limits and monitors "
            "open positions."
        ),
    ),
]

ROLE_KEYWORDS: dict[AgentRole, tuple[str, ...]] = {
    AgentRole.SCOUT: ("scan", "monitor", "find", "detect"),
    AgentRole.ANALYST: ("research", "analyze", "verify", "calibrat"),
    AgentRole.TRADER: ("trade", "execute", "buy", "sell"),
}


def load_agent_definitions(config: dict[str, Any]) -> list[AgentDefinition]:
    """Agent definitions from the ``agents`` config list, or the defaults."""
    raw = config.get("agents")
    if not raw:
        return [d.model_copy(deep=True) for d in DEFAULT_AGENT_DEFINITIONS]
    return [AgentDefinition.model_validate(item) for item in raw]
