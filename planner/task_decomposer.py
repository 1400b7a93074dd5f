"""Goal-to-plan decomposition using fixed templates per goal type."""

from __future__ import annotations

import logging

from memory.types.goals import Goal, GoalType
from planner.execution_plan import Condition, ConditionType, Plan, PlanStep

logger = logging.getLogger("cog.planner")


def _after(step_number: int) -> list[Condition]:
    return [Condition(type=ConditionType.STATE, expression=f"step-{step_number}.success")]


class TaskDecomposer:
    """Build an execution plan for a goal.

    Arbitrage goals (trade or proactive with "arbitrage" in the description)
    get verify, assess-risk and alert steps. Research, learn and monitor
    goals have their own templates; anything else gets one generic step.
    """

    def decompose(self, goal: Goal) -> Plan:
        steps = self._template(goal)
        plan = Plan(goal_id=goal.id, steps=steps)
        logger.info("Created plan with %d steps for goal: %s", len(steps), goal.description)
        return plan

    def _template(self, goal: Goal) -> list[PlanStep]:
        description = goal.description
        if goal.type in (GoalType.TRADE, GoalType.PROACTIVE) and "arbitrage" in description.lower():
            return [
                PlanStep(
                    id="step-1",
                    action="Verify arbitrage opportunity still exists",
                    skill="verify_arbitrage",
                    params={"query": description},
                    expected_outcome="Confirmed opportunity with spread > 3%",
                    abort_conditions=[
                        Condition(type=ConditionType.STATE, expression="spread < 0.02")
                    ],
                    timeout_ms=30_000,
                ),
                PlanStep(
                    id="step-2",
                    action="Assess risk and position size",
                    skill="assess_risk",
                    params={"topic": description},
                    preconditions=_after(1),
                    expected_outcome="Risk assessment complete",
                    timeout_ms=20_000,
                ),
                PlanStep(
                    id="step-3",
                    action="Alert user with recommendation",
                    skill="send_alert",
                    params={"type": "arbitrage_alert", "message": description},
                    preconditions=_after(2),
                    expected_outcome="User notified",
                    timeout_ms=10_000,
                ),
            ]
        if goal.type == GoalType.RESEARCH:
            return [
                PlanStep(
                    id="step-1",
                    action="Gather market data",
                    skill="gather_market_data",
                    params={"query": description},
                    expected_outcome="Market data retrieved",
                    timeout_ms=30_000,
                ),
                PlanStep(
                    id="step-2",
                    action="Analyze gathered data",
                    skill="research_analysis",
                    params={"topic": description},
                    preconditions=_after(1),
                    expected_outcome="Analysis complete",
                    timeout_ms=60_000,
                ),
            ]
        if goal.type == GoalType.LEARN:
            return [
                PlanStep(
                    id="step-1",
                    action="Analyze recent predictions",
                    skill="analyze_calibration",
                    expected_outcome="Calibration analysis complete",
                    timeout_ms=30_000,
                ),
                PlanStep(
                    id="step-2",
                    action="Update memory with lessons",
                    skill="sync_memory",
                    preconditions=_after(1),
                    expected_outcome="Memory updated",
                    timeout_ms=10_000,
                ),
            ]
        if goal.type == GoalType.MONITOR:
            return [
                PlanStep(
                    id="step-1",
                    action="Check monitored conditions",
                    skill="heartbeat",
                    expected_outcome="Conditions checked",
                    timeout_ms=60_000,
                )
            ]
        return [
            PlanStep(
                id="step-1",
                action="Execute goal action",
                skill="execute_goal",
                params={"goal": description},
                expected_outcome="Action completed",
                timeout_ms=60_000,
            )
        ]
