"""Task decomposition and plan condition tests."""

from __future__ import annotations

from memory.types.goals import Goal, GoalType
from planner.execution_plan import Condition, ConditionType, Plan, PlanStep
from planner.task_decomposer import TaskDecomposer


def _plan_for(goal_type: GoalType, description: str) -> Plan:
    return TaskDecomposer().decompose(Goal(type=goal_type, description=description))


def test_arbitrage_goal_gets_three_chained_steps() -> None:
    plan = _plan_for(GoalType.PROACTIVE, "Evaluate arbitrage opportunity: BTC spread")

    assert [s.skill for s in plan.steps] == ["verify_arbitrage", "assess_risk", "send_alert"]
    assert [c.expression for c in plan.steps[1].preconditions] == ["step-1.success"]
    assert [c.expression for c in plan.steps[2].preconditions] == ["step-2.success"]
    assert plan.steps[0].abort_conditions[0].expression == "spread < 0.02"
    assert plan.estimated_duration_ms == 60_000
    assert plan.success_probability == 0.7


def test_templates_by_goal_type() -> None:
    assert [s.skill for s in _plan_for(GoalType.RESEARCH, "whales").steps] == [
        "gather_market_data",
        "research_analysis",
    ]
    assert [s.skill for s in _plan_for(GoalType.LEARN, "calibrate").steps] == [
        "analyze_calibration",
        "sync_memory",
    ]
    assert [s.skill for s in _plan_for(GoalType.MONITOR, "watch").steps] == ["heartbeat"]
    assert [s.skill for s in _plan_for(GoalType.TRADE, "buy YES").steps] == ["execute_goal"]
    assert [s.skill for s in _plan_for(GoalType.PROACTIVE, "tidy up").steps] == ["execute_goal"]


def test_step_success_condition() -> None:
    condition = Condition(type=ConditionType.STATE, expression="step-2.success")

    assert condition.evaluate({1}) is False
    assert condition.evaluate({1, 2}) is True


def test_comparison_condition_reads_last_output() -> None:
    condition = Condition(type=ConditionType.STATE, expression="spread < 0.02")

    assert condition.evaluate(set(), {"spread": 0.01}) is True
    assert condition.evaluate(set(), {"spread": 0.035}) is False
    assert condition.evaluate(set(), {"other": 1}) is None
    assert condition.evaluate(set(), {"spread": "wide"}) is None


def test_belief_condition_delegates_to_world_state() -> None:
    condition = Condition(type=ConditionType.BELIEF, expression="Market is open")

    assert condition.evaluate(set(), believes=lambda text: text == "Market is open") is True
    assert condition.evaluate(set()) is None


def test_plan_to_dict_is_serialisable() -> None:
    plan = Plan(goal_id="goal-1", steps=[PlanStep(id="step-1", action="Ping", skill="heartbeat")])
    payload = plan.to_dict()

    assert payload["goal_id"] == "goal-1"
    assert payload["estimated_duration_ms"] == 60_000
    assert isinstance(payload["created_at"], str)
    assert payload["steps"][0]["status"] == "pending"
