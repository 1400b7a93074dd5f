"""Execution plan models."""

from __future__ import annotations

import operator
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from memory.types.common import new_id


class ConditionType(StrEnum):
    BELIEF = "belief"
    STATE = "state"
    TIME = "time"
    EXTERNAL = "external"


class StepStatus(StrEnum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class PlanStatus(StrEnum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


_STEP_SUCCESS = re.compile(r"^step-(\d+)\.success$")
_COMPARISON = re.compile(r"^([A-Za-z_][\w.]*)\s*(<=|>=|==|!=|<|>)\s*(-?\d+(?:\.\d+)?)$")
_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


@dataclass
class Condition:
    """Precondition or abort condition attached to a plan step."""

    type: ConditionType
    expression: str
    params: dict[str, Any] = field(default_factory=dict)

    def evaluate(
        self,
        completed_steps: set[int],
        last_output: dict[str, Any] | None = None,
        believes: Callable[[str], bool] | None = None,
    ) -> bool | None:
        """Evaluate the condition; None means it cannot be decided here.

        ``step-N.success`` holds when step N completed. ``<key> <op> <number>``
        compares against the previous step's output mapping. Belief
        conditions ask ``believes`` about the expression text.
        """
        expression = self.expression.strip()
        if self.type == ConditionType.BELIEF:
            return believes(expression) if believes is not None else None

        match = _STEP_SUCCESS.match(expression)
        if match:
            return int(match.group(1)) in completed_steps

        match = _COMPARISON.match(expression)
        if match:
            key, op, raw = match.groups()
            if not last_output or key not in last_output:
                return None
            value = last_output[key]
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                return None
            return _OPERATORS[op](value, float(raw))
        return None


@dataclass
class StepResult:
    success: bool
    output: Any = None
    error: str | None = None
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class PlanStep:
    id: str
    action: str
    skill: str
    params: dict[str, Any] = field(default_factory=dict)
    preconditions: list[Condition] = field(default_factory=list)
    expected_outcome: str = ""
    abort_conditions: list[Condition] = field(default_factory=list)
    timeout_ms: int = 60_000
    status: StepStatus = StepStatus.PENDING
    result: StepResult | None = None


@dataclass
class Plan:
    """Ordered, ephemeral recipe for pursuing one goal."""

    goal_id: str
    steps: list[PlanStep] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("plan"))
    current_step_index: int = 0
    estimated_duration_ms: int = 0
    success_probability: float = 0.7
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    status: PlanStatus = PlanStatus.PENDING

    def __post_init__(self) -> None:
        if not self.estimated_duration_ms:
            self.estimated_duration_ms = sum(step.timeout_ms for step in self.steps)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        for step in payload["steps"]:
            if step["result"] is not None:
                step["result"]["timestamp"] = step["result"]["timestamp"].isoformat()
        return payload
