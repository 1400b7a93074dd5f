"""Goal memory models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from memory.types.common import new_id


class GoalType(StrEnum):
    MONITOR = "monitor"
    RESEARCH = "research"
    TRADE = "trade"
    ALERT = "alert"
    LEARN = "learn"
    MAINTAIN = "maintain"
    PROACTIVE = "proactive"


class GoalStatus(StrEnum):
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"
    FAILED = "failed"
    ABANDONED = "abandoned"
    BLOCKED = "blocked"


TERMINAL_STATUSES = frozenset({GoalStatus.ACHIEVED, GoalStatus.FAILED, GoalStatus.ABANDONED})
OPEN_STATUSES = frozenset({GoalStatus.ACTIVE, GoalStatus.IN_PROGRESS, GoalStatus.BLOCKED})


class Goal(BaseModel):
    """Persistent intention with priority, status and optional decomposition."""

    id: str = Field(default_factory=lambda: new_id("goal"))
    type: GoalType
    description: str
    priority: int = 50
    status: GoalStatus = GoalStatus.ACTIVE
    parent_goal_id: str | None = None
    sub_goal_ids: list[str] = Field(default_factory=list)
    success_criteria: str = "Task completed successfully"
    deadline: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class SubGoalSpec(BaseModel):
    """Input for ``GoalManager.decompose_goal``."""

    type: GoalType
    description: str
    priority: int | None = None
    success_criteria: str | None = None
