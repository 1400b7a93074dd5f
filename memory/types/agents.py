"""Multi-agent coordination models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from memory.types.common import new_id


class AgentRole(StrEnum):
    SCOUT = "scout"
    ANALYST = "analyst"
    TRADER = "trader"
    ORCHESTRATOR = "orchestrator"


class AgentStatus(StrEnum):
    IDLE = "idle"
    WORKING = "working"
    BLOCKED = "blocked"
    OFFLINE = "offline"


class MessageType(StrEnum):
    TASK_REQUEST = "task_request"
    TASK_RESPONSE = "task_response"
    BELIEF_SHARE = "belief_share"
    GOAL_CLAIM = "goal_claim"
    CONFLICT_RESOLUTION = "conflict_resolution"
    STATUS_UPDATE = "status_update"


class ResolutionPolicy(StrEnum):
    PRIORITY_WINS = "priority_wins"
    NEGOTIATION = "negotiation"
    ESCALATE = "escalate"
    ABANDON = "abandon"


class AgentDefinition(BaseModel):
    """Static description of a specialist agent."""

    id: str
    name: str
    role: AgentRole
    capabilities: list[str] = Field(default_factory=list)
    model_tier: str = "sonnet"
    max_concurrent_goals: int = 5
    system_prompt: str = ""


class AgentMetrics(BaseModel):
    tasks_completed: int = 0
    tasks_failed: int = 0
    average_response_time: float = 0.0


class AgentState(BaseModel):
    """Dynamic state of an agent."""

    id: str
    role: AgentRole
    status: AgentStatus = AgentStatus.IDLE
    current_goals: list[str] = Field(default_factory=list)
    last_activity: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metrics: AgentMetrics = Field(default_factory=AgentMetrics)


class AgentMessage(BaseModel):
    """Message queued between agents until acknowledged or expired."""

    id: str = Field(default_factory=lambda: new_id("msg"))
    sender: str
    recipient: str
    type: MessageType
    content: str
    payload: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    requires_response: bool = False
    response_deadline: datetime | None = None


class ConflictResolution(BaseModel):
    """A detected assignment conflict and how it was settled."""

    conflict_id: str = Field(default_factory=lambda: new_id("conflict"))
    goal_id: str
    agents: list[str]
    issue: str
    resolution: ResolutionPolicy = ResolutionPolicy.PRIORITY_WINS
    winner: str | None = None
    compromise: str | None = None
