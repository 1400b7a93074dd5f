"""Cognitive-loop event and metrics models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from memory.types.world import SignalType


class EventType(StrEnum):
    MARKET_UPDATE = "market_update"
    PRICE_ALERT_TRIGGERED = "price_alert_triggered"
    ARBITRAGE_DETECTED = "arbitrage_detected"
    WHALE_MOVEMENT = "whale_movement"
    NEWS_UPDATE = "news_update"
    PREDICTION_RESOLVED = "prediction_resolved"
    USER_COMMAND = "user_command"
    SCHEDULED_TASK = "scheduled_task"
    GOAL_COMPLETED = "goal_completed"
    GOAL_FAILED = "goal_failed"
    REFLECTION_DUE = "reflection_due"
    HEARTBEAT = "heartbeat"


SIGNAL_EVENT_TYPES: dict[SignalType, EventType] = {
    SignalType.PRICE_MOVEMENT: EventType.MARKET_UPDATE,
    SignalType.VOLUME_SPIKE: EventType.MARKET_UPDATE,
    SignalType.WHALE_ACTIVITY: EventType.WHALE_MOVEMENT,
    SignalType.NEWS_SENTIMENT: EventType.NEWS_UPDATE,
    SignalType.ARBITRAGE_OPPORTUNITY: EventType.ARBITRAGE_DETECTED,
    SignalType.PREDICTION_RESOLUTION: EventType.PREDICTION_RESOLVED,
    SignalType.USER_REQUEST: EventType.USER_COMMAND,
    SignalType.SCHEDULED_TASK: EventType.SCHEDULED_TASK,
}


class CognitivePhase(StrEnum):
    PERCEIVE = "perceive"
    UPDATE_BELIEFS = "update_beliefs"
    EVALUATE = "evaluate"
    DELIBERATE = "deliberate"
    PLAN = "plan"
    ACT = "act"
    REFLECT = "reflect"


class AgentEvent(BaseModel):
    """Perceived event derived from a signal."""

    id: str
    type: EventType
    priority: float
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source: str = ""
    requires_immediate_action: bool = False
    processed: bool = False


class CognitiveMetrics(BaseModel):
    total_cycles: int = 0
    goals_achieved: int = 0
    goals_failed: int = 0
    average_cycle_time: float = 0.0
    average_goal_completion_time: float = 0.0
    calibration_score: float = 0.0
    last_cycle_time: float = 0.0


class WorkingMemory(BaseModel):
    recent_events: list[AgentEvent] = Field(default_factory=list)
    active_context: list[str] = Field(default_factory=list)
    current_focus: str | None = None
