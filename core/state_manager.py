"""Cognitive state container persisted between cycles."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from memory.stores.sql_store import SQLStore
from memory.types.events import AgentEvent, CognitiveMetrics, CognitivePhase, WorkingMemory

logger = logging.getLogger("cog.state")

DOCUMENT_NAME = "cognitive_state"


class CognitiveState(BaseModel):
    """Phase, working memory and metrics of the cognitive loop."""

    current_phase: CognitivePhase = CognitivePhase.PERCEIVE
    working_memory: WorkingMemory = Field(default_factory=WorkingMemory)
    metrics: CognitiveMetrics = Field(default_factory=CognitiveMetrics)
    current_plan: dict[str, Any] | None = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StateManager:
    """Wraps cognitive state and provides convenience update methods."""

    def __init__(self, sql_store: SQLStore, events_window: int = 20) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.events_window = events_window
        self.state = CognitiveState()
        payload = self.sql_store.load_document(DOCUMENT_NAME)
        if payload:
            self.state = CognitiveState.model_validate(payload)

    def save(self) -> None:
        self.state.last_updated = datetime.now(UTC)
        self.sql_store.save_document(DOCUMENT_NAME, self.state.model_dump(mode="json"))

    def set_phase(self, phase: CognitivePhase) -> None:
        self.state.current_phase = phase

    def add_events(self, events: list[AgentEvent]) -> None:
        """Append events to working memory, keeping the most recent window."""
        combined = self.state.working_memory.recent_events + events
        self.state.working_memory.recent_events = combined[-self.events_window :]

    def set_focus(self, focus: str | None) -> None:
        self.state.working_memory.current_focus = focus

    def set_context(self, context: list[str]) -> None:
        self.state.working_memory.active_context = context

    def set_plan(self, plan: dict[str, Any] | None) -> None:
        self.state.current_plan = plan

    def record_cycle(self, cycle_ms: float) -> None:
        metrics = self.state.metrics
        metrics.total_cycles += 1
        metrics.last_cycle_time = cycle_ms
        metrics.average_cycle_time += (cycle_ms - metrics.average_cycle_time) / metrics.total_cycles

    def record_goal_outcome(self, achieved: bool, duration_ms: float | None = None) -> None:
        metrics = self.state.metrics
        if achieved:
            metrics.goals_achieved += 1
        else:
            metrics.goals_failed += 1
        if duration_ms is not None:
            finished = metrics.goals_achieved + metrics.goals_failed
            metrics.average_goal_completion_time += (
                duration_ms - metrics.average_goal_completion_time
            ) / finished

    def reset(self) -> None:
        self.state = CognitiveState()
        self.save()
        logger.info("Cognitive state reset")
