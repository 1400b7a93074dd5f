"""Episodic memory models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from memory.types.common import clamp, new_id


class EpisodeOutcome(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    PENDING = "pending"


class BiasType(StrEnum):
    OVERCONFIDENCE = "overconfidence"
    UNDERCONFIDENCE = "underconfidence"
    RECENCY = "recency"
    ANCHORING = "anchoring"
    CONFIRMATION = "confirmation"
    AVAILABILITY = "availability"


class Episode(BaseModel):
    """Event-like memory record."""

    id: str = Field(default_factory=lambda: new_id("ep"))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    context: str
    action_taken: str
    outcome: EpisodeOutcome
    lesson_learned: str | None = None
    related_goal_id: str | None = None
    signals: list[str] = Field(default_factory=list)


class Lesson(BaseModel):
    """Reusable insight distilled from one or more episodes."""

    id: str = Field(default_factory=lambda: new_id("lesson"))
    content: str
    context: str = ""
    source_episodes: list[str] = Field(default_factory=list)
    confidence: float = 0.5
    times_applied: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_applied: datetime | None = None

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value)


class Pattern(BaseModel):
    id: str
    description: str
    frequency: int
    success_rate: float
    context: str


class Bias(BaseModel):
    type: BiasType
    magnitude: float
    context: str
    evidence: list[str] = Field(default_factory=list)
