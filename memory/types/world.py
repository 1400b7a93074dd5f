"""World-model records: beliefs, signals and tracked entities."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from memory.types.common import clamp, new_id


class BeliefSource(StrEnum):
    OBSERVATION = "observation"
    INFERENCE = "inference"
    EXTERNAL = "external"
    USER = "user"


class SignalType(StrEnum):
    PRICE_MOVEMENT = "price_movement"
    VOLUME_SPIKE = "volume_spike"
    WHALE_ACTIVITY = "whale_activity"
    NEWS_SENTIMENT = "news_sentiment"
    ARBITRAGE_OPPORTUNITY = "arbitrage_opportunity"
    PREDICTION_RESOLUTION = "prediction_resolution"
    USER_REQUEST = "user_request"
    SCHEDULED_TASK = "scheduled_task"


class Direction(StrEnum):
    YES = "YES"
    NO = "NO"


class PredictionStatus(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"
    EXPIRED = "expired"


class Belief(BaseModel):
    """Confidence-weighted claim about the world."""

    id: str = Field(default_factory=lambda: new_id("belief"))
    content: str
    confidence: float
    source: BeliefSource = BeliefSource.OBSERVATION
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    evidence: list[str] = Field(default_factory=list)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value)

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        return self.expires_at is not None and self.expires_at <= now


class Signal(BaseModel):
    """Raw observation awaiting interpretation by the perceive phase."""

    id: str = Field(default_factory=lambda: new_id("sig"))
    type: SignalType
    source: str
    content: str
    strength: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    processed: bool = False

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return clamp(value)


class MarketState(BaseModel):
    """Tracked market with price-change bookkeeping."""

    id: str
    platform: str = ""
    title: str = ""
    yes_price: float = 0.0
    no_price: float = 0.0
    volume_24h: float = 0.0
    last_price: float | None = None
    price_change_percent: float | None = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PositionState(BaseModel):
    """Open position; unrealized P&L is derived from entry and current price."""

    id: str
    market_id: str
    direction: Direction = Direction.YES
    size: float
    entry_price: float
    current_price: float
    unrealized_pnl: float = 0.0
    opened_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def compute_unrealized_pnl(self) -> float:
        if self.direction == Direction.YES:
            return (self.current_price - self.entry_price) * self.size
        return (self.entry_price - self.current_price) * self.size

    @property
    def cost_basis(self) -> float:
        return self.size * self.entry_price


class PredictionState(BaseModel):
    """Forecast tracked until resolution; scored with the Brier rule."""

    id: str = Field(default_factory=lambda: new_id("pred"))
    question: str
    predicted_probability: float
    direction: Direction = Direction.YES
    status: PredictionStatus = PredictionStatus.PENDING
    outcome: bool | None = None
    brier_score: float | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    resolved_at: datetime | None = None

    @field_validator("predicted_probability")
    @classmethod
    def _clamp_probability(cls, value: float) -> float:
        return clamp(value)
