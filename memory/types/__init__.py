"""Typed record models."""

from memory.types.agents import (
    AgentDefinition,
    AgentMessage,
    AgentMetrics,
    AgentRole,
    AgentState,
    AgentStatus,
    ConflictResolution,
    MessageType,
    ResolutionPolicy,
)
from memory.types.episodic import Bias, BiasType, Episode, EpisodeOutcome, Lesson, Pattern
from memory.types.events import (
    AgentEvent,
    CognitiveMetrics,
    CognitivePhase,
    EventType,
    WorkingMemory,
)
from memory.types.goals import Goal, GoalStatus, GoalType, SubGoalSpec
from memory.types.world import (
    Belief,
    BeliefSource,
    Direction,
    MarketState,
    PositionState,
    PredictionState,
    PredictionStatus,
    Signal,
    SignalType,
)

__all__ = [
    "AgentDefinition",
    "AgentEvent",
    "AgentMessage",
    "AgentMetrics",
    "AgentRole",
    "AgentState",
    "AgentStatus",
    "Belief",
    "BeliefSource",
    "Bias",
    "BiasType",
    "CognitiveMetrics",
    "CognitivePhase",
    "ConflictResolution",
    "Direction",
    "Episode",
    "EpisodeOutcome",
    "EventType",
    "Goal",
    "GoalStatus",
    "GoalType",
    "Lesson",
    "MarketState",
    "MessageType",
    "Pattern",
    "PositionState",
    "PredictionState",
    "PredictionStatus",
    "ResolutionPolicy",
    "Signal",
    "SignalType",
    "SubGoalSpec",
    "WorkingMemory",
]
