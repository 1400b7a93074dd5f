"""Exception hierarchy for the cognitive core."""

from __future__ import annotations


class CognitiveCoreError(Exception):
    """Base class for errors raised by the core."""


class GoalNotFoundError(CognitiveCoreError, KeyError):
    """Raised when an operation requires a goal id that does not exist."""


class SkillNotFoundError(CognitiveCoreError, LookupError):
    """Raised when a plan step names a skill that is not registered or enabled."""


class SkillExecutionError(CognitiveCoreError):
    """Raised when a skill reports failure or raises."""


class SkillTimeoutError(SkillExecutionError):
    """Raised when a skill call exceeds its step timeout."""


class LockError(CognitiveCoreError):
    """Raised when a cycle lock cannot be acquired."""
