"""Base skill interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseSkill(ABC):
    """Strategy object invoked by plan steps.

    ``execute`` returns a result mapping on success and raises on failure.
    A result containing ``"success": False`` is also treated as a failure by
    the executor.
    """

    def __init__(self, name: str, enabled: bool = True, settings: dict[str, Any] | None = None):
        self.name = name
        self.enabled = enabled
        self.settings = settings or {}

    @abstractmethod
    def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        """Run the skill with ``params``."""

    def describe(self) -> str:
        doc = (type(self).__doc__ or "").strip()
        return doc.splitlines()[0] if doc else ""
