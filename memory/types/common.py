"""Shared helpers for typed records."""

from __future__ import annotations

import uuid


def new_id(prefix: str) -> str:
    """Return a short unique id such as ``goal-3f9a1c0b2d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a numeric value into [low, high]."""
    return max(low, min(high, float(value)))
