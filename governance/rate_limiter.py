"""Cycle rate limiting: cooldown plus a rolling hourly cap."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable

from memory.stores.sql_store import SQLStore

logger = logging.getLogger("cog.rate_limit")

HOUR_SECONDS = 3600.0
DOCUMENT_NAME = "rate_limiter"


class RateLimiter:
    """Tracks cycle starts and decides whether another cycle may run.

    With a ``sql_store`` the start times are persisted, so separate processes
    sharing one database share one cooldown and hourly window.
    """

    COOLDOWN = "cooldown period"
    HOURLY_LIMIT = "hourly limit reached"

    def __init__(
        self,
        cooldown_seconds: float = 10.0,
        max_cycles_per_hour: int = 100,
        clock: Callable[[], float] = time.time,
        sql_store: SQLStore | None = None,
    ) -> None:
        self.cooldown_seconds = float(cooldown_seconds)
        self.max_cycles_per_hour = int(max_cycles_per_hour)
        self.clock = clock
        self.sql_store = sql_store
        self._starts: deque[float] = deque()
        if self.sql_store is not None:
            self.sql_store.create_all()
        self._load()

    def _load(self) -> None:
        if self.sql_store is None:
            return
        payload = self.sql_store.load_document(DOCUMENT_NAME) or {}
        self._starts = deque(sorted(float(t) for t in payload.get("cycle_starts", [])))

    def _save(self) -> None:
        if self.sql_store is None:
            return
        self.sql_store.save_document(DOCUMENT_NAME, {"cycle_starts": list(self._starts)})

    @property
    def last_cycle_at(self) -> float | None:
        return self._starts[-1] if self._starts else None

    def cycles_in_window(self) -> int:
        self._load()
        self._prune(self.clock())
        return len(self._starts)

    def _prune(self, now: float) -> None:
        while self._starts and now - self._starts[0] >= HOUR_SECONDS:
            self._starts.popleft()

    def check(self) -> str | None:
        """Return the reason a cycle must be skipped, or None when allowed."""
        self._load()
        now = self.clock()
        self._prune(now)
        last = self.last_cycle_at
        if last is not None and now - last < self.cooldown_seconds:
            return self.COOLDOWN
        if len(self._starts) >= self.max_cycles_per_hour:
            return self.HOURLY_LIMIT
        return None

    def record(self) -> None:
        """Record that a cycle started now."""
        self._starts.append(self.clock())
        self._save()

    def reset(self) -> None:
        self._starts.clear()
        self._save()
        logger.info("Rate limiter window cleared")
