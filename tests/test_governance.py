"""Governance behavior tests: rate limiting, cycle locks and auditing."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from core.errors import LockError
from governance.audit_logger import AuditLogger
from governance.cycle_lock import FileCycleLock, InProcessCycleLock
from governance.rate_limiter import RateLimiter
from memory.stores.sql_store import SQLStore


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_cooldown_blocks_back_to_back_cycles() -> None:
    clock = FakeClock()
    limiter = RateLimiter(cooldown_seconds=10, max_cycles_per_hour=100, clock=clock)

    assert limiter.check() is None
    limiter.record()
    clock.now += 5
    assert limiter.check() == "cooldown period"
    clock.now += 6
    assert limiter.check() is None


def test_hourly_cap_is_a_rolling_window() -> None:
    clock = FakeClock()
    limiter = RateLimiter(cooldown_seconds=0, max_cycles_per_hour=3, clock=clock)
    for _ in range(3):
        assert limiter.check() is None
        limiter.record()
        clock.now += 600

    assert limiter.check() == "hourly limit reached"
    assert limiter.cycles_in_window() == 3
    clock.now += 1801
    assert limiter.check() is None
    assert limiter.cycles_in_window() == 2


def test_rate_limiter_reset() -> None:
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    limiter.record()
    limiter.reset()

    assert limiter.last_cycle_at is None
    assert limiter.check() is None


def test_rate_limiter_window_is_shared_through_the_store(tmp_path: Path) -> None:
    clock = FakeClock()
    store = SQLStore(tmp_path / "cog.db")
    first = RateLimiter(cooldown_seconds=10, max_cycles_per_hour=2, clock=clock, sql_store=store)
    first.record()

    second = RateLimiter(cooldown_seconds=10, max_cycles_per_hour=2, clock=clock, sql_store=store)
    assert second.last_cycle_at == clock.now
    assert second.check() == "cooldown period"

    clock.now += 11
    second.record()
    clock.now += 11
    assert first.check() == "hourly limit reached"

    first.reset()
    assert second.check() is None


def test_in_process_lock_is_exclusive() -> None:
    lock = InProcessCycleLock()

    assert lock.acquire() is True
    assert lock.locked is True
    assert lock.acquire() is False
    lock.release()
    assert lock.locked is False

    with lock.hold():
        with pytest.raises(LockError):
            with lock.hold():
                pass
    assert lock.locked is False


def test_file_lock_excludes_other_holders(tmp_path: Path) -> None:
    path = tmp_path / "locks" / "cycle.lock"
    first = FileCycleLock(path)
    second = FileCycleLock(path)

    assert first.acquire() is True
    assert path.read_text(encoding="utf-8") == f"PID:{os.getpid()}"
    assert second.acquire() is False
    second.release()
    assert path.exists()

    first.release()
    assert not path.exists()
    assert second.acquire() is True
    second.release()


def test_file_lock_recovers_stale_lock(tmp_path: Path) -> None:
    path = tmp_path / "cycle.lock"
    path.write_text("PID:unreadable", encoding="utf-8")
    old = time.time() - 600
    os.utime(path, (old, old))

    lock = FileCycleLock(path, stale_age_seconds=300)
    assert lock.acquire() is True
    lock.release()


def test_fresh_foreign_lock_is_respected(tmp_path: Path) -> None:
    path = tmp_path / "cycle.lock"
    path.write_text("PID:unreadable", encoding="utf-8")

    lock = FileCycleLock(path, stale_age_seconds=300)
    assert lock.acquire() is False
    assert lock.locked is True


def test_audit_logger_appends_jsonl(tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "logs" / "audit.jsonl")
    audit.log("verify_arbitrage", {"b": 1, "a": 2}, "success", True, 1.23456)
    audit.log("send_alert", {"a": 2, "b": 1}, "error", False, 4.0, reason="smtp down")

    events = audit.read_events()
    assert [e["skill"] for e in events] == ["verify_arbitrage", "send_alert"]
    assert events[0]["params_hash"] == events[1]["params_hash"]
    assert events[0]["duration_ms"] == 1.235
    assert events[1]["reason"] == "smtp down"
    assert audit.read_events(limit=1)[0]["skill"] == "send_alert"
