"""Mutual exclusion for cognitive cycles."""

from __future__ import annotations

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from core.errors import LockError

logger = logging.getLogger("cog.lock")


class CycleLock(ABC):
    """Non-blocking lease guaranteeing at most one running cycle per scope."""

    @abstractmethod
    def acquire(self) -> bool:
        """Try to take the lock without waiting."""

    @abstractmethod
    def release(self) -> None:
        """Release a lock held by this holder."""

    @property
    @abstractmethod
    def locked(self) -> bool:
        """Whether the lock is currently held."""

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the lock for a block or raise ``LockError``."""
        if not self.acquire():
            raise LockError("Cycle lock is held by another cycle")
        try:
            yield
        finally:
            self.release()


class InProcessCycleLock(CycleLock):
    """Lock scoped to one process, backed by ``threading.Lock``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        if self._lock.locked():
            self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()


class FileCycleLock(CycleLock):
    """Lock shared across processes through an exclusively-created lock file.

    The file holds ``PID:<pid>``. A lock file older than ``stale_age_seconds``
    whose process is gone is removed and the lock retaken.
    """

    def __init__(self, lock_path: Path, stale_age_seconds: float = 300.0) -> None:
        self.lock_path = Path(lock_path)
        self.stale_age_seconds = stale_age_seconds
        self._held = False

    def acquire(self) -> bool:
        if self._held:
            return False
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        if self._is_stale():
            self._remove()
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(f"PID:{os.getpid()}")
        self._held = True
        return True

    def release(self) -> None:
        if not self._held:
            return
        self._remove()
        self._held = False

    @property
    def locked(self) -> bool:
        return self.lock_path.exists()

    def _is_stale(self) -> bool:
        try:
            age = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return False
        if age < self.stale_age_seconds:
            return False
        try:
            content = self.lock_path.read_text(encoding="utf-8").strip()
            pid = int(content.split(":", 1)[1])
        except (OSError, ValueError, IndexError):
            return True
        if _process_running(pid):
            return False
        logger.warning("Lock file %s is stale (%.0fs old), removing", self.lock_path, age)
        return True

    def _remove(self) -> None:
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            pass


def _process_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True
