"""Skill execution boundary with per-call timeouts and auditing."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from core.errors import SkillExecutionError, SkillNotFoundError, SkillTimeoutError
from governance.audit_logger import AuditLogger
from skills.skill_registry import SkillRegistry

logger = logging.getLogger("cog.skills")


class SkillExecutor:
    """Runs registered skills one call at a time.

    Each call runs in a dedicated worker thread. When the step timeout
    elapses the caller gets ``SkillTimeoutError`` and the worker thread is
    abandoned; Python threads cannot be killed.
    """

    def __init__(
        self,
        registry: SkillRegistry,
        audit_logger: AuditLogger | None = None,
        default_timeout_ms: int = 60_000,
    ) -> None:
        self.registry = registry
        self.audit_logger = audit_logger
        self.default_timeout_ms = default_timeout_ms

    def execute(
        self, skill_name: str, params: dict[str, Any] | None = None, timeout_ms: int | None = None
    ) -> dict[str, Any]:
        """Invoke ``skill_name`` and return its result mapping.

        Raises ``SkillNotFoundError`` for unknown or disabled skills,
        ``SkillTimeoutError`` when the call overruns and
        ``SkillExecutionError`` when the skill raises or reports failure.
        """
        params = dict(params or {})
        skill = self.registry.get(skill_name)
        if skill is None:
            self._audit(skill_name, params, "not_found", False, 0.0, "Unknown or disabled skill")
            raise SkillNotFoundError(f"Unknown skill: {skill_name}")

        timeout_s = (timeout_ms or self.default_timeout_ms) / 1000.0
        started = time.perf_counter()
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"skill-{skill_name}")
        future = pool.submit(skill.execute, params)
        try:
            result = future.result(timeout=timeout_s)
        except FutureTimeoutError as exc:
            elapsed = (time.perf_counter() - started) * 1000
            reason = f"Skill {skill_name} timed out after {timeout_s * 1000:.0f}ms"
            self._audit(skill_name, params, "timeout", False, elapsed, reason)
            logger.warning(reason)
            raise SkillTimeoutError(reason) from exc
        except Exception as exc:
            elapsed = (time.perf_counter() - started) * 1000
            self._audit(skill_name, params, "error", False, elapsed, str(exc))
            logger.warning("Skill %s raised: %s", skill_name, exc)
            raise SkillExecutionError(f"Skill {skill_name} failed: {exc}") from exc
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        elapsed = (time.perf_counter() - started) * 1000
        if not isinstance(result, dict):
            result = {"output": result}
        if result.get("success") is False:
            reason = str(result.get("error") or result.get("outcome") or "reported failure")
            self._audit(skill_name, params, "failed", False, elapsed, reason)
            raise SkillExecutionError(f"Skill {skill_name} failed: {reason}")

        self._audit(skill_name, params, "success", True, elapsed)
        logger.debug("Skill %s completed in %.1fms", skill_name, elapsed)
        return result

    def _audit(
        self,
        skill_name: str,
        params: dict[str, Any],
        outcome: str,
        success: bool,
        duration_ms: float,
        reason: str = "",
    ) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log(
            skill=skill_name,
            params=params,
            outcome=outcome,
            success=success,
            duration_ms=duration_ms,
            reason=reason,
        )
