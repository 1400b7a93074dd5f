"""Structured JSONL audit logger for skill invocations."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


class AuditLogger:
    """Writes one JSON line per skill call."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("cog.audit")

    @staticmethod
    def _hash_params(params: dict[str, Any]) -> str:
        payload = json.dumps(params, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()

    def log(
        self,
        skill: str,
        params: dict[str, Any],
        outcome: str,
        success: bool,
        duration_ms: float,
        reason: str = "",
    ) -> dict[str, Any]:
        """Append one JSONL audit event and return it."""
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "skill": skill,
            "params_hash": self._hash_params(params),
            "outcome": outcome,
            "success": success,
            "duration_ms": round(duration_ms, 3),
            "reason": reason,
        }
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(event, ensure_ascii=True) + "\n")
        self.logger.debug(json.dumps(event, ensure_ascii=True))
        return event

    def read_events(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return the last ``limit`` audit events."""
        if not self.log_path.exists():
            return []
        lines = self.log_path.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines[-limit:] if line.strip()]
