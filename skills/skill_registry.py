"""Skill registry and default skill wiring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from skills.base_skill import BaseSkill

OFFLINE_RESPONSES: dict[str, dict[str, Any]] = {
    "verify_arbitrage": {"confirmed": True, "spread": 0.035},
    "assess_risk": {"risk_level": "low", "position_size": 0.0},
    "send_alert": {"queued": True},
    "gather_market_data": {"markets": []},
    "research_analysis": {"summary": "No external research source configured."},
    "execute_goal": {"acknowledged": True},
}


class OfflineSkill(BaseSkill):
    """Deterministic placeholder for an external collaborator."""

    def __init__(
        self,
        name: str,
        response: dict[str, Any] | None = None,
        enabled: bool = True,
        settings: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name=name, enabled=enabled, settings=settings)
        self.response = dict(response or {})

    def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        return {**self.response, "skill": self.name, "offline": True, "params": dict(params)}


class CalibrationSkill(BaseSkill):
    """Report prediction calibration from the world state."""

    def __init__(self, world_state: Any, enabled: bool = True) -> None:
        super().__init__(name="analyze_calibration", enabled=enabled)
        self.world_state = world_state

    def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        metrics = self.world_state.get_calibration_metrics()
        return {
            **metrics,
            "pending_predictions": len(self.world_state.get_pending_predictions()),
        }


class MemorySyncSkill(BaseSkill):
    """Write the markdown memory export."""

    def __init__(self, exporter: Any, enabled: bool = True) -> None:
        super().__init__(name="sync_memory", enabled=enabled)
        self.exporter = exporter

    def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self.exporter.write_memory_export()
        return {"synced": path is not None, "path": str(path) if path else None}


class HeartbeatSkill(BaseSkill):
    """Write the heartbeat file describing current focus and pending work."""

    def __init__(self, exporter: Any, enabled: bool = True) -> None:
        super().__init__(name="heartbeat", enabled=enabled)
        self.exporter = exporter

    def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self.exporter.write_heartbeat()
        return {"checked": True, "path": str(path) if path else None}


@dataclass
class RegisteredSkill:
    """Metadata for skill listing output."""

    name: str
    enabled: bool
    kind: str


class SkillRegistry:
    """In-memory mapping from skill name to strategy object."""

    def __init__(self) -> None:
        self._skills: dict[str, BaseSkill] = {}

    def register(self, skill: BaseSkill, name: str | None = None) -> None:
        self._skills[name or skill.name] = skill

    def get(self, name: str) -> BaseSkill | None:
        skill = self._skills.get(name)
        if skill and skill.enabled:
            return skill
        return None

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def list_skills(self) -> list[RegisteredSkill]:
        return [
            RegisteredSkill(name=name, enabled=skill.enabled, kind=type(skill).__name__)
            for name, skill in sorted(self._skills.items())
        ]


def _skill_config(config: dict[str, Any], skill_name: str) -> dict[str, Any]:
    skill_cfg = config.get("skills", {}).get(skill_name, {})
    return dict(skill_cfg) if isinstance(skill_cfg, dict) else {}


def _skill_enabled(config: dict[str, Any], skill_name: str, default: bool = True) -> bool:
    return bool(_skill_config(config, skill_name).get("enabled", default))


def build_default_registry(
    *,
    config: dict[str, Any],
    world_state: Any,
    exporter: Any,
) -> SkillRegistry:
    """Build the default skill registry from config."""
    registry = SkillRegistry()
    registry.register(
        CalibrationSkill(world_state, enabled=_skill_enabled(config, "analyze_calibration"))
    )
    registry.register(MemorySyncSkill(exporter, enabled=_skill_enabled(config, "sync_memory")))
    registry.register(HeartbeatSkill(exporter, enabled=_skill_enabled(config, "heartbeat")))
    for name, response in OFFLINE_RESPONSES.items():
        settings = _skill_config(config, name)
        registry.register(
            OfflineSkill(
                name=name,
                response={**response, **settings.get("response", {})},
                enabled=_skill_enabled(config, name),
                settings=settings,
            )
        )
    return registry
