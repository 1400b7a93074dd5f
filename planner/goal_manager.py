"""Goal lifecycle manager."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from core.errors import GoalNotFoundError
from memory.stores.sql_store import SQLStore
from memory.types.goals import OPEN_STATUSES, Goal, GoalStatus, GoalType, SubGoalSpec

logger = logging.getLogger("cog.goals")

DOCUMENT_NAME = "goals"

STATUS_MARKERS = {
    GoalStatus.ACTIVE: "[active]",
    GoalStatus.IN_PROGRESS: "[working]",
    GoalStatus.BLOCKED: "[blocked]",
    GoalStatus.ACHIEVED: "[done]",
    GoalStatus.FAILED: "[failed]",
    GoalStatus.ABANDONED: "[abandoned]",
}


def _clamp_priority(value: int | float) -> int:
    return int(max(0, min(100, round(value))))


class GoalManager:
    """Creates, prioritises and transitions goals.

    Goals live in one persisted document together with the lifecycle
    counters. Mutators called with an unknown id log a warning and return
    None; ``decompose_goal`` and ``get_goal_or_raise`` raise
    ``GoalNotFoundError`` instead.
    """

    def __init__(
        self,
        sql_store: SQLStore,
        max_active_goals: int = 20,
        stale_after_days: float = 7.0,
        urgency_window_hours: float = 24.0,
        urgency_weight: float = 30.0,
    ) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.max_active_goals = max_active_goals
        self.stale_after = timedelta(days=stale_after_days)
        self.urgency_window = timedelta(hours=urgency_window_hours)
        self.urgency_weight = urgency_weight
        self.goals: list[Goal] = []
        self.total_created = 0
        self.total_achieved = 0
        self.total_failed = 0
        self._load()

    def _load(self) -> None:
        payload = self.sql_store.load_document(DOCUMENT_NAME)
        if not payload:
            return
        self.goals = [Goal.model_validate(item) for item in payload.get("goals", [])]
        self.total_created = int(payload.get("total_created", len(self.goals)))
        self.total_achieved = int(payload.get("total_achieved", 0))
        self.total_failed = int(payload.get("total_failed", 0))

    def _save(self) -> None:
        self.sql_store.save_document(
            DOCUMENT_NAME,
            {
                "goals": [g.model_dump(mode="json") for g in self.goals],
                "total_created": self.total_created,
                "total_achieved": self.total_achieved,
                "total_failed": self.total_failed,
                "last_updated": datetime.now(UTC).isoformat(),
            },
        )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_goal(
        self,
        goal_type: GoalType | str,
        description: str,
        priority: int = 50,
        success_criteria: str | None = None,
        deadline: datetime | None = None,
        parent_goal_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Goal:
        goal = Goal(
            type=GoalType(goal_type),
            description=description,
            priority=_clamp_priority(priority),
            parent_goal_id=parent_goal_id,
            success_criteria=success_criteria or "Task completed successfully",
            deadline=deadline,
            metadata=dict(metadata or {}),
        )
        if parent_goal_id:
            parent = self.get_goal(parent_goal_id)
            if parent is not None:
                parent.sub_goal_ids.append(goal.id)
        self.goals.append(goal)
        self.total_created += 1
        self._save()
        logger.info(
            "Created goal: %s (%s, priority: %d)", goal.description, goal.type, goal.priority
        )
        return goal

    def create_proactive_goal(self, description: str, trigger: str, priority: int = 60) -> Goal:
        """Create a goal in response to a detected opportunity."""
        return self.create_goal(
            GoalType.PROACTIVE,
            description,
            priority=priority,
            success_criteria="Opportunity acted upon or dismissed with reason",
            metadata={"trigger": trigger, "proactive": True},
        )

    def decompose_goal(self, parent_goal_id: str, sub_goals: list[SubGoalSpec | dict]) -> list[Goal]:
        """Create sub-goals under ``parent_goal_id``.

        Sub-goal priority defaults to five below the parent's.
        """
        parent = self.get_goal_or_raise(parent_goal_id)
        created: list[Goal] = []
        for raw in sub_goals:
            spec = raw if isinstance(raw, SubGoalSpec) else SubGoalSpec.model_validate(raw)
            created.append(
                self.create_goal(
                    spec.type,
                    spec.description,
                    priority=spec.priority if spec.priority is not None else parent.priority - 5,
                    success_criteria=spec.success_criteria,
                    parent_goal_id=parent_goal_id,
                )
            )
        return created

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _lookup(self, goal_id: str, operation: str) -> Goal | None:
        goal = self.get_goal(goal_id)
        if goal is None:
            logger.warning("%s: unknown goal %s", operation, goal_id)
        return goal

    def _already_closed(self, goal: Goal, operation: str) -> bool:
        if goal.is_terminal:
            logger.warning("%s: goal %s is already %s", operation, goal.id, goal.status)
            return True
        return False

    def start_goal(self, goal_id: str) -> Goal | None:
        goal = self._lookup(goal_id, "start_goal")
        if goal is None:
            return None
        if self._already_closed(goal, "start_goal"):
            return goal
        goal.status = GoalStatus.IN_PROGRESS
        goal.started_at = goal.started_at or datetime.now(UTC)
        self._save()
        logger.info("Started goal: %s", goal.description)
        return goal

    def achieve_goal(self, goal_id: str, result: str | None = None) -> Goal | None:
        goal = self._lookup(goal_id, "achieve_goal")
        if goal is None:
            return None
        if self._already_closed(goal, "achieve_goal"):
            return goal
        goal.status = GoalStatus.ACHIEVED
        goal.completed_at = datetime.now(UTC)
        if result:
            goal.metadata["result"] = result
        self.total_achieved += 1
        self._save()
        logger.info("Achieved goal: %s", goal.description)
        self._check_parent_completion(goal.parent_goal_id)
        return goal

    def fail_goal(self, goal_id: str, reason: str) -> Goal | None:
        goal = self._lookup(goal_id, "fail_goal")
        if goal is None:
            return None
        if self._already_closed(goal, "fail_goal"):
            return goal
        goal.status = GoalStatus.FAILED
        goal.completed_at = datetime.now(UTC)
        goal.metadata["failure_reason"] = reason
        self.total_failed += 1
        self._save()
        logger.info("Failed goal: %s - %s", goal.description, reason)
        self._check_parent_completion(goal.parent_goal_id)
        return goal

    def abandon_goal(self, goal_id: str, reason: str) -> Goal | None:
        """Abandon a goal and every open sub-goal beneath it."""
        goal = self._lookup(goal_id, "abandon_goal")
        if goal is None:
            return None
        if self._already_closed(goal, "abandon_goal"):
            return goal
        goal.status = GoalStatus.ABANDONED
        goal.completed_at = datetime.now(UTC)
        goal.metadata["abandon_reason"] = reason
        self._save()
        logger.info("Abandoned goal: %s - %s", goal.description, reason)
        for sub_id in goal.sub_goal_ids:
            sub = self.get_goal(sub_id)
            if sub is not None and not sub.is_terminal:
                self.abandon_goal(sub_id, "Parent goal abandoned")
        return goal

    def block_goal(self, goal_id: str, blocker: str) -> Goal | None:
        goal = self._lookup(goal_id, "block_goal")
        if goal is None:
            return None
        if self._already_closed(goal, "block_goal"):
            return goal
        goal.status = GoalStatus.BLOCKED
        goal.metadata["blocker"] = blocker
        self._save()
        logger.info("Blocked goal: %s - %s", goal.description, blocker)
        return goal

    def unblock_goal(self, goal_id: str) -> Goal | None:
        goal = self._lookup(goal_id, "unblock_goal")
        if goal is None or goal.status != GoalStatus.BLOCKED:
            return goal
        goal.status = GoalStatus.IN_PROGRESS if goal.started_at else GoalStatus.ACTIVE
        self._save()
        logger.info("Unblocked goal: %s", goal.description)
        return goal

    def _check_parent_completion(self, parent_id: str | None) -> None:
        if not parent_id:
            return
        parent = self.get_goal(parent_id)
        if parent is None or not parent.sub_goal_ids or parent.is_terminal:
            return
        subs = self.get_sub_goals(parent_id)
        if not subs:
            return
        failed = sum(1 for g in subs if g.status == GoalStatus.FAILED)
        if all(g.status == GoalStatus.ACHIEVED for g in subs):
            self.achieve_goal(parent_id, "All sub-goals achieved")
        elif failed > len(subs) / 2:
            self.fail_goal(parent_id, f"{failed}/{len(subs)} sub-goals failed")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_goal(self, goal_id: str) -> Goal | None:
        return next((g for g in self.goals if g.id == goal_id), None)

    def get_goal_or_raise(self, goal_id: str) -> Goal:
        goal = self.get_goal(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal

    def get_active_goals(self) -> list[Goal]:
        """Goals that are not yet achieved, failed or abandoned."""
        return [g for g in self.goals if g.status in OPEN_STATUSES]

    def urgency_boost(self, goal: Goal, now: datetime | None = None) -> float:
        if goal.deadline is None:
            return 0.0
        now = now or datetime.now(UTC)
        remaining = goal.deadline - now
        if remaining <= timedelta(0) or remaining > self.urgency_window:
            return 0.0
        return self.urgency_weight * (1 - remaining / self.urgency_window)

    def effective_priority(self, goal: Goal, now: datetime | None = None) -> float:
        return goal.priority + self.urgency_boost(goal, now)

    def get_goals_by_priority(self) -> list[Goal]:
        now = datetime.now(UTC)
        return sorted(
            self.get_active_goals(),
            key=lambda g: (-self.effective_priority(g, now), g.created_at, g.id),
        )

    def get_next_goal(self) -> Goal | None:
        """Continue an in-progress goal if any, else the best active goal."""
        ranked = self.get_goals_by_priority()
        in_progress = next((g for g in ranked if g.status == GoalStatus.IN_PROGRESS), None)
        if in_progress is not None:
            return in_progress
        return next((g for g in ranked if g.status == GoalStatus.ACTIVE), None)

    def get_goals_by_type(self, goal_type: GoalType | str) -> list[Goal]:
        return [g for g in self.goals if g.type == GoalType(goal_type)]

    def get_sub_goals(self, parent_id: str) -> list[Goal]:
        parent = self.get_goal(parent_id)
        if parent is None:
            return []
        return [g for g in (self.get_goal(i) for i in parent.sub_goal_ids) if g is not None]

    def get_overdue_goals(self) -> list[Goal]:
        now = datetime.now(UTC)
        return [g for g in self.get_active_goals() if g.deadline and g.deadline < now]

    def has_similar_goal(self, description: str, goal_type: GoalType | str | None = None) -> bool:
        """Whether an open goal's description overlaps ``description`` by substring."""
        desc = description.lower()
        wanted = GoalType(goal_type) if goal_type is not None else None
        for goal in self.get_active_goals():
            if wanted is not None and goal.type != wanted:
                continue
            other = goal.description.lower()
            if desc in other or other in desc:
                return True
        return False

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def cleanup_stale_goals(self) -> int:
        """Abandon stale goals and enforce the active-goal cap.

        Returns the number of goals abandoned.
        """
        now = datetime.now(UTC)
        cleaned = 0
        for goal in list(self.goals):
            if goal.status not in (GoalStatus.ACTIVE, GoalStatus.IN_PROGRESS):
                continue
            if now - goal.created_at > self.stale_after:
                self.abandon_goal(goal.id, "Stale - exceeded maximum age")
                cleaned += 1

        active = self.get_active_goals()
        overflow = len(active) - self.max_active_goals
        if overflow > 0:
            for goal in sorted(active, key=lambda g: (g.priority, g.created_at, g.id))[:overflow]:
                if goal.is_terminal:
                    continue
                self.abandon_goal(goal.id, "Exceeded maximum active goals limit")
                cleaned += 1

        if cleaned:
            logger.info("Cleaned up %d stale goals", cleaned)
        return cleaned

    def update_priority(self, goal_id: str, new_priority: int) -> Goal | None:
        goal = self._lookup(goal_id, "update_priority")
        if goal is None:
            return None
        goal.priority = _clamp_priority(new_priority)
        self._save()
        return goal

    def update_metadata(self, goal_id: str, **values: Any) -> Goal | None:
        goal = self._lookup(goal_id, "update_metadata")
        if goal is None:
            return None
        goal.metadata.update(values)
        self._save()
        return goal

    def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {status.value: 0 for status in GoalStatus}
        for goal in self.goals:
            stats[goal.status.value] += 1
        completed = stats["achieved"] + stats["failed"]
        stats["total_created"] = self.total_created
        stats["total_achieved"] = self.total_achieved
        stats["total_failed"] = self.total_failed
        stats["success_rate"] = stats["achieved"] / completed if completed else 0.0
        return stats

    def summary(self) -> str:
        goals = self.get_goals_by_priority()
        stats = self.get_stats()
        overdue = self.get_overdue_goals()
        lines = [f"## Active Goals ({len(goals)})", ""]
        if not goals:
            lines.append(
                "No active goals. Consider generating proactive goals based on opportunities."
            )
            lines.append("")
        now = datetime.now(UTC)
        for goal in goals[:10]:
            lines.append(f"{STATUS_MARKERS[goal.status]} **[{goal.priority}]** {goal.description}")
            detail = f"   Type: {goal.type} | Status: {goal.status}"
            if goal.deadline:
                hours = (goal.deadline - now).total_seconds() / 3600
                detail += f" | Deadline: {hours:.0f}h"
            lines.append(detail)
        if overdue:
            lines.append("")
            lines.append(f"**Overdue Goals**: {len(overdue)}")
        lines.extend(
            [
                "",
                "### Statistics",
                f"- Success Rate: {stats['success_rate'] * 100:.1f}%",
                f"- Total Created: {stats['total_created']}",
                f"- Achieved: {stats['achieved']} | Failed: {stats['failed']}",
            ]
        )
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        self.goals = []
        self.total_created = 0
        self.total_achieved = 0
        self.total_failed = 0
        self._save()
        logger.info("Goals reset")
