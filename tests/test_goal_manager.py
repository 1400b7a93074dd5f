"""Goal manager lifecycle and prioritisation tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from core.errors import GoalNotFoundError
from memory.stores.sql_store import SQLStore
from memory.types.goals import GoalStatus, GoalType, SubGoalSpec
from planner.goal_manager import GoalManager


def _manager(tmp_path: Path, **kwargs) -> GoalManager:
    return GoalManager(SQLStore(tmp_path / "cog.db"), **kwargs)


def test_create_goal_defaults_and_clamping(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    goal = manager.create_goal(GoalType.RESEARCH, "Study order books", priority=250)

    assert goal.priority == 100
    assert goal.status == GoalStatus.ACTIVE
    assert goal.success_criteria == "Task completed successfully"
    assert manager.get_stats()["total_created"] == 1


def test_proactive_goal_carries_trigger(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    goal = manager.create_proactive_goal("Evaluate arbitrage opportunity", "arbitrage_detected", 85)

    assert goal.type == GoalType.PROACTIVE
    assert goal.metadata == {"trigger": "arbitrage_detected", "proactive": True}
    assert manager.has_similar_goal("arbitrage", GoalType.PROACTIVE)
    assert not manager.has_similar_goal("arbitrage", GoalType.RESEARCH)


def test_decompose_goal_links_sub_goals(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    parent = manager.create_goal(GoalType.TRADE, "Enter position", priority=60)
    subs = manager.decompose_goal(
        parent.id,
        [
            SubGoalSpec(type=GoalType.RESEARCH, description="Check liquidity"),
            {"type": "alert", "description": "Notify desk", "priority": 90},
        ],
    )

    assert [s.priority for s in subs] == [55, 90]
    assert manager.get_goal(parent.id).sub_goal_ids == [s.id for s in subs]
    assert all(s.parent_goal_id == parent.id for s in subs)

    with pytest.raises(GoalNotFoundError):
        manager.decompose_goal("goal-missing", [])


def test_parent_rolls_up_once_when_all_subgoals_achieved(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    parent = manager.create_goal(GoalType.TRADE, "Parent")
    first, second = manager.decompose_goal(
        parent.id,
        [
            {"type": "research", "description": "one"},
            {"type": "research", "description": "two"},
        ],
    )

    manager.achieve_goal(first.id)
    assert manager.get_goal(parent.id).status == GoalStatus.ACTIVE
    manager.achieve_goal(second.id)
    assert manager.get_goal(parent.id).status == GoalStatus.ACHIEVED
    assert manager.get_stats()["total_achieved"] == 3
    completed_at = manager.get_goal(parent.id).completed_at

    manager.achieve_goal(second.id)
    assert manager.get_goal(parent.id).status == GoalStatus.ACHIEVED
    assert manager.get_goal(parent.id).completed_at == completed_at


def test_parent_fails_when_majority_of_subgoals_fail(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    parent = manager.create_goal(GoalType.TRADE, "Parent")
    subs = manager.decompose_goal(
        parent.id, [{"type": "research", "description": f"sub {i}"} for i in range(3)]
    )

    manager.fail_goal(subs[0].id, "no data")
    assert manager.get_goal(parent.id).status == GoalStatus.ACTIVE
    manager.fail_goal(subs[1].id, "no data")

    parent_after = manager.get_goal(parent.id)
    assert parent_after.status == GoalStatus.FAILED
    assert parent_after.metadata["failure_reason"] == "2/3 sub-goals failed"


def test_abandon_cascades_to_open_subgoals_only(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    parent = manager.create_goal(GoalType.TRADE, "Parent")
    done, open_sub = manager.decompose_goal(
        parent.id,
        [
            {"type": "research", "description": "done"},
            {"type": "research", "description": "open"},
        ],
    )
    manager.achieve_goal(done.id)
    manager.abandon_goal(parent.id, "Changed plans")

    assert manager.get_goal(done.id).status == GoalStatus.ACHIEVED
    assert manager.get_goal(open_sub.id).status == GoalStatus.ABANDONED
    assert manager.get_goal(open_sub.id).metadata["abandon_reason"] == "Parent goal abandoned"


def test_next_goal_prefers_in_progress_then_priority(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    low = manager.create_goal(GoalType.MONITOR, "Low", priority=10)
    high = manager.create_goal(GoalType.MONITOR, "High", priority=90)
    blocked = manager.create_goal(GoalType.MONITOR, "Blocked", priority=100)
    manager.block_goal(blocked.id, "waiting on data")

    assert manager.get_next_goal().id == high.id
    manager.start_goal(low.id)
    assert manager.get_next_goal().id == low.id

    manager.achieve_goal(low.id)
    manager.achieve_goal(high.id)
    assert manager.get_next_goal() is None


def test_equal_priority_breaks_ties_by_creation_order(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    first = manager.create_goal(GoalType.MONITOR, "First", priority=50)
    manager.create_goal(GoalType.MONITOR, "Second", priority=50)

    assert manager.get_next_goal().id == first.id


def test_deadline_urgency_raises_effective_priority(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    soon = datetime.now(UTC) + timedelta(hours=1)
    urgent = manager.create_goal(GoalType.ALERT, "Urgent", priority=40, deadline=soon)
    relaxed = manager.create_goal(GoalType.ALERT, "Relaxed", priority=60)

    assert manager.urgency_boost(relaxed) == 0.0
    assert manager.urgency_boost(urgent) > 25
    assert [g.id for g in manager.get_goals_by_priority()] == [urgent.id, relaxed.id]


def test_overdue_goals_get_no_boost(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    late = manager.create_goal(
        GoalType.ALERT, "Late", deadline=datetime.now(UTC) - timedelta(minutes=5)
    )

    assert manager.urgency_boost(late) == 0.0
    assert [g.id for g in manager.get_overdue_goals()] == [late.id]


def test_unblock_restores_previous_state(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    fresh = manager.create_goal(GoalType.RESEARCH, "Fresh")
    started = manager.create_goal(GoalType.RESEARCH, "Started")
    manager.start_goal(started.id)
    manager.block_goal(fresh.id, "x")
    manager.block_goal(started.id, "y")

    assert manager.unblock_goal(fresh.id).status == GoalStatus.ACTIVE
    assert manager.unblock_goal(started.id).status == GoalStatus.IN_PROGRESS


def test_start_goal_ignores_terminal_goals(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    goal = manager.create_goal(GoalType.RESEARCH, "Done already")
    manager.achieve_goal(goal.id)

    assert manager.start_goal(goal.id).status == GoalStatus.ACHIEVED


def test_terminal_goals_are_not_resolved_again(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    dropped = manager.create_goal(GoalType.RESEARCH, "Dropped")
    done = manager.create_goal(GoalType.RESEARCH, "Done")

    manager.abandon_goal(dropped.id, "stale")
    assert manager.achieve_goal(dropped.id).status == GoalStatus.ABANDONED
    assert manager.fail_goal(dropped.id, "late report").status == GoalStatus.ABANDONED

    manager.achieve_goal(done.id)
    completed_at = manager.get_goal(done.id).completed_at
    manager.achieve_goal(done.id)
    assert manager.fail_goal(done.id, "late report").status == GoalStatus.ACHIEVED
    assert manager.block_goal(done.id, "late").status == GoalStatus.ACHIEVED
    assert manager.get_goal(done.id).completed_at == completed_at

    stats = manager.get_stats()
    assert stats["total_achieved"] == 1
    assert stats["total_failed"] == 0


def test_unknown_ids_are_noops(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    assert manager.start_goal("nope") is None
    assert manager.fail_goal("nope", "reason") is None
    assert manager.update_priority("nope", 10) is None
    with pytest.raises(GoalNotFoundError):
        manager.get_goal_or_raise("nope")


def test_cleanup_abandons_stale_and_overflow_goals(tmp_path: Path) -> None:
    manager = _manager(tmp_path, max_active_goals=2)
    stale = manager.create_goal(GoalType.MONITOR, "Stale", priority=90)
    stale.created_at = datetime.now(UTC) - timedelta(days=8)
    lowest = manager.create_goal(GoalType.MONITOR, "Lowest", priority=5)
    keep_a = manager.create_goal(GoalType.MONITOR, "Keep A", priority=50)
    keep_b = manager.create_goal(GoalType.MONITOR, "Keep B", priority=70)

    assert manager.cleanup_stale_goals() == 2
    assert manager.get_goal(stale.id).status == GoalStatus.ABANDONED
    assert manager.get_goal(lowest.id).status == GoalStatus.ABANDONED
    assert {g.id for g in manager.get_active_goals()} == {keep_a.id, keep_b.id}


def test_goals_persist_with_counters(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    goal = manager.create_goal(GoalType.LEARN, "Review calibration")
    manager.update_metadata(goal.id, trigger="prediction_resolved")
    manager.fail_goal(goal.id, "insufficient data")

    reloaded = _manager(tmp_path)
    stored = reloaded.get_goal(goal.id)
    assert stored.status == GoalStatus.FAILED
    assert stored.metadata["trigger"] == "prediction_resolved"
    stats = reloaded.get_stats()
    assert stats["total_failed"] == 1
    assert stats["success_rate"] == 0.0


def test_summary_lists_goals(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    assert "No active goals" in manager.summary()

    manager.create_goal(GoalType.RESEARCH, "Investigate whale activity", priority=56)
    assert "**[56]** Investigate whale activity" in manager.summary()
