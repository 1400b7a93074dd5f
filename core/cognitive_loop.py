"""Seven-phase cognitive cycle.

perceive -> update_beliefs -> evaluate -> deliberate -> plan -> act -> reflect

One call to ``run_cycle`` runs every phase to completion. The cognitive
state document is saved after each phase, and every store persists its own
mutations, so a crash between phases leaves each document consistent on its
own.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from core.errors import CognitiveCoreError
from core.event_bus import EventBus
from core.state_export import StateExporter
from core.state_manager import StateManager
from executor.skill_executor import SkillExecutor
from governance.cycle_lock import CycleLock, InProcessCycleLock
from governance.rate_limiter import RateLimiter
from memory.episodic_memory import EpisodicMemory
from memory.types.episodic import Bias, BiasType, EpisodeOutcome
from memory.types.events import (
    SIGNAL_EVENT_TYPES,
    AgentEvent,
    CognitiveMetrics,
    CognitivePhase,
    EventType,
)
from memory.types.goals import Goal, GoalType
from memory.types.world import BeliefSource, Signal, SignalType
from planner.execution_plan import Plan, PlanStatus, StepResult, StepStatus
from planner.goal_manager import GoalManager
from planner.task_decomposer import TaskDecomposer
from world_model.world_state import WorldStateStore

logger = logging.getLogger("cog.loop")

# signal type -> (belief template, confidence factor, source, ttl hours)
BELIEF_RULES: dict[SignalType, tuple[str, float, BeliefSource, float]] = {
    SignalType.ARBITRAGE_OPPORTUNITY: (
        "Arbitrage opportunity exists: {content}",
        1.0,
        BeliefSource.OBSERVATION,
        1.0,
    ),
    SignalType.WHALE_ACTIVITY: (
        "Whale activity detected: {content}",
        1.0,
        BeliefSource.OBSERVATION,
        4.0,
    ),
    SignalType.NEWS_SENTIMENT: ("News sentiment: {content}", 0.7, BeliefSource.EXTERNAL, 12.0),
    SignalType.PRICE_MOVEMENT: (
        "Price movement observed: {content}",
        1.0,
        BeliefSource.OBSERVATION,
        2.0,
    ),
}


@dataclass
class Perception:
    signals: list[Signal] = field(default_factory=list)
    events: list[AgentEvent] = field(default_factory=list)
    context_changes: list[str] = field(default_factory=list)


@dataclass
class Evaluation:
    recent_successes: int = 0
    recent_failures: int = 0
    calibration_delta: float = 0.0
    applicable_lessons: list[str] = field(default_factory=list)
    biases: list[Bias] = field(default_factory=list)


@dataclass
class Deliberation:
    selected_goal: Goal | None = None
    created_goals: list[Goal] = field(default_factory=list)
    goals_abandoned: int = 0


@dataclass
class ActionResult:
    success: bool
    step_results: list[dict[str, Any]] = field(default_factory=list)
    failed_step: int | None = None


@dataclass
class CycleResult:
    """Outcome of one ``run_cycle`` call."""

    success: bool
    cycle_time_ms: float
    summary: str
    selected_goal_id: str | None = None
    created_goal_ids: list[str] = field(default_factory=list)
    plan: Plan | None = None
    action: ActionResult | None = None


class CognitiveLoop:
    """Drives perception, deliberation, action and learning over the stores."""

    def __init__(
        self,
        world_state: WorldStateStore,
        goal_manager: GoalManager,
        memory: EpisodicMemory,
        executor: SkillExecutor,
        state_manager: StateManager,
        decomposer: TaskDecomposer | None = None,
        rate_limiter: RateLimiter | None = None,
        cycle_lock: CycleLock | None = None,
        event_bus: EventBus | None = None,
        exporter: StateExporter | None = None,
        arbitrage_priority_threshold: float = 70.0,
        whale_priority_threshold: float = 60.0,
        immediate_action_strength: float = 0.8,
    ) -> None:
        self.world_state = world_state
        self.goal_manager = goal_manager
        self.memory = memory
        self.executor = executor
        self.state_manager = state_manager
        self.decomposer = decomposer or TaskDecomposer()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.cycle_lock = cycle_lock or InProcessCycleLock()
        self.event_bus = event_bus or EventBus()
        self.exporter = exporter or StateExporter(
            world_state=world_state,
            goal_manager=goal_manager,
            memory=memory,
            state_manager=state_manager,
        )
        self.arbitrage_priority_threshold = arbitrage_priority_threshold
        self.whale_priority_threshold = whale_priority_threshold
        self.immediate_action_strength = immediate_action_strength

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_cycle(self) -> CycleResult:
        """Run one complete cycle, or skip it when locked or rate limited."""
        if not self.cycle_lock.acquire():
            logger.info("Cycle skipped: another cycle is running")
            return CycleResult(False, 0.0, "Cycle skipped: another cycle is running")
        try:
            reason = self.rate_limiter.check()
            if reason is not None:
                logger.info("Cycle skipped: %s", reason)
                return CycleResult(False, 0.0, f"Cycle skipped: {reason}")
            self.rate_limiter.record()
            return self._run_phases()
        finally:
            self.cycle_lock.release()

    def _run_phases(self) -> CycleResult:
        started = time.perf_counter()
        self.event_bus.emit("cycle_started", {"timestamp": datetime.now(UTC).isoformat()})
        try:
            perception = self.perceive()
            self._checkpoint(CognitivePhase.PERCEIVE)

            self.update_beliefs(perception)
            self._checkpoint(CognitivePhase.UPDATE_BELIEFS)

            self.evaluate()
            self._checkpoint(CognitivePhase.EVALUATE)

            deliberation = self.deliberate(perception)
            self._checkpoint(CognitivePhase.DELIBERATE)

            plan: Plan | None = None
            action: ActionResult | None = None
            goal = deliberation.selected_goal
            if goal is not None:
                plan = self.plan(goal)
                self._checkpoint(CognitivePhase.PLAN)
                action = self.act(plan, goal, [s.id for s in perception.signals])
                self._checkpoint(CognitivePhase.ACT)

            self.reflect()

            cycle_ms = (time.perf_counter() - started) * 1000
            self.state_manager.record_cycle(cycle_ms)
            self._checkpoint(CognitivePhase.REFLECT)

            metrics = self.state_manager.state.metrics
            if action is None:
                action_text = "none"
            else:
                action_text = "success" if action.success else "failed"
            summary = " | ".join(
                [
                    f"Cycle #{metrics.total_cycles} completed in {cycle_ms:.0f}ms",
                    f"Signals: {len(perception.signals)}",
                    f"Goal: {goal.description if goal else 'none'}",
                    f"Action: {action_text}",
                    f"Calibration: {metrics.calibration_score:.4f}",
                ]
            )
            logger.info(summary)
            self.event_bus.emit("cycle_completed", {"summary": summary})
            return CycleResult(
                success=True,
                cycle_time_ms=cycle_ms,
                summary=summary,
                selected_goal_id=goal.id if goal else None,
                created_goal_ids=[g.id for g in deliberation.created_goals],
                plan=plan,
                action=action,
            )
        except Exception as exc:
            logger.exception("Cycle failed")
            self.state_manager.save()
            self.event_bus.emit("cycle_failed", {"error": str(exc)})
            return CycleResult(
                success=False,
                cycle_time_ms=(time.perf_counter() - started) * 1000,
                summary=f"Cycle failed: {exc}",
            )

    def _checkpoint(self, phase: CognitivePhase) -> None:
        self.state_manager.set_phase(phase)
        self.state_manager.save()
        self.event_bus.emit("phase_completed", {"phase": phase.value})

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def perceive(self) -> Perception:
        """Turn unprocessed signals into events and detect context changes."""
        self.state_manager.set_phase(CognitivePhase.PERCEIVE)
        perception = Perception(signals=self.world_state.get_unprocessed_signals())
        for signal in perception.signals:
            perception.events.append(
                AgentEvent(
                    id=f"event-{signal.id}",
                    type=SIGNAL_EVENT_TYPES.get(signal.type, EventType.MARKET_UPDATE),
                    priority=signal.strength * 100,
                    payload=signal.model_dump(mode="json"),
                    timestamp=signal.timestamp,
                    source=signal.source,
                    requires_immediate_action=signal.strength > self.immediate_action_strength,
                )
            )
        self.state_manager.add_events(perception.events)

        world_summary = self.world_state.summary()
        if "Significant Market Moves" in world_summary:
            perception.context_changes.append("market_movement")
        if "Positions at Risk" in world_summary:
            perception.context_changes.append("position_risk")
        self.state_manager.set_context(perception.context_changes)

        logger.info(
            "Perceive: %d signals, %d context changes",
            len(perception.signals),
            len(perception.context_changes),
        )
        return perception

    def update_beliefs(self, perception: Perception) -> None:
        """Convert signals into beliefs; every signal ends up processed."""
        self.state_manager.set_phase(CognitivePhase.UPDATE_BELIEFS)
        try:
            for signal in perception.signals:
                rule = BELIEF_RULES.get(signal.type)
                if rule is None:
                    continue
                template, factor, source, ttl_hours = rule
                self.world_state.add_belief(
                    template.format(content=signal.content),
                    signal.strength * factor,
                    source,
                    evidence=[signal.id],
                    expires_in=timedelta(hours=ttl_hours),
                )
        finally:
            for signal in perception.signals:
                self.world_state.mark_signal_processed(signal.id)
        logger.info("UpdateBeliefs: processed %d signals", len(perception.signals))

    def evaluate(self) -> Evaluation:
        """Score calibration, look for biases and surface applicable lessons."""
        self.state_manager.set_phase(CognitivePhase.EVALUATE)
        self.memory.analyze_patterns(30)
        biases = self.memory.detect_biases(30)
        calibration = self.world_state.get_calibration_metrics()

        recent = self.memory.get_recent_episodes(20)
        metrics = self.state_manager.state.metrics
        current = float(calibration["brier_score"])
        evaluation = Evaluation(
            recent_successes=sum(1 for e in recent if e.outcome == EpisodeOutcome.SUCCESS),
            recent_failures=sum(1 for e in recent if e.outcome == EpisodeOutcome.FAILURE),
            calibration_delta=current - metrics.calibration_score,
            biases=biases,
        )
        metrics.calibration_score = current

        ranked = self.goal_manager.get_goals_by_priority()
        if ranked:
            lessons = self.memory.get_relevant_lessons(ranked[0].description, 3)
            evaluation.applicable_lessons = [lesson.content for lesson in lessons]

        for bias in biases:
            if bias.type == BiasType.OVERCONFIDENCE and bias.magnitude > 0.1:
                self.world_state.add_belief(
                    "I tend to be overconfident - should reduce certainty by "
                    f"{bias.magnitude * 100:.0f}%",
                    0.8,
                    BeliefSource.INFERENCE,
                    evidence=bias.evidence,
                    expires_in=timedelta(hours=24),
                )

        logger.info(
            "Evaluate: success %d, failures %d, calibration %.4f",
            evaluation.recent_successes,
            evaluation.recent_failures,
            current,
        )
        return evaluation

    def deliberate(self, perception: Perception) -> Deliberation:
        """Create goals from notable events and select one to pursue."""
        self.state_manager.set_phase(CognitivePhase.DELIBERATE)
        result = Deliberation(goals_abandoned=self.goal_manager.cleanup_stale_goals())

        for event in perception.events:
            content = str(event.payload.get("content", ""))
            if (
                event.type == EventType.ARBITRAGE_DETECTED
                and event.priority > self.arbitrage_priority_threshold
                and not self.goal_manager.has_similar_goal("arbitrage", GoalType.PROACTIVE)
            ):
                result.created_goals.append(
                    self.goal_manager.create_proactive_goal(
                        f"Evaluate arbitrage opportunity: {content}",
                        EventType.ARBITRAGE_DETECTED.value,
                        round(event.priority),
                    )
                )
            elif (
                event.type == EventType.WHALE_MOVEMENT
                and event.priority > self.whale_priority_threshold
                and not self.goal_manager.has_similar_goal("whale", GoalType.RESEARCH)
            ):
                result.created_goals.append(
                    self.goal_manager.create_goal(
                        GoalType.RESEARCH,
                        f"Investigate whale activity: {content}",
                        priority=round(event.priority * 0.8),
                        metadata={"trigger": EventType.WHALE_MOVEMENT.value},
                    )
                )
            elif event.type == EventType.PREDICTION_RESOLVED:
                result.created_goals.append(
                    self.goal_manager.create_goal(
                        GoalType.LEARN,
                        "Analyze resolved prediction for calibration improvement",
                        priority=40,
                        metadata={"trigger": EventType.PREDICTION_RESOLVED.value},
                    )
                )

        result.selected_goal = self.goal_manager.get_next_goal()
        if result.selected_goal is not None:
            self.state_manager.set_focus(result.selected_goal.description)
        logger.info(
            "Deliberate: selected %s, created %d",
            result.selected_goal.description if result.selected_goal else "none",
            len(result.created_goals),
        )
        return result

    def plan(self, goal: Goal) -> Plan:
        self.state_manager.set_phase(CognitivePhase.PLAN)
        plan = self.decomposer.decompose(goal)
        self.state_manager.set_plan(plan.to_dict())
        return plan

    def act(self, plan: Plan, goal: Goal, signal_ids: list[str] | None = None) -> ActionResult:
        """Run plan steps in order; the first failure stops the plan."""
        self.state_manager.set_phase(CognitivePhase.ACT)
        self.goal_manager.start_goal(goal.id)
        plan.status = PlanStatus.EXECUTING
        result = ActionResult(success=True)
        completed: set[int] = set()
        last_output: dict[str, Any] | None = None
        aborted = False

        for index, step in enumerate(plan.steps):
            number = index + 1
            plan.current_step_index = index
            step.status = StepStatus.EXECUTING
            step_started = time.perf_counter()
            error: str | None = None
            output: dict[str, Any] | None = None

            unmet = [
                c.expression
                for c in step.preconditions
                if c.evaluate(completed, last_output, self.world_state.believes) is False
            ]
            if unmet:
                error = f"Precondition not met: {', '.join(unmet)}"
            else:
                try:
                    output = self.executor.execute(step.skill, step.params, step.timeout_ms)
                except CognitiveCoreError as exc:
                    error = str(exc)
                else:
                    tripped = [
                        c.expression
                        for c in step.abort_conditions
                        if c.evaluate(completed, output, self.world_state.believes) is True
                    ]
                    if tripped:
                        error = f"Abort condition met: {', '.join(tripped)}"
                        aborted = True

            duration_ms = (time.perf_counter() - step_started) * 1000
            if error is None:
                step.status = StepStatus.COMPLETED
                step.result = StepResult(success=True, output=output, duration_ms=duration_ms)
                completed.add(number)
                last_output = output
                result.step_results.append({"step_id": step.id, "success": True})
                logger.info("Act: step %d/%d completed: %s", number, len(plan.steps), step.action)
                continue

            step.status = StepStatus.FAILED
            step.result = StepResult(success=False, error=error, duration_ms=duration_ms)
            result.success = False
            result.failed_step = number
            result.step_results.append({"step_id": step.id, "success": False, "error": error})
            logger.warning("Act: step %d failed: %s", number, error)
            break

        if not result.success:
            for step in plan.steps[result.failed_step :]:
                step.status = StepStatus.SKIPPED

        started_at = goal.started_at
        if result.success:
            self.goal_manager.achieve_goal(goal.id, "Plan executed successfully")
            plan.status = PlanStatus.COMPLETED
        else:
            self.goal_manager.fail_goal(goal.id, f"Plan failed at step {result.failed_step}")
            plan.status = PlanStatus.ABORTED if aborted else PlanStatus.FAILED
        duration = None
        if started_at is not None:
            duration = (datetime.now(UTC) - started_at).total_seconds() * 1000
        self.state_manager.record_goal_outcome(result.success, duration)
        self.state_manager.set_plan(plan.to_dict())

        self.memory.record_episode(
            f"Goal: {goal.description}",
            f"Executed {goal.type} plan with {len(plan.steps)} steps",
            EpisodeOutcome.SUCCESS if result.success else EpisodeOutcome.FAILURE,
            lesson_learned=None
            if result.success
            else f"Plan failure: check step {result.failed_step}",
            related_goal_id=goal.id,
            signals=signal_ids,
        )
        return result

    def reflect(self) -> None:
        """Distil lessons from failures and record calibration corrections."""
        self.state_manager.set_phase(CognitivePhase.REFLECT)
        patterns = self.memory.analyze_patterns(50)
        biases = self.memory.detect_biases(50)

        for failure in self.memory.get_episodes_by_outcome(EpisodeOutcome.FAILURE)[-5:]:
            if failure.lesson_learned:
                continue
            action = failure.action_taken.lower()
            if "predict" in action:
                advice = "reduce confidence"
            elif "trade" in action:
                advice = "check liquidity first"
            else:
                advice = "verify preconditions"
            self.memory.update_episode_outcome(
                failure.id,
                failure.outcome,
                f'After failing at "{failure.context}", consider: {advice}',
            )

        for bias in biases:
            if bias.type == BiasType.OVERCONFIDENCE:
                self.world_state.add_belief(
                    f"Confidence adjustment needed: reduce by {bias.magnitude * 100:.0f}%",
                    0.9,
                    BeliefSource.INFERENCE,
                    evidence=bias.evidence,
                )

        self.exporter.write_memory_export()
        logger.info(
            "Reflect: patterns %d, biases %d, lessons %d",
            len(patterns),
            len(biases),
            len(self.memory.get_lessons(0.3)),
        )

    # ------------------------------------------------------------------
    # External interface
    # ------------------------------------------------------------------

    def inject_signal(
        self, signal_type: SignalType | str, source: str, content: str, strength: float
    ) -> Signal:
        return self.world_state.add_signal(signal_type, source, content, strength)

    def state_summary(self) -> str:
        return self.exporter.summary()

    def metrics(self) -> CognitiveMetrics:
        return self.state_manager.state.metrics.model_copy()

    def reset(self) -> None:
        self.world_state.reset()
        self.goal_manager.reset()
        self.memory.reset()
        self.state_manager.reset()
        self.rate_limiter.reset()
        logger.info("Cognitive loop reset")
