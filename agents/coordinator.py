"""Multi-agent coordinator: delegation, messaging and conflict resolution."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from agents.definitions import DEFAULT_AGENT_DEFINITIONS, ROLE_KEYWORDS
from memory.episodic_memory import EpisodicMemory
from memory.stores.sql_store import SQLStore
from memory.types.agents import (
    AgentDefinition,
    AgentMessage,
    AgentState,
    AgentStatus,
    ConflictResolution,
    MessageType,
    ResolutionPolicy,
)
from memory.types.episodic import EpisodeOutcome
from memory.types.goals import GoalType
from planner.goal_manager import GoalManager

logger = logging.getLogger("cog.coordinator")

DOCUMENT_NAME = "agents"
ORCHESTRATOR_ID = "orchestrator"


class MultiAgentCoordinator:
    """Assigns goals to specialist agents and keeps assignments consistent.

    Agent states, the message queue, escalated conflicts and assignment
    timestamps are persisted together as one document.
    """

    def __init__(
        self,
        sql_store: SQLStore,
        goal_manager: GoalManager,
        memory: EpisodicMemory | None = None,
        definitions: list[AgentDefinition] | None = None,
        response_deadline_seconds: float = 60.0,
        stuck_after_seconds: float = 300.0,
    ) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.goal_manager = goal_manager
        self.memory = memory
        self.definitions: dict[str, AgentDefinition] = {
            d.id: d for d in (definitions or DEFAULT_AGENT_DEFINITIONS)
        }
        self.response_deadline = timedelta(seconds=response_deadline_seconds)
        self.stuck_after = timedelta(seconds=stuck_after_seconds)
        self._init_state()
        self._load()

    def _init_state(self) -> None:
        self.agents: dict[str, AgentState] = {
            agent_id: AgentState(id=agent_id, role=d.role)
            for agent_id, d in sorted(self.definitions.items())
        }
        self.message_queue: list[AgentMessage] = []
        self.pending_conflicts: list[ConflictResolution] = []
        self.assigned_at: dict[str, datetime] = {}
        self.last_coordination = datetime.now(UTC)

    def _load(self) -> None:
        payload = self.sql_store.load_document(DOCUMENT_NAME)
        if not payload:
            return
        for agent_id, raw in payload.get("agents", {}).items():
            if agent_id in self.agents:
                self.agents[agent_id] = AgentState.model_validate(raw)
        self.message_queue = [
            AgentMessage.model_validate(m) for m in payload.get("message_queue", [])
        ]
        self.pending_conflicts = [
            ConflictResolution.model_validate(c) for c in payload.get("pending_conflicts", [])
        ]
        self.assigned_at = {
            goal_id: datetime.fromisoformat(ts)
            for goal_id, ts in payload.get("assigned_at", {}).items()
        }

    def _save(self) -> None:
        self.sql_store.save_document(
            DOCUMENT_NAME,
            {
                "agents": {k: v.model_dump(mode="json") for k, v in self.agents.items()},
                "message_queue": [m.model_dump(mode="json") for m in self.message_queue],
                "pending_conflicts": [
                    c.model_dump(mode="json") for c in self.pending_conflicts
                ],
                "assigned_at": {k: v.isoformat() for k, v in self.assigned_at.items()},
                "last_coordination": self.last_coordination.isoformat(),
            },
        )

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def get_agent_definition(self, agent_id: str) -> AgentDefinition | None:
        return self.definitions.get(agent_id)

    def get_agent_state(self, agent_id: str) -> AgentState | None:
        return self.agents.get(agent_id)

    def update_agent_status(self, agent_id: str, status: AgentStatus | str) -> AgentState | None:
        state = self.agents.get(agent_id)
        if state is None:
            logger.warning("update_agent_status: unknown agent %s", agent_id)
            return None
        state.status = AgentStatus(status)
        state.last_activity = datetime.now(UTC)
        self._save()
        return state

    def score_agent(self, agent_id: str, task: str, required_capabilities: list[str]) -> float:
        definition = self.definitions[agent_id]
        state = self.agents[agent_id]
        task_lower = task.lower()
        score = 10.0 * sum(1 for cap in required_capabilities if cap in definition.capabilities)
        keywords = ROLE_KEYWORDS.get(definition.role, ())
        if any(keyword in task_lower for keyword in keywords):
            score += 5.0
        if definition.max_concurrent_goals > 0:
            score -= 5.0 * len(state.current_goals) / definition.max_concurrent_goals
        if state.status == AgentStatus.IDLE:
            score += 3.0
        return score

    def select_agent_for_task(
        self,
        task: str,
        required_capabilities: list[str] | None = None,
        exclude: set[str] | None = None,
    ) -> AgentDefinition | None:
        """Best-scoring non-offline agent; only positive scores qualify.

        Ties go to the lowest agent id.
        """
        required = required_capabilities or []
        best: AgentDefinition | None = None
        best_score = 0.0
        for agent_id in sorted(self.definitions):
            if exclude and agent_id in exclude:
                continue
            state = self.agents.get(agent_id)
            if state is None or state.status == AgentStatus.OFFLINE:
                continue
            score = self.score_agent(agent_id, task, required)
            if score > best_score:
                best_score = score
                best = self.definitions[agent_id]
        return best

    def _has_capacity(self, agent_id: str) -> bool:
        state = self.agents[agent_id]
        return (
            state.status != AgentStatus.OFFLINE
            and len(state.current_goals) < self.definitions[agent_id].max_concurrent_goals
        )

    def _assign(self, agent_id: str, goal_id: str) -> None:
        state = self.agents[agent_id]
        if goal_id not in state.current_goals:
            state.current_goals.append(goal_id)
        state.status = AgentStatus.WORKING
        state.last_activity = datetime.now(UTC)
        self.assigned_at.setdefault(goal_id, datetime.now(UTC))

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def send_message(
        self,
        sender: str,
        recipient: str,
        message_type: MessageType | str,
        content: str,
        payload: dict[str, Any] | None = None,
        requires_response: bool = False,
    ) -> AgentMessage:
        now = datetime.now(UTC)
        message = AgentMessage(
            sender=sender,
            recipient=recipient,
            type=MessageType(message_type),
            content=content,
            payload=payload,
            timestamp=now,
            requires_response=requires_response,
            response_deadline=now + self.response_deadline if requires_response else None,
        )
        self.message_queue.append(message)
        self._save()
        logger.info("Message %s -> %s: %s", sender, recipient, content[:50])
        return message

    def get_messages(self, agent_id: str) -> list[AgentMessage]:
        return [m for m in self.message_queue if m.recipient == agent_id]

    def acknowledge_message(self, message_id: str) -> bool:
        before = len(self.message_queue)
        self.message_queue = [m for m in self.message_queue if m.id != message_id]
        removed = len(self.message_queue) != before
        if removed:
            self._save()
        return removed

    # ------------------------------------------------------------------
    # Delegation
    # ------------------------------------------------------------------

    def delegate_goal(
        self,
        description: str,
        goal_type: GoalType | str,
        priority: int = 50,
        required_capabilities: list[str] | None = None,
    ) -> dict[str, str] | None:
        """Create a goal and assign it to the best available agent.

        When the chosen agent is at capacity one alternative with spare
        capacity takes the goal. Returns ``{"agent_id", "goal_id"}`` or None.
        """
        agent = self.select_agent_for_task(description, required_capabilities)
        if agent is None:
            logger.warning("No suitable agent found for: %s", description)
            return None

        if not self._has_capacity(agent.id):
            logger.warning("Agent %s at capacity", agent.id)
            alternative = next(
                (
                    self.definitions[agent_id]
                    for agent_id in sorted(self.definitions)
                    if agent_id != agent.id and self._has_capacity(agent_id)
                ),
                None,
            )
            if alternative is None:
                return None
            agent = alternative

        goal = self.goal_manager.create_goal(
            goal_type, description, priority=priority, metadata={"assigned_agent": agent.id}
        )
        self._assign(agent.id, goal.id)
        self.send_message(
            ORCHESTRATOR_ID,
            agent.id,
            MessageType.TASK_REQUEST,
            f"New goal assigned: {description}",
            {"goal_id": goal.id, "priority": goal.priority},
        )
        logger.info("Delegated goal to %s: %s", agent.id, description)
        return {"agent_id": agent.id, "goal_id": goal.id}

    def report_goal_completion(
        self, agent_id: str, goal_id: str, success: bool, result: str | None = None
    ) -> AgentState | None:
        state = self.agents.get(agent_id)
        if state is None:
            logger.warning("report_goal_completion: unknown agent %s", agent_id)
            return None

        now = datetime.now(UTC)
        state.current_goals = [g for g in state.current_goals if g != goal_id]
        if success:
            state.metrics.tasks_completed += 1
            self.goal_manager.achieve_goal(goal_id, result)
        else:
            state.metrics.tasks_failed += 1
            self.goal_manager.fail_goal(goal_id, result or "Agent reported failure")

        started = self.assigned_at.pop(goal_id, None)
        if started is not None:
            finished = state.metrics.tasks_completed + state.metrics.tasks_failed
            elapsed = (now - started).total_seconds()
            previous = state.metrics.average_response_time
            state.metrics.average_response_time = previous + (elapsed - previous) / finished

        state.status = AgentStatus.WORKING if state.current_goals else AgentStatus.IDLE
        state.last_activity = now
        if success:
            content = f"Goal {goal_id} completed successfully"
        else:
            content = f"Goal {goal_id} failed: {result}"
        self.send_message(
            agent_id,
            ORCHESTRATOR_ID,
            MessageType.TASK_RESPONSE,
            content,
            {"goal_id": goal_id, "success": success, "result": result},
        )
        if self.memory is not None:
            self.memory.record_episode(
                f"Agent {agent_id} working on goal",
                f"Completed goal: {'success' if success else 'failure'}",
                EpisodeOutcome.SUCCESS if success else EpisodeOutcome.FAILURE,
                related_goal_id=goal_id,
            )
        return state

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    def detect_conflicts(self) -> list[ConflictResolution]:
        """A conflict is a goal id held by more than one agent."""
        holders: dict[str, list[str]] = {}
        for agent_id in sorted(self.agents):
            for goal_id in self.agents[agent_id].current_goals:
                holders.setdefault(goal_id, []).append(agent_id)
        return [
            ConflictResolution(
                goal_id=goal_id,
                agents=agent_ids,
                issue=f"Multiple agents assigned to goal {goal_id}",
            )
            for goal_id, agent_ids in holders.items()
            if len(agent_ids) > 1
        ]

    def _drop_goal(self, agent_id: str, goal_id: str) -> None:
        state = self.agents.get(agent_id)
        if state is None:
            return
        state.current_goals = [g for g in state.current_goals if g != goal_id]
        state.status = AgentStatus.WORKING if state.current_goals else AgentStatus.IDLE

    def resolve_conflict(self, conflict: ConflictResolution) -> ConflictResolution:
        logger.info("Resolving conflict: %s (%s)", conflict.issue, conflict.resolution)
        if conflict.resolution == ResolutionPolicy.PRIORITY_WINS:
            ranked = sorted(
                (a for a in conflict.agents if a in self.agents),
                key=lambda a: (-self.agents[a].metrics.tasks_completed, a),
            )
            if ranked:
                conflict.winner = ranked[0]
                for loser in ranked[1:]:
                    self._drop_goal(loser, conflict.goal_id)
        elif conflict.resolution == ResolutionPolicy.NEGOTIATION:
            conflict.compromise = "Split the work - one agent researches, other executes"
        elif conflict.resolution == ResolutionPolicy.ESCALATE:
            self.pending_conflicts.append(conflict)
        elif conflict.resolution == ResolutionPolicy.ABANDON:
            for agent_id in conflict.agents:
                self._drop_goal(agent_id, conflict.goal_id)
        self._save()
        return conflict

    # ------------------------------------------------------------------
    # Coordination pass
    # ------------------------------------------------------------------

    def coordinate(self) -> dict[str, int]:
        """Expire overdue messages, settle conflicts and rescue stuck agents."""
        now = datetime.now(UTC)
        result = {"messages_processed": 0, "conflicts_resolved": 0, "goals_reassigned": 0}

        for message in list(self.message_queue):
            if message.response_deadline is not None and now > message.response_deadline:
                self.message_queue.remove(message)
                result["messages_processed"] += 1
                if message.type == MessageType.TASK_REQUEST:
                    logger.warning("Task request timed out: %s", message.content)

        for conflict in self.detect_conflicts():
            self.resolve_conflict(conflict)
            result["conflicts_resolved"] += 1

        for agent_id in sorted(self.agents):
            state = self.agents[agent_id]
            if state.status == AgentStatus.WORKING and now - state.last_activity > self.stuck_after:
                logger.warning("Agent %s appears stuck", agent_id)
                state.status = AgentStatus.BLOCKED

        blocked = {a for a, s in self.agents.items() if s.status == AgentStatus.BLOCKED}
        for agent_id in sorted(blocked):
            state = self.agents[agent_id]
            if not state.current_goals:
                continue
            remaining: list[str] = []
            for goal_id in state.current_goals:
                goal = self.goal_manager.get_goal(goal_id)
                task = goal.description if goal is not None else "continuation"
                target = self.select_agent_for_task(task, exclude=blocked)
                if target is None or not self._has_capacity(target.id):
                    remaining.append(goal_id)
                    continue
                self._assign(target.id, goal_id)
                if goal is not None:
                    self.goal_manager.update_metadata(goal_id, assigned_agent=target.id)
                result["goals_reassigned"] += 1
            state.current_goals = remaining
            if not remaining:
                state.status = AgentStatus.IDLE

        self.last_coordination = now
        self._save()
        logger.info(
            "Coordination: %d msgs, %d conflicts, %d reassigned",
            result["messages_processed"],
            result["conflicts_resolved"],
            result["goals_reassigned"],
        )
        return result

    def summary(self) -> str:
        lines = ["## Multi-Agent Status", ""]
        for agent_id, state in self.agents.items():
            definition = self.definitions.get(agent_id)
            finished = state.metrics.tasks_completed + state.metrics.tasks_failed
            rate = state.metrics.tasks_completed / finished * 100 if finished else 0.0
            lines.extend(
                [
                    f"### [{state.status}] {definition.name if definition else agent_id}",
                    f"- Role: {state.role}",
                    f"- Status: {state.status}",
                    f"- Current Goals: {len(state.current_goals)}",
                    f"- Tasks Completed: {state.metrics.tasks_completed}",
                    f"- Success Rate: {rate:.1f}%",
                    "",
                ]
            )
        if self.pending_conflicts:
            lines.append("### Pending Conflicts")
            for conflict in self.pending_conflicts:
                lines.append(f"- {conflict.issue}")
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        self._init_state()
        self._save()
        logger.info("Coordinator state reset")
