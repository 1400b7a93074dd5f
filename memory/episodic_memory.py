"""Episodic memory: episodes, lessons, patterns and biases."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from memory.consolidation.pattern_miner import BiasDetector, PatternMiner
from memory.scoring import lesson_relevance
from memory.stores.sql_store import SQLStore
from memory.types.common import clamp
from memory.types.episodic import Bias, Episode, EpisodeOutcome, Lesson, Pattern

logger = logging.getLogger("cog.memory")

DOCUMENT_NAME = "episodic_memory"


class EpisodicMemory:
    """Append-only episode log with lesson distillation.

    Episodes are capped at ``max_episodes`` (oldest dropped). When
    ``daily_log_dir`` is set every recorded episode is also appended to a
    per-day markdown file.
    """

    def __init__(
        self,
        sql_store: SQLStore,
        max_episodes: int = 500,
        recent_window: int = 50,
        daily_log_dir: Path | None = None,
    ) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.max_episodes = max_episodes
        self.recent_window = recent_window
        self.daily_log_dir = daily_log_dir
        self.pattern_miner = PatternMiner()
        self.bias_detector = BiasDetector()
        self.episodes: list[Episode] = []
        self.lessons: list[Lesson] = []
        self.total_episodes = 0
        self._load()

    def _load(self) -> None:
        payload = self.sql_store.load_document(DOCUMENT_NAME)
        if not payload:
            return
        self.episodes = [Episode.model_validate(e) for e in payload.get("episodes", [])]
        self.lessons = [Lesson.model_validate(item) for item in payload.get("lessons", [])]
        self.total_episodes = int(payload.get("total_episodes", len(self.episodes)))

    def _save(self) -> None:
        self.sql_store.save_document(
            DOCUMENT_NAME,
            {
                "episodes": [e.model_dump(mode="json") for e in self.episodes],
                "lessons": [item.model_dump(mode="json") for item in self.lessons],
                "total_episodes": self.total_episodes,
                "last_updated": datetime.now(UTC).isoformat(),
            },
        )

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------

    def record_episode(
        self,
        context: str,
        action_taken: str,
        outcome: EpisodeOutcome | str,
        lesson_learned: str | None = None,
        related_goal_id: str | None = None,
        signals: list[str] | None = None,
    ) -> Episode:
        episode = Episode(
            context=context,
            action_taken=action_taken,
            outcome=EpisodeOutcome(outcome),
            lesson_learned=lesson_learned,
            related_goal_id=related_goal_id,
            signals=list(signals or []),
        )
        self.episodes.append(episode)
        self.total_episodes += 1
        if len(self.episodes) > self.max_episodes:
            self.episodes = self.episodes[-self.max_episodes :]
        self._save()
        if self.daily_log_dir is not None:
            self._write_daily_log(self.daily_log_dir, episode)
        logger.info("Recorded episode: %s (%s)", action_taken[:50], episode.outcome)
        return episode

    def update_episode_outcome(
        self, episode_id: str, outcome: EpisodeOutcome | str, lesson_learned: str | None = None
    ) -> Episode | None:
        """Resolve a pending episode; a supplied lesson is also distilled."""
        episode = next((e for e in self.episodes if e.id == episode_id), None)
        if episode is None:
            logger.warning("update_episode_outcome: unknown episode %s", episode_id)
            return None
        episode.outcome = EpisodeOutcome(outcome)
        if lesson_learned:
            episode.lesson_learned = lesson_learned
            self.create_lesson(lesson_learned, episode.context, [episode_id])
        self._save()
        return episode

    def _write_daily_log(self, log_dir: Path, episode: Episode) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{episode.timestamp.date().isoformat()}.md"
        entry = [
            "",
            f"## {episode.timestamp.strftime('%H:%M:%S')} - {episode.outcome.value.upper()}",
            "",
            f"**Context:** {episode.context}",
            "",
            f"**Action:** {episode.action_taken}",
            "",
        ]
        if episode.lesson_learned:
            entry.extend([f"**Lesson:** {episode.lesson_learned}", ""])
        entry.append("---")
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write("\n".join(entry) + "\n")

    def get_recent_episodes(self, limit: int | None = None) -> list[Episode]:
        limit = self.recent_window if limit is None else limit
        return self.episodes[-limit:] if limit > 0 else []

    def get_episodes_by_outcome(self, outcome: EpisodeOutcome | str) -> list[Episode]:
        wanted = EpisodeOutcome(outcome)
        return [e for e in self.episodes if e.outcome == wanted]

    def search_episodes(self, query: str, limit: int = 10) -> list[Episode]:
        query_lower = query.lower()
        matches = [
            e
            for e in self.episodes
            if query_lower in e.context.lower() or query_lower in e.action_taken.lower()
        ]
        return matches[-limit:] if limit > 0 else []

    # ------------------------------------------------------------------
    # Lessons
    # ------------------------------------------------------------------

    def create_lesson(
        self, content: str, context: str, source_episodes: list[str] | None = None
    ) -> Lesson:
        """Create a lesson, or strengthen a substring-similar existing one."""
        content_lower = content.lower()
        existing = next(
            (
                item
                for item in self.lessons
                if item.content.lower() in content_lower or content_lower in item.content.lower()
            ),
            None,
        )
        if existing is not None:
            existing.confidence = min(1.0, existing.confidence + 0.1)
            existing.source_episodes.extend(source_episodes or [])
            self._save()
            return existing

        lesson = Lesson(content=content, context=context, source_episodes=list(source_episodes or []))
        self.lessons.append(lesson)
        self._save()
        logger.info("Created lesson: %s", content[:50])
        return lesson

    def apply_lesson(self, lesson_id: str) -> Lesson | None:
        lesson = self._find_lesson(lesson_id, "apply_lesson")
        if lesson is None:
            return None
        lesson.times_applied += 1
        lesson.last_applied = datetime.now(UTC)
        self._save()
        return lesson

    def update_lesson_confidence(self, lesson_id: str, was_helpful: bool) -> Lesson | None:
        lesson = self._find_lesson(lesson_id, "update_lesson_confidence")
        if lesson is None:
            return None
        delta = 0.1 if was_helpful else -0.1
        lesson.confidence = clamp(lesson.confidence + delta, 0.1, 1.0)
        self._save()
        return lesson

    def _find_lesson(self, lesson_id: str, operation: str) -> Lesson | None:
        lesson = next((item for item in self.lessons if item.id == lesson_id), None)
        if lesson is None:
            logger.warning("%s: unknown lesson %s", operation, lesson_id)
        return lesson

    def get_relevant_lessons(self, situation: str, limit: int = 5) -> list[Lesson]:
        scored = [(lesson_relevance(situation, item), item) for item in self.lessons]
        scored = [pair for pair in scored if pair[0] > 0.2]
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item for _, item in scored[:limit]]

    def get_lessons(self, min_confidence: float = 0.3) -> list[Lesson]:
        return [item for item in self.lessons if item.confidence >= min_confidence]

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_patterns(self, window: int = 50) -> list[Pattern]:
        return self.pattern_miner.mine(self.get_recent_episodes(window), window)

    def detect_biases(self, window: int = 50) -> list[Bias]:
        return self.bias_detector.detect(self.get_recent_episodes(window))

    def summary(self) -> str:
        recent = self.get_recent_episodes(10)
        lessons = self.get_lessons(0.5)
        patterns = self.analyze_patterns()
        biases = self.detect_biases()

        lines = ["## Memory Summary", ""]
        if lessons:
            lines.append("### Key Lessons Learned")
            for item in lessons[:5]:
                lines.append(f"- {item.content} (confidence: {item.confidence * 100:.0f}%)")
            lines.append("")

        lines.append(f"### Recent Activity ({len(recent)} episodes)")
        for outcome in EpisodeOutcome:
            count = sum(1 for e in recent if e.outcome == outcome)
            lines.append(f"- {outcome.value.capitalize()}: {count}")
        lines.append("")

        if patterns:
            lines.append("### Patterns Detected")
            for pattern in patterns[:3]:
                lines.append(
                    f"- {pattern.description}: {pattern.success_rate * 100:.0f}% success "
                    f"(n={pattern.frequency})"
                )
            lines.append("")

        if biases:
            lines.append("### Detected Biases")
            for bias in biases:
                lines.append(f"- **{bias.type}**: {bias.evidence[0] if bias.evidence else ''}")
        return "\n".join(lines) + "\n"

    def format_for_export(self) -> str:
        """Markdown memory export: confident lessons plus bias corrections."""
        lines = [
            "# Agent Memory",
            "",
            f"*Last updated: {datetime.now(UTC).isoformat()}*",
            "",
            "## Key Lessons",
            "",
        ]
        for item in self.get_lessons(0.4):
            lines.extend(
                [
                    f"### {item.context or 'general'}",
                    item.content,
                    f"- Confidence: {item.confidence * 100:.0f}%",
                    f"- Applied: {item.times_applied} times",
                    "",
                ]
            )
        biases = self.detect_biases()
        if biases:
            lines.extend(["## Bias Corrections", ""])
            for bias in biases:
                lines.extend(
                    [
                        f"- **{bias.type}**: Magnitude {bias.magnitude * 100:.0f}%",
                        f"  - Context: {bias.context}",
                        f"  - Evidence: {', '.join(bias.evidence)}",
                        "",
                    ]
                )
        return "\n".join(lines) + "\n"

    def stats(self) -> dict[str, Any]:
        return {
            "episodes": len(self.episodes),
            "total_episodes": self.total_episodes,
            "lessons": len(self.lessons),
        }

    def reset(self) -> None:
        self.episodes = []
        self.lessons = []
        self.total_episodes = 0
        self._save()
        logger.info("Episodic memory reset")
