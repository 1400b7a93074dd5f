"""Episodic memory tests."""

from __future__ import annotations

from pathlib import Path

from memory.consolidation.pattern_miner import BiasDetector, PatternMiner, classify_action
from memory.episodic_memory import EpisodicMemory
from memory.stores.sql_store import SQLStore
from memory.types.episodic import BiasType, Episode, EpisodeOutcome


def _memory(tmp_path: Path, **kwargs) -> EpisodicMemory:
    return EpisodicMemory(SQLStore(tmp_path / "cog.db"), **kwargs)


def test_record_episode_caps_history(tmp_path: Path) -> None:
    memory = _memory(tmp_path, max_episodes=3)
    for index in range(5):
        memory.record_episode(f"context {index}", "Executed monitor plan", "success")

    assert [e.context for e in memory.episodes] == ["context 2", "context 3", "context 4"]
    assert memory.stats() == {"episodes": 3, "total_episodes": 5, "lessons": 0}


def test_update_outcome_distils_lesson(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    episode = memory.record_episode("Goal: trade BTC", "Executed trade plan", "pending")

    updated = memory.update_episode_outcome(episode.id, "failure", "check liquidity first")
    assert updated is not None
    assert updated.outcome == EpisodeOutcome.FAILURE
    assert updated.lesson_learned == "check liquidity first"
    lessons = memory.get_lessons()
    assert len(lessons) == 1
    assert lessons[0].source_episodes == [episode.id]
    assert lessons[0].confidence == 0.5
    assert memory.update_episode_outcome("ep-missing", "success") is None


def test_similar_lessons_merge(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    first = memory.create_lesson("check liquidity first", "trading", ["ep-1"])
    second = memory.create_lesson("Always check liquidity first", "trading", ["ep-2"])

    assert second.id == first.id
    assert abs(second.confidence - 0.6) < 1e-9
    assert second.source_episodes == ["ep-1", "ep-2"]
    assert len(memory.lessons) == 1


def test_lesson_confidence_is_bounded(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    lesson = memory.create_lesson("size positions small", "risk")
    for _ in range(10):
        memory.update_lesson_confidence(lesson.id, was_helpful=False)
    assert abs(lesson.confidence - 0.1) < 1e-9

    for _ in range(12):
        memory.update_lesson_confidence(lesson.id, was_helpful=True)
    assert lesson.confidence == 1.0
    assert memory.update_lesson_confidence("lesson-missing", True) is None


def test_apply_lesson_tracks_usage(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    lesson = memory.create_lesson("wait for confirmation", "alerts")
    memory.apply_lesson(lesson.id)
    memory.apply_lesson(lesson.id)

    assert lesson.times_applied == 2
    assert lesson.last_applied is not None


def test_relevant_lessons_rank_by_context(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    relevant = memory.create_lesson("check liquidity on thin books", "arbitrage trading")
    memory.create_lesson("avoid fading storms", "weather")

    found = memory.get_relevant_lessons("arbitrage trading on polymarket")
    assert [item.id for item in found] == [relevant.id]


def test_search_and_filter_episodes(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    memory.record_episode("Goal: research whales", "Executed research plan", "success")
    memory.record_episode("Goal: trade", "Executed trade plan", "failure")

    assert len(memory.search_episodes("whales")) == 1
    assert len(memory.get_episodes_by_outcome(EpisodeOutcome.FAILURE)) == 1
    assert memory.get_recent_episodes(0) == []


def test_daily_log_is_appended(tmp_path: Path) -> None:
    log_dir = tmp_path / "daily"
    memory = _memory(tmp_path, daily_log_dir=log_dir)
    episode = memory.record_episode(
        "Goal: alert desk", "Executed alert plan", "failure", lesson_learned="retry later"
    )

    log_file = log_dir / f"{episode.timestamp.date().isoformat()}.md"
    text = log_file.read_text(encoding="utf-8")
    assert "FAILURE" in text
    assert "**Lesson:** retry later" in text


def test_no_daily_log_without_a_directory(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    memory.record_episode("Goal: alert desk", "Executed alert plan", "success")

    assert list(tmp_path.rglob("*.md")) == []


def test_classify_action() -> None:
    assert classify_action("Made a prediction on rain") == "prediction"
    assert classify_action("Executed trade plan with 3 steps") == "trade"
    assert classify_action("Executed proactive plan with 3 steps") == "other"


def test_pattern_miner_requires_minimum_group() -> None:
    episodes = [
        Episode(context="c", action_taken="Executed research plan", outcome=outcome)
        for outcome in ("success", "success", "failure")
    ] + [Episode(context="c", action_taken="Sent alert", outcome="success")]

    patterns = PatternMiner().mine(episodes, 50)
    assert [p.id for p in patterns] == ["pattern-research"]
    assert abs(patterns[0].success_rate - 2 / 3) < 1e-9
    assert patterns[0].frequency == 3


def test_overconfidence_bias_detected() -> None:
    outcomes = ["failure", "failure", "failure", "success", "success"]
    episodes = [
        Episode(context="c", action_taken="Predicted election", outcome=outcome)
        for outcome in outcomes
    ]

    biases = BiasDetector().detect(episodes)
    assert [b.type for b in biases] == [BiasType.OVERCONFIDENCE]
    assert abs(biases[0].magnitude - 0.3) < 1e-9
    assert biases[0].evidence == ["3/5 predictions failed"]


def test_recency_bias_detected() -> None:
    older = [Episode(context="c", action_taken="Executed research plan", outcome="success")] * 10
    recent = [Episode(context="c", action_taken="Executed trade plan", outcome="success")] * 10

    biases = BiasDetector().detect(older + recent)
    assert [b.type for b in biases] == [BiasType.RECENCY]
    assert biases[0].magnitude == 1.0


def test_export_lists_lessons_and_bias_corrections(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    memory.create_lesson("check liquidity first", "trading")
    for outcome in ["failure", "failure", "failure", "success", "success"]:
        memory.record_episode("Goal: forecast", "Predicted outcome", outcome)

    export = memory.format_for_export()
    assert "## Key Lessons" in export
    assert "check liquidity first" in export
    assert "## Bias Corrections" in export
    assert "**overconfidence**: Magnitude 30%" in export


def test_memory_persists(tmp_path: Path) -> None:
    memory = _memory(tmp_path)
    memory.record_episode("Goal: x", "Executed learn plan", "success")
    memory.create_lesson("keep notes", "learning")

    reloaded = _memory(tmp_path)
    assert len(reloaded.episodes) == 1
    assert [item.content for item in reloaded.lessons] == ["keep notes"]

    reloaded.reset()
    assert _memory(tmp_path).stats() == {"episodes": 0, "total_episodes": 0, "lessons": 0}
