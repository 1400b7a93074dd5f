"""Scoring helpers for lesson retrieval."""

from __future__ import annotations

from memory.types.episodic import Lesson


def context_overlap(situation: str, context: str) -> bool:
    """Substring overlap in either direction; empty contexts never match."""
    situation = situation.lower().strip()
    context = context.lower().strip()
    if not situation or not context:
        return False
    return context in situation or situation in context


def content_word_hits(situation: str, content: str) -> int:
    """Count situation words that appear inside the lesson content."""
    content_lower = content.lower()
    return sum(1 for word in situation.lower().split() if word and word in content_lower)


def lesson_relevance(situation: str, lesson: Lesson) -> float:
    """Weighted relevance of a lesson to a situation description."""
    score = 0.0
    if context_overlap(situation, lesson.context):
        score += 0.5
    score += 0.1 * content_word_hits(situation, lesson.content)
    score += 0.3 * lesson.confidence
    score += min(0.05 * lesson.times_applied, 0.2)
    return score
