"""Pattern and bias mining over recent episodes."""

from __future__ import annotations

from memory.types.episodic import Bias, BiasType, Episode, EpisodeOutcome, Pattern

ACTION_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("prediction", ("predict",)),
    ("trade", ("trade", "buy", "sell")),
    ("research", ("research",)),
    ("alert", ("alert",)),
    ("arbitrage", ("arb",)),
]


def classify_action(action: str) -> str:
    """Map a free-text action description to a coarse action type."""
    action_lower = action.lower()
    for action_type, keywords in ACTION_KEYWORDS:
        if any(keyword in action_lower for keyword in keywords):
            return action_type
    return "other"


class PatternMiner:
    """Groups episodes by action type and reports success rates."""

    def __init__(self, min_group_size: int = 3) -> None:
        self.min_group_size = min_group_size

    def mine(self, episodes: list[Episode], window: int) -> list[Pattern]:
        groups: dict[str, list[Episode]] = {}
        for episode in episodes:
            groups.setdefault(classify_action(episode.action_taken), []).append(episode)

        patterns: list[Pattern] = []
        for action_type, group in groups.items():
            if len(group) < self.min_group_size:
                continue
            successes = sum(1 for e in group if e.outcome == EpisodeOutcome.SUCCESS)
            patterns.append(
                Pattern(
                    id=f"pattern-{action_type}",
                    description=f"{action_type} actions",
                    frequency=len(group),
                    success_rate=successes / len(group),
                    context=f"Observed {len(group)} times in last {window} episodes",
                )
            )
        return patterns


class BiasDetector:
    """Heuristic detection of overconfidence and recency bias."""

    def __init__(
        self,
        min_predictions: int = 5,
        failure_rate_threshold: float = 0.4,
        failure_rate_baseline: float = 0.3,
        recent_size: int = 10,
    ) -> None:
        self.min_predictions = min_predictions
        self.failure_rate_threshold = failure_rate_threshold
        self.failure_rate_baseline = failure_rate_baseline
        self.recent_size = recent_size

    def detect(self, episodes: list[Episode]) -> list[Bias]:
        biases: list[Bias] = []
        overconfidence = self._overconfidence(episodes)
        if overconfidence is not None:
            biases.append(overconfidence)
        recency = self._recency(episodes)
        if recency is not None:
            biases.append(recency)
        return biases

    def _overconfidence(self, episodes: list[Episode]) -> Bias | None:
        predictions = [
            e
            for e in episodes
            if "predict" in e.action_taken.lower() and e.outcome != EpisodeOutcome.PENDING
        ]
        if len(predictions) < self.min_predictions:
            return None
        failures = sum(1 for e in predictions if e.outcome == EpisodeOutcome.FAILURE)
        failure_rate = failures / len(predictions)
        if failure_rate <= self.failure_rate_threshold:
            return None
        return Bias(
            type=BiasType.OVERCONFIDENCE,
            magnitude=failure_rate - self.failure_rate_baseline,
            context="predictions",
            evidence=[f"{failures}/{len(predictions)} predictions failed"],
        )

    def _recency(self, episodes: list[Episode]) -> Bias | None:
        recent = episodes[-self.recent_size :]
        older = episodes[: -self.recent_size] if len(episodes) > self.recent_size else []
        if len(recent) < self.recent_size // 2 or len(older) < self.recent_size:
            return None
        recent_types = {classify_action(e.action_taken) for e in recent}
        older_types = {classify_action(e.action_taken) for e in older}
        recent_only = sorted(recent_types - older_types)
        if not recent_only:
            return None
        return Bias(
            type=BiasType.RECENCY,
            magnitude=len(recent_only) / len(recent_types),
            context="action selection",
            evidence=[f"New action types in recent window: {', '.join(recent_only)}"],
        )
