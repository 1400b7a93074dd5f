"""World state store: beliefs, signals, markets, positions and predictions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from memory.stores.sql_store import SQLStore
from memory.types.common import clamp
from memory.types.world import (
    Belief,
    BeliefSource,
    MarketState,
    PositionState,
    PredictionState,
    PredictionStatus,
    Signal,
    SignalType,
)
from world_model.contradiction import is_contradiction, normalize_claim

logger = logging.getLogger("cog.world_state")

DOCUMENT_NAME = "world_state"


class WorldStateStore:
    """Agent's model of the external world, persisted as one document.

    Every mutator rewrites the full snapshot before returning. Expired
    beliefs never leave a read path and are physically dropped on the next
    eviction pass.
    """

    def __init__(
        self,
        sql_store: SQLStore,
        max_beliefs: int = 50,
        max_signals: int = 100,
        belief_decay_hours: float = 24.0,
        moving_market_threshold: float = 0.03,
        position_loss_threshold: float = -0.1,
    ) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()
        self.max_beliefs = max_beliefs
        self.max_signals = max_signals
        self.belief_decay = timedelta(hours=belief_decay_hours)
        self.moving_market_threshold = moving_market_threshold
        self.position_loss_threshold = position_loss_threshold
        self.beliefs: list[Belief] = []
        self.signals: list[Signal] = []
        self.markets: dict[str, MarketState] = {}
        self.positions: list[PositionState] = []
        self.predictions: list[PredictionState] = []
        self.last_updated = datetime.now(UTC)
        self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        payload = self.sql_store.load_document(DOCUMENT_NAME)
        if not payload:
            return
        self.beliefs = [Belief.model_validate(item) for item in payload.get("beliefs", [])]
        self.signals = [Signal.model_validate(item) for item in payload.get("signals", [])]
        self.markets = {
            key: MarketState.model_validate(item)
            for key, item in payload.get("markets", {}).items()
        }
        self.positions = [
            PositionState.model_validate(item) for item in payload.get("positions", [])
        ]
        self.predictions = [
            PredictionState.model_validate(item) for item in payload.get("predictions", [])
        ]
        if payload.get("last_updated"):
            self.last_updated = datetime.fromisoformat(payload["last_updated"])
        logger.debug(
            "Loaded world state: %d beliefs, %d signals", len(self.beliefs), len(self.signals)
        )

    def _save(self) -> None:
        self.last_updated = datetime.now(UTC)
        self.sql_store.save_document(DOCUMENT_NAME, self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "beliefs": [b.model_dump(mode="json") for b in self.beliefs],
            "signals": [s.model_dump(mode="json") for s in self.signals[-self.max_signals :]],
            "markets": {k: m.model_dump(mode="json") for k, m in self.markets.items()},
            "positions": [p.model_dump(mode="json") for p in self.positions],
            "predictions": [p.model_dump(mode="json") for p in self.predictions],
            "last_updated": self.last_updated.isoformat(),
        }

    # ------------------------------------------------------------------
    # Beliefs
    # ------------------------------------------------------------------

    def add_belief(
        self,
        content: str,
        confidence: float,
        source: BeliefSource | str = BeliefSource.OBSERVATION,
        evidence: list[str] | None = None,
        expires_in: timedelta | None = None,
    ) -> Belief:
        """Insert a belief, resolving contradictions and enforcing capacity.

        Returns the belief that holds afterwards: the new belief when it is
        stored, a live belief with the same content after reinforcing it, or
        the stronger contradicting belief that caused the new one to be rejected.
        """
        now = datetime.now(UTC)
        belief = Belief(
            content=content,
            confidence=confidence,
            source=BeliefSource(source),
            evidence=list(evidence or []),
            created_at=now,
            expires_at=now + expires_in if expires_in else None,
        )
        live = [b for b in self.beliefs if not b.is_expired(now)]

        duplicate = next(
            (b for b in live if normalize_claim(b.content) == normalize_claim(content)), None
        )
        if duplicate is not None:
            duplicate.confidence = max(duplicate.confidence, belief.confidence)
            for ref in belief.evidence:
                if ref not in duplicate.evidence:
                    duplicate.evidence.append(ref)
            if belief.expires_at is not None:
                duplicate.expires_at = belief.expires_at
            self._evict(now)
            self._save()
            logger.debug("Reinforced belief %s", duplicate.id)
            return duplicate

        contradicting = next((b for b in live if is_contradiction(b.content, content)), None)
        if contradicting is None:
            self.beliefs.append(belief)
        elif belief.confidence > contradicting.confidence:
            self.beliefs = [b for b in self.beliefs if b.id != contradicting.id]
            self.beliefs.append(belief)
            logger.info(
                "Belief %r replaced contradicting belief %r", content, contradicting.content
            )
        else:
            logger.info(
                "Belief %r rejected; existing belief %r is stronger or equal",
                content,
                contradicting.content,
            )
            self._evict(now)
            self._save()
            return contradicting

        self._evict(now)
        self._save()
        return belief

    def _evict(self, now: datetime) -> None:
        before = len(self.beliefs)
        self.beliefs = [b for b in self.beliefs if not b.is_expired(now)]
        if len(self.beliefs) > self.max_beliefs:
            window = self.belief_decay.total_seconds()

            def _score(b: Belief) -> float:
                age = (now - b.created_at).total_seconds()
                return b.confidence * (1 - age / window)

            ranked = sorted(
                self.beliefs,
                key=lambda b: (-_score(b), -b.created_at.timestamp(), b.id),
            )
            self.beliefs = ranked[: self.max_beliefs]
        dropped = before - len(self.beliefs)
        if dropped:
            logger.info("Evicted %d beliefs", dropped)

    def update_belief_confidence(
        self, belief_id: str, adjustment: float, new_evidence: str | None = None
    ) -> Belief | None:
        """Shift a belief's confidence by ``adjustment`` (clamped)."""
        belief = next((b for b in self.beliefs if b.id == belief_id), None)
        if belief is None:
            logger.warning("update_belief_confidence: unknown belief %s", belief_id)
            return None
        belief.confidence = clamp(belief.confidence + adjustment)
        if new_evidence:
            belief.evidence.append(new_evidence)
        self._save()
        return belief

    def get_beliefs(self, query: str | None = None) -> list[Belief]:
        now = datetime.now(UTC)
        live = [b for b in self.beliefs if not b.is_expired(now)]
        if not query:
            return live
        query_lower = query.lower()
        return [b for b in live if query_lower in b.content.lower()]

    def believes(self, content: str, min_confidence: float = 0.5) -> bool:
        return any(b.confidence >= min_confidence for b in self.get_beliefs(content))

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def add_signal(
        self, signal_type: SignalType | str, source: str, content: str, strength: float
    ) -> Signal:
        signal = Signal(
            type=SignalType(signal_type), source=source, content=content, strength=strength
        )
        self.signals.append(signal)
        if len(self.signals) > self.max_signals:
            dropped = len(self.signals) - self.max_signals
            self.signals = self.signals[-self.max_signals :]
            logger.debug("Signal buffer full; dropped %d oldest", dropped)
        self._save()
        return signal

    def get_unprocessed_signals(self) -> list[Signal]:
        return [s for s in self.signals if not s.processed]

    def mark_signal_processed(self, signal_id: str) -> bool:
        signal = next((s for s in self.signals if s.id == signal_id), None)
        if signal is None:
            logger.warning("mark_signal_processed: unknown signal %s", signal_id)
            return False
        if not signal.processed:
            signal.processed = True
            self._save()
        return True

    def get_recent_signals(
        self, signal_type: SignalType | str | None = None, limit: int = 10
    ) -> list[Signal]:
        signals = self.signals
        if signal_type is not None:
            signals = [s for s in signals if s.type == SignalType(signal_type)]
        return signals[-limit:] if limit > 0 else []

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    def update_market(self, market_id: str, **fields: Any) -> MarketState:
        """Upsert a market, recording price change when the YES price moves."""
        existing = self.markets.get(market_id)
        data = existing.model_dump() if existing else {"id": market_id}
        new_price = fields.get("yes_price")
        if existing is not None and new_price is not None and new_price != existing.yes_price:
            fields.setdefault("last_price", existing.yes_price)
            if existing.yes_price > 0:
                fields.setdefault(
                    "price_change_percent", (new_price - existing.yes_price) / existing.yes_price
                )
        data.update(fields)
        data["id"] = market_id
        data["last_updated"] = datetime.now(UTC)
        market = MarketState.model_validate(data)
        self.markets[market_id] = market
        self._save()
        return market

    def get_market(self, market_id: str) -> MarketState | None:
        return self.markets.get(market_id)

    def get_all_markets(self) -> list[MarketState]:
        return list(self.markets.values())

    def get_moving_markets(self, threshold: float = 0.05) -> list[MarketState]:
        return [
            m
            for m in self.markets.values()
            if m.price_change_percent and abs(m.price_change_percent) >= threshold
        ]

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def update_position(self, position: PositionState) -> PositionState:
        position.unrealized_pnl = position.compute_unrealized_pnl()
        for index, existing in enumerate(self.positions):
            if existing.id == position.id:
                self.positions[index] = position
                break
        else:
            self.positions.append(position)
        self._save()
        return position

    def get_positions(self) -> list[PositionState]:
        return list(self.positions)

    def get_positions_at_risk(self, loss_threshold: float = -0.1) -> list[PositionState]:
        return [
            p
            for p in self.positions
            if p.cost_basis > 0 and p.unrealized_pnl / p.cost_basis <= loss_threshold
        ]

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def add_prediction(
        self, question: str, predicted_probability: float, direction: str = "YES"
    ) -> PredictionState:
        prediction = PredictionState(
            question=question, predicted_probability=predicted_probability, direction=direction
        )
        self.predictions.append(prediction)
        self._save()
        return prediction

    def resolve_prediction(self, prediction_id: str, outcome: bool) -> PredictionState | None:
        """Resolve a prediction and score it with the Brier rule."""
        prediction = next((p for p in self.predictions if p.id == prediction_id), None)
        if prediction is None:
            logger.warning("resolve_prediction: unknown prediction %s", prediction_id)
            return None
        p_yes = (
            prediction.predicted_probability
            if prediction.direction == "YES"
            else 1 - prediction.predicted_probability
        )
        prediction.outcome = outcome
        prediction.status = PredictionStatus.RESOLVED
        prediction.resolved_at = datetime.now(UTC)
        prediction.brier_score = (p_yes - (1.0 if outcome else 0.0)) ** 2
        self._save()
        return prediction

    def get_pending_predictions(self) -> list[PredictionState]:
        return [p for p in self.predictions if p.status == PredictionStatus.PENDING]

    def get_calibration_metrics(self) -> dict[str, float]:
        """Mean Brier score, directional accuracy and resolved count."""
        resolved = [
            p
            for p in self.predictions
            if p.status == PredictionStatus.RESOLVED and p.brier_score is not None
        ]
        if not resolved:
            return {"brier_score": 0.0, "accuracy": 0.0, "count": 0}
        brier = sum(p.brier_score or 0.0 for p in resolved) / len(resolved)
        correct = sum(1 for p in resolved if (p.direction == "YES") == p.outcome)
        return {"brier_score": brier, "accuracy": correct / len(resolved), "count": len(resolved)}

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self) -> str:
        """Render the world state as markdown for context injection."""
        calibration = self.get_calibration_metrics()
        lines = [
            f"## World State Summary ({datetime.now(UTC).isoformat()})",
            "",
            "### Calibration",
            f"- Brier Score: {calibration['brier_score']:.4f}",
            f"- Accuracy: {calibration['accuracy'] * 100:.1f}%",
            f"- Predictions: {calibration['count']}",
            "",
        ]

        beliefs = self.get_beliefs()
        if beliefs:
            lines.append("### Active Beliefs")
            for b in beliefs[:5]:
                lines.append(f"- {b.content} ({b.confidence * 100:.0f}% confidence)")
            lines.append("")

        moving = self.get_moving_markets(self.moving_market_threshold)
        if moving:
            lines.append("### Significant Market Moves")
            for m in moving[:5]:
                lines.append(f"- {(m.title or m.id)[:40]}: {m.price_change_percent * 100:.1f}%")
            lines.append("")

        at_risk = self.get_positions_at_risk(self.position_loss_threshold)
        if at_risk:
            lines.append("### Positions at Risk")
            for p in at_risk:
                pct = p.unrealized_pnl / p.cost_basis * 100
                lines.append(f"- {p.market_id}: {p.unrealized_pnl:.2f} ({pct:.1f}%)")
            lines.append("")

        pending = self.get_pending_predictions()
        if pending:
            lines.append(f"### Pending Predictions ({len(pending)})")
            for p in pending[:3]:
                lines.append(
                    f"- {p.question[:40]}... {p.direction} @ {p.predicted_probability * 100:.0f}%"
                )
            lines.append("")

        signals = self.get_unprocessed_signals()
        if signals:
            lines.append(f"### Pending Signals ({len(signals)})")
            for s in signals[:5]:
                lines.append(f"- [{s.type}] {s.content[:50]}... (strength: {s.strength * 100:.0f}%)")

        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        self.beliefs = []
        self.signals = []
        self.markets = {}
        self.positions = []
        self.predictions = []
        self._save()
        logger.info("World state reset")
