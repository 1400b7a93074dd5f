"""World state store tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from memory.stores.sql_store import SQLStore
from memory.types.world import BeliefSource, PositionState, PredictionStatus, SignalType
from world_model.contradiction import is_contradiction
from world_model.world_state import WorldStateStore


def _store(tmp_path: Path, **kwargs) -> WorldStateStore:
    return WorldStateStore(SQLStore(tmp_path / "cog.db"), **kwargs)


def test_contradiction_is_lexical_negation() -> None:
    assert is_contradiction("BTC will rise", "not btc will rise")
    assert is_contradiction("It is NOT  raining", "it is raining") is False
    assert is_contradiction("market is open", "market is open") is False
    assert is_contradiction("", "not anything") is False


def test_weaker_contradicting_belief_is_rejected(tmp_path: Path) -> None:
    world = _store(tmp_path)
    existing = world.add_belief("X is true", 0.9)
    kept = world.add_belief("not X is true", 0.6)

    contents = [b.content for b in world.get_beliefs()]
    assert contents == ["X is true"]
    assert kept.id == existing.id
    assert kept.content == "X is true"


def test_stronger_contradicting_belief_replaces_existing(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.add_belief("X is true", 0.5)
    stored = world.add_belief("not X is true", 0.8)

    contents = [b.content for b in world.get_beliefs()]
    assert contents == ["not X is true"]
    assert stored.content == "not X is true"


def test_contradiction_tie_keeps_existing(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.add_belief("X is true", 0.7)
    world.add_belief("not X is true", 0.7)

    assert [b.content for b in world.get_beliefs()] == ["X is true"]


def test_identical_content_reinforces_existing_belief(tmp_path: Path) -> None:
    world = _store(tmp_path)
    first = world.add_belief("Liquidity is thin", 0.4, evidence=["sig-1"])
    second = world.add_belief("liquidity is thin", 0.7, evidence=["sig-2"])

    assert second.id == first.id
    beliefs = world.get_beliefs()
    assert len(beliefs) == 1
    assert beliefs[0].confidence == 0.7
    assert beliefs[0].evidence == ["sig-1", "sig-2"]


def test_confidence_is_clamped(tmp_path: Path) -> None:
    world = _store(tmp_path)
    belief = world.add_belief("Overly sure", 1.7)
    assert belief.confidence == 1.0

    updated = world.update_belief_confidence(belief.id, -3.0, "counter-evidence")
    assert updated is not None
    assert updated.confidence == 0.0
    assert "counter-evidence" in updated.evidence
    assert world.update_belief_confidence("missing", 0.1) is None


def test_expired_beliefs_are_hidden(tmp_path: Path) -> None:
    world = _store(tmp_path)
    belief = world.add_belief("Short lived", 0.9, expires_in=timedelta(hours=1))
    belief.expires_at = datetime.now(UTC) - timedelta(seconds=1)

    assert world.get_beliefs() == []
    assert world.believes("Short lived") is False


def test_belief_capacity_keeps_highest_scores(tmp_path: Path) -> None:
    world = _store(tmp_path, max_beliefs=3)
    for index, confidence in enumerate([0.2, 0.9, 0.5, 0.8, 0.1]):
        world.add_belief(f"belief number {index}", confidence)

    kept = sorted(b.confidence for b in world.get_beliefs())
    assert kept == [0.5, 0.8, 0.9]


def test_believes_respects_min_confidence(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.add_belief("Spread is wide on election market", 0.4)

    assert world.believes("spread is wide") is False
    assert world.believes("spread is wide", min_confidence=0.3) is True


def test_signals_buffer_and_processing(tmp_path: Path) -> None:
    world = _store(tmp_path, max_signals=3)
    signals = [
        world.add_signal(SignalType.NEWS_SENTIMENT, "feed", f"headline {i}", 0.5)
        for i in range(5)
    ]

    assert [s.content for s in world.signals] == ["headline 2", "headline 3", "headline 4"]
    assert world.mark_signal_processed(signals[-1].id) is True
    assert world.mark_signal_processed(signals[-1].id) is True
    assert world.mark_signal_processed("unknown") is False
    assert len(world.get_unprocessed_signals()) == 2
    assert [s.content for s in world.get_recent_signals(limit=2)] == ["headline 3", "headline 4"]


def test_signal_strength_is_clamped(tmp_path: Path) -> None:
    world = _store(tmp_path)
    signal = world.add_signal(SignalType.PRICE_MOVEMENT, "feed", "spike", 4.0)
    assert signal.strength == 1.0


def test_market_price_change_is_tracked(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.update_market("m1", title="Election", yes_price=0.50, no_price=0.50)
    market = world.update_market("m1", yes_price=0.60)

    assert market.last_price == 0.50
    assert abs(market.price_change_percent - 0.2) < 1e-9
    assert world.get_market("m1").title == "Election"
    assert [m.id for m in world.get_moving_markets(0.1)] == ["m1"]
    assert "Significant Market Moves" in world.summary()


def test_positions_at_risk(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.update_position(
        PositionState(id="p1", market_id="m1", size=100, entry_price=0.5, current_price=0.4)
    )
    world.update_position(
        PositionState(id="p2", market_id="m2", size=100, entry_price=0.5, current_price=0.55)
    )

    at_risk = world.get_positions_at_risk(-0.1)
    assert [p.id for p in at_risk] == ["p1"]
    assert abs(at_risk[0].unrealized_pnl - (-10.0)) < 1e-9
    assert "Positions at Risk" in world.summary()


def test_prediction_resolution_and_calibration(tmp_path: Path) -> None:
    world = _store(tmp_path)
    assert world.get_calibration_metrics() == {"brier_score": 0.0, "accuracy": 0.0, "count": 0}

    yes = world.add_prediction("Will it rain?", 0.8, "YES")
    no = world.add_prediction("Will it snow?", 0.7, "NO")
    world.resolve_prediction(yes.id, True)
    world.resolve_prediction(no.id, True)

    assert yes.status == PredictionStatus.RESOLVED
    assert abs(yes.brier_score - 0.04) < 1e-9
    assert abs(no.brier_score - 0.49) < 1e-9
    metrics = world.get_calibration_metrics()
    assert metrics["count"] == 2
    assert abs(metrics["brier_score"] - 0.265) < 1e-9
    assert metrics["accuracy"] == 0.5
    assert world.get_pending_predictions() == []
    assert world.resolve_prediction("missing", True) is None


def test_state_survives_reload(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.add_belief("Persistent claim", 0.6, BeliefSource.INFERENCE)
    world.add_signal(SignalType.WHALE_ACTIVITY, "chain", "large transfer", 0.7)

    reloaded = _store(tmp_path)
    assert [b.content for b in reloaded.get_beliefs()] == ["Persistent claim"]
    assert reloaded.get_beliefs()[0].source == BeliefSource.INFERENCE
    assert len(reloaded.get_unprocessed_signals()) == 1


def test_reset_clears_everything(tmp_path: Path) -> None:
    world = _store(tmp_path)
    world.add_belief("Something", 0.5)
    world.add_signal(SignalType.PRICE_MOVEMENT, "feed", "move", 0.5)
    world.reset()

    assert world.get_beliefs() == []
    assert world.signals == []
    assert _store(tmp_path).get_beliefs() == []
