from __future__ import annotations

from datetime import timedelta

from app.domain import SportsResult
from app.models import Prediction, PredictionStatus, Profile, utcnow
from app.repositories import PredictionRepository
from app.services.resolution_engine import ResolutionAction, ResolutionEngine
from app.services.settlement_service import SettlementService

from conftest import StubOracle


def _status(session, prediction_id: str) -> str:
    session.expire_all()
    return session.get(Prediction, prediction_id).status


def test_scan_resolves_sports_prediction(session_factory, session, seed):
    fan = seed.profile("fan")
    prediction = seed.prediction(metadata={"type": "sports", "eventId": "evt-1", "sport": "nba"})
    seed.vote(prediction, fan, "No", 100)
    oracle = StubOracle(
        sports={"evt-1": SportsResult(completed=True, home_score=99, away_score=99, winner="draw")}
    )

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.checked == 1
    assert summary.resolved == 1
    assert summary.failures == []
    session.expire_all()
    resolved = session.get(Prediction, prediction.id)
    assert resolved.status == PredictionStatus.RESOLVED.value
    assert resolved.winning_option == "No"
    assert session.get(Profile, fan.id).credits == 1000


def test_scan_skips_predictions_before_deadline(session_factory, seed):
    seed.prediction(
        ends_at=utcnow() + timedelta(hours=1),
        metadata={"type": "crypto", "coinId": "bitcoin", "targetPrice": 1},
    )
    oracle = StubOracle(crypto={"bitcoin": 2.0})

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.checked == 0
    assert oracle.calls == []


def test_resolved_predictions_are_excluded_from_future_scans(session_factory, session, seed):
    prediction = seed.prediction(metadata={"type": "crypto", "coinId": "bitcoin", "targetPrice": 100})
    oracle = StubOracle(crypto={"bitcoin": 100.0})
    engine = ResolutionEngine(oracle, session_factory=session_factory)

    first = engine.check_and_resolve()
    second = engine.check_and_resolve()

    assert first.resolved == 1
    assert second.checked == 0
    assert oracle.calls == [("crypto", "bitcoin")]
    session.expire_all()
    assert session.get(Prediction, prediction.id).winning_option == "Yes"


def test_manual_prediction_stays_locked_across_scans(session_factory, session, seed):
    prediction = seed.prediction(metadata={"type": "manual"})
    untyped = seed.prediction(metadata=None)
    engine = ResolutionEngine(StubOracle(), session_factory=session_factory)

    first = engine.check_and_resolve()
    for _ in range(3):
        later = engine.check_and_resolve()
        assert later.checked == 0

    assert first.locked == 2
    assert _status(session, prediction.id) == PredictionStatus.LOCKED.value
    assert _status(session, untyped.id) == PredictionStatus.LOCKED.value


def test_malformed_metadata_locks_prediction(session_factory, session, seed):
    prediction = seed.prediction(metadata={"type": "stock", "symbol": "AAPL"})
    oracle = StubOracle(stocks={"AAPL": 10.0})

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.locked == 1
    assert oracle.calls == []
    assert _status(session, prediction.id) == PredictionStatus.LOCKED.value


def test_winner_outside_options_locks_prediction(session_factory, session, seed):
    prediction = seed.prediction(
        options=["Higher", "Lower"],
        metadata={"type": "crypto", "coinId": "ethereum", "targetPrice": 10},
    )
    oracle = StubOracle(crypto={"ethereum": 11.0})

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.locked == 1
    assert _status(session, prediction.id) == PredictionStatus.LOCKED.value


def test_pending_outcomes_stay_active(session_factory, session, seed, unavailable):
    unfinished = seed.prediction(metadata={"type": "sports", "eventId": "evt-2", "sport": "nhl"})
    no_price = seed.prediction(metadata={"type": "crypto", "coinId": "cardano", "targetPrice": 1})
    down = seed.prediction(metadata={"type": "stock", "symbol": "TSLA", "targetPrice": 1})
    oracle = StubOracle(stocks={"TSLA": unavailable})

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.pending == 3
    assert summary.failures == []
    for prediction in (unfinished, no_price, down):
        assert _status(session, prediction.id) == PredictionStatus.ACTIVE.value


def test_failure_on_one_prediction_does_not_stop_the_scan(session_factory, session, seed):
    earlier = seed.prediction(
        ends_at=utcnow() - timedelta(hours=2),
        metadata={"type": "crypto", "coinId": "broken", "targetPrice": 1},
    )
    later = seed.prediction(
        ends_at=utcnow() - timedelta(hours=1),
        metadata={"type": "crypto", "coinId": "bitcoin", "targetPrice": 1},
    )
    oracle = StubOracle(crypto={"broken": RuntimeError("unexpected payload"), "bitcoin": 5.0})

    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()

    assert summary.checked == 2
    assert summary.resolved == 1
    assert summary.failures == [{"prediction_id": earlier.id, "reason": "unexpected payload"}]
    assert _status(session, earlier.id) == PredictionStatus.ACTIVE.value
    assert _status(session, later.id) == PredictionStatus.RESOLVED.value


def test_prediction_resolved_elsewhere_is_skipped(session_factory, session, seed):
    prediction = seed.prediction(metadata={"type": "crypto", "coinId": "bitcoin", "targetPrice": 1})
    engine = ResolutionEngine(StubOracle(crypto={"bitcoin": 5.0}), session_factory=session_factory)
    SettlementService(session).distribute_winnings(prediction.id, "No")

    assert engine.resolve_prediction(prediction.id) is ResolutionAction.SKIPPED
    session.expire_all()
    assert session.get(Prediction, prediction.id).winning_option == "No"


def test_due_prediction_limit_is_honoured(session, seed):
    for index in range(3):
        seed.prediction(title=f"due {index}")
    repository = PredictionRepository(session)

    assert len(repository.get_due_predictions(utcnow())) == 3
    assert len(repository.get_due_predictions(utcnow(), limit=2)) == 2
    assert repository.get_due_predictions(utcnow(), limit=0) == []
