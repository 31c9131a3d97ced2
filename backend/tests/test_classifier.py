from __future__ import annotations

import pytest

from app.domain import (
    CryptoMetadata,
    ManualMetadata,
    NeedsManualResolution,
    NoOutcomeYet,
    SportsMetadata,
    SportsResult,
    StockMetadata,
    WinningOption,
    parse_metadata,
)
from app.services.classifier import ResolutionClassifier, classify, classify_price, classify_sports

from conftest import StubOracle


def test_sports_home_win_is_yes():
    result = SportsResult(completed=True, home_score=3, away_score=1, winner="home")
    assert classify_sports(result) == WinningOption("Yes")


def test_sports_tie_is_no():
    result = SportsResult(completed=True, home_score=2, away_score=2, winner="draw")
    assert classify_sports(result) == WinningOption("No")


def test_sports_away_win_is_no():
    result = SportsResult(completed=True, home_score=0, away_score=1, winner="away")
    assert classify_sports(result) == WinningOption("No")


def test_sports_incomplete_game_has_no_outcome():
    assert isinstance(classify_sports(SportsResult(completed=False)), NoOutcomeYet)


@pytest.mark.parametrize(
    ("price", "expected"),
    [(100.0, "Yes"), (100.01, "Yes"), (99.99, "No")],
)
def test_price_threshold_is_inclusive(price, expected):
    assert classify_price(price, 100.0) == WinningOption(expected)


def test_missing_price_has_no_outcome():
    assert isinstance(classify_price(None, 100.0), NoOutcomeYet)


def test_invalid_metadata_needs_manual_resolution():
    metadata = parse_metadata({"type": "crypto", "coinId": "bitcoin"})

    decision = classify(metadata, 50_000.0)

    assert isinstance(decision, NeedsManualResolution)
    assert "targetPrice" in decision.reason


def test_manual_metadata_needs_manual_resolution():
    assert isinstance(classify(ManualMetadata(), None), NeedsManualResolution)


def test_decide_queries_matching_oracle_source():
    oracle = StubOracle(
        sports={"evt-1": SportsResult(completed=True, home_score=1, away_score=0, winner="home")},
        crypto={"bitcoin": 101.0},
        stocks={"AAPL": 50.0},
    )
    classifier = ResolutionClassifier(oracle)

    assert classifier.decide(SportsMetadata(event_id="evt-1", sport="nba")) == WinningOption("Yes")
    assert classifier.decide(CryptoMetadata(coin_id="bitcoin", target_price=100)) == WinningOption("Yes")
    assert classifier.decide(StockMetadata(symbol="AAPL", target_price=60)) == WinningOption("No")
    assert oracle.calls == [("sports", "evt-1"), ("crypto", "bitcoin"), ("stock", "AAPL")]


def test_decide_maps_oracle_unavailable_to_no_outcome(unavailable):
    oracle = StubOracle(crypto={"bitcoin": unavailable})

    decision = ResolutionClassifier(oracle).decide(CryptoMetadata(coin_id="bitcoin", target_price=1))

    assert isinstance(decision, NoOutcomeYet)
    assert "unavailable" in decision.reason


def test_decide_rejects_winner_outside_options():
    oracle = StubOracle(crypto={"bitcoin": 200.0})

    decision = ResolutionClassifier(oracle).decide(
        CryptoMetadata(coin_id="bitcoin", target_price=100),
        options=["Up", "Down"],
    )

    assert isinstance(decision, NeedsManualResolution)


def test_decide_skips_oracle_for_manual_metadata():
    oracle = StubOracle()

    decision = ResolutionClassifier(oracle).decide(ManualMetadata())

    assert isinstance(decision, NeedsManualResolution)
    assert oracle.calls == []
