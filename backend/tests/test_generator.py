from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.domain import CryptoMetadata, SportsMetadata, StockMetadata, UpcomingSportsEvent, parse_metadata
from app.services.generator import PredictionGenerator

from conftest import StubOracle

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _event(index: int) -> UpcomingSportsEvent:
    return UpcomingSportsEvent(
        event_id=f"evt-{index}",
        sport_key="basketball_nba",
        sport_title="NBA",
        home_team=f"Home {index}",
        away_team=f"Away {index}",
        commence_time=NOW + timedelta(hours=index),
    )


def _generator(oracle, test_settings) -> PredictionGenerator:
    return PredictionGenerator(oracle, test_settings, clock=lambda: NOW)


def test_sports_drafts_follow_template(test_settings):
    oracle = StubOracle(upcoming=[_event(1), _event(2)])

    drafts = _generator(oracle, test_settings).sports_predictions()

    assert [draft.title for draft in drafts] == ["Will Home 1 beat Away 1?", "Will Home 2 beat Away 2?"]
    first = drafts[0]
    assert first.options == ["Yes", "No"]
    assert first.category == "Sports"
    assert first.ends_at == NOW + timedelta(hours=1)
    metadata = parse_metadata(first.metadata)
    assert isinstance(metadata, SportsMetadata)
    assert (metadata.event_id, metadata.sport, metadata.home_team) == ("evt-1", "basketball_nba", "Home 1")


def test_sports_drafts_respect_configured_limit(test_settings):
    test_settings.generation_sports_limit = 3
    oracle = StubOracle(upcoming=[_event(index) for index in range(12)])

    assert len(_generator(oracle, test_settings).sports_predictions()) == 3


def test_crypto_target_is_ten_percent_above_spot(test_settings):
    oracle = StubOracle(crypto={"bitcoin": 50_000.0, "ethereum": 2_500.45})

    drafts = _generator(oracle, test_settings).crypto_predictions()

    assert [draft.title for draft in drafts] == [
        "Will BITCOIN reach $55000 by tomorrow?",
        "Will ETHEREUM reach $2750 by tomorrow?",
    ]
    metadata = parse_metadata(drafts[0].metadata)
    assert isinstance(metadata, CryptoMetadata)
    assert metadata.target_price == 55000
    assert metadata.start_price == 50_000.0
    assert drafts[0].ends_at == NOW + timedelta(days=1)
    assert drafts[0].description == "Current price: $50000.00"


def test_stock_target_is_five_percent_above_spot(test_settings):
    oracle = StubOracle(stocks={"AAPL": 190.0})

    drafts = _generator(oracle, test_settings).stock_predictions()

    assert len(drafts) == 1
    assert drafts[0].title == "Will AAPL close above $200 tomorrow?"
    assert drafts[0].category == "Stocks"
    assert isinstance(parse_metadata(drafts[0].metadata), StockMetadata)


def test_unavailable_sources_are_skipped(test_settings, unavailable):
    oracle = StubOracle(
        upcoming=unavailable,
        crypto={"bitcoin": unavailable, "ethereum": 10.0},
        stocks={"AAPL": None},
    )

    drafts = _generator(oracle, test_settings).generate()

    assert [draft.category for draft in drafts] == ["Crypto"]
    assert drafts[0].title == "Will ETHEREUM reach $11 by tomorrow?"


def test_generate_can_leave_out_stocks(test_settings):
    oracle = StubOracle(crypto={"bitcoin": 1.0}, stocks={"AAPL": 100.0})

    drafts = _generator(oracle, test_settings).generate(include_stocks=False)

    assert {draft.category for draft in drafts} == {"Crypto"}
    assert ("stock", "AAPL") not in oracle.calls
