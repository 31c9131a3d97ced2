from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.db import build_db_components, init_db
from app.domain import SportsResult, UpcomingSportsEvent
from app.models import Prediction, Profile, Vote, utcnow
from app.repositories import LedgerRepository, PredictionRepository, ProfileRepository, VoteRepository
from oracle.errors import OracleUnavailableError


class StubOracle:
    """In-memory oracle; a value that is an exception instance is raised instead of returned."""

    def __init__(
        self,
        *,
        sports: dict[str, Any] | None = None,
        crypto: dict[str, Any] | None = None,
        stocks: dict[str, Any] | None = None,
        upcoming: list[UpcomingSportsEvent] | Exception | None = None,
    ) -> None:
        self.sports = sports or {}
        self.crypto = crypto or {}
        self.stocks = stocks or {}
        self.upcoming = upcoming if upcoming is not None else []
        self.calls: list[tuple[str, str]] = []

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def get_sports_result(self, event_id: str, sport: str) -> SportsResult:
        self.calls.append(("sports", event_id))
        return self._answer(self.sports.get(event_id, SportsResult(completed=False)))

    def get_crypto_price(self, coin_id: str) -> float | None:
        self.calls.append(("crypto", coin_id))
        return self._answer(self.crypto.get(coin_id))

    def get_stock_price(self, symbol: str) -> float | None:
        self.calls.append(("stock", symbol))
        return self._answer(self.stocks.get(symbol))

    def list_upcoming_sports(self, limit: int | None = None) -> list[UpcomingSportsEvent]:
        events = self._answer(self.upcoming)
        return list(events[:limit] if limit is not None else events)


class Seeder:
    """Write fixtures straight through the repositories, bypassing vote-time checks."""

    def __init__(self, session) -> None:
        self.session = session

    def profile(self, username: str, credits: int = 1000) -> Profile:
        profile = ProfileRepository(self.session).create_profile(username=username, credits=credits)
        self.session.commit()
        return profile

    def prediction(
        self,
        *,
        title: str = "Will it happen?",
        options: list[str] | None = None,
        ends_at: datetime | None = None,
        metadata: dict[str, Any] | None = None,
        category: str | None = None,
        trending_score: float = 0.0,
    ) -> Prediction:
        prediction = PredictionRepository(self.session).create_prediction(
            title=title,
            options=options or ["Yes", "No"],
            ends_at=ends_at or utcnow() - timedelta(minutes=5),
            metadata=metadata,
            category=category,
            trending_score=trending_score,
        )
        self.session.commit()
        return prediction

    def vote(self, prediction: Prediction, profile: Profile, option: str, credits: int) -> Vote:
        LedgerRepository(self.session).debit(profile.id, credits)
        vote = VoteRepository(self.session).add_vote(
            prediction_id=prediction.id,
            user_id=profile.id,
            selected_option=option,
            credits_staked=credits,
        )
        PredictionRepository(self.session).increment_totals(prediction.id, credits=credits)
        self.session.commit()
        return vote


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'predictpool.db'}",
        odds_api_key="test-odds-key",
        alpha_vantage_key="test-av-key",
        oracle_retry_attempts=3,
        oracle_retry_backoff_seconds="0,0,0",
        generation_crypto_coins="bitcoin,ethereum",
        generation_stock_symbols="AAPL",
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def session_factory(tmp_path):
    engine, factory = build_db_components(f"sqlite:///{tmp_path/'ledger.db'}")
    init_db(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture
def stub_oracle() -> StubOracle:
    return StubOracle()


@pytest.fixture
def unavailable() -> OracleUnavailableError:
    return OracleUnavailableError("stub", "provider timed out")
