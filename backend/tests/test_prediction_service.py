from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.errors import (
    InvalidPredictionError,
    InvalidProfileError,
    PredictionClosedError,
    PredictionNotFoundError,
    ProfileExistsError,
    ProfileNotFoundError,
)
from app.models import utcnow
from app.schemas import PredictionCreate
from app.services.prediction_service import PredictionQuery, PredictionService
from app.services.resolution_engine import ResolutionEngine
from app.services.settlement_service import SettlementService
from app.services.voting_service import VotingService

from conftest import StubOracle


@pytest.fixture
def service(session, test_settings) -> PredictionService:
    return PredictionService(session, test_settings)


def _payload(**overrides) -> PredictionCreate:
    data = {
        "title": "Will BTC reach $70000 by tomorrow?",
        "category": "Crypto",
        "options": ["Yes", "No"],
        "ends_at": utcnow() + timedelta(days=1),
        "metadata": {"type": "crypto", "coinId": "bitcoin", "targetPrice": 70000},
    }
    data.update(overrides)
    return PredictionCreate(**data)


def test_create_prediction_persists_metadata(service):
    created = service.create_prediction(_payload())

    fetched = service.get_prediction(created.id)
    assert fetched.status == "active"
    assert fetched.metadata == {"type": "crypto", "coinId": "bitcoin", "targetPrice": 70000}
    assert fetched.total_votes == 0
    assert fetched.options == ["Yes", "No"]


def test_create_prediction_normalizes_naive_deadline(service):
    created = service.create_prediction(_payload(ends_at=datetime(2030, 1, 1, 12, 0)))

    assert created.ends_at.replace(tzinfo=None) == datetime(2030, 1, 1, 12, 0)


def test_create_prediction_converts_offset_deadline_to_utc(service, session, session_factory, seed):
    deadline = (utcnow() - timedelta(hours=1)).astimezone(timezone(timedelta(hours=5)))
    created = service.create_prediction(_payload(ends_at=deadline))

    stored = service.get_prediction(created.id).ends_at
    assert stored.replace(tzinfo=timezone.utc) == deadline

    voter = seed.profile("uma")
    with pytest.raises(PredictionClosedError):
        VotingService(session).place_vote(
            created.id, user_id=voter.id, selected_option="Yes", credits_staked=5
        )

    oracle = StubOracle(crypto={"bitcoin": 71000.0})
    summary = ResolutionEngine(oracle, session_factory=session_factory).check_and_resolve()
    assert summary.checked == 1
    assert summary.resolved == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"options": ["Yes", "Yes"]},
        {"options": ["Yes", " "]},
        {"metadata": {"type": "crypto", "coinId": "bitcoin"}},
    ],
)
def test_create_prediction_rejects_invalid_payloads(service, overrides):
    with pytest.raises(InvalidPredictionError):
        service.create_prediction(_payload(**overrides))


def test_create_prediction_requires_known_creator(service):
    with pytest.raises(ProfileNotFoundError):
        service.create_prediction(_payload(creator_id="ghost"))


def test_create_predictions_batch_is_atomic(service):
    with pytest.raises(InvalidPredictionError):
        service.create_predictions([_payload(title="ok"), _payload(options=["A", "A"])])

    assert service.list_predictions(PredictionQuery()).total == 0


def test_list_predictions_filters_and_orders(service, seed):
    seed.prediction(title="cold", category="Sports", trending_score=1.0, ends_at=utcnow() + timedelta(days=1))
    seed.prediction(title="hot", category="Sports", trending_score=9.0, ends_at=utcnow() + timedelta(days=2))
    seed.prediction(title="crypto", category="Crypto", trending_score=5.0, ends_at=utcnow() + timedelta(days=1))

    result = service.list_predictions(PredictionQuery(category="Sports"))

    assert result.total == 2
    assert [prediction.title for prediction in result.predictions] == ["hot", "cold"]


def test_list_predictions_defaults_to_active(service, seed, session):
    resolved = seed.prediction(title="done")
    seed.prediction(title="open", ends_at=utcnow() + timedelta(days=1))
    SettlementService(session).distribute_winnings(resolved.id, "Yes")

    active = service.list_predictions(PredictionQuery())
    finished = service.list_predictions(PredictionQuery(status="resolved"))

    assert [prediction.title for prediction in active.predictions] == ["open"]
    assert [prediction.title for prediction in finished.predictions] == ["done"]


def test_get_missing_prediction(service):
    with pytest.raises(PredictionNotFoundError):
        service.get_prediction("missing")


def test_prediction_votes_include_percentages(service, seed, session):
    prediction = seed.prediction(options=["Yes", "No", "Maybe"], ends_at=utcnow() + timedelta(days=1))
    voters = [seed.profile(name) for name in ("u1", "u2", "u3", "u4")]
    voting = VotingService(session)
    for profile, option in zip(voters, ["Yes", "Yes", "Yes", "No"]):
        voting.place_vote(prediction.id, user_id=profile.id, selected_option=option, credits_staked=10)

    result = service.get_prediction_votes(prediction.id)

    assert result.total == 4
    assert len(result.votes) == 4
    assert result.percentages == {"Yes": 75.0, "No": 25.0, "Maybe": 0.0}


def test_prediction_without_votes_has_zero_percentages(service, seed):
    prediction = seed.prediction()

    result = service.get_prediction_votes(prediction.id)

    assert result.total == 0
    assert result.percentages == {"Yes": 0.0, "No": 0.0}


def test_user_votes_are_newest_first(service, seed, session):
    profile = seed.profile("uma")
    first = seed.prediction(title="first", ends_at=utcnow() + timedelta(days=1))
    second = seed.prediction(title="second", ends_at=utcnow() + timedelta(days=1))
    voting = VotingService(session)
    voting.place_vote(first.id, user_id=profile.id, selected_option="Yes", credits_staked=1)
    voting.place_vote(second.id, user_id=profile.id, selected_option="No", credits_staked=2)

    votes = service.get_user_votes(profile.id)

    assert [vote.prediction.title for vote in votes] == ["second", "first"]
    assert votes[0].credits_staked == 2

    with pytest.raises(ProfileNotFoundError):
        service.get_user_votes("nobody")


def test_leaderboard_orders_by_credits(service, seed):
    seed.profile("low", credits=10)
    seed.profile("high", credits=5000)
    seed.profile("mid", credits=700)

    board = service.leaderboard(limit=2)

    assert [profile.username for profile in board] == ["high", "mid"]


def test_create_profile_uses_starting_credits(service, test_settings):
    profile = service.create_profile("  victor ")

    assert profile.username == "victor"
    assert profile.credits == test_settings.starting_credits
    assert profile.accuracy_percentage == 0.0

    with pytest.raises(ProfileExistsError):
        service.create_profile("victor")


@pytest.mark.parametrize("username", ["", "   "])
def test_create_profile_rejects_blank_username(service, username):
    with pytest.raises(InvalidProfileError):
        service.create_profile(username)
