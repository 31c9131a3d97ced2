"""Prediction, vote and profile reads plus the creation paths used by the API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.db import transaction
from app.domain import InvalidMetadata, parse_metadata
from app.errors import (
    InvalidPredictionError,
    InvalidProfileError,
    PredictionNotFoundError,
    ProfileExistsError,
    ProfileNotFoundError,
)
from app.models import PredictionStatus, as_utc
from app.repositories import PredictionRepository, ProfileRepository, VoteRepository
from app.schemas import (
    Prediction,
    PredictionCreate,
    PredictionVotes,
    Profile,
    UserVote,
    Vote,
)


@dataclass(slots=True)
class PredictionQuery:
    status: str | None = PredictionStatus.ACTIVE.value
    category: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(slots=True)
class PredictionQueryResult:
    total: int
    predictions: Sequence[Prediction]


class PredictionService:
    def __init__(self, session: Session, settings: Settings | None = None):
        self._session = session
        self.settings = settings or get_settings()
        self._predictions = PredictionRepository(session)
        self._votes = VoteRepository(session)
        self._profiles = ProfileRepository(session)

    # ------------------------------------------------------------------
    # Predictions

    def create_prediction(self, payload: PredictionCreate) -> Prediction:
        with transaction(self._session):
            record = self._insert(payload)
        logger.info("Created prediction {} ({})", record.id, record.title)
        return Prediction.model_validate(record)

    def create_predictions(self, payloads: Iterable[PredictionCreate]) -> list[Prediction]:
        """Insert a batch in one transaction; an invalid draft aborts the whole batch."""

        with transaction(self._session):
            records = [self._insert(payload) for payload in payloads]
        logger.info("Created {} predictions", len(records))
        return [Prediction.model_validate(record) for record in records]

    def list_predictions(self, query: PredictionQuery) -> PredictionQueryResult:
        records, total = self._predictions.list_predictions(
            status=query.status,
            category=query.category,
            limit=query.limit,
            offset=query.offset,
        )
        return PredictionQueryResult(
            total=total,
            predictions=[Prediction.model_validate(record) for record in records],
        )

    def get_prediction(self, prediction_id: str) -> Prediction:
        record = self._predictions.get_prediction(prediction_id)
        if record is None:
            raise PredictionNotFoundError(prediction_id)
        return Prediction.model_validate(record)

    # ------------------------------------------------------------------
    # Votes

    def get_prediction_votes(self, prediction_id: str) -> PredictionVotes:
        record = self._predictions.get_prediction(prediction_id)
        if record is None:
            raise PredictionNotFoundError(prediction_id)

        votes = self._votes.list_for_prediction(prediction_id)
        counts = self._votes.option_counts(prediction_id)
        total = len(votes)
        percentages = {
            option: (counts.get(option, 0) / total * 100.0) if total else 0.0
            for option in record.options
        }
        return PredictionVotes(
            prediction_id=prediction_id,
            total=total,
            votes=[Vote.model_validate(vote) for vote in votes],
            percentages=percentages,
        )

    def get_user_votes(self, user_id: str) -> list[UserVote]:
        if self._profiles.get_profile(user_id) is None:
            raise ProfileNotFoundError(user_id)
        return [UserVote.model_validate(vote) for vote in self._votes.list_for_user(user_id)]

    # ------------------------------------------------------------------
    # Profiles

    def leaderboard(self, limit: int | None = None) -> list[Profile]:
        records = self._profiles.leaderboard(limit=self.settings.leaderboard_limit if limit is None else limit)
        return [Profile.model_validate(record) for record in records]

    def get_profile(self, user_id: str) -> Profile:
        record = self._profiles.get_profile(user_id)
        if record is None:
            raise ProfileNotFoundError(user_id)
        return Profile.model_validate(record)

    def create_profile(self, username: str, credits: int | None = None) -> Profile:
        username = username.strip()
        if not username:
            raise InvalidProfileError("Username must not be empty")
        with transaction(self._session):
            if self._profiles.get_by_username(username) is not None:
                raise ProfileExistsError(username)
            record = self._profiles.create_profile(
                username=username,
                credits=self.settings.starting_credits if credits is None else credits,
            )
        logger.info("Created profile {} for {}", record.id, username)
        return Profile.model_validate(record)

    def _insert(self, payload: PredictionCreate):
        options = payload.options
        if len(options) < 2:
            raise InvalidPredictionError("A prediction needs at least two options")
        if any(not option for option in options):
            raise InvalidPredictionError("Options must not be empty")
        if len(set(options)) != len(options):
            raise InvalidPredictionError("Options must be unique")

        metadata = parse_metadata(payload.metadata)
        if isinstance(metadata, InvalidMetadata):
            raise InvalidPredictionError(f"Invalid {metadata.type} metadata: {metadata.error}")

        if payload.creator_id and self._profiles.get_profile(payload.creator_id) is None:
            raise ProfileNotFoundError(payload.creator_id)

        return self._predictions.create_prediction(
            title=payload.title.strip(),
            description=payload.description,
            category=payload.category,
            options=options,
            ends_at=as_utc(payload.ends_at),
            creator_id=payload.creator_id,
            metadata=payload.metadata,
            trending_score=payload.trending_score,
        )


__all__ = ["PredictionQuery", "PredictionQueryResult", "PredictionService"]
