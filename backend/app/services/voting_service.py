"""Stake credits on a prediction option."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from loguru import logger
from sqlalchemy.orm import Session

from app.db import transaction
from app.errors import (
    InvalidOptionError,
    InvalidStakeError,
    PredictionClosedError,
    PredictionNotFoundError,
)
from app.models import PredictionStatus, Vote, as_utc, utcnow
from app.repositories import LedgerRepository, PredictionRepository, VoteRepository


class VotingService:
    def __init__(self, session: Session, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock
        self._predictions = PredictionRepository(session)
        self._votes = VoteRepository(session)
        self._ledger = LedgerRepository(session)

    def place_vote(
        self,
        prediction_id: str,
        *,
        user_id: str,
        selected_option: str,
        credits_staked: int,
    ) -> Vote:
        """Debit the stake, record the vote and bump the prediction aggregates atomically."""

        if isinstance(credits_staked, bool) or not isinstance(credits_staked, int) or credits_staked <= 0:
            raise InvalidStakeError(f"Stake must be a positive integer, got {credits_staked!r}")

        with transaction(self._session):
            prediction = self._predictions.get_prediction(prediction_id)
            if prediction is None:
                raise PredictionNotFoundError(prediction_id)
            if prediction.status != PredictionStatus.ACTIVE.value:
                raise PredictionClosedError(f"Prediction {prediction_id} is {prediction.status}")
            if as_utc(prediction.ends_at) <= self._clock():
                raise PredictionClosedError(f"Prediction {prediction_id} has ended")
            if selected_option not in prediction.options:
                raise InvalidOptionError(selected_option, list(prediction.options))

            self._ledger.debit(user_id, credits_staked)
            vote = self._votes.add_vote(
                prediction_id=prediction_id,
                user_id=user_id,
                selected_option=selected_option,
                credits_staked=credits_staked,
            )
            self._predictions.increment_totals(prediction_id, credits=credits_staked)

        logger.info(
            "Profile {} staked {} on {!r} for prediction {}",
            user_id,
            credits_staked,
            selected_option,
            prediction_id,
        )
        return vote


__all__ = ["VotingService"]
