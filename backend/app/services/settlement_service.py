"""Apply a payout plan to the ledger inside a single transaction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from loguru import logger
from sqlalchemy.orm import Session

from app.db import transaction
from app.domain import Lost, PayoutPlan, Refunded, VoteStake, Won
from app.errors import (
    InvalidOptionError,
    PredictionAlreadyResolvedError,
    PredictionNotFoundError,
)
from app.models import PredictionStatus, utcnow
from app.repositories import LedgerRepository, PredictionRepository, VoteRepository

from .payout import plan_payouts


@dataclass(slots=True)
class SettlementResult:
    prediction_id: str
    winning_option: str
    plan: PayoutPlan
    resolved_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "prediction_id": self.prediction_id,
            "winning_option": self.winning_option,
            "total_pool": self.plan.total_pool,
            "winner_pool": self.plan.winner_pool,
            "distributed": self.plan.distributed,
            "remainder": self.plan.remainder,
            "votes_settled": len(self.plan.payouts),
            "winners": self.plan.winner_count,
            "refunded": self.plan.is_refund,
            "resolved_at": self.resolved_at,
        }


class SettlementService:
    """Resolve predictions and move credits; every public call is one transaction."""

    def __init__(self, session: Session, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock
        self._predictions = PredictionRepository(session)
        self._votes = VoteRepository(session)
        self._ledger = LedgerRepository(session)

    def distribute_winnings(self, prediction_id: str, winning_option: str) -> SettlementResult:
        with transaction(self._session):
            result = self._settle(prediction_id, winning_option)

        logger.info(
            "Resolved prediction {} as {!r}: votes={}, pool={}, distributed={}, remainder={}",
            prediction_id,
            winning_option,
            len(result.plan.payouts),
            result.plan.total_pool,
            result.plan.distributed,
            result.plan.remainder,
        )
        return result

    def lock_prediction(self, prediction_id: str) -> bool:
        """Park an active prediction for manual resolution."""

        with transaction(self._session):
            locked = self._predictions.lock_prediction(prediction_id)
        if locked:
            logger.info("Locked prediction {} for manual resolution", prediction_id)
        return locked

    def _settle(self, prediction_id: str, winning_option: str) -> SettlementResult:
        prediction = self._predictions.get_for_settlement(prediction_id)
        if prediction is None:
            raise PredictionNotFoundError(prediction_id)
        if prediction.status == PredictionStatus.RESOLVED.value:
            raise PredictionAlreadyResolvedError(prediction_id)
        if winning_option not in prediction.options:
            raise InvalidOptionError(winning_option, list(prediction.options))

        votes = self._votes.list_for_prediction(prediction_id)
        stakes = [
            VoteStake(
                vote_id=vote.id,
                user_id=vote.user_id,
                selected_option=vote.selected_option,
                credits_staked=vote.credits_staked,
            )
            for vote in votes
        ]
        plan = plan_payouts(stakes, winning_option)
        settled_at = self._clock()

        votes_by_id = {vote.id: vote for vote in votes}
        for payout in plan.payouts:
            settlement = payout.settlement
            self._ledger.tag_vote(votes_by_id[payout.vote_id], settlement, settled_at=settled_at)
            if isinstance(settlement, Won):
                self._ledger.credit(payout.user_id, settlement.amount)
                self._ledger.record_pick(payout.user_id, correct=True)
            elif isinstance(settlement, Lost):
                self._ledger.record_pick(payout.user_id, correct=False)
            elif isinstance(settlement, Refunded):
                self._ledger.credit(payout.user_id, settlement.amount)

        self._predictions.mark_resolved(
            prediction,
            winning_option=winning_option,
            resolved_at=settled_at,
            total_votes=len(stakes),
            total_credits_staked=plan.total_pool,
            remainder=plan.remainder,
        )
        return SettlementResult(
            prediction_id=prediction_id,
            winning_option=winning_option,
            plan=plan,
            resolved_at=settled_at,
        )


__all__ = ["SettlementResult", "SettlementService"]
