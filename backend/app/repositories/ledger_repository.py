"""Settlement ledger primitives.

Every balance or counter change is a single ``UPDATE ... SET col = col + :delta``
statement so concurrent settlements of different predictions touching the same
profile never lose an update. Callers own the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.domain import Lost, Refunded, VoteSettlement, Won
from app.errors import InsufficientCreditsError, ProfileNotFoundError
from app.models import Profile, Vote, VoteOutcome

_NO_SYNC = {"synchronize_session": False}


class LedgerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Balances

    def credit(self, user_id: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("credit amount must not be negative")
        if amount == 0:
            self._require_profile(user_id)
            return
        stmt = (
            update(Profile)
            .where(Profile.id == user_id)
            .values(credits=Profile.credits + amount)
        )
        result = self._session.execute(stmt, execution_options=_NO_SYNC)
        if result.rowcount != 1:
            raise ProfileNotFoundError(user_id)

    def debit(self, user_id: str, amount: int) -> None:
        """Remove ``amount`` credits only if the balance covers it."""

        if amount <= 0:
            raise ValueError("debit amount must be positive")
        stmt = (
            update(Profile)
            .where(Profile.id == user_id, Profile.credits >= amount)
            .values(credits=Profile.credits - amount)
        )
        result = self._session.execute(stmt, execution_options=_NO_SYNC)
        if result.rowcount == 1:
            return
        self._require_profile(user_id)
        raise InsufficientCreditsError(user_id, amount)

    # ------------------------------------------------------------------
    # Accuracy counters

    def record_pick(self, user_id: str, *, correct: bool) -> None:
        """Count one settled pick and recompute accuracy from the new counters."""

        increment = 1 if correct else 0
        stmt = (
            update(Profile)
            .where(Profile.id == user_id)
            .values(
                total_votes=Profile.total_votes + 1,
                correct_votes=Profile.correct_votes + increment,
                # Right-hand side sees the pre-update row values.
                accuracy_percentage=(Profile.correct_votes + increment)
                * 100.0
                / (Profile.total_votes + 1),
            )
        )
        result = self._session.execute(stmt, execution_options=_NO_SYNC)
        if result.rowcount != 1:
            raise ProfileNotFoundError(user_id)

    # ------------------------------------------------------------------
    # Votes

    def tag_vote(self, vote: Vote, settlement: VoteSettlement, *, settled_at: datetime) -> None:
        if vote.outcome != VoteOutcome.PENDING.value:
            raise ValueError(f"Vote {vote.id} was already settled as {vote.outcome}")
        if isinstance(settlement, Won):
            vote.outcome = VoteOutcome.WON.value
        elif isinstance(settlement, Lost):
            vote.outcome = VoteOutcome.LOST.value
        elif isinstance(settlement, Refunded):
            vote.outcome = VoteOutcome.REFUNDED.value
        else:
            raise TypeError(f"Unknown settlement variant: {settlement!r}")
        vote.credits_won = settlement.amount
        vote.settled_at = settled_at

    def _require_profile(self, user_id: str) -> None:
        exists = self._session.execute(
            select(Profile.id).where(Profile.id == user_id)
        ).scalar_one_or_none()
        if exists is None:
            raise ProfileNotFoundError(user_id)


__all__ = ["LedgerRepository"]
