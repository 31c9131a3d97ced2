"""Vote persistence helpers."""

from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from app.models import Vote, VoteOutcome


class VoteRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_vote(
        self,
        *,
        prediction_id: str,
        user_id: str,
        selected_option: str,
        credits_staked: int,
    ) -> Vote:
        vote = Vote(
            prediction_id=prediction_id,
            user_id=user_id,
            selected_option=selected_option,
            credits_staked=credits_staked,
            outcome=VoteOutcome.PENDING.value,
            credits_won=0,
        )
        self._session.add(vote)
        self._session.flush()
        return vote

    def list_for_prediction(self, prediction_id: str) -> list[Vote]:
        query = (
            select(Vote)
            .where(Vote.prediction_id == prediction_id)
            .order_by(Vote.voted_at.asc(), Vote.id.asc())
        )
        return list(self._session.execute(query).scalars().all())

    def list_for_user(self, user_id: str) -> list[Vote]:
        query = (
            select(Vote)
            .options(selectinload(Vote.prediction))
            .where(Vote.user_id == user_id)
            .order_by(desc(Vote.voted_at), Vote.id.asc())
        )
        return list(self._session.execute(query).scalars().all())

    def option_counts(self, prediction_id: str) -> dict[str, int]:
        query = (
            select(Vote.selected_option, func.count(Vote.id))
            .where(Vote.prediction_id == prediction_id)
            .group_by(Vote.selected_option)
        )
        return {option: count for option, count in self._session.execute(query).all()}


__all__ = ["VoteRepository"]
