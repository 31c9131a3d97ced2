"""Prediction persistence helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from app.models import Prediction, PredictionStatus

_NO_SYNC = {"synchronize_session": False}


class PredictionRepository:
    """Encapsulate prediction reads and status transitions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def create_prediction(
        self,
        *,
        title: str,
        options: list[str],
        ends_at: datetime,
        description: str | None = None,
        category: str | None = None,
        creator_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        trending_score: float = 0.0,
    ) -> Prediction:
        record = Prediction(
            title=title,
            description=description,
            category=category,
            options=list(options),
            ends_at=ends_at,
            creator_id=creator_id,
            prediction_metadata=metadata or {},
            trending_score=trending_score,
            status=PredictionStatus.ACTIVE.value,
            total_votes=0,
            total_credits_staked=0,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def lock_prediction(self, prediction_id: str) -> bool:
        """Move an active prediction to locked; returns False if it was not active."""

        stmt = (
            update(Prediction)
            .where(
                Prediction.id == prediction_id,
                Prediction.status == PredictionStatus.ACTIVE.value,
            )
            .values(status=PredictionStatus.LOCKED.value)
        )
        result = self._session.execute(stmt, execution_options=_NO_SYNC)
        return result.rowcount == 1

    def increment_totals(self, prediction_id: str, *, credits: int) -> None:
        stmt = (
            update(Prediction)
            .where(Prediction.id == prediction_id)
            .values(
                total_votes=Prediction.total_votes + 1,
                total_credits_staked=Prediction.total_credits_staked + credits,
            )
        )
        self._session.execute(stmt, execution_options=_NO_SYNC)

    def mark_resolved(
        self,
        prediction: Prediction,
        *,
        winning_option: str,
        resolved_at: datetime,
        total_votes: int,
        total_credits_staked: int,
        remainder: int,
    ) -> None:
        prediction.total_votes = total_votes
        prediction.total_credits_staked = total_credits_staked
        prediction.settlement_remainder = remainder
        prediction.winning_option = winning_option
        prediction.resolved_at = resolved_at
        prediction.status = PredictionStatus.RESOLVED.value
        self._session.flush()

    # ------------------------------------------------------------------
    # Queries

    def get_prediction(self, prediction_id: str) -> Prediction | None:
        return self._session.get(Prediction, prediction_id)

    def get_for_settlement(self, prediction_id: str) -> Prediction | None:
        """Load the prediction row locked against concurrent settlement."""

        query = (
            select(Prediction)
            .where(Prediction.id == prediction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self._session.execute(query).scalar_one_or_none()

    def get_due_predictions(self, now: datetime, *, limit: int | None = None) -> list[Prediction]:
        query = (
            select(Prediction)
            .where(
                Prediction.status == PredictionStatus.ACTIVE.value,
                Prediction.ends_at <= now,
            )
            .order_by(Prediction.ends_at.asc(), Prediction.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return list(self._session.execute(query).scalars().all())

    def list_predictions(
        self,
        *,
        status: str | None = None,
        category: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Prediction], int]:
        filters: list[Any] = []
        if status:
            filters.append(Prediction.status == status)
        if category:
            filters.append(Prediction.category == category)

        query = (
            select(Prediction)
            .where(*filters)
            .order_by(desc(Prediction.trending_score), Prediction.ends_at.asc())
            .limit(limit)
            .offset(offset)
        )
        total_query = select(func.count(Prediction.id)).where(*filters)

        predictions = list(self._session.execute(query).scalars().all())
        total = self._session.execute(total_query).scalar_one()
        return predictions, total


__all__ = ["PredictionRepository"]
