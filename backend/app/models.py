from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class PredictionStatus(str, Enum):
    ACTIVE = "active"
    LOCKED = "locked"
    RESOLVED = "resolved"


class VoteOutcome(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    REFUNDED = "refunded"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; stored values are always UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class Prediction(Base):
    __tablename__ = "predictions"
    __table_args__ = (
        CheckConstraint("total_votes >= 0", name="ck_predictions_total_votes"),
        CheckConstraint("total_credits_staked >= 0", name="ck_predictions_total_credits"),
        Index("ix_predictions_status_ends_at", "status", "ends_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PredictionStatus.ACTIVE.value
    )
    winning_option: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_credits_staked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    settlement_remainder: Mapped[int | None] = mapped_column(Integer, nullable=True)
    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    creator_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("profiles.id"), nullable=True
    )
    # "metadata" is reserved on declarative classes.
    prediction_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    votes: Mapped[list["Vote"]] = relationship(
        "Vote", back_populates="prediction", order_by="Vote.voted_at"
    )


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("credits >= 0", name="ck_profiles_credits_non_negative"),
        CheckConstraint("correct_votes <= total_votes", name="ck_profiles_correct_le_total"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accuracy_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    votes: Mapped[list["Vote"]] = relationship("Vote", back_populates="user")


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint("credits_staked > 0", name="ck_votes_positive_stake"),
        CheckConstraint("credits_won >= 0", name="ck_votes_non_negative_winnings"),
        Index("ix_votes_prediction_id", "prediction_id"),
        Index("ix_votes_user_voted_at", "user_id", "voted_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    prediction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("predictions.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("profiles.id"), nullable=False)
    selected_option: Mapped[str] = mapped_column(String(255), nullable=False)
    credits_staked: Mapped[int] = mapped_column(Integer, nullable=False)
    outcome: Mapped[str] = mapped_column(
        String(16), nullable=False, default=VoteOutcome.PENDING.value
    )
    credits_won: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    prediction: Mapped[Prediction] = relationship("Prediction", back_populates="votes")
    user: Mapped[Profile] = relationship("Profile", back_populates="votes")

    @property
    def is_winner(self) -> bool | None:
        """Legacy tri-state view: True for won, False for lost, None otherwise."""

        if self.outcome == VoteOutcome.WON.value:
            return True
        if self.outcome == VoteOutcome.LOST.value:
            return False
        return None
