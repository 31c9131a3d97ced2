from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


class PredictionBase(BaseModel):
    title: str
    description: str | None = None
    category: str | None = None
    options: list[str]
    ends_at: datetime
    creator_id: str | None = None
    # ORM rows carry this as ``prediction_metadata``; request bodies as ``metadata``.
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("prediction_metadata", "metadata"),
    )


class PredictionCreate(PredictionBase):
    title: str = Field(min_length=1, max_length=255)
    options: list[str] = Field(min_length=2)
    trending_score: float = 0.0

    @field_validator("options")
    @classmethod
    def _strip_options(cls, value: list[str]) -> list[str]:
        return [option.strip() for option in value]


class Prediction(PredictionBase):
    id: str
    status: str
    winning_option: str | None = None
    resolved_at: datetime | None = None
    total_votes: int
    total_credits_staked: int
    settlement_remainder: int | None = None
    trending_score: float
    created_at: datetime

    model_config = {"from_attributes": True}


class PredictionList(BaseModel):
    total: int
    items: list[Prediction]


class PredictionSummary(BaseModel):
    id: str
    title: str
    status: str
    ends_at: datetime
    winning_option: str | None = None

    model_config = {"from_attributes": True}


class VoteCreate(BaseModel):
    user_id: str
    selected_option: str
    credits_staked: int = Field(gt=0)


class Vote(BaseModel):
    id: str
    prediction_id: str
    user_id: str
    selected_option: str
    credits_staked: int
    outcome: str
    is_winner: bool | None = None
    credits_won: int
    voted_at: datetime
    settled_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserVote(Vote):
    prediction: PredictionSummary | None = None


class PredictionVotes(BaseModel):
    prediction_id: str
    total: int
    votes: list[Vote]
    percentages: dict[str, float]


class ProfileCreate(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    credits: int | None = Field(default=None, ge=0)


class Profile(BaseModel):
    id: str
    username: str
    credits: int
    total_votes: int
    correct_votes: int
    accuracy_percentage: float
    created_at: datetime

    model_config = {"from_attributes": True}


class ResolveRequest(BaseModel):
    winning_option: str = Field(min_length=1)


class SettlementReport(BaseModel):
    success: bool = True
    prediction_id: str
    winner: str
    total_pool: int
    winner_pool: int
    distributed: int
    remainder: int
    votes_settled: int
    winners: int
    refunded: bool
    resolved_at: datetime


class GenerationReport(BaseModel):
    created: int
    predictions: list[Prediction]


class ResolutionScanReport(BaseModel):
    checked: int
    resolved: int
    locked: int
    pending: int
    skipped: int
    failures: list[dict[str, Any]] = Field(default_factory=list)
