"""Typed domain representations shared by the oracle, classifier and payout code."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Union


@dataclass(slots=True)
class SportsResult:
    """Score snapshot for a single sports event."""

    completed: bool
    home_score: int | None = None
    away_score: int | None = None
    winner: str | None = None


@dataclass(slots=True)
class UpcomingSportsEvent:
    """Scheduled match used to author new sports predictions."""

    event_id: str
    sport_key: str
    sport_title: str | None
    home_team: str
    away_team: str
    commence_time: datetime


@dataclass(frozen=True, slots=True)
class NoOutcomeYet:
    reason: str = "outcome not determined yet"


@dataclass(frozen=True, slots=True)
class WinningOption:
    option: str


@dataclass(frozen=True, slots=True)
class NeedsManualResolution:
    reason: str


ResolutionDecision = Union[NoOutcomeYet, WinningOption, NeedsManualResolution]


@dataclass(frozen=True, slots=True)
class Won:
    amount: int


@dataclass(frozen=True, slots=True)
class Lost:
    amount: int = 0


@dataclass(frozen=True, slots=True)
class Refunded:
    amount: int


VoteSettlement = Union[Won, Lost, Refunded]


@dataclass(frozen=True, slots=True)
class VoteStake:
    """Immutable snapshot of a vote taken before any settlement write."""

    vote_id: str
    user_id: str
    selected_option: str
    credits_staked: int


@dataclass(frozen=True, slots=True)
class VotePayout:
    vote_id: str
    user_id: str
    settlement: VoteSettlement


@dataclass(slots=True)
class PayoutPlan:
    """Full distribution of a prediction's pool, computed before any write."""

    winning_option: str
    total_pool: int
    winner_pool: int
    payouts: list[VotePayout] = field(default_factory=list)

    @property
    def is_refund(self) -> bool:
        return bool(self.payouts) and self.winner_pool == 0

    @property
    def distributed(self) -> int:
        return sum(payout.settlement.amount for payout in self.payouts)

    @property
    def remainder(self) -> int:
        return self.total_pool - self.distributed

    @property
    def winner_count(self) -> int:
        return sum(1 for payout in self.payouts if isinstance(payout.settlement, Won))
