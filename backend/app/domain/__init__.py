"""Domain models for prediction metadata, resolution decisions and payouts."""

from .metadata import (
    AUTO_RESOLVABLE_TYPES,
    CryptoMetadata,
    InvalidMetadata,
    ManualMetadata,
    PredictionMetadata,
    SportsMetadata,
    StockMetadata,
    dump_metadata,
    parse_metadata,
)
from .models import (
    Lost,
    NeedsManualResolution,
    NoOutcomeYet,
    PayoutPlan,
    Refunded,
    ResolutionDecision,
    SportsResult,
    UpcomingSportsEvent,
    VotePayout,
    VoteSettlement,
    VoteStake,
    WinningOption,
    Won,
)

__all__ = [
    "AUTO_RESOLVABLE_TYPES",
    "CryptoMetadata",
    "InvalidMetadata",
    "Lost",
    "ManualMetadata",
    "NeedsManualResolution",
    "NoOutcomeYet",
    "PayoutPlan",
    "PredictionMetadata",
    "Refunded",
    "ResolutionDecision",
    "SportsMetadata",
    "SportsResult",
    "UpcomingSportsEvent",
    "StockMetadata",
    "VotePayout",
    "VoteSettlement",
    "VoteStake",
    "WinningOption",
    "Won",
    "dump_metadata",
    "parse_metadata",
]
