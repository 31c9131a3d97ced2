"""Repository abstractions for database interactions."""

from .ledger_repository import LedgerRepository
from .prediction_repository import PredictionRepository
from .profile_repository import ProfileRepository
from .vote_repository import VoteRepository

__all__ = [
    "LedgerRepository",
    "PredictionRepository",
    "ProfileRepository",
    "VoteRepository",
]
