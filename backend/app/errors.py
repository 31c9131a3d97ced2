"""Domain errors raised by services and mapped to HTTP responses in ``app.main``."""

from __future__ import annotations


class PredictPoolError(Exception):
    """Base class for expected, caller-facing failures."""


class PredictionNotFoundError(PredictPoolError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(f"Prediction {prediction_id} not found")
        self.prediction_id = prediction_id


class ProfileNotFoundError(PredictPoolError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Profile {user_id} not found")
        self.user_id = user_id


class ProfileExistsError(PredictPoolError):
    def __init__(self, username: str) -> None:
        super().__init__(f"Username {username!r} is already taken")
        self.username = username


class InvalidPredictionError(PredictPoolError):
    """Prediction payload rejected at creation time."""


class InvalidProfileError(PredictPoolError):
    """Profile payload rejected at creation time."""


class InvalidOptionError(PredictPoolError):
    def __init__(self, option: str, options: list[str]) -> None:
        super().__init__(f"Option {option!r} is not one of {options}")
        self.option = option
        self.options = options


class InvalidStakeError(PredictPoolError):
    """Stake is not a positive integer."""


class PredictionClosedError(PredictPoolError):
    """Prediction no longer accepts votes."""


class InsufficientCreditsError(PredictPoolError):
    def __init__(self, user_id: str, requested: int) -> None:
        super().__init__(f"Insufficient credits: profile {user_id} cannot stake {requested}")
        self.user_id = user_id
        self.requested = requested


class PredictionAlreadyResolvedError(PredictPoolError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(f"Prediction {prediction_id} is already resolved")
        self.prediction_id = prediction_id


__all__ = [
    "InsufficientCreditsError",
    "InvalidOptionError",
    "InvalidPredictionError",
    "InvalidProfileError",
    "InvalidStakeError",
    "PredictPoolError",
    "PredictionAlreadyResolvedError",
    "PredictionClosedError",
    "PredictionNotFoundError",
    "ProfileExistsError",
    "ProfileNotFoundError",
]
