"""Turn prediction metadata plus an oracle observation into a resolution decision."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from app.domain import (
    CryptoMetadata,
    InvalidMetadata,
    ManualMetadata,
    NeedsManualResolution,
    NoOutcomeYet,
    PredictionMetadata,
    ResolutionDecision,
    SportsMetadata,
    SportsResult,
    StockMetadata,
    WinningOption,
)
from oracle.errors import OracleUnavailableError
from oracle.service import OutcomeOracle

YES = "Yes"
NO = "No"

Observation = SportsResult | float | None


def classify_sports(result: SportsResult) -> ResolutionDecision:
    if not result.completed or result.home_score is None or result.away_score is None:
        return NoOutcomeYet("game not completed")
    # A draw counts as the home team not winning.
    return WinningOption(YES if result.home_score > result.away_score else NO)


def classify_price(price: float | None, target_price: float) -> ResolutionDecision:
    if price is None:
        return NoOutcomeYet("price not available")
    return WinningOption(YES if price >= target_price else NO)


def classify(metadata: PredictionMetadata, observation: Observation) -> ResolutionDecision:
    """Pure classification step; ``observation`` is whatever the oracle returned."""

    if isinstance(metadata, InvalidMetadata):
        return NeedsManualResolution(f"invalid {metadata.type} metadata: {metadata.error}")
    if isinstance(metadata, ManualMetadata):
        return NeedsManualResolution("prediction requires manual resolution")
    if isinstance(metadata, SportsMetadata):
        if not isinstance(observation, SportsResult):
            return NoOutcomeYet("no score data")
        return classify_sports(observation)
    if isinstance(metadata, (CryptoMetadata, StockMetadata)):
        if isinstance(observation, SportsResult):
            raise TypeError("price metadata cannot be classified from a sports result")
        return classify_price(observation, metadata.target_price)
    raise TypeError(f"Unsupported metadata: {metadata!r}")


class ResolutionClassifier:
    """Query the oracle for a prediction's metadata and classify the answer."""

    def __init__(self, oracle: OutcomeOracle) -> None:
        self._oracle = oracle

    def observe(self, metadata: PredictionMetadata) -> Observation:
        if isinstance(metadata, SportsMetadata):
            return self._oracle.get_sports_result(metadata.event_id, metadata.sport)
        if isinstance(metadata, CryptoMetadata):
            return self._oracle.get_crypto_price(metadata.coin_id)
        if isinstance(metadata, StockMetadata):
            return self._oracle.get_stock_price(metadata.symbol)
        return None

    def decide(
        self,
        metadata: PredictionMetadata,
        *,
        options: Sequence[str] | None = None,
    ) -> ResolutionDecision:
        if isinstance(metadata, (InvalidMetadata, ManualMetadata)):
            return classify(metadata, None)

        try:
            observation = self.observe(metadata)
        except OracleUnavailableError as exc:
            logger.warning("Oracle unavailable for {} prediction: {}", metadata.type, exc)
            return NoOutcomeYet(f"oracle unavailable: {exc}")

        decision = classify(metadata, observation)
        if options is not None and isinstance(decision, WinningOption):
            if decision.option not in options:
                return NeedsManualResolution(
                    f"classified winner {decision.option!r} is not one of {list(options)}"
                )
        return decision


__all__ = [
    "NO",
    "YES",
    "ResolutionClassifier",
    "classify",
    "classify_price",
    "classify_sports",
]
