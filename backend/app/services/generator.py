"""Author new predictions from live market data."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, Protocol

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import CryptoMetadata, SportsMetadata, StockMetadata, UpcomingSportsEvent, dump_metadata
from app.models import utcnow
from app.schemas import PredictionCreate
from oracle.errors import OracleUnavailableError

from .classifier import NO, YES

CRYPTO_TARGET_MULTIPLIER = 1.10
STOCK_TARGET_MULTIPLIER = 1.05


class MarketDataSource(Protocol):
    def list_upcoming_sports(self, limit: int | None = None) -> list[UpcomingSportsEvent]: ...

    def get_crypto_price(self, coin_id: str) -> float | None: ...

    def get_stock_price(self, symbol: str) -> float | None: ...


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PredictionGenerator:
    """Fill prediction templates from sports fixtures and price feeds.

    Every draft is a binary Yes/No proposition whose metadata lets the
    resolution engine settle it automatically. Provider failures skip the
    affected item only.
    """

    def __init__(
        self,
        source: MarketDataSource,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._source = source
        self.settings = settings or get_settings()
        self._clock = clock

    def generate(self, *, include_stocks: bool = True) -> list[PredictionCreate]:
        drafts = self.sports_predictions() + self.crypto_predictions()
        if include_stocks:
            drafts += self.stock_predictions()
        logger.info("Generated {} prediction drafts (stocks included: {})", len(drafts), include_stocks)
        return drafts

    def sports_predictions(self) -> list[PredictionCreate]:
        try:
            events = self._source.list_upcoming_sports(limit=self.settings.generation_sports_limit)
        except OracleUnavailableError as exc:
            logger.warning("Skipping sports predictions: {}", exc)
            return []

        drafts: list[PredictionCreate] = []
        for event in events:
            metadata = SportsMetadata(
                event_id=event.event_id,
                sport=event.sport_key,
                home_team=event.home_team,
                away_team=event.away_team,
            )
            label = event.sport_title or event.sport_key
            drafts.append(
                PredictionCreate(
                    title=f"Will {event.home_team} beat {event.away_team}?",
                    description=f"{label} - {event.commence_time.date().isoformat()}",
                    category="Sports",
                    options=[YES, NO],
                    ends_at=event.commence_time,
                    metadata=dump_metadata(metadata),
                )
            )
        return drafts

    def crypto_predictions(self) -> list[PredictionCreate]:
        ends_at = self._clock() + timedelta(days=1)
        drafts: list[PredictionCreate] = []
        for coin_id in self.settings.generation_crypto_coins:
            price = self._price(self._source.get_crypto_price, coin_id)
            if price is None:
                continue
            target = _round_half_up(price * CRYPTO_TARGET_MULTIPLIER)
            metadata = CryptoMetadata(coin_id=coin_id, target_price=target, start_price=price)
            drafts.append(
                PredictionCreate(
                    title=f"Will {coin_id.upper()} reach ${target} by tomorrow?",
                    description=f"Current price: ${price:.2f}",
                    category="Crypto",
                    options=[YES, NO],
                    ends_at=ends_at,
                    metadata=dump_metadata(metadata),
                )
            )
        return drafts

    def stock_predictions(self) -> list[PredictionCreate]:
        ends_at = self._clock() + timedelta(days=1)
        drafts: list[PredictionCreate] = []
        for symbol in self.settings.generation_stock_symbols:
            price = self._price(self._source.get_stock_price, symbol)
            if price is None:
                continue
            target = _round_half_up(price * STOCK_TARGET_MULTIPLIER)
            metadata = StockMetadata(symbol=symbol, target_price=target, start_price=price)
            drafts.append(
                PredictionCreate(
                    title=f"Will {symbol} close above ${target} tomorrow?",
                    description=f"Current price: ${price:.2f}",
                    category="Stocks",
                    options=[YES, NO],
                    ends_at=ends_at,
                    metadata=dump_metadata(metadata),
                )
            )
        return drafts

    @staticmethod
    def _price(fetch: Callable[[str], float | None], key: str) -> float | None:
        try:
            price = fetch(key)
        except OracleUnavailableError as exc:
            logger.warning("Skipping {}: {}", key, exc)
            return None
        if price is None:
            logger.warning("Skipping {}: no price available", key)
        return price


__all__ = ["PredictionGenerator"]
