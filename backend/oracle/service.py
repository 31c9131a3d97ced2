from __future__ import annotations

from typing import Protocol

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import SportsResult, UpcomingSportsEvent

from .client import AlphaVantageClient, CoinGeckoClient, OddsApiClient
from .normalize import (
    extract_coingecko_price,
    extract_global_quote_price,
    find_score_event,
    normalize_upcoming_event,
)


class OutcomeOracle(Protocol):
    """Read-only source of real-world outcomes consumed by the classifier.

    Implementations raise ``OracleUnavailableError`` when a provider cannot be
    reached and return ``None`` / an incomplete result when the outcome is
    simply not known yet.
    """

    def get_sports_result(self, event_id: str, sport: str) -> SportsResult: ...

    def get_crypto_price(self, coin_id: str) -> float | None: ...

    def get_stock_price(self, symbol: str) -> float | None: ...


class HttpOutcomeOracle:
    """Oracle backed by The Odds API, CoinGecko and Alpha Vantage."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        odds_client: OddsApiClient | None = None,
        crypto_client: CoinGeckoClient | None = None,
        stock_client: AlphaVantageClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._odds = odds_client or OddsApiClient(
            api_key=self.settings.odds_api_key,
            base_url=str(self.settings.odds_api_base_url),
            timeout=self.settings.oracle_timeout_seconds,
            retry_attempts=self.settings.oracle_retry_attempts,
            backoff_schedule=self.settings.oracle_retry_backoff_schedule,
        )
        self._crypto = crypto_client or CoinGeckoClient(
            base_url=str(self.settings.coingecko_base_url),
            timeout=self.settings.oracle_timeout_seconds,
            retry_attempts=self.settings.oracle_retry_attempts,
            backoff_schedule=self.settings.oracle_retry_backoff_schedule,
        )
        self._stock = stock_client or AlphaVantageClient(
            api_key=self.settings.alpha_vantage_key,
            base_url=str(self.settings.alpha_vantage_base_url),
            timeout=self.settings.oracle_timeout_seconds,
            retry_attempts=self.settings.oracle_retry_attempts,
            backoff_schedule=self.settings.oracle_retry_backoff_schedule,
        )

    def get_sports_result(self, event_id: str, sport: str) -> SportsResult:
        payload = self._odds.fetch_scores(sport)
        return find_score_event(payload, event_id)

    def get_crypto_price(self, coin_id: str) -> float | None:
        return extract_coingecko_price(self._crypto.fetch_simple_price(coin_id), coin_id)

    def get_stock_price(self, symbol: str) -> float | None:
        return extract_global_quote_price(self._stock.fetch_global_quote(symbol))

    def list_upcoming_sports(self, limit: int | None = None) -> list[UpcomingSportsEvent]:
        events: list[UpcomingSportsEvent] = []
        skipped = 0
        for raw_event in self._odds.fetch_upcoming():
            event = normalize_upcoming_event(raw_event) if isinstance(raw_event, dict) else None
            if event is None:
                skipped += 1
                continue
            events.append(event)
            if limit is not None and len(events) >= limit:
                break
        if skipped:
            logger.debug("Skipped {} upcoming sports entries without teams or start time", skipped)
        return events

    def close(self) -> None:
        self._odds.close()
        self._crypto.close()
        self._stock.close()

    def __enter__(self) -> "HttpOutcomeOracle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
