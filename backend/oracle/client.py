from __future__ import annotations

import random
import time
from typing import Any, Callable, Sequence

import httpx
from loguru import logger

from app.core.config import settings

from .errors import OracleUnavailableError

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _retry_sleep_seconds(schedule: Sequence[float], attempt: int) -> float:
    if not schedule:
        return 0.0
    backoff = schedule[min(attempt - 1, len(schedule) - 1)]
    if backoff <= 0:
        return 0.0
    return backoff + random.uniform(0.0, 0.25)


class ProviderClient:
    """Shared GET-with-retry plumbing for the outcome providers."""

    provider = "provider"

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float | None = None,
        retry_attempts: int | None = None,
        backoff_schedule: Sequence[float] | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.oracle_timeout_seconds
        self.retry_attempts = retry_attempts or settings.oracle_retry_attempts
        self.backoff_schedule = tuple(
            backoff_schedule
            if backoff_schedule is not None
            else settings.oracle_retry_backoff_schedule
        )
        self._sleep = sleep
        self.client = httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=transport)

    def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        last_error: str = "no attempts made"
        for attempt in range(1, self.retry_attempts + 1):
            try:
                response = self.client.get(path, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                last_error = f"HTTP {status}"
                if status not in _RETRYABLE_STATUS_CODES:
                    raise OracleUnavailableError(self.provider, last_error) from exc
            except httpx.TransportError as exc:
                last_error = f"{exc.__class__.__name__}: {exc}"
            except ValueError as exc:
                raise OracleUnavailableError(self.provider, "response was not valid JSON") from exc

            if attempt < self.retry_attempts:
                delay = _retry_sleep_seconds(self.backoff_schedule, attempt)
                logger.warning(
                    "{} GET {} failed (attempt {}/{}): {}; retrying in {:.2f}s",
                    self.provider,
                    path,
                    attempt,
                    self.retry_attempts,
                    last_error,
                    delay,
                )
                self._sleep(delay)

        raise OracleUnavailableError(
            self.provider, f"gave up after {self.retry_attempts} attempts: {last_error}"
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class OddsApiClient(ProviderClient):
    """The Odds API: upcoming fixtures and final scores."""

    provider = "odds-api"

    def __init__(self, *, api_key: str | None = None, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url=base_url or str(settings.odds_api_base_url), **kwargs)
        self.api_key = api_key if api_key is not None else settings.odds_api_key

    def _require_key(self) -> str:
        if not self.api_key:
            raise OracleUnavailableError(self.provider, "ODDS_API_KEY is not configured")
        return self.api_key

    def fetch_scores(self, sport: str, *, days_from: int = 3) -> list[dict[str, Any]]:
        payload = self._get_json(
            f"/sports/{sport}/scores",
            {"apiKey": self._require_key(), "daysFrom": days_from},
        )
        return payload if isinstance(payload, list) else []

    def fetch_upcoming(self) -> list[dict[str, Any]]:
        payload = self._get_json(
            "/sports/upcoming/odds",
            {
                "apiKey": self._require_key(),
                "regions": "us",
                "markets": "h2h",
                "oddsFormat": "american",
            },
        )
        return payload if isinstance(payload, list) else []


class CoinGeckoClient(ProviderClient):
    provider = "coingecko"

    def __init__(self, *, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url=base_url or str(settings.coingecko_base_url), **kwargs)

    def fetch_simple_price(self, coin_id: str) -> dict[str, Any]:
        payload = self._get_json("/simple/price", {"ids": coin_id, "vs_currencies": "usd"})
        return payload if isinstance(payload, dict) else {}


class AlphaVantageClient(ProviderClient):
    provider = "alpha-vantage"

    def __init__(self, *, api_key: str | None = None, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url=base_url or str(settings.alpha_vantage_base_url), **kwargs)
        self.api_key = api_key if api_key is not None else settings.alpha_vantage_key

    def fetch_global_quote(self, symbol: str) -> dict[str, Any]:
        if not self.api_key:
            raise OracleUnavailableError(self.provider, "ALPHA_VANTAGE_KEY is not configured")
        payload = self._get_json(
            "/query",
            {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
        )
        if not isinstance(payload, dict):
            return {}
        # Throttled responses come back as 200 with an explanatory note.
        for key in ("Note", "Information"):
            if key in payload and "Global Quote" not in payload:
                raise OracleUnavailableError(self.provider, str(payload[key]))
        return payload
