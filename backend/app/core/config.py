from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _ensure_sqlalchemy_postgres_scheme(value: str) -> str:
    if not value.lower().startswith("postgres"):
        return value

    parsed = urlparse(value)
    scheme = parsed.scheme.lower()

    if scheme == "postgres":
        scheme = "postgresql"

    if scheme == "postgresql":
        scheme = "postgresql+psycopg"

    if scheme not in {"postgresql+psycopg", "postgresql+asyncpg"}:
        scheme = "postgresql+psycopg"

    query_params = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query_params.setdefault("sslmode", "prefer")
    new_query = urlencode(query_params, doseq=True)

    return urlunparse(parsed._replace(scheme=scheme, query=new_query))


def _split_csv(value: Any, *, field_name: str) -> list[str]:
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [item for item in (part.strip() for part in value.split(",")) if item]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError(f"{field_name} must be provided as a list or comma-separated string")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/predictpool.db",
        description="SQLAlchemy compatible database URL",
    )

    odds_api_key: str | None = Field(
        default=None,
        description="API key for The Odds API (sports schedules and scores)",
    )
    odds_api_base_url: AnyUrl = Field(
        default="https://api.the-odds-api.com/v4",
        description="Base URL for The Odds API",
    )
    coingecko_base_url: AnyUrl = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL for the CoinGecko public API",
    )
    alpha_vantage_key: str | None = Field(
        default=None,
        description="API key for Alpha Vantage stock quotes",
    )
    alpha_vantage_base_url: AnyUrl = Field(
        default="https://www.alphavantage.co",
        description="Base URL for Alpha Vantage",
    )
    oracle_timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout applied to every outcome provider call",
        gt=0,
    )
    oracle_retry_attempts: int = Field(
        default=3,
        description="Number of attempts made against a provider before it is treated as unavailable",
        ge=1,
    )
    oracle_retry_backoff_seconds: list[float] | tuple[float, ...] | str = Field(
        default_factory=lambda: [1.0, 2.0, 4.0],
        description="Comma-separated list or array of backoff delays (seconds) between provider retries",
    )

    resolution_interval_seconds: int = Field(
        default=300,
        description="Interval between settlement scans run by the scheduler",
        ge=1,
    )
    generation_interval_hours: int = Field(
        default=12,
        description="Interval between automatic prediction generation runs",
        ge=1,
    )
    generation_sports_limit: int = Field(
        default=10,
        description="Maximum number of upcoming sports events turned into predictions per run",
        ge=0,
    )
    generation_crypto_coins: list[str] | str = Field(
        default_factory=lambda: ["bitcoin", "ethereum", "cardano"],
        description="CoinGecko coin ids used for generated crypto predictions",
    )
    generation_stock_symbols: list[str] | str = Field(
        default_factory=lambda: ["AAPL", "TSLA", "MSFT", "GOOGL"],
        description="Ticker symbols used for generated stock predictions",
    )

    starting_credits: int = Field(
        default=1000,
        description="Credit balance granted to newly created profiles",
        ge=0,
    )
    leaderboard_limit: int = Field(
        default=100,
        description="Number of profiles returned by the leaderboard",
        ge=1,
    )

    @field_validator("generation_crypto_coins", "generation_stock_symbols", mode="after")
    @classmethod
    def _parse_generation_lists(cls, value: Any, info) -> list[str]:
        return _split_csv(value, field_name=info.field_name.upper())

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://") :]
        return value

    @field_validator("oracle_retry_backoff_seconds", mode="before")
    @classmethod
    def _parse_retry_backoff(cls, value: Any) -> list[float]:
        if value in (None, "", []):
            return [1.0, 2.0, 4.0]
        if isinstance(value, str):
            tokens = [token.strip() for token in value.split(",") if token.strip()]
            if not tokens:
                raise ValueError("ORACLE_RETRY_BACKOFF_SECONDS must contain at least one value")
            value = tokens
        if isinstance(value, (list, tuple)):
            backoff: list[float] = []
            for item in value:
                try:
                    delay = float(item)
                except (TypeError, ValueError) as exc:
                    raise ValueError("ORACLE_RETRY_BACKOFF_SECONDS entries must be numeric") from exc
                if delay < 0:
                    raise ValueError("ORACLE_RETRY_BACKOFF_SECONDS entries must not be negative")
                backoff.append(delay)
            if not backoff:
                raise ValueError("ORACLE_RETRY_BACKOFF_SECONDS must contain at least one value")
            return backoff
        raise ValueError(
            "ORACLE_RETRY_BACKOFF_SECONDS must be provided as a comma-separated string or list of numbers"
        )

    @property
    def resolved_database_url(self) -> str:
        return _ensure_sqlalchemy_postgres_scheme(str(self.database_url))

    @property
    def oracle_retry_backoff_schedule(self) -> tuple[float, ...]:
        sequence = tuple(float(value) for value in self.oracle_retry_backoff_seconds)
        if not sequence:
            return (1.0,)
        return sequence


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
