"""Prediction metadata: a union keyed by ``type`` carrying what resolution needs."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

AUTO_RESOLVABLE_TYPES = frozenset({"sports", "crypto", "stock"})


class _MetadataBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)


class SportsMetadata(_MetadataBase):
    type: Literal["sports"] = "sports"
    event_id: str = Field(alias="eventId", min_length=1)
    sport: str = Field(min_length=1)
    home_team: str | None = Field(default=None, alias="homeTeam")
    away_team: str | None = Field(default=None, alias="awayTeam")


class CryptoMetadata(_MetadataBase):
    type: Literal["crypto"] = "crypto"
    coin_id: str = Field(alias="coinId", min_length=1)
    target_price: float = Field(alias="targetPrice")
    start_price: float | None = Field(default=None, alias="startPrice")


class StockMetadata(_MetadataBase):
    type: Literal["stock"] = "stock"
    symbol: str = Field(min_length=1)
    target_price: float = Field(alias="targetPrice")
    start_price: float | None = Field(default=None, alias="startPrice")


class ManualMetadata(_MetadataBase):
    type: Literal["manual"] = "manual"


class InvalidMetadata(_MetadataBase):
    """A recognized auto-resolvable type whose fields failed validation."""

    type: str
    error: str


PredictionMetadata = Union[SportsMetadata, CryptoMetadata, StockMetadata, ManualMetadata, InvalidMetadata]

_AutoMetadata = Annotated[
    Union[SportsMetadata, CryptoMetadata, StockMetadata], Field(discriminator="type")
]
_auto_adapter: TypeAdapter[SportsMetadata | CryptoMetadata | StockMetadata] = TypeAdapter(_AutoMetadata)


def parse_metadata(raw: Any) -> PredictionMetadata:
    """Parse stored metadata; anything without an auto-resolvable type is manual."""

    if not isinstance(raw, dict):
        return ManualMetadata()
    kind = raw.get("type")
    if kind not in AUTO_RESOLVABLE_TYPES:
        return ManualMetadata()
    try:
        return _auto_adapter.validate_python(raw)
    except ValidationError as exc:
        return InvalidMetadata(type=kind, error=_summarize_errors(exc))


def _summarize_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def dump_metadata(metadata: PredictionMetadata) -> dict[str, Any]:
    """Serialize using the camelCase keys stored alongside predictions."""

    return metadata.model_dump(by_alias=True, exclude_none=True)
