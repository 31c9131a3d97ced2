from __future__ import annotations

from datetime import datetime
from typing import Any

from dateutil import parser as date_parser

from app.domain import SportsResult, UpcomingSportsEvent


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, TypeError):
        return None


def _parse_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        float_val = _parse_float(value)
        if float_val is None:
            return None
        return int(round(float_val))


def _team_score(scores: list[Any], team: str | None, fallback_index: int) -> int | None:
    entries = [entry for entry in scores if isinstance(entry, dict)]
    if team:
        for entry in entries:
            if entry.get("name") == team:
                return _parse_int(entry.get("score"))
    if fallback_index < len(entries):
        return _parse_int(entries[fallback_index].get("score"))
    return None


def normalize_score_event(raw_event: dict[str, Any]) -> SportsResult:
    """Turn one Odds API ``/scores`` entry into a ``SportsResult``."""

    if not raw_event.get("completed"):
        return SportsResult(completed=False)

    scores = raw_event.get("scores")
    if not isinstance(scores, list):
        return SportsResult(completed=False)

    home_score = _team_score(scores, raw_event.get("home_team"), 0)
    away_score = _team_score(scores, raw_event.get("away_team"), 1)
    if home_score is None or away_score is None:
        return SportsResult(completed=False)

    if home_score > away_score:
        winner = "home"
    elif away_score > home_score:
        winner = "away"
    else:
        winner = "draw"
    return SportsResult(
        completed=True,
        home_score=home_score,
        away_score=away_score,
        winner=winner,
    )


def find_score_event(payload: Any, event_id: str) -> SportsResult:
    if not isinstance(payload, list):
        return SportsResult(completed=False)
    for raw_event in payload:
        if isinstance(raw_event, dict) and str(raw_event.get("id")) == event_id:
            return normalize_score_event(raw_event)
    return SportsResult(completed=False)


def normalize_upcoming_event(raw_event: dict[str, Any]) -> UpcomingSportsEvent | None:
    home_team = raw_event.get("home_team")
    away_team = raw_event.get("away_team")
    commence_time = _parse_datetime(raw_event.get("commence_time"))
    event_id = raw_event.get("id")
    sport_key = raw_event.get("sport_key")
    if not (home_team and away_team and commence_time and event_id and sport_key):
        return None
    return UpcomingSportsEvent(
        event_id=str(event_id),
        sport_key=str(sport_key),
        sport_title=raw_event.get("sport_title"),
        home_team=str(home_team),
        away_team=str(away_team),
        commence_time=commence_time,
    )


def extract_coingecko_price(payload: Any, coin_id: str) -> float | None:
    if not isinstance(payload, dict):
        return None
    entry = payload.get(coin_id)
    if not isinstance(entry, dict):
        return None
    price = _parse_float(entry.get("usd"))
    if price is None or price <= 0:
        return None
    return price


def extract_global_quote_price(payload: Any) -> float | None:
    if not isinstance(payload, dict):
        return None
    quote = payload.get("Global Quote")
    if not isinstance(quote, dict):
        return None
    price = _parse_float(quote.get("05. price"))
    if price is None or price <= 0:
        return None
    return price
