"""Periodic scan that resolves, locks or defers predictions past their deadline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from loguru import logger

from app.db import SessionFactory, session_scope
from app.domain import (
    AUTO_RESOLVABLE_TYPES,
    NeedsManualResolution,
    NoOutcomeYet,
    PredictionMetadata,
    WinningOption,
    parse_metadata,
)
from app.errors import PredictionAlreadyResolvedError
from app.models import PredictionStatus, utcnow
from app.repositories import PredictionRepository
from oracle.service import OutcomeOracle

from .classifier import ResolutionClassifier
from .settlement_service import SettlementService


class ResolutionAction(str, Enum):
    RESOLVED = "resolved"
    LOCKED = "locked"
    PENDING = "pending"
    SKIPPED = "skipped"


@dataclass(slots=True)
class ResolutionSummary:
    checked: int = 0
    resolved: int = 0
    locked: int = 0
    pending: int = 0
    skipped: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)

    def record(self, action: ResolutionAction) -> None:
        if action is ResolutionAction.RESOLVED:
            self.resolved += 1
        elif action is ResolutionAction.LOCKED:
            self.locked += 1
        elif action is ResolutionAction.PENDING:
            self.pending += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "resolved": self.resolved,
            "locked": self.locked,
            "pending": self.pending,
            "skipped": self.skipped,
            "failures": self.failures,
        }


@dataclass(slots=True)
class _Candidate:
    prediction_id: str
    options: list[str]
    metadata: PredictionMetadata
    raw_type: Any


class ResolutionEngine:
    """Drive every due prediction through classification and settlement.

    Each prediction is handled in its own session so a failure on one never
    rolls back or blocks the others. Oracle calls happen outside any open
    transaction.
    """

    def __init__(
        self,
        oracle: OutcomeOracle,
        *,
        session_factory: SessionFactory | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._classifier = ResolutionClassifier(oracle)

    def check_and_resolve(self, *, limit: int | None = None) -> ResolutionSummary:
        summary = ResolutionSummary()
        now = self._clock()

        with session_scope(self._session_factory) as session:
            due_ids = [
                prediction.id
                for prediction in PredictionRepository(session).get_due_predictions(now, limit=limit)
            ]

        if not due_ids:
            logger.info("Resolution scan found no predictions past their deadline")
            return summary

        logger.info("Resolution scan evaluating {} predictions", len(due_ids))
        for prediction_id in due_ids:
            summary.checked += 1
            try:
                action = self.resolve_prediction(prediction_id)
            except Exception as exc:
                logger.exception("Failed to resolve prediction {}", prediction_id)
                summary.failures.append({"prediction_id": prediction_id, "reason": str(exc)})
                continue
            summary.record(action)

        logger.info(
            "Resolution scan finished: checked={}, resolved={}, locked={}, pending={}, failures={}",
            summary.checked,
            summary.resolved,
            summary.locked,
            summary.pending,
            len(summary.failures),
        )
        return summary

    def resolve_prediction(self, prediction_id: str) -> ResolutionAction:
        candidate = self._load_candidate(prediction_id)
        if candidate is None:
            return ResolutionAction.SKIPPED

        if candidate.raw_type not in AUTO_RESOLVABLE_TYPES:
            return self._lock(prediction_id, "no automatic resolution source")

        decision = self._classifier.decide(candidate.metadata, options=candidate.options)
        if isinstance(decision, NoOutcomeYet):
            logger.debug("Prediction {} not resolvable yet: {}", prediction_id, decision.reason)
            return ResolutionAction.PENDING
        if isinstance(decision, NeedsManualResolution):
            return self._lock(prediction_id, decision.reason)
        if isinstance(decision, WinningOption):
            return self._settle(prediction_id, decision.option)
        raise TypeError(f"Unknown resolution decision: {decision!r}")

    def _load_candidate(self, prediction_id: str) -> _Candidate | None:
        with session_scope(self._session_factory) as session:
            prediction = PredictionRepository(session).get_prediction(prediction_id)
            if prediction is None or prediction.status != PredictionStatus.ACTIVE.value:
                return None
            raw = prediction.prediction_metadata
            return _Candidate(
                prediction_id=prediction.id,
                options=list(prediction.options),
                metadata=parse_metadata(raw),
                raw_type=raw.get("type") if isinstance(raw, dict) else None,
            )

    def _lock(self, prediction_id: str, reason: str) -> ResolutionAction:
        with session_scope(self._session_factory) as session:
            locked = SettlementService(session, clock=self._clock).lock_prediction(prediction_id)
        if not locked:
            return ResolutionAction.SKIPPED
        logger.info("Prediction {} needs manual resolution: {}", prediction_id, reason)
        return ResolutionAction.LOCKED

    def _settle(self, prediction_id: str, winning_option: str) -> ResolutionAction:
        try:
            with session_scope(self._session_factory) as session:
                SettlementService(session, clock=self._clock).distribute_winnings(
                    prediction_id, winning_option
                )
        except PredictionAlreadyResolvedError:
            logger.info("Prediction {} was resolved by another run", prediction_id)
            return ResolutionAction.SKIPPED
        return ResolutionAction.RESOLVED


__all__ = ["ResolutionAction", "ResolutionEngine", "ResolutionSummary"]
