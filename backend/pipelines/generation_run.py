"""Standalone job that authors new predictions from market data."""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from app.core.config import Settings, get_settings
from app.db import SessionFactory, SessionLocal, init_db
from app.services.generator import PredictionGenerator
from app.services.prediction_service import PredictionService
from oracle.service import HttpOutcomeOracle


@dataclass(slots=True)
class GenerationSummary:
    drafted: int = 0
    created: int = 0
    prediction_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "drafted": self.drafted,
            "created": self.created,
            "prediction_ids": self.prediction_ids,
        }


class GenerationPipeline:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._oracle = HttpOutcomeOracle(self.settings)
        self._generator = PredictionGenerator(self._oracle, self.settings)

    def run(self, *, include_stocks: bool = False, dry_run: bool = False) -> GenerationSummary:
        if self._session_factory is None:
            init_db()
        summary = GenerationSummary()
        drafts = self._generator.generate(include_stocks=include_stocks)
        summary.drafted = len(drafts)
        if dry_run or not drafts:
            logger.info("Generation finished without writes: drafted={}, dry_run={}", len(drafts), dry_run)
            return summary

        session = (self._session_factory or SessionLocal)()
        try:
            created = PredictionService(session, self.settings).create_predictions(drafts)
        finally:
            session.close()

        summary.created = len(created)
        summary.prediction_ids = [prediction.id for prediction in created]
        logger.info("Generation finished: drafted={}, created={}", summary.drafted, summary.created)
        return summary

    def close(self) -> None:
        self._oracle.close()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate predictions from sports and price feeds")
    parser.add_argument(
        "--include-stocks",
        action="store_true",
        help="Also generate stock predictions (Alpha Vantage is heavily rate limited)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build drafts without writing them to the database",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args()


def main() -> GenerationSummary:
    args = _parse_args()
    pipeline = GenerationPipeline(get_settings())
    try:
        summary = pipeline.run(include_stocks=args.include_stocks, dry_run=args.dry_run)
    finally:
        pipeline.close()

    if args.summary_path:
        args.summary_path.parent.mkdir(parents=True, exist_ok=True)
        args.summary_path.write_text(json.dumps(summary.to_dict(), indent=2))
        logger.info("Generation summary written to {}", args.summary_path)
    return summary


if __name__ == "__main__":
    main()
