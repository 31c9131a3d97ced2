"""Standalone job that settles predictions whose deadline has passed."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from loguru import logger

from app.core.config import Settings, get_settings
from app.db import SessionFactory, init_db
from app.services.resolution_engine import ResolutionEngine, ResolutionSummary
from oracle.service import HttpOutcomeOracle


class ResolutionPipeline:
    """Own the oracle clients for one or more resolution scans."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._oracle = HttpOutcomeOracle(self.settings)
        self._engine = ResolutionEngine(self._oracle, session_factory=session_factory)

    def run(self, *, limit: int | None = None) -> ResolutionSummary:
        if self._session_factory is None:
            init_db()
        logger.info("Starting resolution scan: limit={}", limit)
        return self._engine.check_and_resolve(limit=limit)

    def close(self) -> None:
        self._oracle.close()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve, lock or defer every active prediction past its deadline",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of due predictions to evaluate",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args()


def _write_summary(summary: ResolutionSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), default=str, indent=2))
    logger.info("Resolution summary written to {}", path)


def main() -> ResolutionSummary:
    args = _parse_args()
    pipeline = ResolutionPipeline(get_settings())
    try:
        summary = pipeline.run(limit=args.limit)
    finally:
        pipeline.close()

    if args.summary_path:
        _write_summary(summary, args.summary_path)
    return summary


if __name__ == "__main__":
    main()
