"""Long-running scheduler for the resolution scan and prediction generation."""

from __future__ import annotations

import argparse

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.core.config import Settings, get_settings
from app.db import init_db

from .generation_run import GenerationPipeline
from .resolution_run import ResolutionPipeline

RESOLUTION_JOB_ID = "resolution-scan"
GENERATION_JOB_ID = "prediction-generation"


class ScheduledJobs:
    """Job callables that keep one pipeline instance, and its HTTP clients, per job."""

    def __init__(
        self,
        settings: Settings,
        *,
        resolution: ResolutionPipeline | None = None,
        generation: GenerationPipeline | None = None,
    ) -> None:
        self.settings = settings
        self.resolution = resolution or ResolutionPipeline(settings)
        self.generation = generation or GenerationPipeline(settings)

    def run_resolution(self) -> None:
        try:
            self.resolution.run()
        except Exception:
            logger.exception("Scheduled resolution scan failed")

    def run_generation(self) -> None:
        try:
            # Stock quotes stay out of the periodic run; Alpha Vantage allows very few calls.
            self.generation.run(include_stocks=False)
        except Exception:
            logger.exception("Scheduled prediction generation failed")

    def close(self) -> None:
        self.resolution.close()
        self.generation.close()


def register_jobs(scheduler: BaseScheduler, jobs: ScheduledJobs) -> None:
    settings = jobs.settings
    scheduler.add_job(
        jobs.run_resolution,
        IntervalTrigger(seconds=settings.resolution_interval_seconds),
        id=RESOLUTION_JOB_ID,
        name="Resolution: settle due predictions",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(
        "Registered job {} (every {} seconds)",
        RESOLUTION_JOB_ID,
        settings.resolution_interval_seconds,
    )

    scheduler.add_job(
        jobs.run_generation,
        IntervalTrigger(hours=settings.generation_interval_hours),
        id=GENERATION_JOB_ID,
        name="Generation: author new predictions",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(
        "Registered job {} (every {} hours)",
        GENERATION_JOB_ID,
        settings.generation_interval_hours,
    )


def start_scheduler(settings: Settings | None = None, *, run_now: bool = False) -> None:
    settings = settings or get_settings()
    init_db()
    jobs = ScheduledJobs(settings)
    scheduler = BlockingScheduler(timezone="UTC")
    register_jobs(scheduler, jobs)

    if run_now:
        jobs.run_resolution()

    try:
        logger.info("Scheduler starting with {} jobs", len(scheduler.get_jobs()))
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Received interrupt signal")
        scheduler.shutdown(wait=False)
    finally:
        jobs.close()
        logger.info("Scheduler stopped")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the periodic resolution and generation jobs")
    parser.add_argument(
        "--run-now",
        action="store_true",
        help="Run one resolution scan before waiting for the first interval",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    start_scheduler(get_settings(), run_now=args.run_now)


if __name__ == "__main__":
    main()
