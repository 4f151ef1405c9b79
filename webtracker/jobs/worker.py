"""
One-shot job runner.

Reads the job name from CLI args or the WORKER_JOB environment variable, runs
that job once against the configured store and logs its metrics. Jobs that
message a chat run without a transport here, so pulse only advances statuses
and the daily report is logged rather than sent.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from webtracker.config import settings
from webtracker.db.pool import DatabaseManager
from webtracker.infrastructure.observability.logging import get_logger, setup_logging
from webtracker.jobs.daily_report_job import DailyReportJob
from webtracker.jobs.heartbeat_job import HeartbeatJob
from webtracker.jobs.pulse_job import PulseJob
from webtracker.jobs.retention_cleanup_job import RetentionCleanupJob
from webtracker.repositories import Store

logger = get_logger(__name__)

JobRunner = Callable[[Store], Awaitable[dict]]


async def _pulse(store: Store) -> dict:
    return await PulseJob(store).run_once()


async def _daily_report(store: Store) -> dict:
    return await DailyReportJob(store, None, settings.owner_phone()).run_once()


async def _retention_cleanup(store: Store) -> dict:
    return await RetentionCleanupJob(store, **settings.get_retention_config()).run_once()


async def _heartbeat(store: Store) -> dict:
    return await HeartbeatJob(settings.HEALTHCHECK_URL).run_once()


JOB_REGISTRY: dict[str, JobRunner] = {
    "pulse": _pulse,
    "daily_report": _daily_report,
    "retention_cleanup": _retention_cleanup,
    "heartbeat": _heartbeat,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "pulse").strip().lower()


async def run_worker(job_name: str | None = None, store: Store | None = None) -> dict:
    """Run the requested job once and return its metrics."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    owns_store = store is None
    if owns_store:
        store = Store(DatabaseManager(settings.DATABASE_PATH, settings.DB_POOL_TIMEOUT))
        await store.initialize()

    logger.info("Running background job", job=name)
    try:
        result = await JOB_REGISTRY[name](store)
    finally:
        if owns_store:
            await store.close()

    logger.info("Background job finished", job=name, result=result)
    return result


def main() -> None:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_PATH or None)
    asyncio.run(run_worker(_resolve_job_name()))


if __name__ == "__main__":
    main()
