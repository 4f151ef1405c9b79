"""
In-process scheduler for the periodic jobs.

Two trigger kinds: a fixed interval, and a daily wall-clock slot in a given
timezone. Every task has its own try-lock; a firing that finds the previous
run still in progress is skipped, never queued.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from webtracker.config import Settings
from webtracker.db.helpers import utc_now
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.jobs.daily_report_job import DailyReportJob
from webtracker.jobs.heartbeat_job import HEARTBEAT_INTERVAL_SECONDS, HeartbeatJob
from webtracker.jobs.pulse_job import PULSE_INTERVAL_SECONDS, PulseJob
from webtracker.jobs.retention_cleanup_job import RetentionCleanupJob
from webtracker.repositories import Store
from webtracker.services.transport import Sender

logger = get_logger(__name__)

JobFunc = Callable[[], Awaitable[object]]


@dataclass
class ScheduledTask:
    name: str
    func: JobFunc
    interval: float | None = None
    daily_at: tuple[int, int] | None = None
    timezone: str = "UTC"
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    runs: int = 0
    skips: int = 0

    def seconds_until_next(self, now: datetime) -> float:
        if self.interval is not None:
            return self.interval
        hour, minute = self.daily_at
        target = next_daily_run(now, hour, minute, self.timezone)
        return max((target - now).total_seconds(), 0.0)


def next_daily_run(now: datetime, hour: int, minute: int = 0, timezone: str = "UTC") -> datetime:
    """The next UTC instant at which a daily local-time slot fires."""
    try:
        zone = ZoneInfo(timezone)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone for daily slot, using UTC", timezone=timezone)
        zone = ZoneInfo("UTC")
    local_now = now.astimezone(zone)
    target = local_now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= local_now:
        target += timedelta(days=1)
    return target.astimezone(UTC)


class Scheduler:
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock
        self.tasks: dict[str, ScheduledTask] = {}
        self._stop = asyncio.Event()
        self._loops: list[asyncio.Task] = []
        self._running: set[asyncio.Task] = set()

    def every(self, name: str, seconds: float, func: JobFunc) -> ScheduledTask:
        task = ScheduledTask(name=name, func=func, interval=seconds)
        self.tasks[name] = task
        return task

    def daily(self, name: str, hour: int, func: JobFunc, minute: int = 0, timezone: str = "UTC") -> ScheduledTask:
        task = ScheduledTask(name=name, func=func, daily_at=(hour, minute), timezone=timezone)
        self.tasks[name] = task
        return task

    def start(self) -> None:
        self._stop.clear()
        for task in self.tasks.values():
            self._loops.append(asyncio.create_task(self._loop(task), name=f"schedule-{task.name}"))
        logger.info("Scheduler started", tasks=sorted(self.tasks))

    async def stop(self) -> None:
        """Stop firing and wait for in-flight runs to finish."""
        self._stop.set()
        for loop in self._loops:
            loop.cancel()
        await asyncio.gather(*self._loops, return_exceptions=True)
        self._loops.clear()

        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        logger.info("Scheduler stopped")

    async def _loop(self, task: ScheduledTask) -> None:
        while not self._stop.is_set():
            delay = task.seconds_until_next(self.clock())
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
                return
            except TimeoutError:
                pass
            run = asyncio.create_task(self.trigger(task.name))
            self._running.add(run)
            run.add_done_callback(self._running.discard)

    async def trigger(self, name: str) -> bool:
        """Run a task now unless its previous run is still going."""
        task = self.tasks[name]
        if task.lock.locked():
            task.skips += 1
            logger.warning("Previous instance still running, skipping", task=name)
            return False

        async with task.lock:
            task.runs += 1
            try:
                result = await task.func()
            except Exception as e:
                logger.error(
                    "Scheduled task failed",
                    task=name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return True
            logger.debug("Scheduled task finished", task=name, result=result)
        return True


def build_scheduler(settings: Settings, store: Store, sender: Sender | None = None) -> Scheduler:
    """Register the periodic jobs on a new scheduler."""
    scheduler = Scheduler()
    pulse = PulseJob(store, sender)
    report = DailyReportJob(store, sender, settings.owner_phone())
    cleanup = RetentionCleanupJob(store, **settings.get_retention_config())

    scheduler.every("pulse", PULSE_INTERVAL_SECONDS, pulse.run_once)
    scheduler.daily(
        "daily_report",
        settings.DAILY_REPORT_HOUR,
        report.run_once,
        timezone=settings.admin_timezone(),
    )
    scheduler.daily("retention_cleanup", 0, cleanup.run_once, timezone=settings.admin_timezone())
    if settings.HEALTHCHECK_URL:
        heartbeat = HeartbeatJob(settings.HEALTHCHECK_URL)
        scheduler.every("heartbeat", HEARTBEAT_INTERVAL_SECONDS, heartbeat.run_once)
    return scheduler
