import asyncio
from datetime import UTC, datetime

import pytest

from webtracker.jobs.scheduler import Scheduler, next_daily_run


def test_next_daily_run_later_today():
    now = datetime(2024, 3, 4, 5, 0, tzinfo=UTC)  # 06:00 in Lagos

    assert next_daily_run(now, 8, timezone="Africa/Lagos") == datetime(2024, 3, 4, 7, 0, tzinfo=UTC)


def test_next_daily_run_rolls_to_tomorrow():
    now = datetime(2024, 3, 4, 7, 0, tzinfo=UTC)  # exactly 08:00 in Lagos

    assert next_daily_run(now, 8, timezone="Africa/Lagos") == datetime(2024, 3, 5, 7, 0, tzinfo=UTC)


def test_next_daily_run_midnight_across_dst():
    # 13:00 BST, the day London moved its clocks forward
    now = datetime(2024, 3, 31, 12, 0, tzinfo=UTC)

    assert next_daily_run(now, 0, timezone="Europe/London") == datetime(2024, 3, 31, 23, 0, tzinfo=UTC)


def test_next_daily_run_unknown_timezone_falls_back_to_utc():
    now = datetime(2024, 3, 4, 7, 0, tzinfo=UTC)

    assert next_daily_run(now, 8, timezone="Mars/Olympus") == datetime(2024, 3, 4, 8, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_trigger_skips_while_previous_run_in_progress():
    scheduler = Scheduler()
    release = asyncio.Event()
    calls = []

    async def slow_job():
        calls.append("run")
        await release.wait()

    scheduler.every("slow", 60, slow_job)
    first = asyncio.create_task(scheduler.trigger("slow"))
    await asyncio.sleep(0)

    skipped = await scheduler.trigger("slow")
    release.set()
    ran = await first

    assert skipped is False
    assert ran is True
    assert calls == ["run"]
    assert scheduler.tasks["slow"].skips == 1


@pytest.mark.asyncio
async def test_trigger_logs_and_survives_job_failure():
    scheduler = Scheduler()

    async def broken_job():
        raise RuntimeError("boom")

    scheduler.every("broken", 60, broken_job)

    assert await scheduler.trigger("broken") is True
    assert scheduler.tasks["broken"].lock.locked() is False


@pytest.mark.asyncio
async def test_interval_task_fires_and_stops():
    scheduler = Scheduler()
    fired = asyncio.Event()

    async def job():
        fired.set()

    scheduler.every("quick", 0.01, job)
    scheduler.start()
    await asyncio.wait_for(fired.wait(), timeout=1)
    await scheduler.stop()

    assert scheduler.tasks["quick"].runs >= 1
