from __future__ import annotations

from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger


def build_refresh_scheduler(
    inventory_job: Callable[[], Awaitable[Any]],
    rates_job: Callable[[], Awaitable[Any]],
    inventory_seconds: int = 300,
    rates_seconds: int = 3_600,
) -> AsyncIOScheduler:
    if inventory_seconds <= 0 or rates_seconds <= 0:
        raise ValueError("Refresh intervals must be positive")
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        inventory_job,
        trigger=IntervalTrigger(seconds=inventory_seconds),
        id="inventory_refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        rates_job,
        trigger=IntervalTrigger(seconds=rates_seconds),
        id="rates_refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler
