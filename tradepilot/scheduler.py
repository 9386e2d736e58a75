from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Optional

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from .accruals import AccrualResult, process_daily_returns, process_returns_for_local_time
from .config import settings
from .storage import Storage

# Shared by every accrual pass so two passes never update the same rows at once.
_PASS_LOCK = Lock()


def run_exclusive(name: str, func: Callable[[Storage], AccrualResult], storage: Storage) -> AccrualResult:
    with _PASS_LOCK:
        result = func(storage)
    logger.debug(
        "{name} finished: processed={processed} credited={credited}",
        name=name,
        processed=result.processed,
        credited=result.total_credited,
    )
    return result


def setup_jobs(storage: Storage, tz: str, scheduler: Optional[BaseScheduler] = None) -> BaseScheduler:
    sch = scheduler or BlockingScheduler(timezone=tz)

    @sch.scheduled_job(
        IntervalTrigger(minutes=settings.LOCAL_PASS_MINUTES),
        id="local_time_returns",
        max_instances=1,
        coalesce=True,
    )
    def local_time_returns():
        run_exclusive("local_time_returns", process_returns_for_local_time, storage)

    @sch.scheduled_job(
        IntervalTrigger(hours=settings.CATCHUP_PASS_HOURS),
        id="catch_up_returns",
        max_instances=1,
        coalesce=True,
    )
    def catch_up_returns():
        run_exclusive("catch_up_returns", process_daily_returns, storage)

    @sch.scheduled_job(
        DateTrigger(run_date=datetime.now(timezone.utc) + timedelta(seconds=settings.STARTUP_DELAY_SEC)),
        id="startup_returns",
    )
    def startup_returns():
        logger.info("Running initial daily returns processing")
        run_exclusive("local_time_returns", process_returns_for_local_time, storage)
        run_exclusive("catch_up_returns", process_daily_returns, storage)

    logger.info(
        "Daily return service scheduled: local time profits every {minutes} min, catch-up every {hours} h",
        minutes=settings.LOCAL_PASS_MINUTES,
        hours=settings.CATCHUP_PASS_HOURS,
    )
    return sch
