# src/services/scheduler.py

"""Cron-style scheduling of watchlist firings."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config.settings import Settings
from src.services.price_poller import PricePoller

logger = logging.getLogger("price_watch.scheduler")

FIRING_JOB_ID = "price_check"


def build_scheduler(
    poller: PricePoller,
    schedule: str | None = None,
    timezone: str | None = None,
) -> AsyncIOScheduler:
    """Create (but do not start) a scheduler that fires *poller*.

    Firings never overlap: a firing still running when the next one is
    due causes the late one to be skipped.
    """
    expression = schedule or Settings.CHECK_SCHEDULE
    tz = timezone or Settings.SCHEDULE_TIMEZONE

    async def scheduled_firing() -> None:
        logger.debug("Scheduled price check firing")
        try:
            await poller.run_firing()
        except Exception:
            logger.exception("Scheduled firing failed")

    scheduler = AsyncIOScheduler(timezone=tz)
    scheduler.add_job(
        scheduled_firing,
        CronTrigger.from_crontab(expression, timezone=tz),
        id=FIRING_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Price checks scheduled at '%s' (%s)", expression, tz)
    return scheduler
