"""Code Analytics — Scheduler Jobs.

APScheduler daily job that backfills yesterday for every configured
provider at the configured hour.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from code_analytics.analyzer.pipeline import configured_sources, run_backfill
from code_analytics.config import settings
from code_analytics.connectors.base import ProviderAPIError
from code_analytics.core.dates import yesterday
from code_analytics.core.errors import ConfigurationError
from code_analytics.core.logging import get_logger
from code_analytics.database import engine

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()


async def daily_backfill_job(bind=None) -> dict:
    """Backfill yesterday for each provider; one provider failing does not stop the rest."""
    day = yesterday()
    logger.info(f"Scheduled backfill starting for {day}", extra={"date": day})
    results = {}
    with Session(bind or engine) as session:
        for source in configured_sources(session):
            try:
                result = await run_backfill(session, source, day, day)
                results[source] = result.saved
            except (ConfigurationError, ProviderAPIError) as e:
                logger.error(f"Scheduled {source} backfill failed: {e}", extra={"source": source, "date": day})
                results[source] = 0
    if not results:
        logger.warning("No providers configured; scheduled backfill did nothing")
    return results


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_backfill_job,
        "cron",
        hour=settings.backfill_hour,
        minute=0,
        id="daily_backfill",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Daily backfill at {settings.backfill_hour}:00 UTC")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
