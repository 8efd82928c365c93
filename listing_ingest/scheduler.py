# listing_ingest/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .utils import logger, utcnow

CRAWL_JOB_ID = "crawl"


def build_scheduler(orchestrator, settings) -> AsyncIOScheduler:
    """Interval job calling `orchestrator.trigger`; never overlaps itself."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    job_options = {}
    if settings.crawl_on_startup:
        job_options["next_run_time"] = utcnow()
    scheduler.add_job(
        orchestrator.trigger,
        "interval",
        minutes=settings.crawl_interval_minutes,
        id=CRAWL_JOB_ID,
        max_instances=1,
        coalesce=True,
        **job_options,
    )
    return scheduler


def start_scheduler(scheduler, settings):
    scheduler.start()
    logger.info("Scheduler started. Crawling every %d minutes for recently updated properties.",
                settings.crawl_interval_minutes)
