"""
Periodic refresh of the job cache and the blog feeds.
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from technuri.core.config import settings
from technuri.services.blog_service import BlogService
from technuri.services.jobs_service import JobsService, JobsServiceError

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "update_job_cache"
BLOG_REFRESH_JOB_ID = "update_blog_feeds"


async def refresh_job_cache(jobs_service: JobsService) -> None:
    logger.info("Job cache update started")
    try:
        refreshed = await jobs_service.update_job_cache()
    except JobsServiceError as e:
        logger.error(f"Job cache update failed: {e}")
        return
    logger.info(f"Job cache update finished: {len(refreshed)} companies refreshed")


async def refresh_blog_feeds(blog_service: BlogService) -> None:
    collected = await blog_service.update_feeds()
    logger.info(f"Blog feed update finished: {len(collected)} feeds collected")


def create_scheduler(
    jobs_service: JobsService,
    cron: Optional[str] = None,
    timezone: Optional[str] = None,
    blog_service: Optional[BlogService] = None,
    blog_interval: Optional[int] = None,
) -> AsyncIOScheduler:
    """
    Scheduler that refreshes the job cache on ``JOBS_UPDATE_CRON`` and,
    with ``blog_service``, collects the blog feeds every
    ``BLOG_UPDATE_INTERVAL`` minutes.

    A run that is still going when the next one fires makes the next one
    skip; missed runs collapse into one.
    """
    timezone = timezone or settings.JOBS_TIMEZONE
    scheduler = AsyncIOScheduler(timezone=timezone)
    scheduler.add_job(
        refresh_job_cache,
        CronTrigger.from_crontab(cron or settings.JOBS_UPDATE_CRON, timezone=timezone),
        args=[jobs_service],
        id=REFRESH_JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(f"Job cache refresh scheduled with cron '{cron or settings.JOBS_UPDATE_CRON}' ({timezone})")

    if blog_service is not None:
        minutes = blog_interval or settings.BLOG_UPDATE_INTERVAL
        scheduler.add_job(
            refresh_blog_feeds,
            IntervalTrigger(minutes=minutes, timezone=timezone),
            args=[blog_service],
            id=BLOG_REFRESH_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Blog feed collection scheduled every {minutes} minutes")
    return scheduler
