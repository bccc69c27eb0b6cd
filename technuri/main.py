import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI

from technuri.core.caching import CacheBackend
from technuri.core.config import settings
from technuri.core.scheduler import create_scheduler, refresh_blog_feeds, refresh_job_cache
from technuri.crawlers.registry import build_crawlers
from technuri.routes import blog_routes, job_routes
from technuri.services.blog_service import BlogService
from technuri.services.browser_service import BrowserService
from technuri.services.http_client import HttpClient
from technuri.services.jobs_service import JobsService

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    # Leave logging alone when the host (uvicorn, tests) already set it up
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


def create_app(
    jobs_service: Optional[JobsService] = None,
    blog_service: Optional[BlogService] = None,
    background_jobs: bool = True,
) -> FastAPI:
    """
    Build the API app.

    Without ``jobs_service`` the app wires its own crawlers, HTTP client,
    browser and cache, and closes them on shutdown. Without ``blog_service``
    the blog feeds share the jobs cache.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        http_client = browser = None
        service = jobs_service
        if service is None:
            http_client = HttpClient()
            browser = BrowserService()
            service = JobsService(build_crawlers(http_client, browser), CacheBackend())
        blogs = blog_service
        if blogs is None:
            http_client = http_client or HttpClient()
            blogs = BlogService(http_client, service.cache)
        app.state.jobs_service = service
        app.state.blog_service = blogs

        if settings.CLEAR_CACHE_ON_STARTUP:
            cleared = await service.clear_cache()
            logger.info(f"Cleared {cleared} cache entries on startup")

        scheduler = None
        startup_tasks = []
        if background_jobs:
            if settings.REFRESH_ON_STARTUP:
                startup_tasks.append(asyncio.create_task(refresh_job_cache(service)))
                startup_tasks.append(asyncio.create_task(refresh_blog_feeds(blogs)))
            scheduler = create_scheduler(service, blog_service=blogs)
            scheduler.start()

        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)
            for task in startup_tasks:
                if not task.done():
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task
            if browser is not None:
                await browser.close()
            if http_client is not None:
                http_client.close()
            logger.info("Shutdown complete")

    app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)
    app.include_router(job_routes.router, prefix="/api", tags=["Jobs"])
    app.include_router(blog_routes.router, prefix="/api", tags=["Blogs"])

    @app.get("/")
    def root():
        return {"message": f"Welcome to {settings.PROJECT_NAME}"}

    return app


app = create_app()
