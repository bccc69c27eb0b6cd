"""
Jobs orchestrator: keeps the cache filled from the crawlers and serves
filtered, paginated reads from it.

Cache layout:
    jobs:all                  every posting from every source
    jobs:company:{COMPANY}    postings from one source
    jobs:tech[:filter:value]  read-side copies keyed by the query filters
    jobs:last-update          ISO timestamp of the last refresh (no TTL)
"""
import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from technuri.core.caching import CacheBackend, CacheError
from technuri.core.config import settings
from technuri.core.retry import RetryExecutor
from technuri.crawlers.base import JobCrawler
from technuri.models.job_model import (
    COMPANY_NAMES,
    CompanyType,
    JobPosting,
    JobQuery,
    PaginatedJobs,
    SupportedCompany,
)
from technuri.services.filters import filter_jobs, paginate

logger = logging.getLogger(__name__)

ALL_JOBS_KEY = "jobs:all"
TECH_JOBS_KEY = "jobs:tech"
COMPANY_JOBS_PREFIX = "jobs:company:"
LAST_UPDATE_KEY = "jobs:last-update"


class JobsServiceError(Exception):
    pass


class CompanyNotFoundError(JobsServiceError):
    pass


class CrawlFailedError(JobsServiceError):
    """A crawler still failed after every retry."""


def company_key(company: CompanyType) -> str:
    return f"{COMPANY_JOBS_PREFIX}{company.value}"


def generate_cache_key(query: Optional[JobQuery] = None) -> str:
    """
    Read-side key for a query, e.g. ``jobs:tech:career:NEW:keyword:java``.

    Filters always appear in the same order and only when present.
    Pagination is not part of the key.
    """
    if query is None:
        return TECH_JOBS_KEY
    parts = [TECH_JOBS_KEY]
    for name, value in [
        ("department", query.department),
        ("field", query.field),
        ("career", query.career),
        ("employmentType", query.employment_type),
        ("location", query.location),
        ("keyword", query.keyword),
    ]:
        if value:
            parts.append(f"{name}:{value.value if isinstance(value, Enum) else value}")
    return ":".join(parts)


def dump_jobs(jobs: List[JobPosting]) -> List[Dict[str, Any]]:
    return [job.model_dump(mode="json", by_alias=True) for job in jobs]


def load_jobs(payload: List[Dict[str, Any]]) -> List[JobPosting]:
    try:
        return [JobPosting.model_validate(item) for item in payload]
    except ValidationError as e:
        raise JobsServiceError(f"Cached jobs are malformed: {e}") from e


class JobsService:
    def __init__(
        self,
        crawlers: Dict[CompanyType, JobCrawler],
        cache: CacheBackend,
        retry: Optional[RetryExecutor] = None,
        ttl: Optional[int] = None,
    ):
        self.crawlers = crawlers
        self.cache = cache
        self.retry = retry or RetryExecutor()
        self.ttl = ttl or settings.JOBS_CACHE_TTL
        self._in_flight: Dict[CompanyType, asyncio.Future] = {}
        # Guards the read-modify-write of jobs:all inside this process
        self._aggregate_lock = asyncio.Lock()

    async def _cache_get(self, key: str) -> Any:
        try:
            return await self.cache.get(key)
        except CacheError as e:
            logger.error(f"Cache read failed for {key}: {e}")
            raise JobsServiceError(f"Cache read failed for {key}") from e

    async def _cache_set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self.cache.set(key, value, ttl)
        except CacheError as e:
            logger.error(f"Cache write failed for {key}: {e}")
            raise JobsServiceError(f"Cache write failed for {key}") from e

    async def _cache_flush(self, pattern: str) -> int:
        try:
            return await self.cache.flush_by_pattern(pattern)
        except CacheError as e:
            logger.error(f"Cache flush failed for {pattern}: {e}")
            raise JobsServiceError(f"Cache flush failed for {pattern}") from e

    def resolve_company(self, company: Union[str, CompanyType]) -> CompanyType:
        """Map a path parameter to a registered company or raise ``CompanyNotFoundError``."""
        try:
            resolved = CompanyType(company.upper() if isinstance(company, str) else company)
        except ValueError as e:
            raise CompanyNotFoundError(f"Unknown company: {company}") from e
        if resolved not in self.crawlers:
            raise CompanyNotFoundError(f"No crawler registered for company: {resolved.value}")
        return resolved

    async def ensure_fresh(self, company: CompanyType) -> List[JobPosting]:
        """
        Crawl one company and write its postings to the cache.

        Concurrent callers for the same company share a single crawl.
        Raises ``CrawlFailedError`` once retries are exhausted; the
        previously cached postings for that company are left as they were.
        Cache failures raise ``JobsServiceError``.
        """
        task = self._in_flight.get(company)
        if task is None:
            task = asyncio.ensure_future(self._refresh_company(company))
            self._in_flight[company] = task

            def _release(done, company=company):
                if self._in_flight.get(company) is done:
                    del self._in_flight[company]

            task.add_done_callback(_release)
        return await asyncio.shield(task)

    async def _refresh_company(self, company: CompanyType) -> List[JobPosting]:
        crawler = self.crawlers[company]
        try:
            jobs = await self.retry.run(crawler.fetch_jobs, f"crawl {company.value}")
        except Exception as e:  # pylint: disable=broad-except
            raise CrawlFailedError(f"Failed to crawl {company.value}: {e}") from e
        payload = dump_jobs(jobs)

        await self._cache_set(company_key(company), payload, self.ttl)
        async with self._aggregate_lock:
            existing = await self._cache_get(ALL_JOBS_KEY) or []
            merged = [job for job in existing if job.get("company") != company.value]
            merged.extend(payload)
            await self._cache_set(ALL_JOBS_KEY, merged, self.ttl)

        # Filtered read-side copies were built from the old postings
        await self._cache_flush(f"{TECH_JOBS_KEY}*")
        logger.info(f"Cached {len(jobs)} postings for {company.value}")
        return jobs

    async def update_job_cache(self) -> Dict[CompanyType, int]:
        """
        Refresh every registered company concurrently.

        One company failing does not stop the others. Returns the posting
        count for each company that refreshed successfully.
        """
        companies = list(self.crawlers)
        logger.info(f"Updating job cache for {len(companies)} companies")
        results = await asyncio.gather(
            *(self.ensure_fresh(company) for company in companies),
            return_exceptions=True,
        )

        refreshed: Dict[CompanyType, int] = {}
        for company, result in zip(companies, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to update {company.value} jobs: {result}")
            else:
                refreshed[company] = len(result)

        if refreshed:
            await self._cache_set(LAST_UPDATE_KEY, datetime.now().isoformat())
        logger.info(f"Job cache updated: {len(refreshed)}/{len(companies)} companies refreshed")
        return refreshed

    async def _collect_all(self) -> List[Dict[str, Any]]:
        companies = list(self.crawlers)
        results = await asyncio.gather(
            *(self.ensure_fresh(company) for company in companies),
            return_exceptions=True,
        )
        collected: List[JobPosting] = []
        for company, result in zip(companies, results):
            if isinstance(result, CrawlFailedError):
                logger.error(f"Skipping {company.value}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            collected.extend(result)
        return dump_jobs(collected)

    async def get_tech_jobs(self, query: Optional[JobQuery] = None) -> PaginatedJobs:
        query = query or JobQuery()
        key = generate_cache_key(query)

        cached = await self._cache_get(key)
        if cached is None:
            logger.debug(f"Cache miss for {key}")
            cached = await self._cache_get(ALL_JOBS_KEY)
            if cached is None:
                cached = await self._collect_all()
            await self._cache_set(key, cached, self.ttl)

        return paginate(filter_jobs(load_jobs(cached), query), query.page, query.limit)

    async def get_company_tech_jobs(
        self, company: Union[str, CompanyType], query: Optional[JobQuery] = None
    ) -> PaginatedJobs:
        company = self.resolve_company(company)
        query = query or JobQuery()

        cached = await self._cache_get(company_key(company))
        if cached is not None:
            jobs = load_jobs(cached)
        else:
            logger.debug(f"Cache miss for {company.value}, crawling now")
            jobs = await self.ensure_fresh(company)

        return paginate(filter_jobs(jobs, query), query.page, query.limit)

    def get_supported_companies(self) -> List[SupportedCompany]:
        return [
            SupportedCompany(code=company, name=COMPANY_NAMES.get(company, company.value))
            for company in self.crawlers
        ]

    async def get_last_update(self) -> Optional[str]:
        return await self._cache_get(LAST_UPDATE_KEY)

    async def clear_cache(self, pattern: str = "jobs:*") -> int:
        return await self._cache_flush(pattern)
