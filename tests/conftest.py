import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest
from selenium.common.exceptions import WebDriverException

from technuri.core.caching import CacheBackend
from technuri.core.retry import RetryConfig, RetryExecutor
from technuri.crawlers import base
from technuri.models.job_model import (
    CareerType,
    CompanyType,
    EmploymentType,
    JobPosting,
    JobQuery,
    LocationType,
)
from technuri.services.http_client import HttpClient
from technuri.services.jobs_service import JobsService


def make_posting(company: CompanyType = CompanyType.KAKAO, job_id: str = "1", **overrides) -> JobPosting:
    fields = dict(
        job_id=job_id,
        title=f"Backend Engineer {job_id}",
        department="Tech",
        field="Backend",
        url=f"https://jobs.example.com/{company.value.lower()}/{job_id}",
        career=CareerType.ANY,
        employment_type=EmploymentType.FULL_TIME,
        locations=[LocationType.SEOUL],
    )
    fields.update(overrides)
    return base.build_posting(company, **fields)


class FakeHttpClient(HttpClient):
    """Serves canned responses; ``responses`` may be a dict or ``fn(url, params)``."""

    def __init__(self, responses):
        super().__init__()
        self.responses = responses
        self.calls = []

    async def get(self, url, params=None, headers=None, as_json=False):
        self.calls.append((url, params))
        if callable(self.responses):
            response = self.responses(url, params)
        else:
            response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response

    async def delay(self, ms):
        return None


class FakeCrawler:
    base_url = "https://jobs.example.com"

    def __init__(
        self,
        company: CompanyType,
        jobs: Optional[List[JobPosting]] = None,
        error: Optional[Exception] = None,
        delay: float = 0,
    ):
        self.company = company
        self.jobs = jobs or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch_jobs(self, query: Optional[JobQuery] = None) -> List[JobPosting]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.jobs)

    def get_job_detail_url(self, job_id: str) -> str:
        return f"{self.base_url}/{job_id}"

    def is_valid_posting(self, posting: JobPosting) -> bool:
        return base.is_valid_posting(posting)


class FakePage:
    def __init__(self, html: str):
        self.html = html
        self.visited = []
        self.waited_for = []
        self.scrolled = False

    async def goto(self, url):
        self.visited.append(url)

    async def wait_for_selector(self, selector, timeout_ms=None):
        self.waited_for.append(selector)

    async def scroll_to_bottom(self, *args, **kwargs):
        self.scrolled = True

    async def content(self):
        return self.html


class FakeBrowser:
    def __init__(self, html: str):
        self.page = FakePage(html)

    @asynccontextmanager
    async def acquire_page(self):
        yield self.page


class FakeSwitchTo:
    def __init__(self, driver: "FakeDriver"):
        self._driver = driver

    def window(self, handle):
        self._driver.check_alive()
        self._driver.current_window_handle = handle

    def new_window(self, type_hint="tab"):
        self._driver.check_alive()
        self._driver.tab_counter += 1
        handle = f"tab-{self._driver.tab_counter}"
        self._driver.handles.append(handle)
        self._driver.current_window_handle = handle


class FakeDriver:
    """Just enough of a WebDriver for the browser service."""

    def __init__(self, html: str = "<html><body>ok</body></html>"):
        self.html = html
        self.alive = True
        self.quit_calls = 0
        self.tab_counter = 0
        self.current_window_handle = "anchor"
        self.handles = ["anchor"]
        self.visited = []
        self.switch_to = FakeSwitchTo(self)

    def check_alive(self):
        if not self.alive:
            raise WebDriverException("disconnected")

    def set_window_size(self, width, height):
        pass

    def set_page_load_timeout(self, seconds):
        pass

    def set_script_timeout(self, seconds):
        pass

    def execute_script(self, script, *args):
        self.check_alive()
        if "outerHTML" in script:
            return self.html
        if "scrollBy" in script:
            return [1080, 1080]
        return True

    def get(self, url):
        self.check_alive()
        self.visited.append((self.current_window_handle, url))

    def close(self):
        self.check_alive()
        self.handles.remove(self.current_window_handle)

    def quit(self):
        self.quit_calls += 1


@pytest.fixture
def fast_retry():
    return RetryExecutor(RetryConfig(max_attempts=3, initial_delay_ms=0, backoff_factor=2.0, jitter_ms=0))


@pytest.fixture
def cache():
    return CacheBackend()


@pytest.fixture
def make_service(cache, fast_retry):
    def _make(crawlers: List[FakeCrawler]) -> JobsService:
        registry: Dict[CompanyType, FakeCrawler] = {crawler.company: crawler for crawler in crawlers}
        return JobsService(registry, cache, retry=fast_retry, ttl=60)
    return _make
