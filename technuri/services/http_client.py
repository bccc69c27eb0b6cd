"""
Outbound HTTP for crawlers: rotating user agents, timeouts and a
bounded-concurrency batch runner with per-lane throttling.
"""
import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import requests

from technuri.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.9,*/*;q=0.8"


class HttpClient:
    """Thin async facade over a shared ``requests.Session``."""

    def __init__(
        self,
        timeout_ms: Optional[int] = None,
        user_agents: Optional[List[str]] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = (timeout_ms or settings.JOB_REQUEST_TIMEOUT) / 1000
        self.user_agents = user_agents or settings.USER_AGENTS
        self.session = session or requests.Session()

    def get_random_user_agent(self) -> str:
        """Return a random user agent"""
        return random.choice(self.user_agents)

    async def delay(self, ms: float) -> None:
        await asyncio.sleep(ms / 1000)

    def _build_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = {
            "Accept": DEFAULT_ACCEPT,
            "Accept-Language": settings.ACCEPT_LANGUAGE,
        }
        if headers:
            merged.update(headers)
        if "User-Agent" not in merged:
            merged["User-Agent"] = self.get_random_user_agent()
        return merged

    def _request_sync(self, method: str, url: str, as_json: bool, **kwargs) -> Any:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        if as_json:
            return response.json()
        return response.text

    async def _request(self, method: str, url: str, as_json: bool, **kwargs) -> Any:
        # requests is blocking, run it off the event loop
        loop = asyncio.get_running_loop()
        call = functools.partial(self._request_sync, method, url, as_json, **kwargs)
        try:
            return await loop.run_in_executor(None, call)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            logger.error(f"{method} request failed: {url} - status {status}")
            raise
        except requests.RequestException as e:
            logger.error(f"{method} request failed: {url} - {e}")
            raise

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        as_json: bool = False,
    ) -> Any:
        return await self._request(
            "GET", url, as_json, params=params, headers=self._build_headers(headers)
        )

    async def post(
        self,
        url: str,
        data: Any = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        as_json: bool = False,
    ) -> Any:
        return await self._request(
            "POST", url, as_json, data=data, json=json_body, headers=self._build_headers(headers)
        )

    async def batch_request(
        self,
        tasks: List[Callable[[], Awaitable[T]]],
        concurrency: Optional[int] = None,
        delay_ms: Optional[int] = None,
    ) -> List[T]:
        """
        Run zero-argument async tasks with at most ``concurrency`` in flight.

        Each lane sleeps ``delay_ms`` after finishing a task before pulling the
        next one. A failed task leaves ``None`` in its slot; the returned list
        keeps submission order with those slots removed.
        """
        if concurrency is None:
            concurrency = settings.JOB_MAX_CONCURRENT_REQUESTS
        if delay_ms is None:
            delay_ms = settings.JOB_REQUEST_DELAY

        results: List[Optional[T]] = [None] * len(tasks)
        next_index = 0

        async def lane() -> None:
            nonlocal next_index
            while next_index < len(tasks):
                index = next_index
                next_index += 1
                try:
                    results[index] = await tasks[index]()
                except Exception as e:  # pylint: disable=broad-except
                    logger.error(f"Batch request failed at index {index}: {e}")
                    results[index] = None
                if delay_ms > 0:
                    await self.delay(delay_ms)

        lanes = min(max(1, concurrency), len(tasks))
        await asyncio.gather(*(lane() for _ in range(lanes)))

        return [result for result in results if result is not None]

    def close(self) -> None:
        self.session.close()
