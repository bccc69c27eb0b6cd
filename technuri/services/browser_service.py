"""
Headless Chrome lifecycle for crawlers whose listings only exist after
scripts run (SPA / infinite scroll pages).

One browser instance is shared by every crawl. Each crawl works in its own
tab (``BrowserPage``); driver calls are serialized because WebDriver sessions
are not safe for concurrent use.
"""
import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

import undetected_chromedriver as uc
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from selenium_stealth import stealth

from technuri.core.config import settings

logger = logging.getLogger(__name__)

VIEWPORT_WIDTH = 1920
VIEWPORT_HEIGHT = 1080


class BrowserError(Exception):
    pass


class BrowserDisconnectedError(BrowserError):
    """The browser behind a page went away; the page cannot be used anymore."""


def get_chrome_executable_path() -> Optional[str]:
    """
    Get Chrome executable path based on environment.
    Checks CHROME_BIN env var first, then common installation paths.
    """
    chrome_bin = os.environ.get("CHROME_BIN")
    if chrome_bin and os.path.exists(chrome_bin):
        return chrome_bin

    candidates = [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
    ]
    for path in candidates:
        if os.path.exists(path):
            return path

    # Let undetected-chromedriver find it
    return None


class BrowserPage:
    """A tab in the shared browser. Callers own navigation and extraction."""

    def __init__(self, service: "BrowserService", handle: str, generation: int):
        self._service = service
        self.handle = handle
        self.generation = generation
        self.closed = False

    async def goto(self, url: str) -> None:
        await self._service.run_on_page(self, lambda driver: driver.get(url))

    async def wait_for_selector(self, selector: str, timeout_ms: Optional[int] = None) -> None:
        timeout = (timeout_ms or self._service.navigation_timeout_ms) / 1000

        def wait(driver):
            WebDriverWait(driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )

        await self._service.run_on_page(self, wait)

    async def scroll_to_bottom(self, distance: int = 100, pause_ms: int = 100, max_steps: int = 500) -> None:
        """Scroll in small steps so lazy lists keep loading until the end."""
        def scroll(driver):
            for _ in range(max_steps):
                position, height = driver.execute_script(
                    "window.scrollBy(0, arguments[0]);"
                    "return [window.scrollY + window.innerHeight, document.body.scrollHeight];",
                    distance,
                )
                if position >= height:
                    break
                time.sleep(pause_ms / 1000)

        await self._service.run_on_page(self, scroll)

    async def content(self) -> str:
        return await self._service.run_on_page(
            self, lambda driver: driver.execute_script("return document.documentElement.outerHTML;")
        )

    async def evaluate(self, script: str, *args: Any) -> Any:
        return await self._service.run_on_page(self, lambda driver: driver.execute_script(script, *args))


class BrowserService:
    """
    Owns the long-lived browser process.

    The driver is created lazily on first use and recreated after it
    disconnects. ``close()`` quits it once, at shutdown.
    """

    def __init__(
        self,
        driver_factory: Optional[Callable[[], Any]] = None,
        navigation_timeout_ms: Optional[int] = None,
        operation_timeout_ms: Optional[int] = None,
    ):
        self._driver_factory = driver_factory or self._create_driver
        self.navigation_timeout_ms = navigation_timeout_ms or settings.BROWSER_NAVIGATION_TIMEOUT
        self.operation_timeout_ms = operation_timeout_ms or settings.BROWSER_OPERATION_TIMEOUT
        self._driver = None
        self._anchor_handle: Optional[str] = None
        self._generation = 0
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._driver is not None

    def _create_driver(self):
        options = uc.ChromeOptions()
        if settings.BROWSER_HEADLESS:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument(f"--window-size={VIEWPORT_WIDTH},{VIEWPORT_HEIGHT}")
        options.add_argument("--hide-scrollbars")
        options.add_argument("--disable-notifications")
        options.add_argument(f"user-agent={settings.BROWSER_USER_AGENT}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        lang_hint = settings.ACCEPT_LANGUAGE.split(",")[0]
        if lang_hint:
            options.add_argument(f"--lang={lang_hint}")

        driver = uc.Chrome(
            options=options,
            browser_executable_path=get_chrome_executable_path(),
            use_subprocess=True,
        )
        driver.execute_cdp_cmd("Network.setUserAgentOverride", {
            "userAgent": settings.BROWSER_USER_AGENT,
            "acceptLanguage": settings.ACCEPT_LANGUAGE,
        })
        try:
            stealth(
                driver,
                languages=[lang_hint or "ko-KR", "en"],
                vendor="Google Inc.",
                platform="MacIntel",
                webgl_vendor="Intel Inc.",
                renderer="Intel Iris OpenGL Engine",
                fix_hairline=True,
            )
        except WebDriverException as e:
            logger.warning(f"Stealth patches not applied: {e}")
        return driver

    def _is_alive(self, driver) -> bool:
        try:
            driver.execute_script("return true;")
            return True
        except WebDriverException as e:
            logger.warning(f"Browser is unresponsive: {e}")
            return False

    def invalidate(self) -> None:
        """Drop the current browser so the next use launches a new one."""
        driver, self._driver = self._driver, None
        self._anchor_handle = None
        if driver is None:
            return
        logger.warning("Browser disconnected, it will be recreated on next use")
        try:
            driver.quit()
        except WebDriverException:
            logger.debug("Quitting a dead browser failed", exc_info=True)

    def _ensure_driver(self):
        if self._closed:
            raise BrowserError("Browser service is closed")
        if self._driver is not None and not self._is_alive(self._driver):
            self.invalidate()
        if self._driver is None:
            driver = self._driver_factory()
            driver.set_window_size(VIEWPORT_WIDTH, VIEWPORT_HEIGHT)
            driver.set_page_load_timeout(self.navigation_timeout_ms / 1000)
            driver.set_script_timeout(self.operation_timeout_ms / 1000)
            self._driver = driver
            # The initial tab stays open so closing pages never ends the session
            self._anchor_handle = driver.current_window_handle
            self._generation += 1
            logger.info("Browser launched")
        return self._driver

    def _call(self, fn: Callable[[Any], Any], page: Optional[BrowserPage]):
        driver = self._ensure_driver()
        if page is not None:
            if page.closed:
                raise BrowserError("Page is already closed")
            if page.generation != self._generation:
                raise BrowserDisconnectedError("Browser was restarted, page is gone")
            driver.switch_to.window(page.handle)
        try:
            return fn(driver)
        except WebDriverException as e:
            if not self._is_alive(driver):
                self.invalidate()
                raise BrowserDisconnectedError(str(e)) from e
            raise

    async def _run(self, fn: Callable[[Any], Any], page: Optional[BrowserPage] = None):
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._call, fn, page)

    async def run_on_page(self, page: BrowserPage, fn: Callable[[Any], Any]):
        return await self._run(fn, page)

    async def create_page(self) -> BrowserPage:
        def open_tab(driver):
            driver.switch_to.new_window("tab")
            return driver.current_window_handle, self._generation

        handle, generation = await self._run(open_tab)
        return BrowserPage(self, handle, generation)

    async def close_page(self, page: BrowserPage) -> None:
        if page.closed:
            return
        if page.generation != self._generation or self._driver is None:
            page.closed = True
            return

        def close_tab(driver):
            driver.close()
            if self._anchor_handle:
                driver.switch_to.window(self._anchor_handle)

        try:
            await self._run(close_tab, page)
        except BrowserError as e:
            logger.error(f"Failed to close page: {e}")
        except WebDriverException as e:
            logger.error(f"Failed to close page: {e}")
        finally:
            page.closed = True

    @asynccontextmanager
    async def acquire_page(self) -> AsyncIterator[BrowserPage]:
        page = await self.create_page()
        try:
            yield page
        finally:
            await self.close_page(page)

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            driver, self._driver = self._driver, None
            if driver is None:
                return
            loop = asyncio.get_running_loop()
            try:
                await loop.run_in_executor(None, driver.quit)
                logger.debug("Browser closed successfully")
            except WebDriverException as e:
                logger.error(f"Failed to close browser: {e}")
