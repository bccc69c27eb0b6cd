import pytest
from conftest import FakeDriver

from technuri.services.browser_service import BrowserDisconnectedError, BrowserError, BrowserService


class DriverFactory:
    def __init__(self, html="<html><body>ok</body></html>"):
        self.html = html
        self.drivers = []

    def __call__(self):
        driver = FakeDriver(self.html)
        self.drivers.append(driver)
        return driver


@pytest.mark.asyncio
async def test_browser_is_created_lazily_once():
    factory = DriverFactory()
    service = BrowserService(driver_factory=factory)
    assert not service.is_running
    assert factory.drivers == []

    async with service.acquire_page() as first:
        await first.goto("https://jobs.example.com/a")
    async with service.acquire_page() as second:
        await second.goto("https://jobs.example.com/b")
        assert await second.content() == "<html><body>ok</body></html>"

    assert len(factory.drivers) == 1
    assert service.is_running
    driver = factory.drivers[0]
    assert [url for _, url in driver.visited] == ["https://jobs.example.com/a", "https://jobs.example.com/b"]
    assert first.handle != second.handle


@pytest.mark.asyncio
async def test_acquire_page_closes_tab():
    factory = DriverFactory()
    service = BrowserService(driver_factory=factory)

    async with service.acquire_page() as page:
        assert page.handle in factory.drivers[0].handles

    assert page.closed
    assert factory.drivers[0].handles == ["anchor"]
    assert factory.drivers[0].current_window_handle == "anchor"


@pytest.mark.asyncio
async def test_disconnected_browser_is_recreated():
    factory = DriverFactory()
    service = BrowserService(driver_factory=factory)

    page = await service.create_page()
    factory.drivers[0].alive = False

    with pytest.raises(BrowserDisconnectedError):
        await page.goto("https://jobs.example.com")

    assert factory.drivers[0].quit_calls == 1
    await service.close_page(page)
    assert page.closed

    async with service.acquire_page() as fresh:
        await fresh.goto("https://jobs.example.com")

    assert len(factory.drivers) == 2
    assert factory.drivers[1].visited[0][1] == "https://jobs.example.com"


@pytest.mark.asyncio
async def test_close_quits_exactly_once():
    factory = DriverFactory()
    service = BrowserService(driver_factory=factory)
    async with service.acquire_page() as page:
        await page.scroll_to_bottom()

    await service.close()
    await service.close()

    assert factory.drivers[0].quit_calls == 1
    assert not service.is_running
    with pytest.raises(BrowserError):
        await service.create_page()


@pytest.mark.asyncio
async def test_close_without_browser_is_noop():
    factory = DriverFactory()
    service = BrowserService(driver_factory=factory)
    await service.close()
    assert factory.drivers == []
