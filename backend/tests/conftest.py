"""
Pytest configuration and fixtures for scraper tests.

The fake Playwright objects below mimic the small part of the async API
the session and timeline scraper use, so tests never start a browser.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_manager
from scrapers.base import ErrorCode, PostRecord, ScrapeResult, SessionStats


class FakeCDPSession:
    def __init__(self, context):
        self.context = context

    async def send(self, method, params=None):
        self.context.cdp_calls.append(method)
        if method == "Browser.getVersion":
            if self.context.fail_probe:
                raise Exception("Target closed")
            return {"product": "HeadlessChrome/120.0.0.0"}
        return {}

    async def detach(self):
        pass


class FakePage:
    def __init__(self):
        self.closed = False
        self.init_scripts = []

    def is_closed(self):
        return self.closed

    async def add_init_script(self, script):
        self.init_scripts.append(script)

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self):
        # Persistent contexts open with one blank page
        self.pages = [FakePage()]
        self.cookies = []
        self.handlers = {}
        self.cdp_calls = []
        self.closed = False
        self.fail_probe = False
        self.fail_close = False
        self.new_page_delay = 0.0

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    async def new_page(self):
        if self.new_page_delay:
            await asyncio.sleep(self.new_page_delay)
        page = FakePage()
        self.pages.append(page)
        return page

    async def new_cdp_session(self, page):
        return FakeCDPSession(self)

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    def crash(self):
        """Simulate the browser process exiting."""
        self.closed = True
        for page in self.pages:
            page.closed = True
        for handler in self.handlers.get("close", []):
            handler(self)

    async def close(self):
        if self.fail_close:
            raise Exception("Connection closed while closing")
        if not self.closed:
            self.crash()


class FakeChromium:
    def __init__(self, driver):
        self.driver = driver

    async def launch_persistent_context(self, user_data_dir, **kwargs):
        self.driver.launch_calls.append((user_data_dir, kwargs))
        if self.driver.launch_delay:
            await asyncio.sleep(self.driver.launch_delay)
        if self.driver.fail_launch:
            raise Exception("Executable doesn't exist at /nope/chrome")
        context = FakeContext()
        self.driver.contexts.append(context)
        return context


class FakePlaywright:
    def __init__(self, driver):
        self.driver = driver
        self.chromium = FakeChromium(driver)

    async def stop(self):
        self.driver.stops += 1


class FakeDriver:
    """Stands in for async_playwright: call it, then await start()."""

    def __init__(self, launch_delay=0.0, fail_launch=False):
        self.launch_delay = launch_delay
        self.fail_launch = fail_launch
        self.launch_calls = []
        self.contexts = []
        self.stops = 0

    def __call__(self):
        return self

    async def start(self):
        return FakePlaywright(self)

    @property
    def context(self):
        return self.contexts[-1] if self.contexts else None


@pytest.fixture
def driver():
    return FakeDriver()


def make_record(post_id="1790000000000000001", age=timedelta(hours=1), position=0, now=None):
    now = now or datetime.now(timezone.utc)
    return PostRecord(
        id=post_id,
        username="nasa",
        display_name="NASA",
        text="Liftoff!",
        link=f"https://x.com/nasa/status/{post_id}",
        timestamp=now - age,
        scraped_at=now,
        position=position,
        likes=1200,
    )


class StubManager:
    """Manager double for API tests; returns a preset result."""

    def __init__(self, result=None, restart_error=None):
        self.result = result
        self.restart_error = restart_error
        self.calls = []
        self.restarts = 0

    async def scrape(self, target, max_records=None):
        self.calls.append((target, max_records))
        return self.result

    async def restart(self):
        self.restarts += 1
        if self.restart_error:
            raise self.restart_error
        return self.stats()

    def stats(self):
        return SessionStats(session_id="abc123", connected=True, page_open=True, cookies_loaded=False)

    def summary(self):
        return {"total_scrapes": len(self.calls), "successful": 0, "failed": 0,
                "failures_by_code": {}, "last_result_at": None}


def success_result(records=None):
    records = records if records is not None else [make_record()]
    return ScrapeResult(
        success=True,
        username="nasa",
        tweets=records,
        total_found=len(records),
        scraped_at=datetime.now(timezone.utc),
        time_ms=1234,
        request_id="req12345",
        session_id="abc123",
    )


def failure_result(code, error="failed"):
    return ScrapeResult(
        success=False,
        username="nasa",
        scraped_at=datetime.now(timezone.utc),
        time_ms=50,
        request_id="req12345",
        session_id="abc123",
        error=error,
        error_code=code,
    )


@pytest.fixture
def stub_manager():
    return StubManager(result=success_result())


@pytest.fixture(scope="function")
def client(stub_manager):
    """Create a test client with the manager dependency overridden."""
    app.dependency_overrides[get_manager] = lambda: stub_manager

    # Use TestClient directly without context manager so no browser is launched
    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_failure():
    return failure_result


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def driver_factory():
    return FakeDriver
