"""
Tests for the browser session manager.
"""

import asyncio
import json

import pytest

from scrapers.base import SessionError
from scrapers.crawlers.session import BrowserSession


def make_session(driver, **kwargs):
    kwargs.setdefault("executable_path", "/opt/test/chrome")
    return BrowserSession(playwright_factory=driver, **kwargs)


class TestAcquire:
    """Test lazy launch and page reuse."""

    def test_acquire_launches_once_and_reuses_page(self, driver):
        async def run():
            session = make_session(driver)
            first = await session.acquire()
            second = await session.acquire()
            await session.shutdown()
            return first, second

        first, second = asyncio.run(run())

        assert first is second
        assert len(driver.launch_calls) == 1

    def test_launch_options(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            await session.shutdown()

        asyncio.run(run())

        user_data_dir, kwargs = driver.launch_calls[0]
        assert user_data_dir
        assert kwargs["headless"] is True
        assert kwargs["executable_path"] == "/opt/test/chrome"
        assert kwargs["viewport"] == {"width": 1920, "height": 1080}
        assert "--no-sandbox" in kwargs["args"]
        assert "--disable-gpu" in kwargs["args"]
        assert "Chrome/" in kwargs["user_agent"]
        assert "Accept-Language" in kwargs["extra_http_headers"]

    def test_page_is_fingerprinted(self, driver):
        async def run():
            session = make_session(driver)
            page = await session.acquire()
            await session.shutdown()
            return page

        page = asyncio.run(run())

        assert any("webdriver" in script for script in page.init_scripts)
        assert "Network.setCacheDisabled" in driver.contexts[0].cdp_calls

    def test_concurrent_acquire_launches_once(self, driver_factory):
        driver = driver_factory(launch_delay=0.05)

        async def run():
            session = make_session(driver)
            pages = await asyncio.gather(*(session.acquire() for _ in range(5)))
            await session.shutdown()
            return pages

        pages = asyncio.run(run())

        assert len(driver.launch_calls) == 1
        assert all(page is pages[0] for page in pages)

    def test_closed_page_is_replaced_without_relaunch(self, driver):
        async def run():
            session = make_session(driver)
            first = await session.acquire()
            first.closed = True
            second = await session.acquire()
            await session.shutdown()
            return first, second

        first, second = asyncio.run(run())

        assert first is not second
        assert len(driver.launch_calls) == 1

    def test_disconnect_clears_state_and_relaunches(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            driver.context.crash()
            stats_after_crash = session.stats()
            await session.acquire()
            stats_after_acquire = session.stats()
            await session.shutdown()
            return stats_after_crash, stats_after_acquire

        crashed, recovered = asyncio.run(run())

        assert crashed.connected is False
        assert crashed.page_open is False
        assert recovered.connected is True
        assert len(driver.launch_calls) == 2

    def test_launch_failure_raises_session_error(self, driver_factory):
        driver = driver_factory(fail_launch=True)

        async def run():
            session = make_session(driver)
            with pytest.raises(SessionError):
                await session.acquire()
            return session.stats()

        stats = asyncio.run(run())

        assert stats.connected is False
        assert stats.initializing is False


class TestCookies:
    """Test cookie injection."""

    def test_valid_cookies_applied_once(self, driver):
        payload = json.dumps([
            {"name": "auth_token", "value": "secret", "domain": ".x.com"},
            {"name": "ct0", "value": "", "domain": ".x.com"},
            {"name": "missing_domain", "value": "1"},
        ])

        async def run():
            session = make_session(driver, cookies=payload)
            await session.acquire()
            await session.acquire()
            stats = session.stats()
            await session.shutdown()
            return stats

        stats = asyncio.run(run())

        assert stats.cookies_loaded is True
        assert [c["name"] for c in driver.context.cookies] == ["auth_token"]

    def test_single_cookie_object(self, driver):
        payload = json.dumps({"name": "auth_token", "value": "secret", "domain": ".x.com"})

        async def run():
            session = make_session(driver, cookies=payload)
            await session.acquire()
            return session.stats()

        assert asyncio.run(run()).cookies_loaded is True
        assert len(driver.context.cookies) == 1

    def test_no_valid_cookies(self, driver):
        payload = json.dumps([{"name": "orphan"}])

        async def run():
            session = make_session(driver, cookies=payload)
            await session.acquire()
            return session.stats()

        assert asyncio.run(run()).cookies_loaded is False
        assert driver.context.cookies == []


class TestRestartAndHealth:
    """Test restart, health checks and shutdown."""

    def test_restart_creates_fresh_session(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            old_id = session.session_id
            await session.restart()
            page = await session.acquire()
            stats = session.stats()
            await session.shutdown()
            return old_id, stats, page

        old_id, stats, page = asyncio.run(run())

        assert stats.session_id != old_id
        assert stats.connected is True
        assert page is not None
        assert len(driver.launch_calls) == 2
        assert driver.contexts[0].closed is True

    def test_restart_before_any_launch(self, driver):
        async def run():
            session = make_session(driver)
            await session.restart()
            return session.stats()

        assert asyncio.run(run()).connected is True

    def test_restart_swallows_close_errors(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            driver.context.fail_close = True
            await session.restart()
            return session.stats()

        assert asyncio.run(run()).connected is True
        assert len(driver.launch_calls) == 2

    def test_health_check_ok(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            healthy = await session.health_check()
            return healthy, session.stats()

        healthy, stats = asyncio.run(run())

        assert healthy is True
        assert stats.last_health_check is not None
        assert "Browser.getVersion" in driver.context.cdp_calls
        assert len(driver.launch_calls) == 1

    def test_health_check_failure_restarts(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            old_id = session.session_id
            driver.context.fail_probe = True
            healthy = await session.health_check()
            return healthy, old_id, session.stats()

        healthy, old_id, stats = asyncio.run(run())

        assert healthy is False
        assert stats.session_id != old_id
        assert stats.connected is True
        assert len(driver.launch_calls) == 2

    def test_health_check_contains_restart_failure(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            driver.context.fail_probe = True
            driver.fail_launch = True
            return await session.health_check()

        assert asyncio.run(run()) is False

    @pytest.mark.parametrize("health_first", [True, False])
    def test_health_check_and_acquire_share_one_page(self, driver, health_first):
        async def run():
            session = make_session(driver)
            page = await session.acquire()
            page.closed = True
            driver.context.new_page_delay = 0.05
            calls = [session.health_check(), session.acquire()]
            if not health_first:
                calls.reverse()
            results = await asyncio.gather(*calls)
            return session, results

        session, results = asyncio.run(run())

        open_pages = [p for p in driver.context.pages if not p.closed]
        assert len(open_pages) == 1
        assert open_pages[0] is session._page
        assert open_pages[0] in results
        assert len(driver.launch_calls) == 1

    def test_health_check_after_disconnect_reports_unhealthy(self, driver):
        async def run():
            session = make_session(driver)
            await session.acquire()
            driver.context.crash()
            return await session.health_check()

        assert asyncio.run(run()) is False
        assert len(driver.launch_calls) == 1

    def test_health_check_without_browser_is_noop(self, driver):
        async def run():
            session = make_session(driver)
            return await session.health_check()

        assert asyncio.run(run()) is True
        assert driver.launch_calls == []

    def test_health_loop_runs_periodically(self, driver):
        async def run():
            session = make_session(driver, health_check_interval=0.01)
            await session.acquire()
            session.start_health_checks()
            await asyncio.sleep(0.05)
            await session.shutdown()
            return session.stats()

        stats = asyncio.run(run())

        assert stats.last_health_check is not None

    def test_shutdown_is_idempotent(self, driver):
        async def run():
            never_launched = make_session(driver)
            await never_launched.shutdown()
            await never_launched.shutdown()

            session = make_session(driver)
            await session.acquire()
            await session.shutdown()
            await session.shutdown()
            return session.stats()

        stats = asyncio.run(run())

        assert stats.connected is False
        assert stats.page_open is False
        assert driver.stops == 1
