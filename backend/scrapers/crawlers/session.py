"""
Browser session manager.

Owns the single Chromium process and the single page shared by every
scrape. Handles lazy launch, concurrent-launch suppression, disconnect
detection, periodic health probing and self-healing restart.
"""

import asyncio
import logging
import shutil
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Optional

from playwright.async_api import async_playwright, BrowserContext, Page

from ..base import SessionError, SessionStats
from ..config import LAUNCH_ARGS, resolve_executable_path
from ..fingerprint import DEFAULT_PROFILE, FingerprintProfile
from ..utils.normalizers import normalize_cookies

logger = logging.getLogger(__name__)

INIT_POLL_INTERVAL = 0.1
CLEANUP_TIMEOUT = 2.0
HEALTH_PROBE_TIMEOUT = 10.0


class BrowserSession:
    """
    One browser process plus one reusable page.

    Usage:
        session = BrowserSession(cookies=settings.twitter_cookies)
        session.start_health_checks()
        page = await session.acquire()
        ...
        await session.shutdown()

    All state changes happen on the event loop, so the only guard needed
    is the `_initializing` flag: while it is set, other callers poll
    instead of launching a second browser.
    """

    def __init__(
        self,
        executable_path: Optional[str] = None,
        cookies: Optional[str] = None,
        headless: bool = True,
        profile: FingerprintProfile = DEFAULT_PROFILE,
        health_check_interval: float = 600.0,
        init_wait_timeout: float = 60.0,
        playwright_factory=None,
    ):
        """
        Initialize the session (nothing is launched until acquire()).

        Args:
            executable_path: Browser binary override
            cookies: Serialized cookie payload (JSON array or object)
            headless: Run browser in headless mode
            profile: Fingerprint applied to the context and each page
            health_check_interval: Seconds between background health probes
            init_wait_timeout: Max seconds a caller waits on another caller's launch
            playwright_factory: Callable returning a Playwright context manager
        """
        self.executable_path = executable_path
        self.cookie_payload = cookies
        self.headless = headless
        self.profile = profile
        self.health_check_interval = health_check_interval
        self.init_wait_timeout = init_wait_timeout
        self._playwright_factory = playwright_factory or async_playwright

        self._initializing = False
        self._health_task: Optional[asyncio.Task] = None
        self.launches = 0
        self.last_health_check: Optional[datetime] = None
        self._reset_state()

    def _reset_state(self):
        """Drop all handles and start a new session id."""
        self.session_id = uuid.uuid4().hex[:12]
        self._playwright = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._user_data_dir: Optional[str] = None
        self._connected = False
        self.cookies_loaded = False

    @property
    def connected(self) -> bool:
        return self._connected and self._context is not None

    def _page_is_open(self) -> bool:
        if self._page is None:
            return False
        try:
            return not self._page.is_closed()
        except Exception:
            return False

    def _ready(self) -> bool:
        return self.connected and self._page_is_open()

    async def _wait_for_init(self):
        """Poll until an in-flight launch finishes."""
        waited = 0.0
        while self._initializing:
            if waited >= self.init_wait_timeout:
                raise SessionError(
                    f"Gave up waiting for browser initialization after {self.init_wait_timeout:.0f}s")
            await asyncio.sleep(INIT_POLL_INTERVAL)
            waited += INIT_POLL_INTERVAL

    async def acquire(self) -> Page:
        """
        Return a ready-to-navigate page, launching the browser if needed.

        Raises:
            SessionError: If the browser cannot be launched or a page cannot be created
        """
        while True:
            if self._ready():
                return self._page
            if not self._initializing:
                break
            await self._wait_for_init()

        self._initializing = True
        try:
            if not self.connected:
                await self._launch()
            if not self._page_is_open():
                self._page = await self._open_page()
            await self._apply_cookies()
            return self._page
        finally:
            self._initializing = False

    async def _launch(self):
        """Launch Chromium with a persistent, per-instance user-data directory."""
        # Stale handles from a browser that went away
        await self._close_resources()

        self._user_data_dir = tempfile.mkdtemp(prefix=f"recent-posts-{self.session_id}-")
        executable = resolve_executable_path(self.executable_path)
        logger.info(f"Launching browser (session {self.session_id}, "
                    f"executable: {executable or 'bundled chromium'})")

        try:
            self._playwright = await self._playwright_factory().start()
            self._context = await self._playwright.chromium.launch_persistent_context(
                self._user_data_dir,
                headless=self.headless,
                executable_path=executable,
                args=list(LAUNCH_ARGS),
                viewport=self.profile.viewport_dict,
                user_agent=self.profile.user_agent,
                locale=self.profile.locale,
                extra_http_headers=dict(self.profile.extra_headers),
                ignore_https_errors=True,
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )
        except Exception as e:
            logger.error(f"Failed to launch browser: {e}")
            await self._close_resources()
            raise SessionError(f"Failed to launch browser: {e}") from e

        context = self._context
        context.on("close", lambda _: self._on_disconnected(context))
        self._connected = True
        self.cookies_loaded = False
        self.launches += 1
        logger.info(f"Browser ready (session {self.session_id}, launch #{self.launches})")

    def _on_disconnected(self, context):
        """Clear state when the browser process goes away underneath us."""
        if context is not self._context:
            return
        logger.warning(f"Browser disconnected (session {self.session_id})")
        self._context = None
        self._page = None
        self._connected = False
        self.cookies_loaded = False

    async def _open_page(self) -> Page:
        """Create (or adopt the launch's blank page) and apply the fingerprint."""
        if self._context is None:
            raise SessionError("Browser context is not available")

        page = next((p for p in self._context.pages if not p.is_closed()), None)
        if page is None:
            try:
                page = await asyncio.wait_for(self._context.new_page(), timeout=10.0)
            except asyncio.TimeoutError:
                raise SessionError("Timeout creating new page - browser may be unresponsive")

        await page.add_init_script(self.profile.init_script())

        try:
            cdp = await self._context.new_cdp_session(page)
            await cdp.send("Network.setCacheDisabled", {"cacheDisabled": True})
        except Exception as e:
            logger.debug(f"Could not disable page cache: {e}")

        return page

    async def _apply_cookies(self):
        """Inject the configured cookies once per browser launch."""
        if self.cookies_loaded or not self.cookie_payload or self._context is None:
            return

        cookies = normalize_cookies(self.cookie_payload)
        if not cookies:
            logger.warning("Cookie payload contained no valid cookies")
            return

        try:
            await self._context.add_cookies(cookies)
        except Exception as e:
            logger.warning(f"Failed to set cookies: {e}")
            return
        self.cookies_loaded = True
        logger.info(f"Loaded {len(cookies)} cookies into session {self.session_id}")

    async def _probe(self):
        """Ask the browser for its version over CDP."""
        if not self.connected:
            raise SessionError("Browser is not connected")

        if not self._page_is_open():
            # Shares the launch guard with acquire() so only one page is ever opened
            await self._wait_for_init()
            if not self._page_is_open():
                self._initializing = True
                try:
                    self._page = await self._open_page()
                finally:
                    self._initializing = False

        cdp = await self._context.new_cdp_session(self._page)
        try:
            version = await cdp.send("Browser.getVersion")
        finally:
            try:
                await cdp.detach()
            except Exception:
                pass
        logger.debug(f"Health check ok: {version.get('product', 'unknown')}")

    async def health_check(self) -> bool:
        """
        Probe the browser and restart it if the probe fails.

        Never raises. Returns False when the browser was gone or a restart
        was needed. A browser that disconnected is relaunched lazily by the
        next acquire().
        """
        if self._initializing:
            return True
        if self._context is None:
            if self.launches:
                logger.warning(f"Health check: no browser running for session {self.session_id}, "
                               f"relaunching on next request")
                return False
            return True

        self.last_health_check = datetime.now(timezone.utc)
        try:
            await asyncio.wait_for(self._probe(), timeout=HEALTH_PROBE_TIMEOUT)
            return True
        except Exception as e:
            logger.warning(f"Health check failed for session {self.session_id}: {e or type(e).__name__}")

        try:
            await self.restart()
        except Exception as e:
            logger.error(f"Restart after failed health check did not succeed: {e}")
        return False

    async def _health_loop(self):
        while True:
            await asyncio.sleep(self.health_check_interval)
            try:
                await self.health_check()
            except Exception as e:
                logger.error(f"Unexpected health check error: {e}")

    def start_health_checks(self):
        """Start the background health-check task on the running loop."""
        if self._health_task and not self._health_task.done():
            return
        self._health_task = asyncio.create_task(self._health_loop())
        logger.info(f"Health checks every {self.health_check_interval:.0f}s")

    async def stop_health_checks(self):
        task, self._health_task = self._health_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def restart(self) -> Page:
        """
        Close everything, start a new session id and initialize again.

        Raises:
            SessionError: If the fresh launch fails
        """
        await self._wait_for_init()

        old_session = self.session_id
        self._initializing = True
        try:
            await self._close_resources()
            self._reset_state()
        finally:
            self._initializing = False

        logger.info(f"Restarting browser session {old_session} -> {self.session_id}")
        return await self.acquire()

    def stats(self) -> SessionStats:
        return SessionStats(
            session_id=self.session_id,
            connected=self.connected,
            page_open=self._page_is_open(),
            cookies_loaded=self.cookies_loaded,
            last_health_check=self.last_health_check,
            launches=self.launches,
            initializing=self._initializing,
        )

    async def _close_resources(self):
        """Clean up browser resources with timeouts to prevent hanging."""
        page, self._page = self._page, None
        context, self._context = self._context, None
        playwright, self._playwright = self._playwright, None
        user_data_dir, self._user_data_dir = self._user_data_dir, None
        self._connected = False

        if page:
            try:
                await asyncio.wait_for(page.close(), timeout=CLEANUP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Page close timed out, forcing cleanup")
            except Exception as e:
                logger.debug(f"Error closing page: {e}")

        if context:
            try:
                await asyncio.wait_for(context.close(), timeout=CLEANUP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Browser close timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if playwright:
            try:
                await asyncio.wait_for(playwright.stop(), timeout=CLEANUP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Playwright stop timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")

        if user_data_dir:
            shutil.rmtree(user_data_dir, ignore_errors=True)

    async def shutdown(self):
        """Stop health checks and close the browser. Safe to call repeatedly."""
        await self.stop_health_checks()
        await self._close_resources()
        self.cookies_loaded = False

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()
