"""
Scraper Manager - orchestrates one scrape per request.

Composes the browser session, page-state classifier and timeline
scraper into a single operation that always returns a ScrapeResult,
never an exception.
"""

import asyncio
import time
import uuid
from collections import Counter
from typing import Dict, List, Optional
from datetime import datetime, timezone
import logging

from .base import Colors, ErrorCode, PostRecord, ScrapeResult, SessionStats
from .classifier import classify_page
from .crawlers.session import BrowserSession
from .sites.x import XTimelineScraper, filter_fresh
from .utils.extractors import classify_error
from .utils.normalizers import normalize_target

logger = logging.getLogger(__name__)


class ScraperManager:
    """
    Runs scrapes against a shared browser session.

    Usage:
        manager = ScraperManager(BrowserSession())

        result = await manager.scrape('nasa', max_records=5)
        stats = manager.stats()
        await manager.restart()

    Scrapes are serialized: they all drive the same page, and
    interleaved navigations would corrupt each other's results.
    """

    def __init__(
        self,
        session: BrowserSession,
        scraper: Optional[XTimelineScraper] = None,
        freshness_days: float = 7,
        default_max_records: int = 4,
        max_records_limit: int = 20,
    ):
        """
        Initialize the scraper manager.

        Args:
            session: Browser session that provides the page
            scraper: Timeline scraper (defaults to standard timings)
            freshness_days: Maximum record age in days
            default_max_records: Count used when none (or 0) is requested
            max_records_limit: Upper bound for requested record counts
        """
        self.session = session
        self.scraper = scraper or XTimelineScraper()
        self.freshness_days = freshness_days
        self.default_max_records = default_max_records
        self.max_records_limit = max_records_limit
        self._lock = asyncio.Lock()
        self._totals: Counter = Counter()
        self._failures: Counter = Counter()
        self._last_result_at: Optional[datetime] = None

    def _clamp(self, max_records: Optional[int]) -> int:
        """Missing, zero or non-numeric counts use the default; others are bounded to 1..limit."""
        try:
            value = int(max_records or 0)
        except (TypeError, ValueError):
            value = 0
        if value == 0:
            value = self.default_max_records
        return min(max(value, 1), self.max_records_limit)

    async def scrape(self, target: str, max_records: Optional[int] = None) -> ScrapeResult:
        """
        Scrape recent posts for a handle or profile URL.

        Args:
            target: Bare handle, @handle or profile URL
            max_records: Maximum number of records to return (None for the default)

        Returns:
            ScrapeResult (success or structured failure)
        """
        request_id = uuid.uuid4().hex[:8]
        started = time.monotonic()
        handle = normalize_target(target)

        if not handle:
            result = self._fail(target or '', request_id, started, {},
                                "Invalid username", ErrorCode.NOT_FOUND)
        else:
            async with self._lock:
                result = await self._run(handle, self._clamp(max_records), request_id, started)

        self._record(result)
        return result

    async def _run(self, handle: str, max_records: int, request_id: str, started: float) -> ScrapeResult:
        timings: Dict[str, int] = {}
        tag = f"[{request_id}]"
        logger.info(f"{tag} Scraping @{handle} (max {max_records})")

        try:
            phase = time.monotonic()
            page = await self.session.acquire()
            timings['acquire_ms'] = _elapsed_ms(phase)

            phase = time.monotonic()
            url, html = await self.scraper.navigate(page, handle)
            timings['navigation_ms'] = _elapsed_ms(phase)

            outcome = classify_page(url, html, handle)
            if not outcome.valid:
                return self._fail(handle, request_id, started, timings, outcome.reason, outcome.code)

            if not await self.scraper.wait_for_content(page):
                return self._fail(handle, request_id, started, timings,
                                  "No tweets found (no content)", ErrorCode.NO_TWEETS_FOUND)

            phase = time.monotonic()
            await self.scraper.load_more(page)
            timings['load_more_ms'] = _elapsed_ms(phase)

            phase = time.monotonic()
            now = datetime.now(timezone.utc)
            records = await self.scraper.extract(page, handle, max_records, now=now)
            fresh = filter_fresh(records, self.freshness_days, max_records, now=now)
            timings['extraction_ms'] = _elapsed_ms(phase)

        except Exception as e:
            code = classify_error(e)
            logger.error(f"{tag} {Colors.red('Error')}: {e or type(e).__name__} ({code.value})")
            return self._fail(handle, request_id, started, timings,
                              str(e) or type(e).__name__, code)

        return self._succeed(handle, request_id, started, timings, records, fresh)

    def _succeed(self, handle: str, request_id: str, started: float, timings: Dict[str, int],
                 records: List[PostRecord], fresh: List[PostRecord]) -> ScrapeResult:
        result = ScrapeResult(
            success=True,
            username=handle,
            tweets=fresh,
            total_found=len(records),
            filtered_out=len(records) - len(fresh),
            scraped_at=datetime.now(timezone.utc),
            time_ms=_elapsed_ms(started),
            timings=timings,
            request_id=request_id,
            session_id=self.session.session_id,
        )
        logger.info(f"[{request_id}] {Colors.green('Found')} {result.count} recent tweets for @{handle} "
                    f"({result.filtered_out} stale) in {result.time_ms}ms")
        return result

    def _fail(self, handle: str, request_id: str, started: float, timings: Dict[str, int],
              error: str, code: ErrorCode) -> ScrapeResult:
        result = ScrapeResult(
            success=False,
            username=handle,
            scraped_at=datetime.now(timezone.utc),
            time_ms=_elapsed_ms(started),
            timings=timings,
            request_id=request_id,
            session_id=self.session.session_id,
            error=error,
            error_code=code,
        )
        logger.warning(f"[{request_id}] {Colors.red('Failed')} @{handle}: {code.value} - {error}")
        return result

    def _record(self, result: ScrapeResult):
        self._totals['scrapes'] += 1
        if result.success:
            self._totals['successful'] += 1
        else:
            self._totals['failed'] += 1
            self._failures[result.error_code.value] += 1
        self._last_result_at = result.scraped_at

    async def restart(self) -> SessionStats:
        """Restart the browser session and return fresh stats."""
        await self.session.restart()
        return self.session.stats()

    def stats(self) -> SessionStats:
        return self.session.stats()

    def summary(self) -> Dict:
        """
        Get summary of scrape outcomes since startup.

        Returns:
            Summary dictionary with totals
        """
        return {
            'total_scrapes': self._totals['scrapes'],
            'successful': self._totals['successful'],
            'failed': self._totals['failed'],
            'failures_by_code': dict(self._failures),
            'last_result_at': self._last_result_at.isoformat() if self._last_result_at else None,
        }


def _elapsed_ms(since: float) -> int:
    return int((time.monotonic() - since) * 1000)
