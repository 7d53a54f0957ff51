"""
X (formerly Twitter) profile timeline scraper.

Site structure:
- Profile page: https://x.com/<handle>
- Timeline items: `article[data-testid="tweet"]` inside `cellInnerDiv` cells
- Item text: `[data-testid="tweetText"]`, permalink `a[href*="/status/"]`,
  timestamp `<time datetime=...>`, counters on `[data-testid="like"]` etc.

The timeline is virtualized, so items are loaded by scrolling and read
with a single in-page script that receives the selector config as its
argument.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional, Tuple

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..base import PostRecord
from ..config import BASE_URL, TIMELINE_SELECTORS, ExtractionSelectors
from ..utils.extractors import parse_relative_time, parse_timestamp, extract_status
from ..utils.normalizers import normalize_count

logger = logging.getLogger(__name__)


# Runs inside the page. Receives {cfg, maxRecords, target}; returns raw candidates.
EXTRACT_SCRIPT = r"""
({ cfg, maxRecords, target }) => {
    const RELATIVE = /^\s*(\d+)\s*(s|sec|secs|second|seconds|m|min|mins|minute|minutes|h|hr|hrs|hour|hours|d|day|days)(\s+ago)?\s*$/i;
    const HANDLE = /^@[A-Za-z0-9_]{1,15}$/;

    const first = (root, selectors) => {
        for (const sel of selectors) {
            const el = root.querySelector(sel);
            if (el) return el;
        }
        return null;
    };

    let candidates = [];
    for (const sel of cfg.containers) {
        candidates = Array.from(document.querySelectorAll(sel));
        if (candidates.length) break;
    }

    const isPromoted = (item) => {
        if (first(item, cfg.promoted)) return true;
        return Array.from(item.querySelectorAll('span'))
            .some(span => cfg.promotedText.includes(span.textContent.trim()));
    };

    const isPinned = (item) => {
        for (const sel of cfg.pinned) {
            for (const el of item.querySelectorAll(sel)) {
                const label = ((el.textContent || '') + ' ' + (el.getAttribute('aria-label') || '')).toLowerCase();
                if (cfg.pinnedText.some(word => label.includes(word))) return true;
            }
        }
        return false;
    };

    const bodyText = (item) => {
        for (const sel of cfg.text) {
            for (const el of item.querySelectorAll(sel)) {
                const text = (el.innerText || el.textContent || '').trim();
                if (text.length <= cfg.minTextLength) continue;
                if (HANDLE.test(text) || RELATIVE.test(text)) continue;
                return text;
            }
        }
        return '';
    };

    const metric = (item, selectors) => {
        const el = first(item, selectors);
        if (!el) return '';
        const text = (el.textContent || '').trim();
        return text || el.getAttribute('aria-label') || '';
    };

    const results = [];
    for (let i = 0; i < candidates.length && results.length < maxRecords; i++) {
        const item = candidates[i];
        try {
            if (isPromoted(item)) continue;
            if (i < cfg.pinnedWindow && isPinned(item)) continue;

            const text = bodyText(item);
            const hasMedia = !!first(item, cfg.media);
            if (!text && !hasMedia) continue;

            const link = item.querySelector(cfg.statusLink);
            if (!link) continue;
            const href = link.href || link.getAttribute('href') || '';
            if (!/\/status\/\d+/.test(href)) continue;

            const time = item.querySelector(cfg.time);
            const datetime = time ? (time.getAttribute('datetime') || '') : '';
            const relative = time ? (time.textContent || '').trim() : '';
            if (!datetime && !RELATIVE.test(relative) && !/^(just )?now$/i.test(relative)) continue;

            const nameEl = first(item, cfg.displayName);
            const displayName = nameEl ? nameEl.textContent.trim() : '';

            results.push({
                href: href,
                text: text,
                datetime: datetime,
                relativeTime: relative,
                displayName: displayName || target,
                hasMedia: hasMedia,
                likes: metric(item, cfg.metrics.likes),
                retweets: metric(item, cfg.metrics.retweets),
                replies: metric(item, cfg.metrics.replies),
                views: metric(item, cfg.metrics.views),
                position: i,
            });
        } catch (e) {
            console.log(`Error processing item ${i}: ${e.message}`);
        }
    }
    return results;
}
"""


def build_record(raw: Dict[str, Any], target: str, now: datetime) -> Optional[PostRecord]:
    """
    Turn one raw in-page candidate into a PostRecord.

    Returns None when the candidate has no status id or no usable timestamp.
    """
    author, post_id = extract_status(raw.get('href'))
    if not post_id:
        return None

    timestamp = parse_timestamp(raw.get('datetime')) or parse_relative_time(raw.get('relativeTime'), now)
    if timestamp is None:
        return None

    link = raw.get('href') or ''
    if link.startswith('/'):
        link = BASE_URL + link

    return PostRecord(
        id=post_id,
        username=author or target,
        display_name=raw.get('displayName') or target,
        text=raw.get('text') or '',
        link=link,
        timestamp=timestamp,
        relative_time=raw.get('relativeTime') or '',
        likes=normalize_count(raw.get('likes')),
        retweets=normalize_count(raw.get('retweets')),
        replies=normalize_count(raw.get('replies')),
        views=normalize_count(raw.get('views')),
        has_media=bool(raw.get('hasMedia')),
        scraped_at=now,
        position=int(raw.get('position', 0)),
    )


def build_records(raw_items: List[Dict[str, Any]], target: str,
                  now: Optional[datetime] = None) -> List[PostRecord]:
    """Build records from raw candidates, newest first."""
    now = now or datetime.now(timezone.utc)
    records = []
    for raw in raw_items:
        try:
            record = build_record(raw, target, now)
        except ValueError as e:
            logger.debug(f"Skipping malformed item at position {raw.get('position')}: {e}")
            continue
        if record:
            records.append(record)
    records.sort(key=lambda r: r.timestamp, reverse=True)
    return records


def filter_fresh(records: List[PostRecord], freshness_days: float, max_records: int,
                 now: Optional[datetime] = None) -> List[PostRecord]:
    """Drop records older than the freshness window and cap the count."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=freshness_days)
    fresh = [r for r in records if r.timestamp >= cutoff]
    return fresh[:max(max_records, 0)]


class XTimelineScraper:
    """
    Drives navigation, scroll loading and extraction on a profile page.

    All delays and timeouts are in seconds.
    """

    def __init__(
        self,
        selectors: ExtractionSelectors = TIMELINE_SELECTORS,
        navigation_timeout: float = 30.0,
        network_idle_timeout: float = 10.0,
        content_timeout: float = 15.0,
        settle_delay: float = 3.0,
        scroll_iterations: int = 3,
        scroll_factor: float = 1.5,
        scroll_pause: float = 1.5,
    ):
        self.selectors = selectors
        self.navigation_timeout = navigation_timeout
        self.network_idle_timeout = network_idle_timeout
        self.content_timeout = content_timeout
        self.settle_delay = settle_delay
        self.scroll_iterations = scroll_iterations
        self.scroll_factor = scroll_factor
        self.scroll_pause = scroll_pause

    @staticmethod
    def profile_url(target: str) -> str:
        return f"{BASE_URL}/{target}"

    async def navigate(self, page: Page, target: str) -> Tuple[str, str]:
        """
        Load the profile and let client-side rendering settle.

        Returns:
            Tuple of (final URL, rendered HTML)
        """
        url = self.profile_url(target)
        logger.info(f"Loading: {url}")
        await page.goto(url, wait_until='domcontentloaded', timeout=int(self.navigation_timeout * 1000))

        try:
            await page.wait_for_load_state('networkidle', timeout=int(self.network_idle_timeout * 1000))
        except PlaywrightTimeoutError:
            logger.debug(f"Network did not go idle within {self.network_idle_timeout}s, continuing")

        await asyncio.sleep(self.settle_delay)
        return page.url, await page.content()

    async def wait_for_content(self, page: Page) -> bool:
        """Wait for any timeline item to render. False on timeout."""
        selector = ', '.join(self.selectors.containers)
        try:
            await page.wait_for_selector(selector, timeout=int(self.content_timeout * 1000))
            return True
        except PlaywrightTimeoutError:
            return False

    async def load_more(self, page: Page):
        """Scroll down a few viewports to render more items, then back to the top."""
        for _ in range(self.scroll_iterations):
            await page.evaluate(f"window.scrollBy(0, window.innerHeight * {self.scroll_factor})")
            await asyncio.sleep(self.scroll_pause)
        await page.evaluate("window.scrollTo(0, 0)")
        await asyncio.sleep(self.scroll_pause)

    async def extract(self, page: Page, target: str, max_records: int,
                      now: Optional[datetime] = None) -> List[PostRecord]:
        """Extract up to max_records items from the rendered timeline, newest first."""
        raw_items = await page.evaluate(EXTRACT_SCRIPT, {
            'cfg': self.selectors.to_js(),
            'maxRecords': max_records,
            'target': target,
        })
        logger.debug(f"In-page extraction returned {len(raw_items)} candidates "
                     f"(selectors v{self.selectors.version})")
        return build_records(raw_items or [], target, now)
