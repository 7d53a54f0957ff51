"""
Playwright-based recent-posts scraper.

This package provides:
- A shared, self-healing browser session (BrowserSession)
- Page-state classification for profile pages (classify_page)
- Timeline extraction with freshness filtering (XTimelineScraper)
- Per-request orchestration (ScraperManager)
"""

from .base import ErrorCode, PostRecord, ScrapeResult, SessionStats, ValidationOutcome, ScraperError, SessionError
from .classifier import classify_page
from .crawlers.session import BrowserSession
from .sites.x import XTimelineScraper
from .manager import ScraperManager

__all__ = [
    'ErrorCode',
    'PostRecord',
    'ScrapeResult',
    'SessionStats',
    'ValidationOutcome',
    'ScraperError',
    'SessionError',
    'classify_page',
    'BrowserSession',
    'XTimelineScraper',
    'ScraperManager',
]
