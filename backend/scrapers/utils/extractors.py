"""
Data extraction utilities for scrapers.

These functions pull structured values out of raw strings produced by
the page: relative time labels, status links and error descriptions.
"""

import re
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import ErrorCode, SessionError


RELATIVE_TIME_RE = re.compile(
    r'^\s*(\d+)\s*(s|sec|secs|second|seconds|m|min|mins|minute|minutes|h|hr|hrs|hour|hours|d|day|days)(?:\s+ago)?\s*$',
    re.IGNORECASE,
)

STATUS_LINK_RE = re.compile(r'/([A-Za-z0-9_]{1,15})/status/(\d+)')

# Checked in order; the first group whose keywords appear in the message wins
ERROR_KEYWORDS = (
    (ErrorCode.TIMEOUT, ('timeout', 'timed out')),
    (ErrorCode.CONNECTION_ERROR, (
        'target closed', 'target page, context or browser has been closed',
        'browser has been closed', 'connection closed', 'disconnected',
        'connection refused', 'econnrefused', 'econnreset', 'session closed',
        'could not launch', 'failed to launch',
    )),
    (ErrorCode.NAVIGATION_ERROR, (
        'net::', 'navigation', 'navigating', 'err_name_not_resolved',
        'err_aborted', 'page.goto',
    )),
)


def parse_relative_time(label: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Convert a relative time label into an absolute UTC instant.

    Examples:
        "45s" -> now - 45 seconds
        "2h" -> now - 2 hours
        "3 days ago" -> now - 3 days
        "now" -> now

    Args:
        label: Relative time text from the page
        now: Reference instant (defaults to current UTC time)

    Returns:
        datetime or None if the label is not a relative time
    """
    if not label:
        return None
    now = now or datetime.now(timezone.utc)

    text = label.strip()
    if text.lower() in ('now', 'just now'):
        return now

    match = RELATIVE_TIME_RE.match(text)
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2).lower()[0]
    if unit == 's':
        delta = timedelta(seconds=amount)
    elif unit == 'm':
        delta = timedelta(minutes=amount)
    elif unit == 'h':
        delta = timedelta(hours=amount)
    else:
        delta = timedelta(days=amount)
    return now - delta


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 datetime attribute into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def extract_status(href: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract author handle and post id from a status link.

    Examples:
        https://x.com/NASA/status/1790000000000000000 -> ("NASA", "1790000000000000000")
        /NASA/status/17/photo/1 -> ("NASA", "17")
    """
    if not href:
        return None, None
    match = STATUS_LINK_RE.search(href)
    if not match:
        return None, None
    return match.group(1), match.group(2)


def classify_error(error: BaseException) -> ErrorCode:
    """Map an unexpected failure to a coarse error code from its description."""
    if isinstance(error, (PlaywrightTimeoutError, asyncio.TimeoutError, TimeoutError)):
        return ErrorCode.TIMEOUT

    message = str(error).lower()
    for code, keywords in ERROR_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return code
    if isinstance(error, SessionError):
        return ErrorCode.CONNECTION_ERROR
    return ErrorCode.UNKNOWN_ERROR
