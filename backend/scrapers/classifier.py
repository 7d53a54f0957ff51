"""
Page-state classifier.

Decides from a loaded page's URL and rendered content whether timeline
extraction should proceed and, if not, why. Categories overlap textually
(a rate-limit banner can sit on a suspended profile, a "not found" string
can live in navigation chrome), so checks run in a fixed order and the
first match wins.
"""

import re
import logging
from typing import Iterable
from urllib.parse import urlparse
from bs4 import BeautifulSoup

from .base import ErrorCode, ValidationOutcome
from .config import PAGE_STATE_PATTERNS, PagePatterns
from .utils.normalizers import normalize_target

logger = logging.getLogger(__name__)


def page_text(html: str) -> str:
    """Visible text of a page, lowercased, with curly apostrophes flattened."""
    if not html:
        return ''
    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    text = soup.get_text(' ', strip=True)
    return text.replace('’', "'").replace('‘', "'").lower()


def _matches(patterns: Iterable[str], text: str) -> bool:
    return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)


def url_matches_target(url: str, target: str) -> bool:
    """True when the first path segment of the URL is the target handle."""
    handle = normalize_target(target) or (target or '').lstrip('@')
    if not handle:
        return False
    segments = [s for s in urlparse(url or '').path.split('/') if s]
    return bool(segments) and segments[0].lower() == handle.lower()


def classify_page(url: str, html: str, target: str,
                  patterns: PagePatterns = PAGE_STATE_PATTERNS) -> ValidationOutcome:
    """
    Classify a navigated profile page.

    Args:
        url: Final URL after navigation (redirects applied)
        html: Rendered page HTML
        target: Handle being scraped
        patterns: Versioned pattern set

    Returns:
        ValidationOutcome.ok() or an invalid outcome carrying the error code
    """
    path = urlparse(url or '').path or '/'
    text = page_text(html)
    handle = normalize_target(target) or (target or '').lstrip('@')
    on_target = url_matches_target(url, handle)

    if _matches(patterns.auth_routes, path):
        return ValidationOutcome.invalid(
            f"Redirected to authentication flow ({path})", ErrorCode.AUTH_REQUIRED)

    if _matches(patterns.rate_limited, text):
        return ValidationOutcome.invalid("Rate limited by the site", ErrorCode.RATE_LIMITED)

    if on_target and _matches(patterns.suspended, text):
        return ValidationOutcome.invalid(f"Account @{handle} is suspended", ErrorCode.SUSPENDED)

    if (on_target or _matches(patterns.not_found_routes, path)) and _matches(patterns.not_found, text):
        return ValidationOutcome.invalid(f"Account @{handle} does not exist", ErrorCode.NOT_FOUND)

    if _matches(patterns.protected, text):
        return ValidationOutcome.invalid(f"Account @{handle} is protected", ErrorCode.PROTECTED)

    if on_target:
        has_marker = any(marker in (html or '') for marker in patterns.profile_markers)
        has_handle = f"@{handle.lower()}" in text
        if not (has_marker or has_handle):
            return ValidationOutcome.invalid(
                f"Profile page for @{handle} did not render", ErrorCode.PROFILE_LOAD_FAILED)

    logger.debug(f"Page for @{handle} passed validation (patterns v{patterns.version})")
    return ValidationOutcome.ok()
