"""
Scraper configuration data.

DOM selectors and page-state phrase patterns change whenever the site
ships a new frontend, so they live here as versioned data instead of
inside the classifier or extraction code. Bump the version when editing
a set so log lines show which revision produced a result.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple


BASE_URL = 'https://x.com'


# ============================================================
# BROWSER
# ============================================================

LAUNCH_ARGS = (
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-gpu',
    '--disable-blink-features=AutomationControlled',
    '--window-size=1920,1080',
)

# Checked in order when no executable path is configured
CHROME_EXECUTABLE_CANDIDATES = (
    '/usr/bin/google-chrome-stable',
    '/usr/bin/google-chrome',
    '/usr/bin/chromium',
    '/usr/bin/chromium-browser',
)


def resolve_executable_path(configured: Optional[str] = None, candidates=CHROME_EXECUTABLE_CANDIDATES) -> Optional[str]:
    """
    Pick the browser binary to launch.

    Args:
        configured: Explicit override, always wins when set
        candidates: Well-known install locations, first existing path wins

    Returns:
        Executable path, or None to use Playwright's bundled Chromium
    """
    if configured:
        return configured
    for path in candidates:
        if os.path.exists(path):
            return path
    return None


# ============================================================
# PAGE STATE PATTERNS
# ============================================================

@dataclass(frozen=True)
class PagePatterns:
    """Ordered phrase/route patterns used by the page-state classifier."""
    version: str
    auth_routes: Tuple[str, ...]
    not_found_routes: Tuple[str, ...]
    rate_limited: Tuple[str, ...]
    suspended: Tuple[str, ...]
    not_found: Tuple[str, ...]
    protected: Tuple[str, ...]
    profile_markers: Tuple[str, ...]


PAGE_STATE_PATTERNS = PagePatterns(
    version='2024.1',
    # Regexes matched against the URL path
    auth_routes=(
        r'/login\b',
        r'/i/flow/login',
        r'/i/flow/signup',
        r'/signup\b',
        r'/account/access',
    ),
    not_found_routes=(
        r'/404\b',
        r'/i/notfound',
        r'/not[-_]?found',
    ),
    # Regexes matched against visible page text, case-insensitive
    rate_limited=(
        r'rate limit exceeded',
        r'limit exceeded',
        r'rate[- ]limited',
        r'too many requests',
        r'temporarily restricted',
        r'try again later',
    ),
    suspended=(
        r'account suspended',
        r'this account has been suspended',
        r'account is suspended',
        r'suspends accounts',
    ),
    not_found=(
        r"this account doesn't exist",
        r"this page doesn't exist",
        r'user not found',
        r'page not found',
        r"hmm\.\.\.this page doesn't exist",
    ),
    protected=(
        r'tweets are protected',
        r'posts are protected',
        r'this account is private',
        r'only approved followers can see',
    ),
    # Substrings matched against raw HTML; any one present means the profile rendered
    profile_markers=(
        'data-testid="UserName"',
        'data-testid="UserProfileHeader_Items"',
        'data-testid="UserDescription"',
        'data-testid="primaryColumn"',
    ),
)


# ============================================================
# EXTRACTION SELECTORS
# ============================================================

@dataclass(frozen=True)
class ExtractionSelectors:
    """Ordered selector fallbacks passed into the in-page extraction script."""
    version: str
    containers: Tuple[str, ...]
    promoted: Tuple[str, ...]
    promoted_text: Tuple[str, ...]
    pinned: Tuple[str, ...]
    pinned_text: Tuple[str, ...]
    text: Tuple[str, ...]
    media: Tuple[str, ...]
    status_link: str
    time: str
    display_name: Tuple[str, ...]
    likes: Tuple[str, ...]
    retweets: Tuple[str, ...]
    replies: Tuple[str, ...]
    views: Tuple[str, ...]
    pinned_window: int = 3
    # Body text must be longer than this many characters
    min_text_length: int = 1

    def to_js(self) -> dict:
        """Plain dict handed to page.evaluate as the script argument."""
        return {
            'version': self.version,
            'containers': list(self.containers),
            'promoted': list(self.promoted),
            'promotedText': list(self.promoted_text),
            'pinned': list(self.pinned),
            'pinnedText': list(self.pinned_text),
            'text': list(self.text),
            'media': list(self.media),
            'statusLink': self.status_link,
            'time': self.time,
            'displayName': list(self.display_name),
            'metrics': {
                'likes': list(self.likes),
                'retweets': list(self.retweets),
                'replies': list(self.replies),
                'views': list(self.views),
            },
            'pinnedWindow': self.pinned_window,
            'minTextLength': self.min_text_length,
        }


TIMELINE_SELECTORS = ExtractionSelectors(
    version='2024.1',
    containers=(
        'article[data-testid="tweet"]',
        'div[data-testid="cellInnerDiv"] article',
        'article[role="article"]',
    ),
    promoted=(
        '[data-testid="placementTracking"]',
        '[data-testid="promotedIndicator"]',
    ),
    promoted_text=('Promoted', 'Ad'),
    pinned=(
        '[data-testid="socialContext"]',
        '[data-testid="pin"]',
        'svg[aria-label="Pinned"]',
    ),
    pinned_text=('pinned',),
    text=(
        '[data-testid="tweetText"]',
        'div[lang]',
        'div[dir="auto"]',
    ),
    media=(
        'img[src*="media"]',
        '[data-testid="tweetPhoto"]',
        'video',
        '[data-testid="videoPlayer"]',
    ),
    status_link='a[href*="/status/"]',
    time='time',
    display_name=(
        '[data-testid="User-Name"] a span span',
        '[data-testid="User-Name"] span',
        'a[role="link"] span',
    ),
    likes=('[data-testid="like"]', '[data-testid="unlike"]'),
    retweets=('[data-testid="retweet"]', '[data-testid="unretweet"]'),
    replies=('[data-testid="reply"]',),
    views=('a[href$="/analytics"]', 'a[aria-label*="views" i]'),
)
