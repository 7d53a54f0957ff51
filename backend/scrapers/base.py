"""
Base data structures for the recent-posts scraper.

This module defines the records, result shapes, error codes and
exceptions shared by the session, classifier, extraction and
orchestration layers.
"""

from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    # Colors
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


class ErrorCode(str, Enum):
    """Error codes surfaced on a failed ScrapeResult."""
    AUTH_REQUIRED = "AUTH_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"
    SUSPENDED = "SUSPENDED"
    NOT_FOUND = "NOT_FOUND"
    PROTECTED = "PROTECTED"
    PROFILE_LOAD_FAILED = "PROFILE_LOAD_FAILED"
    NO_TWEETS_FOUND = "NO_TWEETS_FOUND"
    TIMEOUT = "TIMEOUT"
    NAVIGATION_ERROR = "NAVIGATION_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ScraperError(Exception):
    """Base exception for scraper failures."""
    pass


class SessionError(ScraperError):
    """Raised when the browser session cannot provide a usable page."""
    pass


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class PostRecord:
    """One post extracted from a profile timeline."""
    id: str                             # Platform-assigned numeric id
    username: str                       # Author handle
    display_name: str
    text: str
    link: str
    timestamp: datetime                 # Absolute, timezone-aware
    scraped_at: datetime
    position: int                       # 0-based order among processed candidates
    relative_time: str = ''
    likes: int = 0
    retweets: int = 0
    replies: int = 0
    views: int = 0
    has_media: bool = False

    def __post_init__(self):
        if not self.id or not self.id.isdigit():
            raise ValueError(f"Post id must be numeric, got {self.id!r}")
        for name in ('likes', 'retweets', 'replies', 'views'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name,
            'text': self.text,
            'link': self.link,
            'timestamp': _iso(self.timestamp),
            'relative_time': self.relative_time,
            'likes': self.likes,
            'retweets': self.retweets,
            'replies': self.replies,
            'views': self.views,
            'has_media': self.has_media,
            'scraped_at': _iso(self.scraped_at),
            'position': self.position,
        }


@dataclass(frozen=True)
class ValidationOutcome:
    """Classifier verdict on whether extraction may proceed."""
    valid: bool
    reason: Optional[str] = None
    code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls) -> 'ValidationOutcome':
        return cls(valid=True)

    @classmethod
    def invalid(cls, reason: str, code: ErrorCode) -> 'ValidationOutcome':
        return cls(valid=False, reason=reason, code=code)


@dataclass(frozen=True)
class SessionStats:
    """Read-only snapshot of the browser session."""
    session_id: str
    connected: bool
    page_open: bool
    cookies_loaded: bool
    last_health_check: Optional[datetime] = None
    launches: int = 0
    initializing: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'connected': self.connected,
            'page_open': self.page_open,
            'cookies_loaded': self.cookies_loaded,
            'last_health_check': _iso(self.last_health_check),
            'launches': self.launches,
            'initializing': self.initializing,
        }


@dataclass(frozen=True)
class ScrapeResult:
    """Result of one scrape operation."""
    success: bool
    username: str
    scraped_at: datetime
    time_ms: int
    request_id: str
    tweets: List[PostRecord] = field(default_factory=list)
    total_found: int = 0
    filtered_out: int = 0
    timings: Dict[str, int] = field(default_factory=dict)
    session_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @property
    def count(self) -> int:
        return len(self.tweets)

    def to_dict(self) -> Dict:
        data = {
            'success': self.success,
            'username': self.username,
            'count': self.count,
            'total_found': self.total_found,
            'filtered_out': self.filtered_out,
            'tweets': [t.to_dict() for t in self.tweets],
            'scraped_at': _iso(self.scraped_at),
            'time_ms': self.time_ms,
            'timings': dict(self.timings),
            'request_id': self.request_id,
            'session_id': self.session_id,
        }
        if not self.success:
            data['error'] = self.error
            data['error_code'] = self.error_code.value if self.error_code else None
        return data
