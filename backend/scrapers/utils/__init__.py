"""Shared utilities for scrapers."""

from .normalizers import (
    normalize_count,
    normalize_target,
    normalize_cookie,
    normalize_cookies,
)
from .extractors import (
    parse_relative_time,
    parse_timestamp,
    extract_status,
    classify_error,
)

__all__ = [
    'normalize_count',
    'normalize_target',
    'normalize_cookie',
    'normalize_cookies',
    'parse_relative_time',
    'parse_timestamp',
    'extract_status',
    'classify_error',
]
