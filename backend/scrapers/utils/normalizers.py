"""
Data normalization utilities for scrapers.

These functions standardize raw page/config values into consistent formats.
"""

import re
import json
import logging
from typing import Optional, List, Dict, Any
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

HANDLE_RE = re.compile(r'^[A-Za-z0-9_]{1,15}$')

COUNT_RE = re.compile(r'(\d[\d,]*(?:\.\d+)?)\s*(?:([KMB])(?![A-Za-z]))?', re.IGNORECASE)

COUNT_MULTIPLIERS = {
    'K': 1_000,
    'M': 1_000_000,
    'B': 1_000_000_000,
}

# Paths under the site root that are never profile handles
RESERVED_PATHS = {'home', 'explore', 'i', 'search', 'settings', 'login', 'notifications', 'messages'}

SAME_SITE_MAP = {
    'strict': 'Strict',
    'lax': 'Lax',
    'none': 'None',
    'no_restriction': 'None',
}


def normalize_count(text: Optional[str]) -> int:
    """
    Parse an engagement counter into an integer.

    Examples:
        1.2K -> 1200
        3M -> 3000000
        12,345 -> 12345
        '' / None / 'Like' -> 0
    """
    if not text:
        return 0

    match = COUNT_RE.search(text.strip())
    if not match:
        return 0

    number = match.group(1).replace(',', '')
    suffix = (match.group(2) or '').upper()
    try:
        value = float(number) * COUNT_MULTIPLIERS.get(suffix, 1)
    except ValueError:
        return 0
    return max(int(round(value)), 0)


def normalize_target(target: Optional[str]) -> Optional[str]:
    """
    Reduce a handle or profile URL to a bare handle.

    Examples:
        elonmusk -> elonmusk
        @elonmusk -> elonmusk
        https://x.com/elonmusk/with_replies -> elonmusk
        twitter.com/NASA -> NASA

    Returns:
        Handle, or None if the input does not contain a valid one
    """
    if not target:
        return None

    value = target.strip()
    if '/' in value or value.startswith(('http://', 'https://')):
        if not value.startswith(('http://', 'https://')):
            value = 'https://' + value
        path = urlparse(value).path.strip('/')
        value = path.split('/')[0] if path else ''

    value = value.lstrip('@')
    if not HANDLE_RE.match(value) or value.lower() in RESERVED_PATHS:
        return None
    return value


def normalize_cookie(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Convert one exported cookie object into a Playwright cookie.

    Returns None when name, value or domain is missing.
    """
    if not isinstance(raw, dict):
        return None

    name = raw.get('name')
    value = raw.get('value')
    domain = raw.get('domain')
    if not name or value is None or value == '' or not domain:
        return None

    cookie = {
        'name': str(name),
        'value': str(value),
        'domain': str(domain),
        'path': raw.get('path') or '/',
    }

    expires = raw.get('expires', raw.get('expirationDate'))
    if isinstance(expires, (int, float)) and expires > 0:
        cookie['expires'] = float(expires)
    if 'httpOnly' in raw:
        cookie['httpOnly'] = bool(raw['httpOnly'])
    if 'secure' in raw:
        cookie['secure'] = bool(raw['secure'])

    same_site = raw.get('sameSite')
    if isinstance(same_site, str) and same_site.lower() in SAME_SITE_MAP:
        cookie['sameSite'] = SAME_SITE_MAP[same_site.lower()]

    return cookie


def normalize_cookies(payload: Optional[str]) -> List[Dict[str, Any]]:
    """
    Parse a serialized cookie payload.

    Accepts a JSON array of cookie objects or a single object, which is
    treated as a one-element array. Entries without name, value or domain
    are dropped. Malformed JSON yields an empty list.
    """
    if not payload or not payload.strip():
        return []

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning(f"Cookie payload is not valid JSON: {e}")
        return []

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        logger.warning(f"Cookie payload must be a JSON array or object, got {type(data).__name__}")
        return []

    cookies = []
    for raw in data:
        cookie = normalize_cookie(raw)
        if cookie:
            cookies.append(cookie)
        else:
            logger.debug(f"Dropping cookie without name/value/domain: {raw!r:.80}")
    return cookies
