"""
Browser fingerprint profile.

Static description of the headers, user agent and navigator properties
presented to the target site to look less like an automated browser.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Tuple


DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


def _default_headers() -> Dict[str, str]:
    return {
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7',
        'Accept-Language': 'en-US,en;q=0.9',
        'Accept-Encoding': 'gzip, deflate, br',
        'Cache-Control': 'max-age=0',
        'Upgrade-Insecure-Requests': '1',
        'Sec-Fetch-Dest': 'document',
        'Sec-Fetch-Mode': 'navigate',
        'Sec-Fetch-Site': 'none',
        'Sec-Fetch-User': '?1',
        'sec-ch-ua': '"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        'sec-ch-ua-mobile': '?0',
        'sec-ch-ua-platform': '"Windows"',
    }


@dataclass(frozen=True)
class FingerprintProfile:
    """Headers and navigator overrides applied to every page."""
    user_agent: str = DEFAULT_USER_AGENT
    viewport: Tuple[int, int] = (1920, 1080)
    locale: str = 'en-US'
    languages: Tuple[str, ...] = ('en-US', 'en')
    plugin_count: int = 5
    extra_headers: Dict[str, str] = field(default_factory=_default_headers)

    @property
    def viewport_dict(self) -> Dict[str, int]:
        width, height = self.viewport
        return {'width': width, 'height': height}

    def init_script(self) -> str:
        """JavaScript run before any page script on every new document."""
        return """
            Object.defineProperty(navigator, 'webdriver', {
                get: () => undefined
            });

            // Override plugins
            Object.defineProperty(navigator, 'plugins', {
                get: () => Array.from({ length: %(plugins)d }, (_, i) => i + 1)
            });

            // Override languages
            Object.defineProperty(navigator, 'languages', {
                get: () => %(languages)s
            });

            try {
                window.localStorage.clear();
                window.sessionStorage.clear();
            } catch (e) {}
        """ % {
            'plugins': max(self.plugin_count, 1),
            'languages': json.dumps(list(self.languages)),
        }


DEFAULT_PROFILE = FingerprintProfile()
