"""Per-site scraper implementations."""

from .x import XTimelineScraper

__all__ = ['XTimelineScraper']
