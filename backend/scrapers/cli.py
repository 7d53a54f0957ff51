#!/usr/bin/env python3
"""
Manual runner for the recent-posts scraper.

Usage:
    cd backend
    python -m scrapers.cli <username> [--max N]

Examples:
    python -m scrapers.cli nasa               # Scrape up to 4 recent posts
    python -m scrapers.cli nasa --max 10      # Scrape up to 10
    python -m scrapers.cli nasa --classify    # Only load and classify the page
    python -m scrapers.cli --health           # Launch, probe and report session stats
"""

import asyncio
import argparse
import logging
import json

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from scrapers.classifier import classify_page
from scrapers.crawlers.session import BrowserSession
from scrapers.manager import ScraperManager
from scrapers.sites.x import XTimelineScraper
from scrapers.utils.normalizers import normalize_target


def build_session(args) -> BrowserSession:
    cookies = None
    if args.cookies:
        with open(args.cookies, encoding='utf-8') as f:
            cookies = f.read()
    return BrowserSession(
        executable_path=args.executable,
        cookies=cookies,
        headless=not args.headed,
    )


async def run_classify(args):
    """Load the profile and print the page-state verdict."""
    handle = normalize_target(args.username)
    if not handle:
        print(f"Invalid username: {args.username}")
        return
    print(f"\n{'='*60}")
    print(f"Classifying profile page for: @{handle}")
    print(f"{'='*60}\n")

    session = build_session(args)
    try:
        page = await session.acquire()
        url, html = await XTimelineScraper().navigate(page, handle)
        outcome = classify_page(url, html, handle)
        print(f"Final URL: {url}")
        print(f"Valid: {outcome.valid}")
        if not outcome.valid:
            print(f"Code: {outcome.code.value}")
            print(f"Reason: {outcome.reason}")
    finally:
        await session.shutdown()


async def run_scrape(args):
    """Run one full scrape and print the result."""
    print(f"\n{'='*60}")
    print(f"Scraping recent posts for: {args.username} (max {args.max or 'default'})")
    print(f"{'='*60}\n")

    session = build_session(args)
    manager = ScraperManager(session, freshness_days=args.days)
    try:
        result = await manager.scrape(args.username, args.max)
    finally:
        await session.shutdown()

    print(json.dumps(result.to_dict(), indent=2, default=str))
    if result.success:
        print(f"\n✓ {result.count} posts in {result.time_ms}ms")
    else:
        print(f"\n✗ {result.error_code.value}: {result.error}")


async def run_health(args):
    """Launch the browser, run one health check and print stats."""
    session = build_session(args)
    try:
        await session.acquire()
        healthy = await session.health_check()
        print(f"Healthy: {healthy}")
        print(json.dumps(session.stats().to_dict(), indent=2))
    finally:
        await session.shutdown()


async def main():
    parser = argparse.ArgumentParser(description='Scrape recent posts from a profile')
    parser.add_argument('username', nargs='?', help='Handle or profile URL')
    parser.add_argument('--max', type=int, default=None, help='Maximum posts to return (default 4)')
    parser.add_argument('--days', type=float, default=7, help='Freshness window in days')
    parser.add_argument('--classify', action='store_true', help='Only classify the page')
    parser.add_argument('--health', action='store_true', help='Run a session health check')
    parser.add_argument('--cookies', type=str, help='Path to a JSON cookie export')
    parser.add_argument('--executable', type=str, help='Browser executable path')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')

    args = parser.parse_args()

    if args.health:
        await run_health(args)
        return

    if not args.username:
        parser.print_help()
        print("\nExample: python -m scrapers.cli nasa")
        return

    if args.classify:
        await run_classify(args)
    else:
        await run_scrape(args)


if __name__ == '__main__':
    asyncio.run(main())
