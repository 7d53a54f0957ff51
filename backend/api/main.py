from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from typing import Optional
import logging
import asyncio
import re

from api.config import settings
from scrapers.base import ErrorCode, ScrapeResult
from scrapers.crawlers.session import BrowserSession
from scrapers.manager import ScraperManager
from scrapers.sites.x import XTimelineScraper
from pydantic import BaseModel

# Setup logging directory
settings.log_dir.mkdir(exist_ok=True)


# Custom formatter to strip ANSI color codes from file logs
class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)

# Setup logging with color support for console, stripped for file
file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
file_handler.setFormatter(ColorStripFormatter(settings.log_format))

console_handler = logging.StreamHandler()
console_handler.setFormatter(logging.Formatter(settings.log_format))

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[file_handler, console_handler],
    force=True  # Override any existing configuration
)

logger = logging.getLogger(__name__)


# Filter to suppress noisy polling endpoint access logs
class PollingEndpointFilter(logging.Filter):
    # Endpoints that poll frequently and clutter logs
    SUPPRESSED_ENDPOINTS = ['/health']

    def filter(self, record):
        try:
            msg = record.getMessage()
        except Exception:
            msg = str(record.msg)
        for endpoint in self.SUPPRESSED_ENDPOINTS:
            if endpoint in msg:
                return False
        return True

# Apply filter to uvicorn access logger at module load time
uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.addFilter(PollingEndpointFilter())


# HTTP status for each failure code; anything unlisted is a 500
ERROR_STATUS = {
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.PROTECTED: 403,
    ErrorCode.SUSPENDED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.NO_TWEETS_FOUND: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.NAVIGATION_ERROR: 502,
    ErrorCode.CONNECTION_ERROR: 502,
}


def status_for(result: ScrapeResult) -> int:
    if result.success:
        return 200
    return ERROR_STATUS.get(result.error_code, 500)


def build_manager() -> ScraperManager:
    """Create the process-wide session and manager from settings."""
    session = BrowserSession(
        executable_path=settings.chrome_executable_path,
        cookies=settings.twitter_cookies,
        headless=settings.headless,
        health_check_interval=settings.health_check_interval,
    )
    scraper = XTimelineScraper(
        navigation_timeout=settings.navigation_timeout,
        content_timeout=settings.content_timeout,
        settle_delay=settings.settle_delay,
        scroll_iterations=settings.scroll_iterations,
        scroll_pause=settings.scroll_pause,
    )
    return ScraperManager(
        session,
        scraper=scraper,
        freshness_days=settings.freshness_days,
        default_max_records=settings.default_max_tweets,
        max_records_limit=settings.max_tweets_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Recent Tweets Scraper Starting Up")
    logger.info("=" * 60)
    logger.info(f"Log file: {settings.log_file}")
    logger.info(f"Freshness window: {settings.freshness_days} days")
    logger.info(f"Cookies configured: {bool(settings.twitter_cookies)}")

    manager = build_manager()
    app.state.manager = manager
    manager.session.start_health_checks()
    logger.info("Scraper ready to accept requests (browser launches on first request)")

    yield  # Application runs here

    # Shutdown
    logger.info("=" * 60)
    logger.info("Recent Tweets Scraper Shutting Down")
    logger.info("=" * 60)

    try:
        await asyncio.wait_for(manager.session.shutdown(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("Shutdown cleanup timed out, forcing exit")
    except Exception as e:
        logger.error(f"Error during shutdown cleanup: {e}")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Recent Tweets Scraper",
    version="1.0.0",
    lifespan=lifespan
)


def get_manager(request: Request) -> ScraperManager:
    manager = getattr(request.app.state, 'manager', None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Scraper is not initialized")
    return manager


class RecentTweetsRequest(BaseModel):
    username: Optional[str] = None
    max_tweets: Optional[int] = None


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty response for favicon requests"""
    return Response(status_code=204)


@app.get("/")
async def root():
    return {
        "status": "Recent Tweets Scraper Ready",
        "endpoint": "POST /recent-tweets",
        "example": {"username": "elonmusk", "max_tweets": settings.default_max_tweets},
        "admin": ["POST /restart", "GET /stats", "GET /health"],
    }


@app.get("/health")
async def health(manager: ScraperManager = Depends(get_manager)):
    return {"status": "ok", "session": manager.stats().to_dict()}


@app.post("/recent-tweets")
async def recent_tweets(body: RecentTweetsRequest, manager: ScraperManager = Depends(get_manager)):
    """Scrape the most recent tweets for a username."""
    if not body.username or not body.username.strip():
        return JSONResponse(status_code=400, content={"error": "Username required"})

    result = await manager.scrape(body.username.strip(), body.max_tweets)
    return JSONResponse(status_code=status_for(result), content=result.to_dict())


@app.post("/restart")
async def restart(manager: ScraperManager = Depends(get_manager)):
    """Restart the browser session."""
    try:
        stats = await manager.restart()
    except Exception as e:
        logger.error(f"Manual restart failed: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    return {"success": True, "session": stats.to_dict()}


@app.get("/stats")
async def stats(manager: ScraperManager = Depends(get_manager)):
    return {
        "session": manager.stats().to_dict(),
        "scrapes": manager.summary(),
    }
