"""
Application Configuration
Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_debug: bool = False

    # Browser Configuration
    chrome_executable_path: Optional[str] = None
    headless: bool = True
    # JSON array of cookie objects, or a single object
    twitter_cookies: Optional[str] = None

    # Scraper Configuration
    freshness_days: float = 7
    default_max_tweets: int = 4
    max_tweets_limit: int = 20
    navigation_timeout: float = 30.0
    content_timeout: float = 15.0
    settle_delay: float = 3.0
    scroll_iterations: int = 3
    scroll_pause: float = 1.5
    health_check_interval: float = 600.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path(__file__).parent.parent.parent / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "scraper.log"

    class Config:
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
