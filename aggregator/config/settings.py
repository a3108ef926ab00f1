from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    class Config:
        env_file = BASE_DIR / ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    """
    Configuration settings for the aggregator.
    """

    # Browser settings
    HEADLESS: bool = True
    # System Chrome is preferred when present; bundled Chromium otherwise.
    CHROME_EXECUTABLE_PATH: Optional[str] = None
    IGNORE_HTTPS_ERRORS: bool = True
    SESSION_KILL_TIMEOUT: float = 5.0  # seconds

    # Concurrency & politeness
    MAX_CONCURRENT_SOURCES: int = 3
    FULL_MODE_MAX_PAGES: int = 1
    DEFAULT_MAX_PAGES: int = 5
    PAGE_DELAY_MIN: float = 1.0  # seconds
    PAGE_DELAY_MAX: float = 4.0  # seconds

    # Timeouts
    NAVIGATION_TIMEOUT: int = 60000  # ms
    SOURCE_TIMEOUT: float = 180.0  # seconds, per adapter call
    HTTP_TIMEOUT: float = 15.0  # seconds, per outbound HTTP request
    SCORING_TIMEOUT: float = 60.0  # seconds, per scoring call
    REQUEST_TIMEOUT: float = 300.0  # seconds, server-side per /scrape request

    # Scoring backend
    SCORING_URL: str = "http://localhost:7860"

    # API sources
    SERPAPI_KEY: Optional[str] = None
    FT_CLIENT_ID: Optional[str] = None
    FT_CLIENT_SECRET: Optional[str] = None

    # Query defaults
    DEFAULT_QUERY: str = "Emploi"
    DEFAULT_LOCATION: str = "France"

    # Storage
    DATA_DIR: Path = BASE_DIR / "data"

    # HTTP control surface
    BACKEND_URL: str = "http://localhost:3001"
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    LOG_LEVEL: str = "INFO"


settings = Settings()
