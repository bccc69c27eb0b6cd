from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Technuri Jobs API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Cache
    JOBS_CACHE_TTL: int = 3600  # Cache time-to-live in seconds (1 hour)
    CLEAR_CACHE_ON_STARTUP: bool = False

    # Refresh schedule: every 3 hours, 09:00-20:00, Mon-Fri
    JOBS_UPDATE_CRON: str = "0 9-20/3 * * 1-5"
    JOBS_TIMEZONE: str = "Asia/Seoul"
    REFRESH_ON_STARTUP: bool = True

    # Crawling
    JOB_MAX_CONCURRENT_REQUESTS: int = 5
    JOB_REQUEST_DELAY: int = 200  # ms between requests within one lane
    JOB_REQUEST_TIMEOUT: int = 10000  # ms
    JOB_MAX_PAGES: int = 10  # safety bound for paginated sources

    # Retry/backoff around every crawler invocation
    JOB_MAX_RETRIES: int = 3
    JOB_INITIAL_DELAY: int = 1000  # ms
    JOB_BACKOFF_FACTOR: float = 2.0
    JOB_JITTER: int = 300  # ms

    USER_AGENTS: List[str] = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2.1 Safari/605.1.15",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:122.0) Gecko/20100101 Firefox/122.0",
    ]
    ACCEPT_LANGUAGE: str = "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7"

    # Engineering blog feeds
    BLOG_UPDATE_INTERVAL: int = 30  # minutes
    BLOG_CACHE_TTL: int = 86400  # seconds (1 day)
    BLOG_USER_AGENT: str = "Mozilla/5.0 (compatible; TechnuriBot/1.0)"

    # Headless browser
    BROWSER_USER_AGENT: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    BROWSER_HEADLESS: bool = True
    BROWSER_NAVIGATION_TIMEOUT: int = 30000  # ms
    BROWSER_OPERATION_TIMEOUT: int = 60000  # ms

    class Config:  # pylint: disable=R0903
        env_file = ".env"
        extra = "ignore"  # Ignore extra fields from .env file


settings = Settings()
