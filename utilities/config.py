"""
Configuration management using environment variables.
Handles poller, storage, notification and scheduling settings with validation and defaults.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from scheduler.models import DiffMode


class PollerConfig(BaseSettings):
    """
    Configuration class for the circular poller.
    Uses pydantic BaseSettings for environment variable management.
    """

    # Snapshot store
    store_backend: str = Field(default="mongodb")
    mongodb_url: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="circulars")
    mongodb_collection: str = Field(default="snapshots")
    snapshot_key: str = Field(default="circulars")

    # Remote source
    source_url: str = Field(default="https://www.example.edu/circolari/")
    page_url_template: str = Field(default="{source_url}page/{page}/")
    max_pages: int = Field(default=100)
    circular_selector: str = Field(default="article h2 a")
    circular_id_pattern: str = Field(default=r"(\d+)")
    request_timeout: int = Field(default=30)
    retry_attempts: int = Field(default=2)
    retry_delay: float = Field(default=1.0)
    rate_limit_per_second: float = Field(default=2.0)

    # User preferences
    notifications_enabled: bool = Field(default=True)
    poll_interval_minutes: int = Field(default=15)
    flex_interval_minutes: int = Field(default=10)

    # Scheduler backoff
    retry_backoff_seconds: int = Field(default=30)
    max_retry_backoff_seconds: int = Field(default=5 * 60 * 60)

    # Diffing
    diff_mode: DiffMode = Field(default=DiffMode.LENGTH)

    # Notification delivery
    notification_webhook_url: Optional[str] = Field(default=None)
    viewer_deep_link: str = Field(default="circulars://viewer")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default="logs/poller.log")

    # Development/Testing
    debug: bool = Field(default=False)

    @field_validator('store_backend')
    @classmethod
    def validate_store_backend(cls, v):
        """Ensure the store backend is known."""
        valid_backends = ['mongodb', 'memory']
        if v.lower() not in valid_backends:
            raise ValueError(f'store_backend must be one of: {valid_backends}')
        return v.lower()

    @field_validator('max_pages')
    @classmethod
    def validate_max_pages(cls, v):
        """Pagination safety cap."""
        if v < 1 or v > 1000:
            raise ValueError('max_pages must be between 1 and 1000')
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 5 or v > 300:
            raise ValueError('request_timeout must be between 5 and 300 seconds')
        return v

    @field_validator('retry_attempts')
    @classmethod
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError('retry_attempts must be between 0 and 10')
        return v

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Ensure rate limit is reasonable."""
        if v < 0.1 or v > 10:
            raise ValueError('rate_limit_per_second must be between 0.1 and 10')
        return v

    @field_validator('poll_interval_minutes')
    @classmethod
    def validate_poll_interval(cls, v):
        """Periodic polling cannot run more often than every 15 minutes."""
        if v < 15:
            raise ValueError('poll_interval_minutes must be at least 15')
        return v

    @field_validator('flex_interval_minutes')
    @classmethod
    def validate_flex_interval(cls, v):
        """Flex window has a 5 minute floor."""
        if v < 5:
            raise ValueError('flex_interval_minutes must be at least 5')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"  # Ignore extra fields from .env
    }

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_page_url(self, page: int) -> str:
        """Build the listing URL for a page (page 1 is the source URL itself)."""
        if page <= 1:
            return self.source_url
        return self.page_url_template.format(source_url=self.source_url, page=page)

    def get_user_agent(self) -> str:
        """Get user agent string for requests."""
        return "CircularPoller/1.0"

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "it-IT,it;q=0.9,en;q=0.5",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }


# Global configuration instance
config = PollerConfig()
