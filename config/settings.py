"""
Configuration settings for the Weekly Rundown service.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Weekly Rundown"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")

    # Database (PostgreSQL)
    database_url: str = Field(default="", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    db_pool_size: int = Field(default=5, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=3600, env="DB_POOL_RECYCLE")

    # Redis
    redis_url: str = Field(default="redis://localhost:6379", env="REDIS_URL")

    # Scheduler Settings
    timezone: str = Field(default="UTC", env="TIMEZONE")
    enable_scheduler: bool = Field(default=True, env="ENABLE_SCHEDULER")
    report_schedule: str = Field(default="0 9 * * 1", env="REPORT_SCHEDULE")
    user_sync_schedule: str = Field(default="0 2 * * *", env="USER_SYNC_SCHEDULE")

    # Linear
    linear_api_key: str = Field(default="", env="LINEAR_API_KEY")
    linear_api_url: str = Field(default="https://api.linear.app/graphql", env="LINEAR_API_URL")

    # Slack
    slack_bot_token: str = Field(default="", env="SLACK_BOT_TOKEN")
    slack_api_url: str = Field(default="https://slack.com/api", env="SLACK_API_URL")

    # GitHub (shared token is the fallback when a user has not connected their own)
    github_token: str = Field(default="", env="GITHUB_TOKEN")
    github_api_url: str = Field(default="https://api.github.com", env="GITHUB_API_URL")

    # Encryption for stored GitHub tokens
    encryption_key: str = Field(default="", env="ENCRYPTION_KEY")

    # Report Settings
    report_window_days: int = Field(default=7, env="REPORT_WINDOW_DAYS")
    fetch_window_days: int = Field(default=30, env="FETCH_WINDOW_DAYS")
    cooldown_project_keywords: str = Field(default="misc,dpe", env="COOLDOWN_PROJECT_KEYWORDS")
    report_cache_ttl_seconds: int = Field(default=600, env="REPORT_CACHE_TTL_SECONDS")

    # Delivery retry
    delivery_max_retries: int = Field(default=3, env="DELIVERY_MAX_RETRIES")
    delivery_retry_base_delay: float = Field(default=1.0, env="DELIVERY_RETRY_BASE_DELAY")

    @property
    def cooldown_keywords(self) -> List[str]:
        """Project-name substrings that stay visible during cooldown."""
        return [
            keyword.strip().lower()
            for keyword in self.cooldown_project_keywords.split(",")
            if keyword.strip()
        ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
