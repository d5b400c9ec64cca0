"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from WILDFYRE_* environment variables."""

    # WildFyre API
    api_base_url: str = "https://api.wildfyre.net"
    request_timeout_seconds: float = 30.0

    # Transport
    connect_retry_attempts: int = 3
    max_concurrent_requests: int = 10

    # Background refresh pool
    refresh_workers: int = 32

    # Cache expiration (seconds since last use)
    user_ttl_seconds: float = 1800     # 30 minutes
    area_ttl_seconds: float = 3600     # 1 hour
    post_ttl_seconds: float = 600      # 10 minutes
    draft_ttl_seconds: float = 3600    # 1 hour

    class Config:
        env_prefix = "WILDFYRE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
