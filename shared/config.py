"""
Shared configuration management for the Quake Proxy.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="QUAKES_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    usgs_base_url: str = Field(default="https://earthquake.usgs.gov/fdsnws/event/1/")

    # Timeouts (seconds)
    upstream_timeout_seconds: float = Field(default=10.0, gt=0)
    cache_store_timeout_seconds: float = Field(default=1.0, gt=0)

    # Rate limiting
    rate_limit_requests: int = Field(default=3, ge=1)
    rate_limit_window_seconds: int = Field(default=60, ge=1)

    # Caching
    event_cache_ttl_seconds: int = Field(default=600, ge=1)
    query_cache_ttl_seconds: int = Field(default=300, ge=1)
    default_query_limit: int = Field(default=50, ge=1)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
