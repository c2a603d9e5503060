"""
Broker connection settings.

Values come from ``BLACKSMITH_*`` environment variables or a ``.env`` file
in the working directory. Command-line flags override them.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BROKER_API_VERSION = "2.16"


class BrokerSettings(BaseSettings):
    """
    Connection settings for a Blacksmith service broker.

    Environment variables:
        BLACKSMITH_URL: Base URL of the broker
        BLACKSMITH_USERNAME: Basic auth username
        BLACKSMITH_PASSWORD: Basic auth password
        BLACKSMITH_SKIP_VERIFY: Skip TLS certificate verification
        BLACKSMITH_TIMEOUT: Request timeout in seconds. Default: 30
        BLACKSMITH_MAX_RETRIES: Retry budget per request. Default: 3
        BLACKSMITH_BROKER_API_VERSION: X-Broker-API-Version. Default: 2.16
    """

    url: Optional[str] = Field(default=None, description="Base URL of the broker")
    username: Optional[str] = Field(default=None, description="Basic auth username")
    password: Optional[str] = Field(default=None, description="Basic auth password")
    skip_verify: bool = Field(
        default=False,
        description="Skip TLS certificate verification (development only)",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds"
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Maximum retry attempts for failed requests",
    )
    broker_api_version: str = Field(
        default=DEFAULT_BROKER_API_VERSION,
        min_length=1,
        description="Value of the X-Broker-API-Version header",
    )

    model_config = SettingsConfigDict(
        env_prefix="BLACKSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_broker_settings() -> BrokerSettings:
    """Get broker settings with caching."""
    return BrokerSettings()


def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    get_broker_settings.cache_clear()
