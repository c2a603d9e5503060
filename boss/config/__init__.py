"""Configuration for boss."""

from boss.config.settings import (
    BrokerSettings,
    clear_settings_cache,
    get_broker_settings,
)

__all__ = [
    "BrokerSettings",
    "get_broker_settings",
    "clear_settings_cache",
]
