"""Config – 12-factor settings for the event store."""

from eventcore.config.event_store import EventStoreSettings
from eventcore.config.settings import EnvSettingsLoader, Settings, SettingsLoader
from eventcore.config.validation import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = [
    "ConfigError",
    "EnvSettingsLoader",
    "EventStoreSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
