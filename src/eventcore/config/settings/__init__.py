"""Config settings – env-based configuration."""
from eventcore.config.settings.base import Settings
from eventcore.config.settings.loaders import EnvSettingsLoader, SettingsLoader

__all__ = ["EnvSettingsLoader", "Settings", "SettingsLoader"]
