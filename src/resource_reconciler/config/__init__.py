"""Settings management from YAML configuration."""
from .settings import (
    ReconcilerSettings,
    ResourceOverride,
    PollSettings,
    RetrySettings,
    TimeoutSettings,
    SettingsError,
    find_settings_file,
    load_settings,
)

__all__ = [
    "ReconcilerSettings",
    "ResourceOverride",
    "PollSettings",
    "RetrySettings",
    "TimeoutSettings",
    "SettingsError",
    "find_settings_file",
    "load_settings",
]
