"""Reconciler settings loaded from YAML.

Example ``reconciler.yaml``:

```yaml
timeouts:
  create: 1800
  update: 1800
  delete: 1800
poll:
  interval: 5
  not_found_checks: 20
retry:
  min_wait: 1
  max_wait: 10
resources:
  service_action:
    timeouts:
      create: 300
```
"""
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..reconcile.schema import Timeouts
from ..utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "RECONCILER_CONFIG"


class SettingsError(Exception):
    """Settings file could not be read or is invalid."""
    pass


class TimeoutSettings(BaseModel):
    create: float = Field(default=1800.0, gt=0)
    update: float = Field(default=1800.0, gt=0)
    delete: float = Field(default=1800.0, gt=0)

    def to_timeouts(self) -> Timeouts:
        return Timeouts(create=self.create, update=self.update, delete=self.delete)


class PollSettings(BaseModel):
    interval: float = Field(default=5.0, gt=0, description="Seconds between probes")
    not_found_checks: int = Field(default=20, ge=0, description="Consecutive not-found probes tolerated")


class RetrySettings(BaseModel):
    max_attempts: Optional[int] = Field(default=None, ge=1)
    min_wait: float = Field(default=1.0, ge=0)
    max_wait: float = Field(default=10.0, ge=0)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            min_wait=self.min_wait,
            max_wait=self.max_wait,
        )


class ResourceOverride(BaseModel):
    """Per resource type overrides; unset keys fall back to the global value."""
    timeouts: Optional[TimeoutSettings] = None
    poll: Optional[PollSettings] = None
    retry: Optional[RetrySettings] = None


class ReconcilerSettings(BaseModel):
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    poll: PollSettings = Field(default_factory=PollSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    resources: Dict[str, ResourceOverride] = Field(default_factory=dict)

    def _merged(self, section: str, resource_type: Optional[str]) -> BaseModel:
        base = getattr(self, section)
        override = self.resources.get(resource_type) if resource_type else None
        partial = getattr(override, section) if override else None
        if partial is None:
            return base
        return base.model_copy(update=partial.model_dump(exclude_unset=True))

    def timeouts_for(self, resource_type: Optional[str] = None) -> Timeouts:
        return self._merged("timeouts", resource_type).to_timeouts()

    def poll_for(self, resource_type: Optional[str] = None) -> PollSettings:
        return self._merged("poll", resource_type)

    def retry_for(self, resource_type: Optional[str] = None) -> RetryPolicy:
        return self._merged("retry", resource_type).to_policy()


def find_settings_file() -> Optional[Path]:
    """Find the reconciler.yaml settings file, if any."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    search_paths = [
        Path.cwd() / "configs" / "reconciler.yaml",
        Path.cwd() / "reconciler.yaml",
        Path.home() / ".config" / "resource-reconciler" / "reconciler.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_settings(path: Optional[Union[str, Path]] = None) -> ReconcilerSettings:
    """Load settings from YAML.

    Args:
        path: Explicit settings file. When omitted the file is searched
            for; defaults are used if none exists.

    Returns:
        Validated ReconcilerSettings

    Raises:
        SettingsError: File missing (explicit path only), unreadable or invalid
    """
    settings_path = Path(path) if path is not None else find_settings_file()
    if settings_path is None:
        logger.debug("No settings file found, using defaults")
        return ReconcilerSettings()

    try:
        with open(settings_path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise SettingsError(f"Cannot read settings file {settings_path}: {e}") from e
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {settings_path}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {settings_path} must contain a mapping")

    try:
        settings = ReconcilerSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {settings_path}: {e}") from e

    logger.info(f"Loaded settings from {settings_path}")
    return settings
