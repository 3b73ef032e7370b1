from __future__ import annotations
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from basketmarkov.errors import ConfigError

# Instacart catalog size
DEFAULT_N_ITEMS = 49688
EXECUTORS = ("thread", "process")


class MarkovSettings(BaseSettings):
    """Runtime settings. Every field can be overridden with a BASKETMARKOV_* env var."""

    model_config = SettingsConfigDict(env_prefix="BASKETMARKOV_")

    n_items: int = DEFAULT_N_ITEMS
    n_workers: int = 2
    executor: str = "thread"
    strict: bool = False
    symmetric: bool = False
    max_pending: Optional[int] = None
    progress: bool = False

    @property
    def pending_limit(self) -> int:
        return self.max_pending if self.max_pending is not None else 4 * self.n_workers


def validate_settings(settings: MarkovSettings) -> MarkovSettings:
    if settings.n_items <= 0:
        raise ConfigError(f"n_items must be positive, got {settings.n_items}")
    if settings.n_workers <= 0:
        raise ConfigError(f"n_workers must be positive, got {settings.n_workers}")
    if settings.max_pending is not None and settings.max_pending <= 0:
        raise ConfigError(f"max_pending must be positive, got {settings.max_pending}")
    if settings.executor not in EXECUTORS:
        raise ConfigError(f"executor must be one of {EXECUTORS}, got {settings.executor!r}")
    return settings
