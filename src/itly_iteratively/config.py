"""Configuration objects for the Iteratively delivery client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_URL = "https://data-us-east1.iterative.ly/t"

_ENV_PREFIX = "ITLY_ITERATIVELY_"


def _env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None or not value.strip():
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class IterativelyOptions:
    url: str = DEFAULT_URL
    disabled: Optional[bool] = None
    flush_queue_size: int = 10
    batch_size: int = 100
    flush_interval: float = 1.0
    max_retries: int = 25
    retry_delay_min: float = 10.0
    retry_delay_max: float = 3600.0
    omit_values: bool = False
    branch: Optional[str] = None
    version: Optional[str] = None
    timeout: float = 5.0
    shutdown_timeout: float = 5.0

    def __post_init__(self) -> None:
        if self.flush_queue_size < 1:
            raise ValueError("flush_queue_size must be at least 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.retry_delay_min < 0 or self.retry_delay_max < 0:
            raise ValueError("retry delays must not be negative")
        if self.retry_delay_max < self.retry_delay_min:
            raise ValueError("retry_delay_max must be greater than or equal to retry_delay_min")

    def with_overrides(self, **changes: object) -> "IterativelyOptions":
        """Return a copy with every non-``None`` keyword applied on top of these options."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IterativelyOptions":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(_ENV_PREFIX + name)
            return value if value else None

        overrides = {
            "url": get("URL"),
            "disabled": _env_bool(get("DISABLED")),
            "flush_queue_size": int(get("FLUSH_QUEUE_SIZE")) if get("FLUSH_QUEUE_SIZE") else None,
            "batch_size": int(get("BATCH_SIZE")) if get("BATCH_SIZE") else None,
            "flush_interval": float(get("FLUSH_INTERVAL")) if get("FLUSH_INTERVAL") else None,
            "max_retries": int(get("MAX_RETRIES")) if get("MAX_RETRIES") else None,
            "retry_delay_min": float(get("RETRY_DELAY_MIN")) if get("RETRY_DELAY_MIN") else None,
            "retry_delay_max": float(get("RETRY_DELAY_MAX")) if get("RETRY_DELAY_MAX") else None,
            "omit_values": _env_bool(get("OMIT_VALUES")),
            "branch": get("BRANCH"),
            "version": get("VERSION"),
            "timeout": float(get("TIMEOUT")) if get("TIMEOUT") else None,
        }
        return cls().with_overrides(**overrides)


__all__ = ["DEFAULT_URL", "IterativelyOptions"]
