"""Retry delay computation for failed batch posts."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    retry_delay_min: float
    retry_delay_max: float

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based).

        Follows a quarter cosine from ``retry_delay_min`` at the first attempt to
        ``retry_delay_max`` at the last one.
        """
        if self.max_retries <= 1:
            return self.retry_delay_min
        attempt = max(1, min(attempt, self.max_retries))
        if attempt == self.max_retries:
            return self.retry_delay_max
        percent = (attempt - 1) / (self.max_retries - 1)
        delta = 1.0 - math.cos(percent * math.pi / 2)
        return self.retry_delay_min + delta * (self.retry_delay_max - self.retry_delay_min)


__all__ = ["RetryPolicy"]
