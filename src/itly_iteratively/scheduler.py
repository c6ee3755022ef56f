"""Recurring timer that drives periodic flushes."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("itly.iteratively.scheduler")


class FlushScheduler:
    """Self-rescheduling timer chain: every tick arms the next one.

    A tick that finds a flush run still active does nothing but reschedule.
    """

    def __init__(self, interval: float, flush: Callable[[], object], is_busy: Callable[[], bool]) -> None:
        self._interval = interval
        self._flush = flush
        self._is_busy = is_busy
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._stopped = True

    @property
    def running(self) -> bool:
        return not self._stopped

    def start(self) -> None:
        with self._lock:
            if not self._stopped:
                return
            self._stopped = False
            self._schedule()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _schedule(self) -> None:
        timer = threading.Timer(self._interval, self._tick)
        timer.daemon = True
        timer.name = "itly-flush-scheduler"
        self._timer = timer
        timer.start()

    def tick(self) -> bool:
        """Run one scheduler step. Returns ``True`` if a flush was started."""
        if self._stopped or self._is_busy():
            return False
        try:
            self._flush()
        except Exception:  # pragma: no cover - flush absorbs its own failures
            logger.exception("scheduled flush failed")
        return True

    def _tick(self) -> None:
        self.tick()
        with self._lock:
            if not self._stopped:
                self._schedule()


__all__ = ["FlushScheduler"]
