"""Buffering, retrying delivery client for the Iteratively endpoint."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx

from .backoff import RetryPolicy
from .buffer import EventBuffer
from .config import IterativelyOptions
from .metrics import EVENTS_DROPPED, EVENTS_ENQUEUED, EVENTS_SENT, FLUSH_LATENCY
from .models import Event, TrackModel, TrackType, ValidationResponse
from .scheduler import FlushScheduler
from .sender import BatchSender

logger = logging.getLogger("itly.iteratively.client")


def _chunks(records: Sequence[TrackModel], size: int) -> Iterator[List[TrackModel]]:
    for start in range(0, len(records), size):
        yield list(records[start : start + size])


class DeliveryClient:
    """Accumulates records and delivers them in batches from a background flush run.

    Only one flush run is active at a time. ``track`` never blocks on the network:
    reaching ``flush_queue_size`` hands the flush to a daemon thread, and a timer
    flushes every ``flush_interval`` seconds when no run is active.

    ``shutdown(force=True)`` cancels the active run without waiting for it; records
    that run had not delivered yet are lost (the count is logged).
    """

    def __init__(
        self,
        api_key: str,
        options: Optional[IterativelyOptions] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sender: Optional[BatchSender] = None,
    ) -> None:
        self._options = options or IterativelyOptions()
        self._buffer = EventBuffer()
        self._sender = sender or BatchSender(
            self._options.url,
            api_key,
            branch=self._options.branch,
            version=self._options.version,
            timeout=self._options.timeout,
            transport=transport,
        )
        self._policy = RetryPolicy(
            max_retries=self._options.max_retries,
            retry_delay_min=self._options.retry_delay_min,
            retry_delay_max=self._options.retry_delay_max,
        )
        self._max_retries = self._options.max_retries
        self._run_lock = threading.Lock()
        self._cancel: Optional[threading.Event] = None
        self._runner: Optional[threading.Thread] = None
        self._closing = False
        self._scheduler = FlushScheduler(self._options.flush_interval, self._scheduled_flush, lambda: self.flushing)
        if self._options.flush_interval > 0:
            self._scheduler.start()

    def __enter__(self) -> "DeliveryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
        self.close()

    @property
    def options(self) -> IterativelyOptions:
        return self._options

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def pending(self) -> int:
        return len(self._buffer)

    @property
    def flushing(self) -> bool:
        return self._run_lock.locked()

    @property
    def scheduler(self) -> FlushScheduler:
        return self._scheduler

    def track(
        self,
        kind: TrackType | str,
        event: Optional[Event] = None,
        properties: Optional[Dict[str, Any]] = None,
        validation: Optional[ValidationResponse] = None,
    ) -> None:
        record = TrackModel.build(
            kind,
            event=event,
            properties=properties,
            validation=validation,
            omit_values=self._options.omit_values,
        )
        size = self._buffer.append(record)
        EVENTS_ENQUEUED.labels(type=record.kind).inc()

        if size >= self._options.flush_queue_size and not self.flushing:
            self._flush_in_background()

    def flush(self, timeout: Optional[float] = None) -> int:
        """Drain the buffer and deliver it in the calling thread.

        Returns the number of records delivered. A no-op while another run is active.
        With ``timeout``, the run is cancelled once that many seconds have passed and
        its undelivered records are dropped.
        """
        if not len(self._buffer):
            return 0
        if not self._run_lock.acquire(blocking=False):
            return 0
        try:
            return self._run(timeout)
        finally:
            self._run_lock.release()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no flush run is active. Returns ``False`` if ``timeout`` elapsed first."""
        deadline = None if timeout is None else time.monotonic() + timeout
        runner = self._runner
        if runner is not None and runner is not threading.current_thread():
            runner.join(timeout)
        remaining = -1 if deadline is None else max(0.0, deadline - time.monotonic())
        if not self._run_lock.acquire(timeout=remaining):
            return False
        self._run_lock.release()
        return True

    def shutdown(self, force: bool = False) -> None:
        """Stop the scheduler and, unless ``force``, flush what is left.

        A graceful shutdown returns within about ``shutdown_timeout`` plus one HTTP
        timeout: the wait for the active run and the final flush share that budget.
        """
        self._closing = True
        self._scheduler.stop()

        if force:
            cancel = self._cancel
            if cancel is not None:
                cancel.set()
            return

        timeout = self._options.shutdown_timeout
        deadline = time.monotonic() + timeout
        if not self.wait(timeout):
            logger.warning("shutdown() active flush still running after %.1fs, continuing", timeout)
        self.flush(timeout=max(0.0, deadline - time.monotonic()))
        self._max_retries = 0

    def close(self) -> None:
        self._sender.close()

    def _flush_in_background(self) -> None:
        runner = threading.Thread(target=self.flush, name="itly-flush", daemon=True)
        self._runner = runner
        runner.start()

    def _scheduled_flush(self) -> int:
        # The closing check runs under the run lock so a tick cannot start a run
        # that graceful shutdown did not wait for.
        if self._closing or not len(self._buffer):
            return 0
        if not self._run_lock.acquire(blocking=False):
            return 0
        try:
            if self._closing:
                return 0
            return self._run()
        finally:
            self._run_lock.release()

    def _run(self, timeout: Optional[float] = None) -> int:
        cancel = threading.Event()
        self._cancel = cancel
        timer = None
        if timeout is not None:
            timer = threading.Timer(timeout, cancel.set)
            timer.daemon = True
            timer.start()
        try:
            records = self._buffer.drain_all()
            if not records:
                return 0
            with FLUSH_LATENCY.time():
                return self._deliver_all(records, cancel)
        finally:
            if timer is not None:
                timer.cancel()
            self._cancel = None

    def _deliver_all(self, records: List[TrackModel], cancel: threading.Event) -> int:
        chunks = list(_chunks(records, self._options.batch_size))
        sent = 0
        for index, chunk in enumerate(chunks):
            outcome = None if cancel.is_set() else self._deliver(chunk, cancel)
            if outcome is None:
                self._drop_cancelled(chunks[index:])
                break
            if outcome:
                sent += len(chunk)
        return sent

    def _deliver(self, chunk: List[TrackModel], cancel: threading.Event) -> Optional[bool]:
        """Retry ``chunk`` until sent or out of attempts. ``None`` means the run was cancelled."""
        attempt = 1
        while True:
            if self._sender.post(chunk):
                EVENTS_SENT.inc(len(chunk))
                return True

            if attempt >= self._max_retries:
                logger.error(
                    "flush() reached maximum number of tries. %d events won't be sent to the server",
                    len(chunk),
                )
                EVENTS_DROPPED.labels(reason="max_retries").inc(len(chunk))
                return False

            delay = self._policy.delay_for_attempt(attempt)
            logger.debug("flush() attempt %d failed, retrying in %.1fs", attempt, delay)
            if self._sleep(delay, cancel):
                return None
            attempt += 1

    def _sleep(self, delay: float, cancel: threading.Event) -> bool:
        return cancel.wait(delay)

    def _drop_cancelled(self, chunks: List[List[TrackModel]]) -> None:
        count = sum(len(chunk) for chunk in chunks)
        logger.error("flush() cancelled. %d events won't be sent to the server", count)
        EVENTS_DROPPED.labels(reason="cancelled").inc(count)


__all__ = ["DeliveryClient"]
