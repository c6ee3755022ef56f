"""Prometheus instruments for the delivery pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

EVENTS_ENQUEUED = Counter("itly_iteratively_events_enqueued_total", "Records accepted into the buffer", ["type"])
EVENTS_SENT = Counter("itly_iteratively_events_sent_total", "Records delivered to the endpoint")
EVENTS_DROPPED = Counter(
    "itly_iteratively_events_dropped_total",
    "Records discarded without delivery",
    ["reason"],
)
POST_FAILURES = Counter("itly_iteratively_post_failures_total", "Failed batch POST attempts")
FLUSH_LATENCY = Histogram("itly_iteratively_flush_seconds", "Duration of a flush run")

__all__ = ["EVENTS_DROPPED", "EVENTS_ENQUEUED", "EVENTS_SENT", "FLUSH_LATENCY", "POST_FAILURES"]
