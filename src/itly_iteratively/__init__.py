"""Iteratively destination for the itly analytics SDK."""

from .client import DeliveryClient
from .config import IterativelyOptions
from .models import Environment, Event, TrackModel, TrackType, ValidationResponse
from .plugin import IterativelyPlugin

__all__ = [
    "DeliveryClient",
    "Environment",
    "Event",
    "IterativelyOptions",
    "IterativelyPlugin",
    "TrackModel",
    "TrackType",
    "ValidationResponse",
]
