"""Thread-safe in-memory queue of records awaiting delivery."""

from __future__ import annotations

import threading
from typing import List

from .models import TrackModel


class EventBuffer:
    """Ordered buffer shared by producer threads and the active flush run."""

    def __init__(self) -> None:
        self._records: List[TrackModel] = []
        self._lock = threading.Lock()

    def append(self, record: TrackModel) -> int:
        """Push ``record`` to the tail and return the resulting size."""
        with self._lock:
            self._records.append(record)
            return len(self._records)

    def drain_all(self) -> List[TrackModel]:
        """Remove and return every buffered record in enqueue order."""
        with self._lock:
            drained, self._records = self._records, []
        return drained

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["EventBuffer"]
