"""HTTP transport for batches of buffered records."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from .metrics import POST_FAILURES
from .models import TrackModel

logger = logging.getLogger("itly.iteratively.sender")


class BatchSender:
    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        branch: Optional[str] = None,
        version: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._branch = branch
        self._version = version
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @property
    def url(self) -> str:
        return self._url

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def build_payload(self, records: Sequence[TrackModel]) -> Dict[str, Any]:
        return {
            "branchName": self._branch,
            "trackingPlanVersion": self._version,
            "objects": [record.to_payload() for record in records],
        }

    def post(self, records: Sequence[TrackModel]) -> bool:
        """POST one batch. Returns ``True`` on a 2xx response; failures are logged, never raised."""
        body = None
        try:
            body = json.dumps(self.build_payload(records), separators=(",", ":"), default=str)
            response = self._client.post(self._url, content=body, headers=self._headers())
        except Exception as exc:
            POST_FAILURES.inc()
            logger.warning(
                "post() exception url=%s data=%s %s: %s",
                self._url,
                body,
                type(exc).__name__,
                exc,
            )
            return False

        if 200 <= response.status_code < 300:
            return True

        POST_FAILURES.inc()
        logger.warning(
            "post() unexpected response url=%s data=%s status=%s headers=%s body=%s",
            self._url,
            body,
            response.status_code,
            dict(response.headers),
            response.text,
        )
        return False

    def close(self) -> None:
        self._client.close()


__all__ = ["BatchSender"]
