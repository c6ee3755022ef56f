"""Iteratively destination plugin: forwards validated calls to the delivery client."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .client import DeliveryClient
from .config import IterativelyOptions
from .models import Environment, Event, TrackType, ValidationResponse

logger = logging.getLogger("itly.iteratively.plugin")


def _first_invalid(validation_results: Optional[List[ValidationResponse]]) -> Optional[ValidationResponse]:
    return next((result for result in validation_results or [] if not result.valid), None)


def _describe(validation_results: Optional[List[ValidationResponse]]) -> str:
    return ", ".join(str(result) for result in validation_results or [])


class IterativelyPlugin:
    """Destination plugin for the outer SDK.

    Disabled by default in production unless ``options.disabled`` says otherwise.
    The delivery client only exists once :meth:`load` ran on an enabled plugin.
    """

    id = "iteratively"

    def __init__(
        self,
        api_key: str,
        options: Optional[IterativelyOptions] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.options = options or IterativelyOptions()
        self.disabled: Optional[bool] = self.options.disabled
        self.client: Optional[DeliveryClient] = None
        self._transport = transport

    @property
    def url(self) -> str:
        return self.options.url

    @property
    def enabled(self) -> bool:
        return not self.disabled

    def load(self, environment: Environment = Environment.DEVELOPMENT) -> None:
        logger.info("%s: load()", self.id)

        if self.options.disabled is None:
            self.disabled = environment == Environment.PRODUCTION
        else:
            self.disabled = self.options.disabled

        if self.disabled:
            logger.info("%s: plugin is disabled!", self.id)
            return

        self.client = DeliveryClient(self.api_key, self.options, transport=self._transport)

    def post_identify(
        self,
        user_id: Optional[str],
        properties: Optional[Dict[str, Any]],
        validation_results: Optional[List[ValidationResponse]] = None,
    ) -> None:
        if not self.enabled:
            return
        logger.info(
            "%s: post_identify(user_id: %s, properties: %s, validation_results: [%s])",
            self.id,
            user_id,
            properties,
            _describe(validation_results),
        )
        self._client_track(TrackType.IDENTIFY, properties=properties, validation_results=validation_results)

    def post_group(
        self,
        user_id: Optional[str],
        group_id: str,
        properties: Optional[Dict[str, Any]],
        validation_results: Optional[List[ValidationResponse]] = None,
    ) -> None:
        if not self.enabled:
            return
        logger.info(
            "%s: post_group(user_id: %s, group_id: %s, properties: %s, validation_results: [%s])",
            self.id,
            user_id,
            group_id,
            properties,
            _describe(validation_results),
        )
        self._client_track(TrackType.GROUP, properties=properties, validation_results=validation_results)

    def post_track(
        self,
        user_id: Optional[str],
        event: Event,
        validation_results: Optional[List[ValidationResponse]] = None,
    ) -> None:
        if not self.enabled:
            return
        logger.info(
            "%s: post_track(user_id: %s, event: %s, validation_results: [%s])",
            self.id,
            user_id,
            event,
            _describe(validation_results),
        )
        self._client_track(TrackType.TRACK, event=event, validation_results=validation_results)

    def flush(self) -> None:
        if self.client is not None:
            self.client.flush()

    def shutdown(self, force: bool = False) -> None:
        if self.client is not None:
            self.client.shutdown(force=force)

    def _client_track(
        self,
        kind: TrackType,
        event: Optional[Event] = None,
        properties: Optional[Dict[str, Any]] = None,
        validation_results: Optional[List[ValidationResponse]] = None,
    ) -> None:
        if self.client is None:
            return
        self.client.track(
            kind,
            event=event,
            properties=properties,
            validation=_first_invalid(validation_results),
        )


__all__ = ["IterativelyPlugin"]
