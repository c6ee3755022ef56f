"""Pydantic models for tracked events and the buffered delivery record."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TrackType(str, Enum):
    IDENTIFY = "identify"
    GROUP = "group"
    TRACK = "track"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class Event(BaseModel):
    name: str
    properties: Dict[str, Any] = Field(default_factory=dict)
    id: Optional[str] = None
    version: Optional[str] = None


class ValidationResponse(BaseModel):
    valid: bool
    plugin_id: str = ""
    message: str = ""


class ValidationDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    details: str = ""


class TrackModel(BaseModel):
    """One tracking call, normalized and timestamped at enqueue time.

    Field aliases are the keys of the outbound JSON object, declared in wire order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(alias="type")
    sent_at: datetime = Field(alias="dateSent")
    event_id: Optional[str] = Field(default=None, alias="eventId")
    schema_version: Optional[str] = Field(default=None, alias="eventSchemaVersion")
    event_name: Optional[str] = Field(default=None, alias="eventName")
    properties: Dict[str, Any] = Field(default_factory=dict)
    valid: bool = True
    validation: ValidationDetails = Field(default_factory=ValidationDetails)

    @classmethod
    def build(
        cls,
        kind: str,
        event: Optional[Event] = None,
        properties: Optional[Dict[str, Any]] = None,
        validation: Optional[ValidationResponse] = None,
        omit_values: bool = False,
    ) -> "TrackModel":
        if event is not None:
            source = copy.deepcopy(event.properties)
            event_id, schema_version, event_name = event.id, event.version, event.name
        else:
            source = copy.deepcopy(properties or {})
            event_id = schema_version = event_name = None

        if omit_values:
            source = {key: "" for key in source}

        return cls(
            kind=kind.value if isinstance(kind, Enum) else kind,
            sent_at=datetime.now(timezone.utc).replace(microsecond=0),
            event_id=event_id,
            schema_version=schema_version,
            event_name=event_name,
            properties=source,
            valid=validation.valid if validation is not None else True,
            validation=ValidationDetails(details=validation.message if validation is not None else ""),
        )

    @property
    def validation_detail(self) -> str:
        return self.validation.details

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True)
        payload["dateSent"] = self.sent_at.strftime("%Y-%m-%dT%H:%M:%SZ")
        return payload


__all__ = [
    "Environment",
    "Event",
    "TrackModel",
    "TrackType",
    "ValidationDetails",
    "ValidationResponse",
]
