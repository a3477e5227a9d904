"""Pydantic models for episode action sync."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from podsync.core.clock import format_client_datetime, to_naive_utc
from podsync.schemas.device import is_valid_device_id


class EpisodeActionType(str, Enum):
    NEW = "new"
    DOWNLOAD = "download"
    PLAY = "play"
    DELETE = "delete"


class EpisodeActionPayload(BaseModel):
    """A single episode action as exchanged with clients.

    ``device`` is optional on upload. ``started``, ``position`` and ``total``
    are required for ``play`` and dropped for every other action.
    """

    podcast: str
    episode: str
    device: Optional[str] = None
    action: EpisodeActionType
    timestamp: Optional[datetime] = None
    guid: Optional[str] = None
    started: Optional[int] = Field(default=None, ge=0)
    position: Optional[int] = Field(default=None, ge=0)
    total: Optional[int] = Field(default=None, ge=0)

    @field_validator("action", mode="before")
    @classmethod
    def lowercase_action(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("device")
    @classmethod
    def check_device_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_device_id(value):
            raise ValueError("device ids may only contain letters, digits, '.', '_' and '-'")
        return value

    @field_validator("timestamp")
    @classmethod
    def naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return to_naive_utc(value)

    @model_validator(mode="after")
    def check_play_fields(self) -> "EpisodeActionPayload":
        if self.action is EpisodeActionType.PLAY:
            if self.started is None or self.position is None or self.total is None:
                raise ValueError('"play" without started/position/total')
        else:
            self.started = self.position = self.total = None
        return self

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        return format_client_datetime(value)


class EpisodeChanges(BaseModel):
    """Episode actions changed since a cursor."""

    actions: list[EpisodeActionPayload] = Field(default_factory=list)
    timestamp: int


class EpisodeUploadResult(BaseModel):
    timestamp: int
