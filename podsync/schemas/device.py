"""Pydantic models for device API interactions."""
from __future__ import annotations

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Device ids end up as whitespace-delimited fields in the flat-file store
DEVICE_ID_PATTERN = re.compile(r"[\w.-]+")


def is_valid_device_id(value: str) -> bool:
    return DEVICE_ID_PATTERN.fullmatch(value) is not None


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    LAPTOP = "laptop"
    MOBILE = "mobile"
    SERVER = "server"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "DeviceType":
        """Parse a stored or client value, case-insensitively; unknown means ``other``."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class DeviceUpdate(BaseModel):
    """Partial device update; ``None`` fields keep their stored value."""

    caption: Optional[str] = None
    type: Optional[DeviceType] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return DeviceType.parse(value)

    @field_validator("caption")
    @classmethod
    def single_line_caption(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return " ".join(value.splitlines()).strip()


class DeviceRead(BaseModel):
    """Device entry returned by the device list."""

    id: str
    caption: str = ""
    type: DeviceType = DeviceType.OTHER
    subscriptions: int = Field(default=0, ge=0)

    model_config = ConfigDict(from_attributes=True)
