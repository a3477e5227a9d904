"""Pydantic schemas package."""

from podsync.schemas.device import DeviceRead, DeviceType, DeviceUpdate
from podsync.schemas.episode import (
    EpisodeActionPayload,
    EpisodeActionType,
    EpisodeChanges,
    EpisodeUploadResult,
)
from podsync.schemas.subscription import (
    SubscriptionChangeRequest,
    SubscriptionChanges,
    SubscriptionUploadResult,
)

__all__ = [
    "DeviceRead",
    "DeviceType",
    "DeviceUpdate",
    "EpisodeActionPayload",
    "EpisodeActionType",
    "EpisodeChanges",
    "EpisodeUploadResult",
    "SubscriptionChangeRequest",
    "SubscriptionChanges",
    "SubscriptionUploadResult",
]
