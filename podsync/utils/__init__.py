"""Utility helpers package."""

from podsync.utils.exceptions import (
    BadRequestError,
    InternalError,
    NotFoundError,
    PodSyncError,
    UnauthorizedError,
)

__all__ = [
    "BadRequestError",
    "InternalError",
    "NotFoundError",
    "PodSyncError",
    "UnauthorizedError",
]
