"""Sync cursor timestamps.

A timestamp is a plain ``int`` of seconds since the Unix epoch. It doubles as
the opaque cursor handed to clients; ``EPOCH`` (zero) means "no cursor".
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from podsync.utils.exceptions import InternalError

Timestamp = int
Clock = Callable[[], Timestamp]

EPOCH: Timestamp = 0

# Episode actions carry a naive UTC datetime in this layout
CLIENT_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
CLIENT_EPOCH = datetime(1970, 1, 1)


def now() -> Timestamp:
    """Return the current wall-clock time as a timestamp."""

    value = int(time.time())
    if value < 0:
        logger.error("System clock is before the epoch: {}", value)
        raise InternalError("Clock failure")
    return value


def format_timestamp(value: Timestamp) -> str:
    """Render a timestamp for log lines."""

    if value == EPOCH:
        return "<epoch>"
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(value)


def to_naive_utc(value: datetime) -> datetime:
    """Drop timezone information after converting to UTC."""

    if value.tzinfo is None:
        return value.replace(microsecond=0)
    return value.astimezone(timezone.utc).replace(tzinfo=None, microsecond=0)


def format_client_datetime(value: datetime) -> str:
    return to_naive_utc(value).strftime(CLIENT_DATETIME_FORMAT)
