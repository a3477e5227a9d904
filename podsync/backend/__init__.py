"""Persistence port: the storage contract the sync core is written against.

Two implementations exist, :class:`podsync.backend.sql.SqlBackend` and
:class:`podsync.backend.files.FileBackend`. One is chosen at startup by
:func:`podsync.api.deps.get_backend`; nothing else branches on which.

Implementations log storage failures where they happen and raise
:class:`~podsync.utils.exceptions.InternalError`, so callers never see
driver- or filesystem-level exceptions.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from podsync.core.clock import EPOCH, Timestamp
from podsync.schemas.device import DeviceType, DeviceUpdate
from podsync.utils.exceptions import NotFoundError


class AccountNotFoundError(NotFoundError):
    """Raised when no account matches a username."""


@dataclass(slots=True)
class AccountRecord:
    username: str
    password_hash: str
    session_token: Optional[str] = None


@dataclass(slots=True)
class DeviceRecord:
    id: str
    caption: str = ""
    type: DeviceType = DeviceType.OTHER
    subscriptions: int = 0


@dataclass(slots=True)
class SubscriptionRecord:
    url: str
    created: Timestamp
    deleted: Optional[Timestamp] = None


@dataclass(slots=True)
class EpisodeRecord:
    """Stored state of one ``(account, podcast, episode)`` key."""

    podcast: str
    episode: str
    action: str
    device: Optional[str] = None
    timestamp: Optional[datetime] = None
    guid: Optional[str] = None
    started: Optional[int] = None
    position: Optional[int] = None
    total: Optional[int] = None
    modified: Optional[Timestamp] = None
    content_hash: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.podcast, self.episode)


@dataclass(slots=True)
class EpisodeQuery:
    since: Timestamp = EPOCH
    podcast: Optional[str] = None
    device: Optional[str] = None


def merge_episode(
    existing: EpisodeRecord | None, incoming: EpisodeRecord, now: Timestamp
) -> EpisodeRecord | None:
    """Return the row to store for ``incoming``, or ``None`` when nothing changes.

    The stored device is the one that first created the row; every other
    logical field is overwritten when the content hash differs.
    """

    if existing is None:
        return replace(incoming, modified=now)
    if existing.content_hash == incoming.content_hash:
        return None
    return replace(
        existing,
        timestamp=incoming.timestamp,
        guid=incoming.guid,
        action=incoming.action,
        started=incoming.started,
        position=incoming.position,
        total=incoming.total,
        modified=now,
        content_hash=incoming.content_hash,
    )


class Backend(ABC):
    """Storage contract for accounts, devices, subscriptions and episode actions."""

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    @abstractmethod
    def find_account(self, username: str) -> AccountRecord:
        """Return the account or raise ``AccountNotFoundError``."""

    @abstractmethod
    def set_session_token(self, username: str, token: str | None) -> bool:
        """Store (or clear, with ``None``) the account's token; ``False`` on failure."""

    @abstractmethod
    def accounts_with_token(self, token: str) -> list[AccountRecord]:
        """Return every account whose stored token equals ``token``."""

    @abstractmethod
    def create_account(self, username: str, password_hash: str) -> AccountRecord:
        """Create an account, or reset the password hash of an existing one."""

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    @abstractmethod
    def list_devices(self, username: str) -> list[DeviceRecord]:
        """Return the account's devices with their active subscription counts."""

    @abstractmethod
    def upsert_device(self, username: str, device_id: str, update: DeviceUpdate) -> None:
        """Create the device with defaults if needed, then apply non-null fields."""

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    @abstractmethod
    def subscriptions(
        self, username: str, device_id: str, since: Timestamp
    ) -> list[SubscriptionRecord]:
        """Return rows with ``created > since`` or ``deleted > since``."""

    @abstractmethod
    def apply_subscription_changes(
        self,
        username: str,
        device_id: str,
        add: list[str],
        remove: list[str],
        now: Timestamp,
    ) -> None:
        """Tombstone active ``remove`` rows, then insert-or-ignore ``add`` rows.

        Runs as one atomic unit and creates the device if it is unknown.
        """

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------
    @abstractmethod
    def episodes(self, username: str, query: EpisodeQuery) -> list[EpisodeRecord]:
        """Return rows with ``modified > query.since`` matching the filters."""

    @abstractmethod
    def apply_episode_changes(
        self, username: str, now: Timestamp, changes: list[EpisodeRecord]
    ) -> None:
        """Upsert hashed records through :func:`merge_episode` in one atomic unit."""


__all__ = [
    "AccountNotFoundError",
    "AccountRecord",
    "Backend",
    "DeviceRecord",
    "EpisodeQuery",
    "EpisodeRecord",
    "SubscriptionRecord",
    "merge_episode",
]
