"""Synchronization facade handed to the HTTP layer.

``PodSync.login``/``PodSync.authenticate`` yield a :class:`SessionHandle`,
which is authenticated but not yet bound to a path account. Only
:meth:`SessionHandle.with_user` produces the :class:`ScopedHandle` that can
read or write sync state.
"""
from __future__ import annotations

from loguru import logger

from podsync.backend import Backend
from podsync.core.clock import EPOCH, Clock, Timestamp, now as wall_clock
from podsync.schemas.device import DeviceRead, DeviceUpdate
from podsync.schemas.episode import EpisodeActionPayload, EpisodeChanges, EpisodeUploadResult
from podsync.schemas.subscription import (
    SubscriptionChangeRequest,
    SubscriptionChanges,
    SubscriptionUploadResult,
)
from podsync.services.auth import AuthenticatedSession, SessionAuthority
from podsync.services.episodes import EpisodeReconciler
from podsync.services.subscriptions import SubscriptionReconciler
from podsync.utils.exceptions import UnauthorizedError


class PodSync:
    """Entry point: turns credentials or a session token into handles."""

    def __init__(self, backend: Backend, clock: Clock = wall_clock):
        self.backend = backend
        self.clock = clock
        self.authority = SessionAuthority(backend)

    def login(
        self, username: str, password: str, client_token: str | None = None
    ) -> "SessionHandle":
        session = self.authority.login(username, password, client_token)
        return SessionHandle(self, session)

    def authenticate(self, token: str) -> "SessionHandle":
        return SessionHandle(self, self.authority.authenticate(token))


class SessionHandle:
    """An authenticated session not yet checked against a path account."""

    def __init__(self, podsync: PodSync, session: AuthenticatedSession):
        self._podsync = podsync
        self._session = session

    @property
    def username(self) -> str:
        return self._session.username

    @property
    def session_token(self) -> str:
        return self._session.token

    def with_user(self, name: str) -> "ScopedHandle":
        if name != self._session.username:
            logger.info(f"{self._session.username} tried to act as {name!r}")
            raise UnauthorizedError("Session does not belong to this account")
        return ScopedHandle(self._podsync, self._session)


class ScopedHandle:
    """An authenticated session acting on behalf of its own account."""

    def __init__(self, podsync: PodSync, session: AuthenticatedSession):
        self._session = session
        self._authority = podsync.authority
        self._backend = podsync.backend
        self._subscriptions = SubscriptionReconciler(podsync.backend, podsync.clock)
        self._episodes = EpisodeReconciler(podsync.backend, podsync.clock)

    @property
    def username(self) -> str:
        return self._session.username

    @property
    def session_token(self) -> str:
        return self._session.token

    def logout(self) -> None:
        self._authority.logout(self.username)

    def devices(self) -> list[DeviceRead]:
        return [
            DeviceRead(
                id=device.id,
                caption=device.caption,
                type=device.type,
                subscriptions=device.subscriptions,
            )
            for device in self._backend.list_devices(self.username)
        ]

    def update_device(self, device_id: str, update: DeviceUpdate) -> None:
        self._backend.upsert_device(self.username, device_id, update)

    def subscriptions(self, device_id: str, since: Timestamp = EPOCH) -> SubscriptionChanges:
        return self._subscriptions.get_changes(self.username, device_id, since)

    def update_subscriptions(
        self, device_id: str, changes: SubscriptionChangeRequest
    ) -> SubscriptionUploadResult:
        return self._subscriptions.apply_changes(self.username, device_id, changes)

    def episodes(
        self,
        since: Timestamp = EPOCH,
        podcast: str | None = None,
        device: str | None = None,
    ) -> EpisodeChanges:
        return self._episodes.get_changes(self.username, since, podcast=podcast, device=device)

    def update_episodes(self, actions: list[EpisodeActionPayload]) -> EpisodeUploadResult:
        return self._episodes.apply_changes(self.username, actions)
