"""Relational persistence backend built on SQLAlchemy."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from podsync.backend import (
    AccountNotFoundError,
    AccountRecord,
    Backend,
    DeviceRecord,
    EpisodeQuery,
    EpisodeRecord,
    SubscriptionRecord,
    merge_episode,
)
from podsync.core.clock import Timestamp, format_timestamp
from podsync.db.models import Device, EpisodeAction, Subscription, User
from podsync.schemas.device import DeviceType, DeviceUpdate
from podsync.utils.exceptions import InternalError


def _account(user: User) -> AccountRecord:
    return AccountRecord(
        username=user.username, password_hash=user.pwhash, session_token=user.session_id
    )


def _episode(row: EpisodeAction) -> EpisodeRecord:
    return EpisodeRecord(
        podcast=row.podcast,
        episode=row.episode,
        action=row.action,
        device=row.device,
        timestamp=row.timestamp,
        guid=row.guid,
        started=row.started,
        position=row.position,
        total=row.total,
        modified=row.modified,
        content_hash=row.content_hash,
    )


class SqlBackend(Backend):
    """Store everything in four tables reached through a request-scoped session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _transaction(self, what: str) -> Iterator[Session]:
        """Commit on success; roll back, log and raise ``InternalError`` otherwise."""

        try:
            yield self.db
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Database error while {what}: {exc}")
            raise InternalError(f"Storage failure while {what}") from exc

    @contextmanager
    def _reading(self, what: str) -> Iterator[Session]:
        try:
            yield self.db
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(f"Database error while {what}: {exc}")
            raise InternalError(f"Storage failure while {what}") from exc

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def find_account(self, username: str) -> AccountRecord:
        with self._reading(f"finding user {username!r}") as db:
            user = db.get(User, username)
        if user is None:
            raise AccountNotFoundError(f"No user {username!r}")
        return _account(user)

    def set_session_token(self, username: str, token: str | None) -> bool:
        stmt = update(User).where(User.username == username).values(session_id=token)
        try:
            with self._transaction(f"updating session for {username!r}") as db:
                result = db.execute(stmt)
        except InternalError:
            return False
        return result.rowcount > 0

    def accounts_with_token(self, token: str) -> list[AccountRecord]:
        with self._reading("looking up a session") as db:
            users = db.scalars(select(User).where(User.session_id == token)).all()
        return [_account(user) for user in users]

    def create_account(self, username: str, password_hash: str) -> AccountRecord:
        with self._transaction(f"creating user {username!r}") as db:
            user = db.get(User, username)
            if user is None:
                user = User(username=username, pwhash=password_hash, session_id=None)
                db.add(user)
            else:
                user.pwhash = password_hash
                user.session_id = None
        return _account(user)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    def list_devices(self, username: str) -> list[DeviceRecord]:
        counts_stmt = (
            select(Subscription.device, func.count(Subscription.id))
            .where(Subscription.username == username, Subscription.deleted.is_(None))
            .group_by(Subscription.device)
        )
        devices_stmt = select(Device).where(Device.username == username).order_by(Device.id)
        with self._reading(f"listing devices for {username!r}") as db:
            counts = {device: count for device, count in db.execute(counts_stmt)}
            devices = db.scalars(devices_stmt).all()
        return [
            DeviceRecord(
                id=device.id,
                caption=device.caption or "",
                type=DeviceType.parse(device.type),
                subscriptions=counts.get(device.id, 0),
            )
            for device in devices
        ]

    def _ensure_device(self, db: Session, username: str, device_id: str) -> Device:
        device = db.get(Device, (username, device_id))
        if device is None:
            device = Device(
                username=username, id=device_id, caption="", type=DeviceType.OTHER.value
            )
            db.add(device)
            db.flush([device])
        return device

    def upsert_device(self, username: str, device_id: str, update: DeviceUpdate) -> None:
        with self._transaction(f"updating device {device_id!r} of {username!r}") as db:
            device = self._ensure_device(db, username, device_id)
            if update.caption is not None:
                device.caption = update.caption
            if update.type is not None:
                device.type = update.type.value

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscriptions(
        self, username: str, device_id: str, since: Timestamp
    ) -> list[SubscriptionRecord]:
        stmt = (
            select(Subscription)
            .where(
                and_(
                    Subscription.username == username,
                    Subscription.device == device_id,
                    or_(Subscription.created > since, Subscription.deleted > since),
                )
            )
            .order_by(Subscription.created, Subscription.id)
        )
        with self._reading(f"selecting subscriptions for {username!r}") as db:
            rows = db.scalars(stmt).all()
        return [
            SubscriptionRecord(url=row.url, created=row.created, deleted=row.deleted)
            for row in rows
        ]

    def apply_subscription_changes(
        self,
        username: str,
        device_id: str,
        add: list[str],
        remove: list[str],
        now: Timestamp,
    ) -> None:
        with self._transaction(f"updating subscriptions for {username!r}") as db:
            self._ensure_device(db, username, device_id)

            if remove:
                db.execute(
                    update(Subscription)
                    .where(
                        Subscription.username == username,
                        Subscription.device == device_id,
                        Subscription.url.in_(remove),
                        Subscription.deleted.is_(None),
                    )
                    .values(deleted=now)
                )

            if add:
                existing = set(
                    db.scalars(
                        select(Subscription.url).where(
                            Subscription.username == username,
                            Subscription.device == device_id,
                            Subscription.url.in_(add),
                        )
                    )
                )
                db.add_all(
                    Subscription(
                        username=username, device=device_id, url=url, created=now, deleted=None
                    )
                    for url in add
                    if url not in existing
                )

        logger.info(
            f"{username} on {device_id}: added {len(add)} subscriptions, "
            f"removed {len(remove)}, timestamp {format_timestamp(now)}"
        )

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------
    def episodes(self, username: str, query: EpisodeQuery) -> list[EpisodeRecord]:
        stmt = select(EpisodeAction).where(
            EpisodeAction.username == username, EpisodeAction.modified > query.since
        )
        if query.podcast is not None:
            stmt = stmt.where(EpisodeAction.podcast == query.podcast)
        if query.device is not None:
            stmt = stmt.where(EpisodeAction.device == query.device)
        stmt = stmt.order_by(EpisodeAction.modified, EpisodeAction.id)

        with self._reading(f"selecting episodes for {username!r}") as db:
            rows = db.scalars(stmt).all()
        return [_episode(row) for row in rows]

    def apply_episode_changes(
        self, username: str, now: Timestamp, changes: list[EpisodeRecord]
    ) -> None:
        written = 0
        with self._transaction(f"updating episodes for {username!r}") as db:
            for device_id in {change.device for change in changes if change.device}:
                self._ensure_device(db, username, device_id)

            for change in changes:
                row = db.scalars(
                    select(EpisodeAction).where(
                        EpisodeAction.username == username,
                        EpisodeAction.podcast == change.podcast,
                        EpisodeAction.episode == change.episode,
                    )
                ).first()
                merged = merge_episode(_episode(row) if row else None, change, now)
                if merged is None:
                    continue

                if row is None:
                    row = EpisodeAction(username=username, device=merged.device)
                    db.add(row)
                row.podcast = merged.podcast
                row.episode = merged.episode
                row.timestamp = merged.timestamp
                row.guid = merged.guid
                row.action = merged.action
                row.started = merged.started
                row.position = merged.position
                row.total = merged.total
                row.modified = merged.modified
                row.content_hash = merged.content_hash
                # later changes in the same batch may target this key
                db.flush([row])
                written += 1

        logger.info(
            f"{username}: {written} of {len(changes)} episode actions changed, "
            f"timestamp {format_timestamp(now)}"
        )
