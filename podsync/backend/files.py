"""Flat-file persistence backend.

Layout under the data directory::

    users/<username>/creds.txt      "pwhash: ..." / "session_id: ..." lines
    users/<username>/devices.txt    "<id> <type> <caption>" lines
    users/<username>/subs.txt       "<device> <created> <deleted|-> <url>" lines
    users/<username>/episodes.txt   one JSON object per line

Every mutation rewrites whole files through a temporary file and
``os.replace`` while holding the lock for the data directory.
"""
from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable

from loguru import logger

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
from podsync.core.clock import CLIENT_DATETIME_FORMAT, Timestamp, format_timestamp
from podsync.schemas.device import DeviceType, DeviceUpdate
from podsync.utils.exceptions import InternalError

_locks: dict[Path, threading.RLock] = {}
_locks_guard = threading.Lock()


def _lock_for(root: Path) -> threading.RLock:
    with _locks_guard:
        return _locks.setdefault(root, threading.RLock())


def _valid_username(username: str) -> bool:
    return bool(username) and not username.startswith(".") and "/" not in username and "\\" not in username


def read_key_values(lines: Iterable[str]) -> dict[str, str]:
    """Parse ``key: value`` lines."""

    values: dict[str, str] = {}
    for line in lines:
        line = line.rstrip("\n")
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"invalid line, can't split: {line!r}")
        values[key.strip()] = value.strip()
    return values


def write_key_values(values: dict[str, str]) -> str:
    return "".join(f"{key}: {value}\n" for key, value in values.items())


class FileBackend(Backend):
    """Keep each account's state in plain text files."""

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()
        self._lock = _lock_for(self.root)

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------
    def _user_dir(self, username: str) -> Path:
        return self.root / "users" / username

    def _read_lines(self, path: Path) -> list[str]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                return handle.readlines()
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.error(f'open "{path}": {exc}')
            raise InternalError(f"Could not read {path.name}") from exc

    def _write_files(self, contents: dict[Path, str]) -> None:
        """Stage every file first, then move them all into place.

        If a move fails, files already moved get their previous content back.
        """

        staged: list[tuple[str, Path]] = []
        previous: dict[Path, str | None] = {}
        replaced: list[Path] = []
        try:
            for path, text in contents.items():
                path.parent.mkdir(parents=True, exist_ok=True)
                previous[path] = path.read_text(encoding="utf-8") if path.exists() else None
                fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                staged.append((tmp, path))
            for tmp, path in staged:
                os.replace(tmp, path)
                replaced.append(path)
        except OSError as exc:
            for tmp, _ in staged:
                if os.path.exists(tmp):
                    os.unlink(tmp)
            self._restore(replaced, previous)
            logger.error(f"writing {[str(p) for p in contents]}: {exc}")
            raise InternalError("Could not write data files") from exc

    @staticmethod
    def _restore(paths: list[Path], previous: dict[Path, str | None]) -> None:
        for path in paths:
            try:
                if previous[path] is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_text(previous[path], encoding="utf-8")
            except OSError as exc:
                logger.error(f'restoring "{path}" failed: {exc}')

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def _read_creds(self, username: str) -> dict[str, str]:
        if not _valid_username(username):
            raise AccountNotFoundError(f"No user {username!r}")
        path = self._user_dir(username) / "creds.txt"
        if not path.is_file():
            raise AccountNotFoundError(f"No user {username!r}")
        try:
            return read_key_values(self._read_lines(path))
        except ValueError as exc:
            logger.error(f'parse "{path}": {exc}')
            raise InternalError("Corrupt credentials file") from exc

    def find_account(self, username: str) -> AccountRecord:
        creds = self._read_creds(username)
        if "pwhash" not in creds:
            logger.error(f"no pwhash for {username!r}")
            raise InternalError("Corrupt credentials file")
        return AccountRecord(
            username=username,
            password_hash=creds["pwhash"],
            session_token=creds.get("session_id") or None,
        )

    def set_session_token(self, username: str, token: str | None) -> bool:
        with self._lock:
            try:
                creds = self._read_creds(username)
            except (AccountNotFoundError, InternalError) as exc:
                logger.error(f'read "{username}": {exc}')
                return False

            if token is None:
                creds.pop("session_id", None)
            else:
                creds["session_id"] = token

            try:
                self._write_files({self._user_dir(username) / "creds.txt": write_key_values(creds)})
            except InternalError:
                return False
        return True

    def accounts_with_token(self, token: str) -> list[AccountRecord]:
        users_dir = self.root / "users"
        try:
            names = sorted(entry.name for entry in users_dir.iterdir() if entry.is_dir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.error(f"error looking up session: {exc}")
            raise InternalError("Could not scan users") from exc

        accounts = []
        for name in names:
            try:
                account = self.find_account(name)
            except AccountNotFoundError:
                continue
            if account.session_token == token:
                accounts.append(account)
        return accounts

    def create_account(self, username: str, password_hash: str) -> AccountRecord:
        if not _valid_username(username):
            raise InternalError(f"Unusable username {username!r}")
        with self._lock:
            self._write_files(
                {self._user_dir(username) / "creds.txt": write_key_values({"pwhash": password_hash})}
            )
        return AccountRecord(username=username, password_hash=password_hash)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    def _devices(self, username: str) -> list[DeviceRecord]:
        path = self._user_dir(username) / "devices.txt"
        devices = []
        for line in self._read_lines(path):
            line = line.rstrip("\n")
            if not line:
                continue
            parts = line.split(" ", 2)
            if len(parts) < 2:
                logger.error(f"invalid device line for {username!r}: {line!r}")
                raise InternalError("Corrupt devices file")
            caption = parts[2] if len(parts) == 3 else ""
            devices.append(DeviceRecord(id=parts[0], type=DeviceType.parse(parts[1]), caption=caption))
        return devices

    @staticmethod
    def _render_devices(devices: list[DeviceRecord]) -> str:
        return "".join(f"{d.id} {d.type.value} {d.caption}\n" for d in devices)

    def _with_device(self, devices: list[DeviceRecord], device_id: str) -> tuple[DeviceRecord, bool]:
        for device in devices:
            if device.id == device_id:
                return device, False
        device = DeviceRecord(id=device_id)
        devices.append(device)
        return device, True

    def list_devices(self, username: str) -> list[DeviceRecord]:
        with self._lock:
            devices = self._devices(username)
            subs = self._subscriptions(username)
        for device in devices:
            device.subscriptions = sum(
                1 for dev, sub in subs if dev == device.id and sub.deleted is None
            )
        return devices

    def upsert_device(self, username: str, device_id: str, update: DeviceUpdate) -> None:
        with self._lock:
            devices = self._devices(username)
            device, _ = self._with_device(devices, device_id)
            if update.type is not None:
                device.type = update.type
            if update.caption is not None:
                device.caption = update.caption
            self._write_files({self._user_dir(username) / "devices.txt": self._render_devices(devices)})

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def _subscriptions(self, username: str) -> list[tuple[str, SubscriptionRecord]]:
        path = self._user_dir(username) / "subs.txt"
        subs = []
        for line in self._read_lines(path):
            line = line.rstrip("\n")
            if not line:
                continue
            parts = line.split(" ", 3)
            try:
                device, created, deleted, url = parts
                record = SubscriptionRecord(
                    url=url,
                    created=int(created),
                    deleted=None if deleted == "-" else int(deleted),
                )
            except ValueError as exc:
                logger.error(f"invalid subscription line for {username!r}: {line!r}")
                raise InternalError("Corrupt subscriptions file") from exc
            subs.append((device, record))
        return subs

    @staticmethod
    def _render_subscriptions(subs: list[tuple[str, SubscriptionRecord]]) -> str:
        return "".join(
            f"{device} {sub.created} {'-' if sub.deleted is None else sub.deleted} {sub.url}\n"
            for device, sub in subs
        )

    def subscriptions(
        self, username: str, device_id: str, since: Timestamp
    ) -> list[SubscriptionRecord]:
        with self._lock:
            subs = self._subscriptions(username)
        return [
            sub
            for device, sub in subs
            if device == device_id
            and (sub.created > since or (sub.deleted is not None and sub.deleted > since))
        ]

    def apply_subscription_changes(
        self,
        username: str,
        device_id: str,
        add: list[str],
        remove: list[str],
        now: Timestamp,
    ) -> None:
        user_dir = self._user_dir(username)
        with self._lock:
            subs = self._subscriptions(username)
            devices = self._devices(username)

            removing = set(remove)
            for device, sub in subs:
                if device == device_id and sub.url in removing and sub.deleted is None:
                    sub.deleted = now

            known = {sub.url for device, sub in subs if device == device_id}
            for url in add:
                if url not in known:
                    subs.append((device_id, SubscriptionRecord(url=url, created=now)))
                    known.add(url)

            contents = {user_dir / "subs.txt": self._render_subscriptions(subs)}
            _, created = self._with_device(devices, device_id)
            if created:
                contents[user_dir / "devices.txt"] = self._render_devices(devices)
            self._write_files(contents)

        logger.info(
            f"{username} on {device_id}: added {len(add)} subscriptions, "
            f"removed {len(remove)}, timestamp {format_timestamp(now)}"
        )

    # ------------------------------------------------------------------
    # Episodes
    # ------------------------------------------------------------------
    @staticmethod
    def _decode_episode(line: str) -> EpisodeRecord:
        data = json.loads(line)
        timestamp = data.get("timestamp")
        if timestamp is not None:
            data["timestamp"] = datetime.strptime(timestamp, CLIENT_DATETIME_FORMAT)
        return EpisodeRecord(**data)

    @staticmethod
    def _encode_episode(record: EpisodeRecord) -> str:
        data = {
            "podcast": record.podcast,
            "episode": record.episode,
            "action": record.action,
            "device": record.device,
            "timestamp": record.timestamp.strftime(CLIENT_DATETIME_FORMAT) if record.timestamp else None,
            "guid": record.guid,
            "started": record.started,
            "position": record.position,
            "total": record.total,
            "modified": record.modified,
            "content_hash": record.content_hash,
        }
        return json.dumps({k: v for k, v in data.items() if v is not None})

    def _episodes(self, username: str) -> list[EpisodeRecord]:
        path = self._user_dir(username) / "episodes.txt"
        records = []
        for line in self._read_lines(path):
            if not line.strip():
                continue
            try:
                records.append(self._decode_episode(line))
            except (ValueError, TypeError) as exc:
                logger.error(f"couldn't parse episode line for {username!r}: {exc}")
                raise InternalError("Corrupt episodes file") from exc
        return records

    def episodes(self, username: str, query: EpisodeQuery) -> list[EpisodeRecord]:
        with self._lock:
            records = self._episodes(username)
        return [
            record
            for record in records
            if (record.modified or 0) > query.since
            and (query.podcast is None or record.podcast == query.podcast)
            and (query.device is None or record.device == query.device)
        ]

    def apply_episode_changes(
        self, username: str, now: Timestamp, changes: list[EpisodeRecord]
    ) -> None:
        user_dir = self._user_dir(username)
        written = 0
        with self._lock:
            records = self._episodes(username)
            by_key = {record.key: index for index, record in enumerate(records)}
            devices = self._devices(username)
            devices_changed = False
            for device_id in sorted({change.device for change in changes if change.device}):
                _, created = self._with_device(devices, device_id)
                devices_changed = devices_changed or created

            for change in changes:
                index = by_key.get(change.key)
                merged = merge_episode(records[index] if index is not None else None, change, now)
                if merged is None:
                    continue
                if index is None:
                    by_key[change.key] = len(records)
                    records.append(merged)
                else:
                    records[index] = merged
                written += 1

            contents: dict[Path, str] = {}
            if written:
                contents[user_dir / "episodes.txt"] = "".join(
                    self._encode_episode(record) + "\n" for record in records
                )
            if devices_changed:
                contents[user_dir / "devices.txt"] = self._render_devices(devices)
            if contents:
                self._write_files(contents)

        logger.info(
            f"{username}: {written} of {len(changes)} episode actions changed, "
            f"timestamp {format_timestamp(now)}"
        )
