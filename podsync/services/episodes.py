"""Episode action reconciliation with content-hash change suppression."""
from __future__ import annotations

import hashlib
import json

from loguru import logger

from podsync.backend import Backend, EpisodeQuery, EpisodeRecord
from podsync.core.clock import CLIENT_EPOCH, EPOCH, Clock, Timestamp, format_client_datetime, now as wall_clock
from podsync.schemas.episode import (
    EpisodeActionPayload,
    EpisodeActionType,
    EpisodeChanges,
    EpisodeUploadResult,
)
from podsync.utils.exceptions import BadRequestError, InternalError


def content_hash(record: EpisodeRecord) -> str:
    """Return a stable digest of an action's logical fields.

    ``device`` and ``modified`` are left out, so the same action reported by
    another device, or replayed later, hashes identically.
    """

    fields = {
        "podcast": record.podcast,
        "episode": record.episode,
        "action": record.action,
        "started": record.started,
        "position": record.position,
        "total": record.total,
        "guid": record.guid,
        "timestamp": format_client_datetime(record.timestamp) if record.timestamp else None,
    }
    payload = json.dumps(fields, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def to_record(action: EpisodeActionPayload) -> EpisodeRecord:
    """Convert an uploaded action into a hashed record (``modified`` unset)."""

    record = EpisodeRecord(
        podcast=action.podcast,
        episode=action.episode,
        action=action.action.value,
        device=action.device,
        timestamp=action.timestamp,
        guid=action.guid,
        started=action.started,
        position=action.position,
        total=action.total,
    )
    record.content_hash = content_hash(record)
    return record


def to_payload(record: EpisodeRecord) -> EpisodeActionPayload:
    """Convert a stored record for a client.

    A missing timestamp becomes the epoch: some clients silently drop
    actions that have none.
    """

    return EpisodeActionPayload(
        podcast=record.podcast,
        episode=record.episode,
        device=record.device,
        action=EpisodeActionType(record.action),
        timestamp=record.timestamp or CLIENT_EPOCH,
        guid=record.guid,
        started=record.started,
        position=record.position,
        total=record.total,
    )


class EpisodeReconciler:
    """Merge per-episode playback state into the account timeline.

    Each ``(account, podcast, episode)`` keeps only its latest state. A write
    whose content hash equals the stored one is dropped, leaving ``modified``
    and therefore every other client's cursor untouched.
    """

    def __init__(self, backend: Backend, clock: Clock = wall_clock):
        self.backend = backend
        self.clock = clock

    def get_changes(
        self,
        username: str,
        since: Timestamp = EPOCH,
        podcast: str | None = None,
        device: str | None = None,
    ) -> EpisodeChanges:
        if since < EPOCH:
            raise BadRequestError("Negative cursor", {"since": since})

        query = EpisodeQuery(since=since, podcast=podcast, device=device)
        rows = self.backend.episodes(username, query)
        cursor = max((row.modified for row in rows if row.modified is not None), default=None)
        if cursor is None:
            cursor = self.clock()

        try:
            actions = [to_payload(row) for row in rows]
        except ValueError as exc:
            logger.error(f"Stored episode action for {username!r} is invalid: {exc}")
            raise InternalError("Corrupt episode action") from exc
        return EpisodeChanges(actions=actions, timestamp=cursor)

    def apply_changes(
        self,
        username: str,
        actions: list[EpisodeActionPayload],
        now: Timestamp | None = None,
    ) -> EpisodeUploadResult:
        now = self.clock() if now is None else now
        records = [to_record(action) for action in actions]
        self.backend.apply_episode_changes(username, now, records)
        return EpisodeUploadResult(timestamp=now)
