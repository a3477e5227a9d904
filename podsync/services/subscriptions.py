"""Subscription reconciliation: tombstoned add/remove sets per device."""
from __future__ import annotations

from loguru import logger

from podsync.backend import Backend
from podsync.core.clock import EPOCH, Clock, Timestamp, now as wall_clock
from podsync.schemas.subscription import (
    SubscriptionChangeRequest,
    SubscriptionChanges,
    SubscriptionUploadResult,
)
from podsync.utils.exceptions import BadRequestError


class SubscriptionReconciler:
    """Apply and report subscription changes for one device of an account.

    Rows are never removed: a removal stamps ``deleted`` and a later add of the
    same URL on the same device leaves the tombstone in place.
    """

    def __init__(self, backend: Backend, clock: Clock = wall_clock):
        self.backend = backend
        self.clock = clock

    def get_changes(
        self, username: str, device_id: str, since: Timestamp = EPOCH
    ) -> SubscriptionChanges:
        """Return URLs added and removed after ``since`` plus the next cursor."""

        if since < EPOCH:
            raise BadRequestError("Negative cursor", {"since": since})

        rows = self.backend.subscriptions(username, device_id, since)
        added = [row.url for row in rows if row.deleted is None]
        removed = [row.url for row in rows if row.deleted is not None]
        cursor = max((row.created for row in rows), default=None)
        if cursor is None:
            cursor = self.clock()

        logger.debug(
            f"{username} on {device_id}: {len(added)} added, {len(removed)} removed since {since}"
        )
        return SubscriptionChanges(add=added, remove=removed, timestamp=cursor)

    def apply_changes(
        self,
        username: str,
        device_id: str,
        changes: SubscriptionChangeRequest,
        now: Timestamp | None = None,
    ) -> SubscriptionUploadResult:
        """Apply one upload atomically and return ``now`` as the new cursor."""

        # gpodder API v2 subscription upload: the same podcast in both add and
        # remove is answered with 400 Bad Request
        conflicting = sorted(set(changes.add) & set(changes.remove))
        if conflicting:
            raise BadRequestError(
                "URLs may not be added and removed in the same request",
                {"urls": conflicting},
            )

        now = self.clock() if now is None else now
        add = list(dict.fromkeys(changes.add))
        remove = list(dict.fromkeys(changes.remove))
        self.backend.apply_subscription_changes(username, device_id, add, remove, now)

        return SubscriptionUploadResult(timestamp=now, update_urls=[(url, url) for url in add])
