"""Database models package."""
from podsync.db.models.user import User
from podsync.db.models.device import Device
from podsync.db.models.subscription import Subscription
from podsync.db.models.episode import EpisodeAction

__all__ = [
    "User",
    "Device",
    "Subscription",
    "EpisodeAction",
]
