"""API endpoint modules for v2."""

from podsync.api.v2.endpoints import auth, devices, episodes, subscriptions

__all__ = [
    "auth",
    "devices",
    "episodes",
    "subscriptions",
]
