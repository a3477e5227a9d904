"""Service layer package."""

from podsync.services.auth import CredentialVerifier, SessionAuthority
from podsync.services.episodes import EpisodeReconciler
from podsync.services.subscriptions import SubscriptionReconciler
from podsync.services.sync import PodSync, ScopedHandle, SessionHandle

__all__ = [
    "CredentialVerifier",
    "EpisodeReconciler",
    "PodSync",
    "ScopedHandle",
    "SessionAuthority",
    "SessionHandle",
    "SubscriptionReconciler",
]
