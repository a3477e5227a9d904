"""gpodder API version 2."""

from podsync.api.v2.api import api_router

__all__ = ["api_router"]
