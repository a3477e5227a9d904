"""PodSync: a gpodder-compatible podcast synchronization server."""

__version__ = "0.1.0"
