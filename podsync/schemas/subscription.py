"""Pydantic models for subscription sync."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class SubscriptionChangeRequest(BaseModel):
    """Subscription changes uploaded by a device."""

    add: list[str] = Field(default_factory=list)
    remove: list[str] = Field(default_factory=list)

    @field_validator("add", "remove")
    @classmethod
    def strip_urls(cls, urls: list[str]) -> list[str]:
        cleaned: list[str] = []
        for url in urls:
            url = url.strip()
            if any(char.isspace() or not char.isprintable() for char in url):
                raise ValueError(f"URL contains whitespace or control characters: {url!r}")
            if url and url not in cleaned:
                cleaned.append(url)
        return cleaned


class SubscriptionChanges(BaseModel):
    """Changes since a cursor, as returned to a device."""

    add: list[str] = Field(default_factory=list)
    remove: list[str] = Field(default_factory=list)
    timestamp: int


class SubscriptionUploadResult(BaseModel):
    """Result of an upload: the new cursor and the (identity) URL rewrites."""

    timestamp: int
    update_urls: list[tuple[str, str]] = Field(default_factory=list)
