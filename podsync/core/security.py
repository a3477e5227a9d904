"""Security utilities for password hashing and session tokens."""
from __future__ import annotations

import hashlib
import hmac
import uuid

import bcrypt

from podsync.utils.exceptions import BadRequestError


BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def legacy_password_hash(password: str) -> str:
    """Return the unsalted SHA-256 hex digest used by older podsync stores."""

    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Validate a plaintext password against a bcrypt or legacy SHA-256 hash."""

    if hashed_password.startswith(BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"), hashed_password.encode("utf-8")
            )
        except ValueError:
            return False
    return hmac.compare_digest(
        legacy_password_hash(plain_password).encode("ascii"),
        hashed_password.strip().lower().encode("ascii", errors="replace"),
    )


def get_password_hash(password: str) -> str:
    """Hash a password using the configured hashing algorithm."""

    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def new_session_token() -> str:
    """Mint a random 128-bit session token as 32 lowercase hex characters."""

    return uuid.uuid4().hex


def parse_session_token(raw: str) -> str:
    """Normalize a client-presented token, raising ``BadRequestError`` if malformed."""

    try:
        return uuid.UUID(raw.strip()).hex
    except (ValueError, AttributeError) as exc:
        raise BadRequestError("Malformed session token") from exc


def mask_token(token: str | None) -> str:
    """Shorten a token for log lines."""

    if not token:
        return "-"
    return f"{token[:6]}…"
