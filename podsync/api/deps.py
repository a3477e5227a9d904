"""Shared API dependencies."""
from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger
from sqlalchemy.orm import Session

from podsync.backend import Backend
from podsync.backend.files import FileBackend
from podsync.backend.sql import SqlBackend
from podsync.config import settings
from podsync.core.security import parse_session_token
from podsync.db.session import SessionLocal
from podsync.schemas.device import is_valid_device_id
from podsync.services.sync import PodSync, ScopedHandle
from podsync.utils.exceptions import BadRequestError, UnauthorizedError

basic_auth = HTTPBasic(auto_error=False, realm="podsync")


def get_db() -> Iterator[Session]:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_backend(db: Session = Depends(get_db)) -> Backend:
    """Return the storage backend selected by configuration."""

    if settings.BACKEND == "file":
        return FileBackend(settings.DATA_DIR)
    return SqlBackend(db)


def get_podsync(backend: Backend = Depends(get_backend)) -> PodSync:
    return PodSync(backend)


def split_format_json(value: str) -> str:
    """Strip the mandatory ``.json`` suffix from a path segment.

    The segment is split at its first dot, so ``my.device.json`` is rejected.
    """

    name, sep, fmt = value.partition(".")
    if not sep or not name:
        raise BadRequestError("Missing format suffix", {"segment": value})
    if fmt != "json":
        raise BadRequestError("Only the json format is supported", {"format": fmt})
    return name


def parse_device_id(device_format: str) -> str:
    device_id = split_format_json(device_format)
    if not is_valid_device_id(device_id):
        raise BadRequestError("Invalid device id", {"device": device_id})
    return device_id


def get_session_cookie(request: Request) -> Optional[str]:
    """Return the normalized session token from the cookie, if any."""

    raw = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if raw is None:
        return None
    return parse_session_token(raw)


def _authorize(
    username: str,
    token: Optional[str],
    credentials: Optional[HTTPBasicCredentials],
    podsync: PodSync,
) -> ScopedHandle:
    if token is not None:
        handle = podsync.authenticate(token).with_user(username)
        logger.debug(f"authed (via cookie) user {handle.username}")
        return handle

    if credentials is not None:
        if credentials.username != username:
            raise UnauthorizedError(
                f"Basic auth for {credentials.username!r} on path of {username!r}"
            )
        handle = podsync.login(credentials.username, credentials.password).with_user(username)
        logger.debug(f"authed (via basic auth) user {handle.username}")
        return handle

    raise UnauthorizedError(f"couldn't auth {username!r} - no auth header/cookie")


def get_scoped_handle(
    username: str,
    token: Optional[str] = Depends(get_session_cookie),
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    podsync: PodSync = Depends(get_podsync),
) -> ScopedHandle:
    """Authorize a request whose path carries ``{username}``."""

    return _authorize(username, token, credentials, podsync)


def get_scoped_handle_json(
    username_format: str,
    token: Optional[str] = Depends(get_session_cookie),
    credentials: Optional[HTTPBasicCredentials] = Depends(basic_auth),
    podsync: PodSync = Depends(get_podsync),
) -> ScopedHandle:
    """Authorize a request whose path carries ``{username}.json``."""

    return _authorize(split_format_json(username_format), token, credentials, podsync)
