"""Authentication API endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.security import HTTPBasicCredentials

from podsync.api import deps
from podsync.config import settings
from podsync.services.sync import PodSync, ScopedHandle
from podsync.utils.exceptions import UnauthorizedError


router = APIRouter(prefix="/auth", tags=["auth"])

COOKIE_PATH = "/api"


@router.post("/{username}/login.json")
def login(
    username: str,
    client_token: Optional[str] = Depends(deps.get_session_cookie),
    credentials: Optional[HTTPBasicCredentials] = Depends(deps.basic_auth),
    podsync: PodSync = Depends(deps.get_podsync),
) -> Response:
    """Log in with Basic auth and hand out the session cookie.

    A cookie sent along is validated against the stored session.
    """

    if credentials is None:
        raise UnauthorizedError(f"couldn't auth {username!r} - no auth header")
    if credentials.username != username:
        raise UnauthorizedError(
            f"Basic auth for {credentials.username!r} on path of {username!r}"
        )

    handle = podsync.login(username, credentials.password, client_token).with_user(username)

    response = Response()
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=handle.session_token,
        max_age=settings.SESSION_COOKIE_MAX_AGE_SECONDS,
        path=COOKIE_PATH,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite="strict",
    )
    return response


@router.post("/{username}/logout.json")
def logout(handle: ScopedHandle = Depends(deps.get_scoped_handle)) -> Response:
    """End the session of the authenticated account."""

    handle.logout()
    response = Response()
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path=COOKIE_PATH,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite="strict",
    )
    return response
