"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class PodSyncError(Exception):
    """Base exception for the application."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UnauthorizedError(PodSyncError):
    """Bad credentials, unknown or stale session, or account scope mismatch."""

    status_code = status.HTTP_401_UNAUTHORIZED


class BadRequestError(PodSyncError):
    """Malformed client input."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(PodSyncError):
    """Lookup miss inside the persistence layer."""

    status_code = status.HTTP_404_NOT_FOUND


class InternalError(PodSyncError):
    """Storage failures, integrity violations and clock failures."""

    pass


def handle_unauthorized_error(error: UnauthorizedError) -> HTTPException:
    """Handle authentication and authorization errors."""
    logger.info(f"Unauthorized: {error.message}")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": 'Basic realm="podsync"'},
    )


def handle_bad_request_error(error: BadRequestError) -> HTTPException:
    """Handle malformed client input."""
    logger.warning(f"Bad request: {error.message}")
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": error.message,
            "details": error.details
        }
    )


def handle_internal_error(error: PodSyncError) -> HTTPException:
    """Handle storage and integrity errors without leaking their detail."""
    logger.error(f"Internal error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )


def to_http_exception(error: PodSyncError) -> HTTPException:
    """Map any application error onto its HTTP response."""
    if isinstance(error, UnauthorizedError):
        return handle_unauthorized_error(error)
    if isinstance(error, BadRequestError):
        return handle_bad_request_error(error)
    # NotFound never leaves the persistence layer on purpose; treat a leak as internal
    return handle_internal_error(error)
