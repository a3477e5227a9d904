"""Authentication service layer: credential checks and the session lifecycle."""
from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from podsync.backend import AccountNotFoundError, AccountRecord, Backend
from podsync.core.security import mask_token, new_session_token, verify_password
from podsync.utils.exceptions import InternalError, UnauthorizedError


class InvalidCredentialsError(UnauthorizedError):
    """Raised when a password does not match the stored hash."""


@dataclass(frozen=True, slots=True)
class AuthenticatedSession:
    """An account proven by credentials or token, and its live session token."""

    username: str
    token: str


class CredentialVerifier:
    """Check a username/password pair against the stored password hash."""

    def __init__(self, backend: Backend):
        self.backend = backend

    def verify(self, username: str, password: str) -> AccountRecord:
        """Return the account, or raise ``AccountNotFoundError``, ``InternalError``
        or ``InvalidCredentialsError``."""

        account = self.backend.find_account(username)
        if not verify_password(password, account.password_hash):
            raise InvalidCredentialsError(f"Wrong password for {username!r}")
        return account


class SessionAuthority:
    """Issue, validate and revoke the single session token of an account.

    An account is either logged out (no token) or logged in with exactly one
    token. Only a fresh login of a logged-out account writes a new token.
    """

    def __init__(self, backend: Backend, verifier: CredentialVerifier | None = None):
        self.backend = backend
        self.verifier = verifier or CredentialVerifier(backend)

    def login(
        self, username: str, password: str, client_token: str | None = None
    ) -> AuthenticatedSession:
        try:
            account = self.verifier.verify(username, password)
        except AccountNotFoundError:
            logger.info(f"Login for unknown user {username!r}")
            raise UnauthorizedError("Incorrect username or password") from None
        except InvalidCredentialsError:
            logger.info(f"Login with wrong password for {username!r}")
            raise UnauthorizedError("Incorrect username or password") from None
        except InternalError as exc:
            logger.error(f"Couldn't look up {username!r} for login: {exc.message}")
            raise UnauthorizedError("Incorrect username or password") from None

        db_token = account.session_token

        if client_token is None and db_token is None:
            token = new_session_token()
            if not self.backend.set_session_token(username, token):
                logger.error(f"Couldn't store new session for {username!r}")
                raise InternalError("Could not persist session")
            logger.info(f"{username} logged in, new session {mask_token(token)}")
            return AuthenticatedSession(username=username, token=token)

        if client_token is not None and db_token is not None:
            if client_token == db_token:
                logger.debug(f"{username} re-validated session {mask_token(client_token)}")
                return AuthenticatedSession(username=username, token=client_token)
            # valid credentials with a foreign token: protocol violation, not 401
            logger.error(
                f"{username} presented session {mask_token(client_token)}, "
                f"stored session is {mask_token(db_token)}"
            )
            raise InternalError("Session token mismatch")

        if client_token is not None:
            logger.info(f"{username} presented a session but is logged out")
            raise UnauthorizedError("Session expired")

        logger.debug(f"{username} logged in again, reusing session {mask_token(db_token)}")
        return AuthenticatedSession(username=username, token=db_token)

    def authenticate(self, token: str) -> AuthenticatedSession:
        accounts = self.backend.accounts_with_token(token)
        if not accounts:
            logger.debug(f"No account for session {mask_token(token)}")
            raise UnauthorizedError("Unknown session")
        if len(accounts) > 1:
            logger.error(
                f"Integrity violation: session {mask_token(token)} is shared by "
                f"{[account.username for account in accounts]}"
            )
            raise InternalError("Session shared by several accounts")
        return AuthenticatedSession(username=accounts[0].username, token=token)

    def logout(self, username: str) -> None:
        if not self.backend.set_session_token(username, None):
            logger.error(f"Couldn't clear session for {username!r}")
            raise InternalError("Could not clear session")
        logger.info(f"{username} logged out")
