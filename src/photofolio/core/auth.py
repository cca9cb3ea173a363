"""Bearer token verification.

The HTTP layer extracts the token from the ``Authorization`` header and hands
it to a :class:`TokenVerifier`.  Services only ever see the resulting
:class:`AuthUser`; how the token was checked is not their concern.
"""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from photofolio.core.errors import AuthError

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized - Please sign in"


@dataclass(frozen=True)
class AuthUser:
    """A verified caller."""

    uid: str
    email: str | None = None


def extract_bearer_token(header: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError: If the header is absent or not a bearer header.
    """
    if not header or not header.startswith("Bearer "):
        raise AuthError(UNAUTHORIZED_MESSAGE)
    token = header[len("Bearer ") :].strip()
    if not token:
        raise AuthError(UNAUTHORIZED_MESSAGE)
    return token


class TokenVerifier(ABC):
    """Turns a bearer token into an :class:`AuthUser` or raises AuthError."""

    @abstractmethod
    def verify(self, token: str) -> AuthUser: ...


class FirebaseTokenVerifier(TokenVerifier):
    """Verify Firebase ID tokens with ``firebase_admin.auth``."""

    def __init__(self, app=None):
        self._app = app

    def verify(self, token: str) -> AuthUser:
        from firebase_admin import auth

        try:
            decoded = auth.verify_id_token(token, app=self._app)
        except (ValueError, auth.InvalidIdTokenError, auth.CertificateFetchError) as e:
            logger.warning(f"Auth verification failed: {e}")
            raise AuthError(UNAUTHORIZED_MESSAGE) from e
        return AuthUser(uid=decoded["uid"], email=decoded.get("email"))


class StaticTokenVerifier(TokenVerifier):
    """Accept a single shared token.  Meant for local development and tests."""

    def __init__(self, token: str, uid: str = "local-admin"):
        if not token:
            raise ValueError("StaticTokenVerifier requires a non-empty token")
        self._token = token
        self._uid = uid

    def verify(self, token: str) -> AuthUser:
        if not hmac.compare_digest(token.encode(), self._token.encode()):
            logger.warning("Rejected bearer token")
            raise AuthError(UNAUTHORIZED_MESSAGE)
        return AuthUser(uid=self._uid)
