"""Session cookie verification.

Sessions are issued elsewhere as HS256 JWTs carrying ``userId``, ``email``,
``role`` and ``storeId`` claims. This module only verifies them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Request, WebSocket

from .config import Settings, get_settings
from .errors import AuthenticationError

logger = logging.getLogger("katzai.auth")

ALGORITHM = "HS256"


@dataclass(frozen=True, slots=True)
class Session:
    user_id: str
    email: str
    role: str
    store_id: str


class SessionVerifier:
    """Decode session tokens into :class:`Session` objects."""

    def __init__(self, secret: str, login_path: str = "/login") -> None:
        self._secret = secret
        self._login_path = login_path

    def verify(self, token: str | None) -> Session:
        if not token:
            raise AuthenticationError("Unauthorized", redirect_to=self._login_path)
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.PyJWTError as exc:
            logger.info("Session token rejected: %s", exc)
            raise AuthenticationError("Invalid token", redirect_to=self._login_path) from exc

        store_id = claims.get("storeId")
        if not store_id:
            raise AuthenticationError("Invalid token", redirect_to=self._login_path)

        return Session(
            user_id=str(claims.get("userId", "")),
            email=str(claims.get("email", "")),
            role=str(claims.get("role", "")),
            store_id=str(store_id),
        )

    def issue(self, session: Session, expires_in: timedelta = timedelta(days=7)) -> str:
        """Sign a token for ``session``; used by tests and local tooling."""

        payload = {
            "userId": session.user_id,
            "email": session.email,
            "role": session.role,
            "storeId": session.store_id,
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)


def build_session_verifier(settings: Settings | None = None) -> SessionVerifier:
    settings = settings or get_settings()
    return SessionVerifier(settings.jwt_secret, login_path=settings.login_path)


def session_token(connection: Request | WebSocket, settings: Settings | None = None) -> str | None:
    settings = settings or get_settings()
    return connection.cookies.get(settings.session_cookie_name)
