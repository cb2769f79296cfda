"""Caller identity resolution from optional bearer tokens.

Issuing identities is handled by the user service; this module only verifies
HS256 tokens signed with ``JWT_SECRET_KEY`` and exposes the caller as an
:class:`Actor` for the access policy.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..errors import AuthenticationError, CivicApiError
from ..security.secrets import MissingSecretError, require_secret

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
DEFAULT_TOKEN_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))


class AuthConfigurationError(CivicApiError):
    """Raised when token verification has no usable signing secret."""

    status_code = 500
    default_message = "Authentication is not configured"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller making a request."""

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == "admin"


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise AuthConfigurationError(str(exc)) from exc


def create_access_token(user_id: str, *, role: str = "user", expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT for ``user_id`` carrying ``role``."""

    expire_delta = timedelta(minutes=expires_minutes or DEFAULT_TOKEN_MINUTES)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "role": role, "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> Actor:
    """Decode and validate a JWT, returning the caller it identifies."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise AuthenticationError("Invalid token payload")
    role = payload.get("role") or "user"
    return Actor(user_id=subject, role=str(role))


async def get_optional_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> Actor | None:
    """Return the caller when a bearer token is supplied.

    A malformed or expired token is rejected rather than treated as anonymous.
    """

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    actor = decode_access_token(credentials.credentials)
    logger.debug("Resolved actor %s (role=%s)", actor.user_id, actor.role)
    return actor


__all__ = [
    "AuthConfigurationError",
    "Actor",
    "create_access_token",
    "decode_access_token",
    "get_optional_actor",
]
