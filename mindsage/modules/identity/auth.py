"""Caller identity for chat endpoints.

Bearer tokens are decoded when present. Requests without a valid token are
served in permissive mode under ``settings.anonymous_owner_id``; access to a
session is not restricted to its owner.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from mindsage.config import settings
from mindsage.exceptions import UnauthorizedException

logger = logging.getLogger(__name__)

# Bearer token from the Authorization header; absent tokens are allowed
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """Represents the authenticated user extracted from a JWT token."""

    id: str
    email: str | None = None


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser | None:
    """Return the caller from a bearer token, or None for anonymous requests."""
    if credentials is None:
        return None

    try:
        payload = _decode_token(credentials.credentials)
    except UnauthorizedException:
        return None

    subject = payload.get("sub") or payload.get("id")
    if not subject:
        logger.warning("Token without subject claim; treating request as anonymous")
        return None

    user = AuthenticatedUser(id=str(subject), email=payload.get("email"))
    request.state.user = user
    return user


async def get_owner_id(user: AuthenticatedUser | None = Depends(get_optional_user)) -> str:
    """FastAPI dependency resolving the owner id for the current request."""
    if user is None:
        logger.debug("No authenticated user; using anonymous owner %s", settings.anonymous_owner_id)
        return settings.anonymous_owner_id
    return user.id
