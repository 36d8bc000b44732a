"""Caller identity from bearer access tokens."""

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from staffing_api.config import get_settings
from staffing_api.exceptions import UnauthenticatedError
from staffing_api.models.domain.user import CurrentUser

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: UUID, email: str | None = None) -> str:
    """Create a JWT access token.

    Tokens are normally issued by the identity service; this is used by
    operational scripts and tests.

    Args:
        user_id: User UUID
        email: User email

    Returns:
        JWT token string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)

    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "exp": now + timedelta(hours=settings.jwt_expiration_hours),
        "iat": now,
    }
    if email:
        payload["email"] = email

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Token payload

    Raises:
        UnauthenticatedError: If token is invalid, expired or issued for
            another audience
    """
    settings = get_settings()

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        raise UnauthenticatedError("Invalid or expired token") from e


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> CurrentUser:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials

    Returns:
        CurrentUser domain model

    Raises:
        UnauthenticatedError: If authentication fails
    """
    if credentials is None:
        raise UnauthenticatedError()

    payload = decode_token(credentials.credentials)

    try:
        user_id = UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise UnauthenticatedError("Invalid or expired token") from e

    return CurrentUser(id=user_id, email=payload.get("email"))
