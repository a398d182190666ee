"""Identity resolution from bearer tokens.

Tokens are issued by the identity provider; this service only reads the
subject claim. ``create_access_token`` exists for local tooling and tests.
"""
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.config import settings
from app.errors import Unauthenticated
from app.utils.clock import utc_now


security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> isinstance(token, str)
        True
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    to_encode = {
        "sub": user_id,
        "exp": utc_now() + expires_delta,
    }

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> str:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        User ID from token

    Raises:
        JWTError: If token is invalid, expired or has no subject

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> verify_access_token(token)
        'user123'
    """
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id = payload.get("sub")

    if not user_id:
        raise JWTError("Token payload missing 'sub' claim")

    return user_id


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Dependency resolving the caller's user ID from the bearer token.

    Raises:
        Unauthenticated: If no token is sent or it does not verify
    """
    if credentials is None:
        raise Unauthenticated()

    try:
        return verify_access_token(credentials.credentials)
    except JWTError:
        raise Unauthenticated("Invalid authentication credentials")
