"""Tests for auth utility functions."""
import pytest
from datetime import timedelta


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_create_access_token_basic(self):
        """Test creating a basic JWT access token."""
        from app.utils.auth import create_access_token

        token = create_access_token(user_id="user123")

        assert isinstance(token, str)
        assert len(token) > 0

    def test_verify_access_token_valid(self):
        """Test verifying a valid access token."""
        from app.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="user123")

        assert verify_access_token(token) == "user123"

    def test_verify_access_token_invalid(self):
        """Test verifying an invalid token."""
        from jose import JWTError
        from app.utils.auth import verify_access_token

        with pytest.raises(JWTError):
            verify_access_token("invalid.token.here")

    def test_verify_access_token_expired(self):
        """Test verifying an expired token."""
        from jose import JWTError
        from app.utils.auth import create_access_token, verify_access_token

        token = create_access_token(user_id="user123", expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_verify_access_token_without_subject(self):
        from jose import JWTError, jwt
        from app.config import settings
        from app.utils.auth import verify_access_token

        token = jwt.encode({"name": "nobody"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)

        with pytest.raises(JWTError):
            verify_access_token(token)

    def test_token_contains_user_id(self):
        """Test that token payload contains the subject and expiry."""
        from jose import jwt
        from app.config import settings
        from app.utils.auth import create_access_token

        token = create_access_token(user_id="user123")
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])

        assert payload["sub"] == "user123"
        assert "exp" in payload


@pytest.mark.asyncio
class TestGetCurrentUserId:
    """Tests for the bearer token dependency."""

    async def test_valid_credentials(self):
        from fastapi.security import HTTPAuthorizationCredentials
        from app.utils.auth import create_access_token, get_current_user_id

        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=create_access_token(user_id="user123")
        )

        assert await get_current_user_id(credentials) == "user123"

    async def test_missing_credentials(self):
        from app.errors import Unauthenticated
        from app.utils.auth import get_current_user_id

        with pytest.raises(Unauthenticated, match="Not authenticated"):
            await get_current_user_id(None)

    async def test_bad_token(self):
        from fastapi.security import HTTPAuthorizationCredentials
        from app.errors import Unauthenticated
        from app.utils.auth import get_current_user_id

        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        with pytest.raises(Unauthenticated, match="Invalid authentication credentials"):
            await get_current_user_id(credentials)
