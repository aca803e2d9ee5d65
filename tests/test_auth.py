"""
Authentication Tests

Tests for the Supabase JWT authentication system.
"""

import pytest
from datetime import datetime, timedelta
from uuid import UUID, uuid4
from unittest.mock import Mock, patch

import jwt
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from geospy.auth.config import AuthConfig
from geospy.auth.dependencies import get_current_user
from geospy.auth.jwt import JWTError, extract_user_info, verify_supabase_token
from geospy.auth.models import User
from geospy.auth.sync import get_or_create_dev_user, sync_user_from_supabase


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def auth_config():
    """Create test auth config."""
    return AuthConfig(
        supabase_url="https://test.supabase.co",
        supabase_jwt_secret="super-secret-jwt-key-for-testing",
        jwt_algorithm="HS256",
        jwt_audience="authenticated",
        auth_enabled=True,
    )


@pytest.fixture
def valid_jwt_payload():
    """Create valid JWT payload."""
    return {
        "sub": str(uuid4()),
        "email": "user@test.com",
        "role": "authenticated",
        "aud": "authenticated",
        "user_metadata": {
            "full_name": "Test User",
            "avatar_url": "https://example.com/avatar.png",
        },
        "app_metadata": {
            "provider": "email",
        },
        "exp": int((datetime.utcnow() + timedelta(hours=1)).timestamp()),
        "iat": int(datetime.utcnow().timestamp()),
    }


@pytest.fixture
def create_test_token(auth_config):
    """Factory to create test JWT tokens."""
    def _create(payload: dict) -> str:
        return jwt.encode(
            payload,
            auth_config.supabase_jwt_secret,
            algorithm=auth_config.jwt_algorithm,
        )
    return _create


# =============================================================================
# JWT VALIDATION TESTS
# =============================================================================

class TestJWTValidation:
    """Tests for JWT token validation."""

    def test_valid_token(self, auth_config, valid_jwt_payload, create_test_token):
        token = create_test_token(valid_jwt_payload)
        payload = verify_supabase_token(token, auth_config)

        assert payload["sub"] == valid_jwt_payload["sub"]
        assert payload["email"] == valid_jwt_payload["email"]

    def test_default_config_from_environment(self, auth_config, valid_jwt_payload, create_test_token):
        with patch("geospy.auth.jwt.get_auth_config", return_value=auth_config):
            payload = verify_supabase_token(create_test_token(valid_jwt_payload))

        assert payload["sub"] == valid_jwt_payload["sub"]

    def test_expired_token(self, auth_config, valid_jwt_payload, create_test_token):
        valid_jwt_payload["exp"] = int((datetime.utcnow() - timedelta(hours=1)).timestamp())
        token = create_test_token(valid_jwt_payload)

        with pytest.raises(JWTError, match="expired"):
            verify_supabase_token(token, auth_config)

    def test_invalid_signature(self, auth_config, valid_jwt_payload):
        token = jwt.encode(valid_jwt_payload, "wrong-secret", algorithm="HS256")

        with pytest.raises(JWTError, match="signature"):
            verify_supabase_token(token, auth_config)

    def test_missing_sub_claim(self, auth_config, valid_jwt_payload, create_test_token):
        del valid_jwt_payload["sub"]
        token = create_test_token(valid_jwt_payload)

        with pytest.raises(JWTError, match="sub"):
            verify_supabase_token(token, auth_config)

    def test_invalid_audience(self, auth_config, valid_jwt_payload, create_test_token):
        valid_jwt_payload["aud"] = "wrong-audience"
        token = create_test_token(valid_jwt_payload)

        with pytest.raises(JWTError, match="audience"):
            verify_supabase_token(token, auth_config)

    def test_malformed_token(self, auth_config):
        with pytest.raises(JWTError, match="decode"):
            verify_supabase_token("not-a-jwt", auth_config)

    def test_no_jwt_secret_configured(self):
        config = AuthConfig(supabase_jwt_secret="")

        with pytest.raises(JWTError, match="not configured"):
            verify_supabase_token("any-token", config)

    def test_asymmetric_algorithm_needs_project_url(self):
        config = AuthConfig(supabase_url="", jwt_algorithm="ES256")

        with pytest.raises(JWTError, match="SUPABASE_URL"):
            verify_supabase_token("any-token", config)


class TestExtractUserInfo:
    """Tests for extracting user info from JWT payload."""

    def test_extract_full_user_info(self, valid_jwt_payload):
        info = extract_user_info(valid_jwt_payload)

        assert info["id"] == valid_jwt_payload["sub"]
        assert info["email"] == valid_jwt_payload["email"]
        assert info["full_name"] == "Test User"
        assert info["avatar_url"] == "https://example.com/avatar.png"
        assert info["provider"] == "email"

    def test_extract_minimal_user_info(self):
        info = extract_user_info({"sub": "user-123", "email": "minimal@test.com"})

        assert info["id"] == "user-123"
        assert info["full_name"] is None
        assert info["avatar_url"] is None

    def test_google_oauth_metadata(self):
        payload = {
            "sub": "user-123",
            "email": "user@gmail.com",
            "user_metadata": {
                "name": "Google User",  # Google uses 'name' not 'full_name'
                "picture": "https://googleusercontent.com/avatar.png",
            },
            "app_metadata": {"provider": "google"},
        }
        info = extract_user_info(payload)

        assert info["full_name"] == "Google User"
        assert info["avatar_url"] == "https://googleusercontent.com/avatar.png"
        assert info["provider"] == "google"


# =============================================================================
# USER SYNC TESTS
# =============================================================================

class TestUserSync:
    """Tests for user synchronization."""

    def test_sync_creates_new_user(self, valid_jwt_payload):
        mock_db = Mock()
        mock_db.query.return_value.filter.return_value.first.return_value = None

        user = sync_user_from_supabase(mock_db, valid_jwt_payload)

        mock_db.add.assert_called_once()
        mock_db.commit.assert_called()
        assert user.id == UUID(valid_jwt_payload["sub"])
        assert user.full_name == "Test User"

    def test_sync_updates_existing_user(self, valid_jwt_payload):
        existing_user = User(id=uuid4(), email="old@test.com", is_active=True)

        mock_db = Mock()
        mock_db.query.return_value.filter.return_value.first.return_value = existing_user

        user = sync_user_from_supabase(mock_db, valid_jwt_payload)

        assert user.email == valid_jwt_payload["email"]
        assert user.last_sign_in_at is not None
        mock_db.commit.assert_called()
        mock_db.add.assert_not_called()

    def test_sync_rejects_non_uuid_subject(self, valid_jwt_payload):
        valid_jwt_payload["sub"] = "not-a-uuid"

        with pytest.raises(JWTError, match="valid user id"):
            sync_user_from_supabase(Mock(), valid_jwt_payload)

    def test_sync_against_database(self, db_session, valid_jwt_payload):
        first = sync_user_from_supabase(db_session, valid_jwt_payload)
        second = sync_user_from_supabase(db_session, valid_jwt_payload)

        assert first.id == second.id
        assert db_session.query(User).count() == 1

    def test_dev_user_created_once(self, db_session):
        first = get_or_create_dev_user(db_session, "dev@geospy.local")
        second = get_or_create_dev_user(db_session, "dev@geospy.local")

        assert first.id == second.id
        assert first.full_name == "Development User"


# =============================================================================
# AUTH CONFIG TESTS
# =============================================================================

class TestAuthConfig:
    """Tests for auth configuration."""

    def test_supabase_project_ref(self, auth_config):
        assert auth_config.supabase_project_ref == "test"

    def test_supabase_project_ref_none(self):
        assert AuthConfig(supabase_url="").supabase_project_ref is None

    def test_jwks_url(self, auth_config):
        assert auth_config.jwks_url == "https://test.supabase.co/auth/v1/.well-known/jwks.json"


# =============================================================================
# DEPENDENCY TESTS
# =============================================================================

class TestGetCurrentUser:
    """Tests for the FastAPI dependency."""

    @pytest.mark.asyncio
    async def test_auth_disabled_returns_dev_user(self, db_session):
        config = AuthConfig(auth_enabled=False)

        with patch("geospy.auth.dependencies.get_auth_config", return_value=config):
            user = await get_current_user(credentials=None, db=db_session)

        assert user.email == config.dev_user_email

    @pytest.mark.asyncio
    async def test_missing_credentials(self, db_session, auth_config):
        with patch("geospy.auth.dependencies.get_auth_config", return_value=auth_config):
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user(credentials=None, db=db_session)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, db_session, auth_config):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        with patch("geospy.auth.dependencies.get_auth_config", return_value=auth_config):
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user(credentials=credentials, db=db_session)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_token_syncs_user(self, db_session, auth_config, valid_jwt_payload, create_test_token):
        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=create_test_token(valid_jwt_payload)
        )

        with patch("geospy.auth.dependencies.get_auth_config", return_value=auth_config):
            user = await get_current_user(credentials=credentials, db=db_session)

        assert str(user.id) == valid_jwt_payload["sub"]

    @pytest.mark.asyncio
    async def test_disabled_user_forbidden(self, db_session, auth_config, valid_jwt_payload, create_test_token):
        user = sync_user_from_supabase(db_session, valid_jwt_payload)
        user.is_active = False
        db_session.commit()
        credentials = HTTPAuthorizationCredentials(
            scheme="Bearer", credentials=create_test_token(valid_jwt_payload)
        )

        with patch("geospy.auth.dependencies.get_auth_config", return_value=auth_config):
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user(credentials=credentials, db=db_session)

        assert exc_info.value.status_code == 403


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
