"""
JWT Token Validation for Supabase Auth

HS256 tokens are checked against the project's JWT secret; asymmetric
tokens (ES256, RS256, ...) against the public keys from Supabase JWKS.
"""

import logging
from typing import Any, Dict, Optional
from functools import lru_cache

import jwt
from jwt import PyJWTError, PyJWKClient

from geospy.auth.config import AuthConfig, get_auth_config

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = {"RS256", "RS384", "RS512", "ES256", "ES384", "ES512", "PS256", "PS384", "PS512"}


class JWTError(Exception):
    """Token missing, malformed, expired or not verifiable."""


@lru_cache(maxsize=1)
def get_jwks_client(jwks_url: str) -> PyJWKClient:
    """Get cached JWKS client for fetching public keys."""
    return PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)


def get_verification_key(token: str, config: AuthConfig) -> Any:
    """Secret for symmetric algorithms, JWKS public key otherwise."""
    if config.jwt_algorithm not in ASYMMETRIC_ALGORITHMS:
        if not config.supabase_jwt_secret:
            raise JWTError("SUPABASE_JWT_SECRET not configured")
        return config.supabase_jwt_secret

    if not config.jwks_url:
        raise JWTError(f"SUPABASE_URL required for {config.jwt_algorithm} tokens")

    try:
        return get_jwks_client(config.jwks_url).get_signing_key_from_jwt(token).key
    except PyJWTError as e:
        logger.error(f"Failed to fetch JWKS from {config.jwks_url}: {e}")
        raise JWTError(f"Failed to fetch public key from Supabase: {e}")


def verify_supabase_token(token: str, config: Optional[AuthConfig] = None) -> Dict[str, Any]:
    """
    Verify and decode a Supabase JWT.

    Args:
        token: Bearer token from the Authorization header
        config: Auth settings (defaults to environment)

    Returns:
        Decoded payload

    Raises:
        JWTError: If the token is invalid, expired or lacks a subject
    """
    config = config or get_auth_config()

    try:
        payload = jwt.decode(
            token,
            get_verification_key(token, config),
            algorithms=[config.jwt_algorithm],
            audience=config.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise JWTError("Token has expired")
    except jwt.InvalidAudienceError:
        raise JWTError("Invalid token audience")
    except jwt.InvalidSignatureError:
        raise JWTError("Invalid token signature")
    except jwt.InvalidAlgorithmError:
        raise JWTError(f"Token algorithm does not match server setting {config.jwt_algorithm}")
    except jwt.DecodeError as e:
        raise JWTError(f"Token decode error: {e}")
    except PyJWTError as e:
        raise JWTError(f"Token validation error: {e}")

    if not payload.get("sub"):
        raise JWTError("Token missing 'sub' claim (user ID)")

    return payload


def extract_user_info(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pull the user fields we mirror locally out of a verified payload.

    Supabase payload structure:
    {
        "sub": "user-uuid",
        "email": "user@example.com",
        "app_metadata": {"provider": "email"},
        "user_metadata": {"full_name": "...", "avatar_url": "..."},
        "exp": 1234567890
    }
    """
    user_metadata = payload.get("user_metadata") or {}
    app_metadata = payload.get("app_metadata") or {}

    return {
        "id": payload.get("sub"),
        "email": payload.get("email"),
        "full_name": user_metadata.get("full_name") or user_metadata.get("name"),
        "avatar_url": user_metadata.get("avatar_url") or user_metadata.get("picture"),
        "provider": app_metadata.get("provider", "email"),
    }
