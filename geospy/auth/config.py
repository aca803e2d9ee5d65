"""
Authentication Configuration

Settings for Supabase JWT validation.
"""

import os
from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class AuthConfig(BaseSettings):
    """Authentication configuration loaded from environment."""

    # Supabase Configuration
    supabase_url: str = ""
    supabase_jwt_secret: str = ""

    # JWT Settings
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # Auth behavior
    auth_enabled: bool = True  # Set to False for local dev without auth
    dev_user_email: str = "dev@geospy.local"

    class Config:
        env_prefix = ""
        extra = "ignore"

    @property
    def supabase_project_ref(self) -> Optional[str]:
        """https://abcdefg.supabase.co -> abcdefg"""
        if not self.supabase_url:
            return None
        host = self.supabase_url.replace("https://", "").replace("http://", "")
        return host.split(".")[0] or None

    @property
    def jwks_url(self) -> Optional[str]:
        ref = self.supabase_project_ref
        if not ref:
            return None
        return f"https://{ref}.supabase.co/auth/v1/.well-known/jwks.json"


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Get cached auth configuration."""
    return AuthConfig(
        supabase_url=os.getenv("SUPABASE_URL", ""),
        supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET", ""),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        auth_enabled=os.getenv("AUTH_ENABLED", "true").lower() == "true",
    )
