"""
Authentication

Supabase JWT auth:
- Users sign up/login via Supabase Auth
- JWTs are validated against the Supabase JWT secret (or JWKS)
- Users are synced to the local database on first access
- Every project query is scoped to the authenticated user

Usage:
    @router.get("/projects")
    def list_projects(current_user: User = Depends(get_current_user)):
        ...
"""

from .config import AuthConfig, get_auth_config
from .jwt import verify_supabase_token, extract_user_info, JWTError
from .models import User
from .sync import sync_user_from_supabase, get_or_create_dev_user
from .dependencies import get_current_user

__all__ = [
    "AuthConfig",
    "get_auth_config",
    "verify_supabase_token",
    "extract_user_info",
    "JWTError",
    "User",
    "sync_user_from_supabase",
    "get_or_create_dev_user",
    "get_current_user",
]
