"""
FastAPI Authentication Dependencies
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from geospy.auth.config import get_auth_config
from geospy.auth.jwt import JWTError, verify_supabase_token
from geospy.auth.models import User
from geospy.auth.sync import get_or_create_dev_user, sync_user_from_supabase
from geospy.database.session import get_db

logger = logging.getLogger(__name__)

# HTTP Bearer token extraction
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user.

    Validates the JWT, syncs the user to the local DB, returns the User.

    Raises:
        HTTPException 401: If not authenticated
        HTTPException 403: If the user is disabled
    """
    config = get_auth_config()

    if not config.auth_enabled:
        return get_or_create_dev_user(db, config.dev_user_email)

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_supabase_token(credentials.credentials, config)
        user = sync_user_from_supabase(db, payload)
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user
