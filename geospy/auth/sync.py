"""
User Synchronization from Supabase

Creates the local user on first access and refreshes it afterwards.
"""

import logging
from datetime import datetime
from typing import Any, Dict
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from geospy.auth.jwt import JWTError, extract_user_info
from geospy.auth.models import User
from geospy.database.session import transaction

logger = logging.getLogger(__name__)


def sync_user_from_supabase(db: Session, jwt_payload: Dict[str, Any]) -> User:
    """
    Upsert the local user for a verified JWT payload.

    Raises:
        JWTError: If the subject is not a UUID
    """
    user_info = extract_user_info(jwt_payload)
    try:
        user_id = UUID(str(user_info["id"]))
    except ValueError:
        raise JWTError("Token subject is not a valid user id")

    user = db.query(User).filter(User.id == user_id).first()
    now = datetime.utcnow()

    with transaction(db):
        if user is None:
            logger.info(f"Creating new user: {user_info['email']}")
            user = User(
                id=user_id,
                email=user_info["email"] or f"{user_id}@users.geospy.local",
                full_name=user_info.get("full_name"),
                avatar_url=user_info.get("avatar_url"),
                provider=user_info.get("provider"),
                is_active=True,
                last_sign_in_at=now,
                synced_at=now,
            )
            db.add(user)
        else:
            user.email = user_info["email"] or user.email
            user.full_name = user_info.get("full_name") or user.full_name
            user.avatar_url = user_info.get("avatar_url") or user.avatar_url
            user.last_sign_in_at = now
            user.synced_at = now

    return user


def get_or_create_dev_user(db: Session, email: str) -> User:
    """
    Development user used when auth is disabled.
    """
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        with transaction(db):
            user = User(id=uuid4(), email=email, full_name="Development User", is_active=True)
            db.add(user)
        logger.info(f"Created development user {email}")
    return user
