"""
Authentication Models

Local mirror of auth-provider users; projects reference it as their owner.
"""

from datetime import datetime

from sqlalchemy import Column, String, Boolean, DateTime, Index, Uuid
from sqlalchemy.orm import relationship

from geospy.database.models import Base


class User(Base):
    """
    Local user record synced from Supabase Auth.

    The id matches the Supabase auth.users.id (UUID).
    """
    __tablename__ = "users"

    # ID matches Supabase auth.users.id
    id = Column(Uuid, primary_key=True)

    # Basic info (synced from Supabase)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))
    avatar_url = Column(String(2000))
    provider = Column(String(50))  # email, google, github, etc.

    is_active = Column(Boolean, default=True, nullable=False)

    # Last sync with Supabase
    last_sign_in_at = Column(DateTime)
    synced_at = Column(DateTime, default=datetime.utcnow)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    projects = relationship("Project", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_user_email", "email"),
    )

    def __repr__(self):
        return f"<User {self.email}>"
