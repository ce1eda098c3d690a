"""
Profile model holding the subscription plan of a user.
Authenticated via Firebase (user_id is the Firebase uid).
"""
from sqlalchemy import Column, String, Boolean, DateTime

from app.models.base import Base, utcnow


class Profile(Base):
    """User profile with plan and admin flag."""

    __tablename__ = "profiles"

    user_id = Column(String(128), primary_key=True)  # Firebase uid
    email = Column(String(255), nullable=True)
    plan = Column(String(32), nullable=False, default="free")  # free, basic, pro, elite, beta
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Profile(user_id={self.user_id}, plan={self.plan})>"
