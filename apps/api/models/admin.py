"""Admin model."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, String

from database import Base


ADMIN_ROLES = ("superadmin", "admin", "moderator")


class Admin(Base):
    """Back-office operator account, separate from platform users."""

    __tablename__ = "admins"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="admin")
    profile_image = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
