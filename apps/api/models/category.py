"""Category model."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, String, Text

from database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(50), unique=True, nullable=False)
    slug = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)
    creator_id = Column(String, nullable=True)
    creator_kind = Column(String, nullable=True)  # User, Admin
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
