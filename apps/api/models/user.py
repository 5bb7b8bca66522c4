"""User model."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, JSON, String, event

from database import Base
from services.identity import dedupe_ids


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Platform account; owns its side of every social relationship."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    profile_picture = Column(String, nullable=True)
    phone_number = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")  # user, admin

    # Id collections stored on the document that owns them
    subscribed_to = Column(JSON, nullable=False, default=list)
    subscribers = Column(JSON, nullable=False, default=list)
    watch_history = Column(JSON, nullable=False, default=list)  # oldest first
    liked_videos = Column(JSON, nullable=False, default=list)
    addresses = Column(JSON, nullable=False, default=list)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _dedupe_user_collections(mapper, connection, target: User) -> None:
    target.subscribed_to = dedupe_ids(target.subscribed_to or [])
    target.subscribers = dedupe_ids(target.subscribers or [])
    target.liked_videos = dedupe_ids(target.liked_videos or [])
    target.watch_history = dedupe_ids(target.watch_history or [])
