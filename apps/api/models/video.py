"""Video model."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, event

from database import Base
from services.identity import CreatorRef, build_tag_blob, dedupe_ids


VIDEO_STATUSES = ("pending", "approved", "rejected")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Video(Base):
    """Uploaded video plus its engagement counters."""

    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    video_url = Column(String, nullable=False)
    video_source_type = Column(String, nullable=False, default="upload")
    thumbnail_url = Column(String, nullable=False)
    storage_key = Column(String, nullable=True)
    thumbnail_storage_key = Column(String, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    size = Column(Integer, nullable=False, default=0)  # bytes
    status = Column(String, nullable=False, default="pending", index=True)
    creator_id = Column(String, nullable=False, index=True)
    creator_kind = Column(String, nullable=False, default="User")  # User, Admin
    views = Column(Integer, nullable=False, default=0)
    is_trending = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
    tag_blob = Column(Text, nullable=False, default="")
    likes = Column(JSON, nullable=False, default=list)  # user ids, unique
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_videos_creator_created", "creator_id", "created_at"),
    )

    @property
    def creator_ref(self) -> CreatorRef:
        return CreatorRef(kind=self.creator_kind or "User", id=self.creator_id)

    @property
    def likes_count(self) -> int:
        return len(self.likes or [])


@event.listens_for(Video, "before_insert")
@event.listens_for(Video, "before_update")
def _normalize_video_collections(mapper, connection, target: Video) -> None:
    target.likes = dedupe_ids(target.likes or [])
    target.tag_blob = build_tag_blob(target.tags or [])
