"""Video catalog services: listing, upload, moderation and deletion."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.category import Category
from models.user import User
from models.video import VIDEO_STATUSES, Video
from services.blob_store import BlobStore
from services.discovery import like_pattern
from services.entity_lookup import creator_summary, entity_lookup
from services.errors import Forbidden, InvalidInput, NotFound
from services.identity import CreatorRef, normalize_tags
from services.serializers import serialize_video, serialize_videos

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
ALLOWED_VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".webm", ".avi", ".mkv"}


async def _get_video_or_404(video_id: str, db: AsyncSession) -> Video:
    result = await db.execute(select(Video).where(Video.id == video_id))
    video = result.scalar_one_or_none()
    if video is None:
        raise NotFound(f"Video not found with id of {video_id}")
    return video


async def _listing(db: AsyncSession, stmt) -> Dict[str, Any]:
    videos = (await db.execute(stmt)).scalars().all()
    data = await serialize_videos(db, videos)
    return {"count": len(data), "data": data}


async def list_videos_service(db: AsyncSession, search: Optional[str] = None) -> Dict[str, Any]:
    stmt = select(Video).where(Video.status == "approved")
    needle = (search or "").strip()
    if needle:
        pattern = like_pattern(needle)
        stmt = stmt.where(
            or_(
                Video.title.ilike(pattern, escape="\\"),
                Video.description.ilike(pattern, escape="\\"),
            )
        )
    return await _listing(db, stmt.order_by(Video.created_at.desc()))


async def list_all_videos_service(db: AsyncSession) -> Dict[str, Any]:
    return await _listing(db, select(Video).order_by(Video.created_at.desc()))


async def trending_videos_service(db: AsyncSession) -> Dict[str, Any]:
    stmt = (
        select(Video)
        .where(Video.status == "approved")
        .order_by(Video.is_trending.desc(), Video.views.desc())
        .limit(max(int(settings.TRENDING_RESULT_LIMIT), 1))
    )
    return await _listing(db, stmt)


async def subscribed_videos_service(user: User, db: AsyncSession) -> Dict[str, Any]:
    creator_ids = list(user.subscribed_to or [])
    if not creator_ids:
        return {"count": 0, "data": []}
    stmt = (
        select(Video)
        .where(
            Video.status == "approved",
            Video.creator_kind == "User",
            Video.creator_id.in_(creator_ids),
        )
        .order_by(Video.created_at.desc())
    )
    return await _listing(db, stmt)


async def liked_videos_service(user: User, db: AsyncSession) -> Dict[str, Any]:
    liked = list(user.liked_videos or [])
    if not liked:
        return {"count": 0, "data": []}
    result = await db.execute(select(Video).where(Video.id.in_(liked), Video.status == "approved"))
    by_id = {video.id: video for video in result.scalars().all()}
    # Deleted videos simply drop out of the list.
    ordered = [by_id[video_id] for video_id in liked if video_id in by_id]
    data = await serialize_videos(db, ordered)
    return {"count": len(data), "data": data}


async def get_video_service(video_id: str, db: AsyncSession, viewer: Optional[Any] = None) -> Dict[str, Any]:
    """Return one video and count the view."""
    video = await _get_video_or_404(video_id, db)
    if video.status != "approved" and not _can_manage(video, viewer):
        raise NotFound(f"Video not found with id of {video_id}")

    video.views = int(video.views or 0) + 1
    await db.commit()

    creator = await entity_lookup.get(db, video.creator_ref)
    return serialize_video(video, creator=creator_summary(creator))


def _can_manage(video: Video, principal: Optional[Any]) -> bool:
    if principal is None:
        return False
    if principal.kind == "admin" or principal.role == "admin":
        return True
    return video.creator_kind == "User" and video.creator_id == principal.id


def _validate_text_fields(title: Optional[str], description: Optional[str]) -> tuple:
    clean_title = (title or "").strip()
    if not TITLE_MIN_LENGTH <= len(clean_title) <= TITLE_MAX_LENGTH:
        raise InvalidInput(
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
        )
    clean_description = description or ""
    if len(clean_description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidInput(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
    return clean_title, clean_description


async def upload_video_service(
    *,
    creator: CreatorRef,
    video_file: Optional[UploadFile],
    thumbnail_file: Optional[UploadFile],
    title: Optional[str],
    description: Optional[str],
    category_id: Optional[str],
    tags: Any,
    duration: Optional[int],
    blob_store: BlobStore,
    db: AsyncSession,
) -> Dict[str, Any]:
    if video_file is None or thumbnail_file is None:
        raise InvalidInput("Please upload both video and thumbnail")

    clean_title, clean_description = _validate_text_fields(title, description)
    suffix = Path(video_file.filename or "").suffix.lower()
    content_type = (video_file.content_type or "").lower()
    if suffix not in ALLOWED_VIDEO_EXTENSIONS and not content_type.startswith("video/"):
        raise InvalidInput("Unsupported file type. Upload a video file (mp4, mov, m4v, webm, avi, mkv).")

    category_id = (category_id or "").strip() or None
    if category_id:
        category = (await db.execute(select(Category.id).where(Category.id == category_id))).scalar_one_or_none()
        if category is None:
            raise NotFound(f"Category not found with id of {category_id}")

    stored_video = await blob_store.save(video_file, "videos", int(settings.MAX_VIDEO_UPLOAD_BYTES))
    try:
        stored_thumbnail = await blob_store.save(thumbnail_file, "thumbnails", int(settings.MAX_THUMBNAIL_UPLOAD_BYTES))
    except Exception:
        await blob_store.delete(stored_video.key)
        raise

    video = Video(
        title=clean_title,
        description=clean_description,
        video_url=stored_video.url,
        video_source_type="upload",
        thumbnail_url=stored_thumbnail.url,
        storage_key=stored_video.key,
        thumbnail_storage_key=stored_thumbnail.key,
        duration=max(int(duration or 0), 0),
        size=stored_video.size,
        status="pending",
        creator_id=creator.id,
        creator_kind=creator.kind,
        tags=normalize_tags(tags),
        likes=[],
        category_id=category_id,
    )
    db.add(video)
    await db.commit()
    logger.info("video_uploaded video=%s creator=%s:%s bytes=%s", video.id, creator.kind, creator.id, video.size)
    return serialize_video(video)


async def update_video_status_service(video_id: str, status: Optional[str], db: AsyncSession) -> Dict[str, Any]:
    if status not in VIDEO_STATUSES:
        raise InvalidInput("Invalid status")
    video = await _get_video_or_404(video_id, db)
    video.status = status
    await db.commit()
    logger.info("video_status_updated video=%s status=%s", video.id, status)
    return serialize_video(video)


async def toggle_trending_service(video_id: str, db: AsyncSession) -> Dict[str, Any]:
    video = await _get_video_or_404(video_id, db)
    video.is_trending = not bool(video.is_trending)
    await db.commit()
    return serialize_video(video)


async def delete_video_service(
    video_id: str,
    principal: Any,
    blob_store: BlobStore,
    db: AsyncSession,
) -> Dict[str, Any]:
    video = await _get_video_or_404(video_id, db)
    if not _can_manage(video, principal):
        raise Forbidden("Not authorized to delete this video")

    keys: List[str] = [key for key in (video.storage_key, video.thumbnail_storage_key) if key]
    await db.delete(video)
    await db.commit()
    if video.video_source_type == "upload":
        for key in keys:
            await blob_store.delete(key)
    logger.info("video_deleted video=%s by=%s:%s", video_id, principal.kind, principal.id)
    return {}
