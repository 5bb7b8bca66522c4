"""Per-user watch history."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.user import User
from models.video import Video
from services.errors import NotFound
from services.identity import normalize_id, without_id
from services.serializers import serialize_videos

logger = logging.getLogger(__name__)


def push_history(history: Sequence[Any], video_id: str, limit: int) -> List[str]:
    """Move ``video_id`` to the most-recent end and evict the oldest past ``limit``."""
    entries = without_id(history, video_id)
    entries.append(normalize_id(video_id))
    if limit > 0 and len(entries) > limit:
        entries = entries[-limit:]
    return entries


async def add_to_history_service(user_id: str, video_id: str, db: AsyncSession) -> Dict[str, Any]:
    video = (await db.execute(select(Video.id).where(Video.id == video_id))).scalar_one_or_none()
    if video is None:
        raise NotFound("Video not found")
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")

    user.watch_history = push_history(
        user.watch_history or [],
        video_id,
        max(int(settings.WATCH_HISTORY_LIMIT), 1),
    )
    await db.commit()
    logger.info("watch_history_added user=%s video=%s size=%s", user_id, video_id, len(user.watch_history))
    return {"message": "Video added to watch history"}


async def get_history_service(user: User, db: AsyncSession) -> Dict[str, Any]:
    """Approved videos from the user's history, most recent first."""
    history = list(user.watch_history or [])
    if not history:
        return {"count": 0, "data": []}
    result = await db.execute(select(Video).where(Video.id.in_(history), Video.status == "approved"))
    by_id = {video.id: video for video in result.scalars().all()}
    ordered = [by_id[video_id] for video_id in reversed(history) if video_id in by_id]
    data = await serialize_videos(db, ordered)
    return {"count": len(data), "data": data}
