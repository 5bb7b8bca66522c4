"""Admin adjustment of video view and like counters."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.video import Video
from services.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)


def parse_counter(value: Any, field: str) -> int:
    """Parse a non-negative integer counter from JSON or form input."""
    if isinstance(value, bool):
        raise InvalidInput(f"{field.capitalize()} must be a non-negative number")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float) and value.is_integer():
        parsed = int(value)
    elif isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError as exc:
            raise InvalidInput(f"{field.capitalize()} must be a non-negative number") from exc
    else:
        raise InvalidInput(f"{field.capitalize()} must be a non-negative number")
    if parsed < 0:
        raise InvalidInput(f"{field.capitalize()} must be a non-negative number")
    return parsed


def synthetic_like_ids(count: int) -> list:
    return [f"synthetic-{uuid.uuid4()}" for _ in range(max(count, 0))]


async def update_video_metrics_service(
    video_id: str,
    db: AsyncSession,
    *,
    views: Optional[Any] = None,
    likes: Optional[Any] = None,
) -> Dict[str, Any]:
    if views is None and likes is None:
        raise InvalidInput("Please provide views or likes to update")

    result = await db.execute(select(Video).where(Video.id == video_id))
    video = result.scalar_one_or_none()
    if video is None:
        raise NotFound("Video not found")

    next_views = parse_counter(views, "views") if views is not None else None
    next_likes = list(video.likes or [])

    if likes is not None:
        requested = parse_counter(likes, "likes")
        delta = requested - len(next_likes)
        max_delta = max(int(settings.MAX_LIKES_DELTA), 0)
        if abs(delta) > max_delta:
            raise InvalidInput(f"Cannot change likes by more than {max_delta:,} in a single request")
        if delta > 0:
            next_likes.extend(synthetic_like_ids(delta))
        elif delta < 0:
            next_likes = next_likes[: len(next_likes) + delta]

    if next_views is not None:
        video.views = next_views
    video.likes = next_likes
    await db.commit()

    logger.info(
        "video_metrics_updated video=%s views=%s likes=%s",
        video.id,
        video.views,
        len(next_likes),
    )
    return {
        "video": {
            "_id": video.id,
            "views": int(video.views or 0),
            "likesCount": len(next_likes),
        }
    }
