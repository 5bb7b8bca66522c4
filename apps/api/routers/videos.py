"""Video catalog, discovery and engagement router."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database import get_db, get_session_maker
from models.user import User
from routers.auth_scope import Principal, authorize, get_optional_principal, require_any, require_user
from routers.rate_limit import rate_limit
from services.blob_store import BlobStore, get_blob_store
from services.discovery import related_videos_service, search_videos_service
from services.metrics import update_video_metrics_service
from services.social_graph import toggle_like_service
from services.videos import (
    delete_video_service,
    get_video_service,
    liked_videos_service,
    list_all_videos_service,
    list_videos_service,
    subscribed_videos_service,
    toggle_trending_service,
    trending_videos_service,
    update_video_status_service,
    upload_video_service,
)
from services.watch_history import add_to_history_service, get_history_service

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "superadmin")


class VideoStatusRequest(BaseModel):
    status: Optional[str] = None


class VideoMetricsRequest(BaseModel):
    views: Optional[Any] = None
    likes: Optional[Any] = None


@router.get("")
async def list_videos(
    search: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await list_videos_service(db, search))}


@router.get("/search")
async def search_videos(
    q: Optional[str] = Query(default=None),
    session_maker: async_sessionmaker = Depends(get_session_maker),
):
    return {"success": True, **(await search_videos_service(session_maker, q))}


@router.get("/trending")
async def trending_videos(db: AsyncSession = Depends(get_db)):
    return {"success": True, **(await trending_videos_service(db))}


@router.get("/subscribed")
async def subscribed_videos(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await subscribed_videos_service(user, db))}


@router.get("/liked")
async def liked_videos(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await liked_videos_service(user, db))}


@router.get("/history")
async def watch_history(
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await get_history_service(user, db))}


@router.post("/upload", status_code=201)
async def upload_video(
    video: Optional[UploadFile] = File(default=None),
    thumbnail: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None),
    duration: Optional[int] = Form(default=None),
    _rate_limit: None = Depends(rate_limit("video_upload", limit=50, window_seconds=3600)),
    principal: Principal = Depends(require_any),
    blob_store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    data = await upload_video_service(
        creator=principal.creator_ref,
        video_file=video,
        thumbnail_file=thumbnail,
        title=title,
        description=description,
        category_id=category,
        tags=tags,
        duration=duration,
        blob_store=blob_store,
        db=db,
    )
    return {"success": True, "data": data}


@router.get("/admin/all")
async def all_videos_admin(
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await list_all_videos_service(db))}


@router.post("/{video_id}/like")
async def toggle_like(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await toggle_like_service(user.id, video_id, db)
    return {"success": True, "data": data}


@router.post("/{video_id}/history")
async def add_to_history(
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    result = await add_to_history_service(user.id, video_id, db)
    return {"success": True, **result}


@router.get("/{video_id}/related")
async def related_videos(
    video_id: str,
    session_maker: async_sessionmaker = Depends(get_session_maker),
):
    return {"success": True, **(await related_videos_service(session_maker, video_id))}


@router.put("/{video_id}/trending")
async def toggle_trending(
    video_id: str,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    data = await toggle_trending_service(video_id, db)
    return {"success": True, "data": data}


@router.put("/{video_id}/status")
async def update_video_status(
    video_id: str,
    request: VideoStatusRequest,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    data = await update_video_status_service(video_id, request.status, db)
    return {"success": True, "data": data}


@router.put("/{video_id}/metrics")
async def update_video_metrics(
    video_id: str,
    request: VideoMetricsRequest,
    principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    data = await update_video_metrics_service(video_id, db, views=request.views, likes=request.likes)
    logger.info("video_metrics_request video=%s by=%s:%s", video_id, principal.kind, principal.id)
    return {"success": True, "message": "Video metrics updated successfully", "data": data}


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    viewer: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    data = await get_video_service(video_id, db, viewer=viewer)
    return {"success": True, "data": data}


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    principal: Principal = Depends(require_any),
    blob_store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    data = await delete_video_service(video_id, principal, blob_store, db)
    return {"success": True, "data": data}
