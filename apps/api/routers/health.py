"""
Health check endpoints.
"""

import os
from pathlib import Path
from typing import Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
import redis.asyncio as redis

from config import settings, validate_security_settings
from database import engine

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        return f"down: {str(e)}"


async def _redis_status() -> str:
    try:
        client = redis.from_url(settings.REDIS_URL)
        try:
            await client.ping()
        finally:
            await client.aclose()
        return "up"
    except Exception as e:
        return f"down: {str(e)}"


def _storage_status() -> str:
    upload_dir = Path(settings.UPLOAD_DIR)
    if not upload_dir.is_dir():
        return "down: upload directory missing"
    if not os.access(upload_dir, os.W_OK):
        return "down: upload directory not writable"
    return "up"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Database and blob storage are required; redis only backs rate limiting,
    so losing it degrades the service without taking it down.
    """
    components: Dict[str, str] = {
        "database": await _database_status(),
        "storage": _storage_status(),
        "redis": await _redis_status(),
    }
    status = "healthy"
    if components["database"] != "up" or components["storage"] != "up":
        status = "unhealthy"
    elif components["redis"] != "up":
        status = "degraded"
    return {"status": status, "api": "up", **components}


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    problems = []
    try:
        validate_security_settings()
    except ValueError:
        problems.append("JWT_SECRET")
    if await _database_status() != "up":
        problems.append("DATABASE_URL")
    if _storage_status() != "up":
        problems.append("UPLOAD_DIR")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "failing": problems},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
