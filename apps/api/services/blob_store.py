"""Blob storage for uploaded video and thumbnail files."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from fastapi import Request, UploadFile

from config import settings
from services.errors import Internal, InvalidInput

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024


@dataclass
class StoredBlob:
    key: str
    url: str
    size: int
    content_type: Optional[str] = None


class BlobStore(Protocol):
    async def save(self, file: UploadFile, folder: str, max_bytes: int) -> StoredBlob:
        ...

    async def delete(self, key: str) -> None:
        ...


def _sanitize_filename(filename: str, fallback: str) -> str:
    base = os.path.basename(filename or fallback)
    safe = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "_" for ch in base)
    return safe or fallback


class LocalBlobStore:
    """Stores blobs on local disk and serves them under a public base URL."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise InvalidInput("Invalid storage key")
        return path

    async def save(self, file: UploadFile, folder: str, max_bytes: int) -> StoredBlob:
        filename = _sanitize_filename(file.filename or "", f"{folder}.bin")
        key = f"{folder}/{uuid.uuid4()}_{filename}"
        destination = self._path_for(key)
        destination.parent.mkdir(parents=True, exist_ok=True)

        total_size = 0
        try:
            with destination.open("wb") as out:
                while True:
                    chunk = await file.read(UPLOAD_CHUNK_BYTES)
                    if not chunk:
                        break
                    total_size += len(chunk)
                    if total_size > max_bytes:
                        out.close()
                        destination.unlink(missing_ok=True)
                        raise InvalidInput(
                            f"File too large. Max upload size is {max_bytes // (1024 * 1024)}MB."
                        )
                    out.write(chunk)
        except OSError as exc:
            destination.unlink(missing_ok=True)
            logger.error("blob_store_failed key=%s error=%s", key, exc)
            raise Internal("Could not store upload") from exc
        finally:
            await file.close()

        logger.info("blob_stored key=%s bytes=%s", key, total_size)
        return StoredBlob(
            key=key,
            url=f"{self.public_base_url}/{key}",
            size=total_size,
            content_type=file.content_type,
        )

    async def delete(self, key: str) -> None:
        if not key:
            return
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete blob %s: %s", key, exc)


def build_blob_store() -> LocalBlobStore:
    return LocalBlobStore(settings.UPLOAD_DIR, settings.PUBLIC_MEDIA_BASE_URL)


def get_blob_store(request: Request) -> BlobStore:
    """Blob store held on application state, built on first use."""
    store = getattr(request.app.state, "blob_store", None)
    if store is None:
        store = build_blob_store()
        request.app.state.blob_store = store
    return store
