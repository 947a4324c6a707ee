"""Blob storage for uploaded files.

Two backends, selected by STORAGE_BACKEND:
- ``local``: files written under UPLOAD_DIR and served from BASE_URL/uploads
- ``s3``: S3 or any S3-compatible store (R2, MinIO) via boto3

boto3 is synchronous, so calls run in a worker thread.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from fastapi import HTTPException

from app.config import settings

logger = logging.getLogger(__name__)

# Content type -> file extension
ALLOWED_IMAGE_TYPES: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/heic": ".heic",
}

_DANGEROUS_FILENAME_CHARS = ("..", "/", "\\", "<", ">", ":", '"', "|", "?", "*")


class BlobStore(Protocol):
    async def put(self, key: str, data: bytes, content_type: str) -> str: ...


class LocalBlobStore:
    """Development store: writes to the local filesystem."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or settings.upload_dir)

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        return f"{settings.base_url.rstrip('/')}/{self.root.name}/{key}"


class S3BlobStore:
    """Production store: S3-compatible object storage."""

    def __init__(self) -> None:
        self._client = None

    def _get_client(self):  # type: ignore[no-untyped-def]
        if self._client is None:
            self._client = boto3.client(
                "s3",
                region_name=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url or None,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        client = self._get_client()
        await asyncio.to_thread(
            client.put_object,
            Bucket=settings.s3_bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return f"{settings.resolved_s3_base_url}/{key}"


def get_blob_store() -> BlobStore:
    if settings.storage_backend == "s3":
        return S3BlobStore()
    return LocalBlobStore()


def validate_upload(data: bytes, content_type: str | None, filename: str | None) -> str:
    """Check type, name and size. Returns the file extension to store under."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPEG, WebP, GIF and HEIC images are allowed.",
        )
    if filename:
        if len(filename) > 255:
            raise HTTPException(status_code=400, detail="Filename too long - maximum 255 characters")
        for chars in _DANGEROUS_FILENAME_CHARS:
            if chars in filename:
                raise HTTPException(status_code=400, detail="Invalid filename")
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > settings.upload_max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (max {settings.upload_max_bytes} bytes)",
        )
    return ALLOWED_IMAGE_TYPES[content_type]


async def upload_file(
    data: bytes,
    content_type: str | None,
    filename: str | None = None,
    prefix: str = "images",
    store: BlobStore | None = None,
) -> str:
    """Validate and store an uploaded file, returning its public URL."""
    ext = validate_upload(data, content_type, filename)
    key = f"{prefix}/{uuid.uuid4().hex}{ext}"
    url = await (store or get_blob_store()).put(key, data, content_type)
    logger.info("Stored upload key=%s bytes=%d", key, len(data))
    return url
