"""Pydantic v2 schemas for file uploads."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    url: str
    content_type: str
    size_bytes: int
