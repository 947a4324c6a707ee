"""Pydantic v2 schemas for disputes."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DisputeCreate(BaseModel):
    job_id: uuid.UUID
    description: str = Field(..., min_length=1, max_length=4096)


class DisputeResolve(BaseModel):
    resolution_notes: str | None = Field(None, max_length=4096)


class DisputeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dispute_id: uuid.UUID
    job_id: uuid.UUID
    raised_by_type: str
    raised_by_user_id: uuid.UUID
    description: str
    status: str
    resolution_notes: str | None
    resolved_by: uuid.UUID | None
    resolved_at: datetime | None
    created_at: datetime

    @field_validator("raised_by_type", "status", mode="before")
    @classmethod
    def serialize_enum(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)
