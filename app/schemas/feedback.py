"""Pydantic v2 schemas for customer feedback."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class FeedbackCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    punctuality_rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=4096)


class FeedbackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    feedback_id: uuid.UUID
    job_id: uuid.UUID
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    rating: int
    punctuality_rating: int | None
    comment: str | None
    created_at: datetime
