"""Pydantic v2 schemas for job chats."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _enum_value(v: object) -> str:
    if hasattr(v, "value"):
        return v.value
    return str(v)


class ChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    chat_id: uuid.UUID
    job_id: uuid.UUID
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    is_active: bool
    created_at: datetime


class MessageCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=4096)
    message_type: str = Field("text", pattern="^(text|image)$")


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message_id: uuid.UUID
    chat_id: uuid.UUID
    sender_type: str
    sender_user_id: uuid.UUID
    message_type: str
    body: str
    created_at: datetime

    @field_validator("sender_type", "message_type", mode="before")
    @classmethod
    def serialize_enum(cls, v: object) -> str:
        return _enum_value(v)
