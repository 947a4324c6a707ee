"""Pydantic v2 schemas for in-app notifications."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    notification_id: uuid.UUID
    recipient_user_id: uuid.UUID
    recipient_type: str
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime

    @field_validator("recipient_type", "type", mode="before")
    @classmethod
    def serialize_enum(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class NotificationList(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread: int


class UnreadCount(BaseModel):
    unread: int


class MarkedCount(BaseModel):
    updated: int
