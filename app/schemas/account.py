"""Pydantic schemas for registration, login and token refresh."""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


class _RegisterBase(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: str | None = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class CustomerRegister(_RegisterBase):
    address: str | None = Field(None, max_length=512)


class ProviderRegister(_RegisterBase):
    """Provider signup. The region selects the LSM who will review the account."""
    business_name: str | None = Field(None, max_length=256)
    region: str = Field(..., min_length=1, max_length=128)
    zipcodes: list[str] = Field(default_factory=list, max_length=50)
    service_ids: list[uuid.UUID] = Field(default_factory=list, max_length=50)


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in_seconds: int


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone_number: str | None
    role: str
    created_at: datetime

    @field_validator("role", mode="before")
    @classmethod
    def serialize_role(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class MeResponse(BaseModel):
    """Current user plus the id of the role-specific profile, when one exists."""
    user: UserResponse
    customer_id: uuid.UUID | None = None
    provider_id: uuid.UUID | None = None
    lsm_id: uuid.UUID | None = None
