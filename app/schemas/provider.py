"""Pydantic v2 schemas for providers, LSMs and the service catalogue."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.account import _normalize_email


def _enum_value(v: object) -> str:
    if hasattr(v, "value"):
        return v.value
    return str(v)


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    category: str = Field(..., min_length=1, max_length=64)


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    service_id: uuid.UUID
    name: str
    category: str
    status: str
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        return _enum_value(v)


class ProviderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider_id: uuid.UUID
    user_id: uuid.UUID
    lsm_id: uuid.UUID
    business_name: str | None
    status: str
    rating: Decimal
    total_jobs: int
    warnings: int
    earning: Decimal
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        return _enum_value(v)


class ProviderProfile(BaseModel):
    provider: ProviderResponse
    service_ids: list[uuid.UUID]
    zipcodes: list[str]


class ProviderServiceAdd(BaseModel):
    service_id: uuid.UUID


class ServiceAreasUpdate(BaseModel):
    zipcodes: list[str] = Field(..., min_length=1, max_length=50)
    primary_zipcode: str | None = None

    @field_validator("zipcodes")
    @classmethod
    def validate_zipcodes(cls, v: list[str]) -> list[str]:
        cleaned = [z.strip() for z in v]
        for z in cleaned:
            if not 3 <= len(z) <= 10:
                raise ValueError("Zipcode must be 3-10 characters")
        return list(dict.fromkeys(cleaned))


class ProviderStatusUpdate(BaseModel):
    status: Literal["active", "inactive"]


class LsmCreate(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    region: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class LsmResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lsm_id: uuid.UUID
    user_id: uuid.UUID
    region: str
    closed_deals_count: int


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: uuid.UUID
    user_id: uuid.UUID
    address: str | None
    status: str

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        return _enum_value(v)
