"""Pydantic v2 schemas for Job lifecycle endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Answers key written by the server when an in-person visit is requested
IN_PERSON_VISIT_KEY = "in_person_visit"


def _reject_reserved_answers(v: dict[str, Any] | None) -> dict[str, Any] | None:
    if v and IN_PERSON_VISIT_KEY in v:
        raise ValueError(
            f"{IN_PERSON_VISIT_KEY} is reserved; use requires_in_person_visit instead"
        )
    return v


class JobCreate(BaseModel):
    """Customer requests a job from a specific provider.

    ``answers`` holds the service questionnaire (free-form key/value pairs),
    e.g. ``{"fixture_type": "toilet", "urgency": "this week"}``.
    """
    provider_id: uuid.UUID
    service_id: uuid.UUID
    location: str = Field(..., min_length=1, max_length=512)
    zipcode: str = Field(..., min_length=3, max_length=10)
    answers: dict[str, Any] | None = None
    images: list[str] | None = Field(None, max_length=10)
    customer_budget: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    scheduled_at: datetime | None = None
    requires_in_person_visit: bool = False
    in_person_visit_cost: Decimal | None = Field(None, ge=0, max_digits=8, decimal_places=2)

    @field_validator("customer_budget")
    @classmethod
    def validate_budget(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v > Decimal("1000000"):
            raise ValueError("Maximum budget is 1,000,000")
        return v

    @field_validator("answers")
    @classmethod
    def validate_answers(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _reject_reserved_answers(v)


class NegotiationProposal(BaseModel):
    """Provider's counter-terms, stored on the job until the customer approves.

    Any of price / schedule / answer changes may be proposed; notes are
    mandatory so the customer knows why the terms changed.
    """
    proposed_price: Decimal | None = Field(None, gt=0, max_digits=12, decimal_places=2)
    proposed_scheduled_at: datetime | None = None
    answer_changes: dict[str, Any] | None = None
    notes: str | None = Field(None, max_length=2048)
    proposed_at: datetime | None = None

    @field_validator("answer_changes")
    @classmethod
    def validate_answer_changes(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        return _reject_reserved_answers(v)


class JobRespond(BaseModel):
    """Provider answers a new job request."""
    action: Literal["accept", "reject", "negotiate"]
    rejection_reason: str | None = Field(None, max_length=2048)
    negotiation: NegotiationProposal | None = None


class JobAction(BaseModel):
    """Customer action on their own job."""
    action: Literal["approve_edits", "close_deal", "cancel"]
    cancellation_reason: str | None = Field(None, max_length=2048)


class JobReassign(BaseModel):
    provider_id: uuid.UUID


class PaymentDetails(BaseModel):
    method: Literal["cash", "card", "bank_transfer", "online"]
    notes: str | None = Field(None, max_length=1024)


class JobStatusUpdate(BaseModel):
    """Provider reports work done or payment received."""
    action: Literal["mark_complete", "mark_payment"]
    payment_details: PaymentDetails | None = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: uuid.UUID
    customer_id: uuid.UUID
    provider_id: uuid.UUID
    service_id: uuid.UUID
    status: str
    price: Decimal
    location: str
    zipcode: str
    answers: dict | None
    images: list | None = None
    scheduled_at: datetime | None
    response_deadline: datetime
    sp_accepted: bool
    pending_approval: bool
    edited_answers: NegotiationProposal | None = None
    rejection_reason: str | None
    cancellation_reason: str | None = None
    cancellation_fee: Decimal | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    paid_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def serialize_status(cls, v: object) -> str:
        if hasattr(v, "value"):
            return v.value
        return str(v)


class CancellationQuote(BaseModel):
    """What cancelling the job right now would cost."""
    job_id: uuid.UUID
    cancellation_fee: Decimal
    reschedulable: bool
    policy: str
    hours_until_job: float | None = None


class ResendResponse(BaseModel):
    job_id: uuid.UUID
    response_deadline: datetime
    message: str = "Job request resent. The provider has been notified."


class AlternativeProvider(BaseModel):
    provider_id: uuid.UUID
    business_name: str | None
    rating: Decimal
    total_jobs: int
