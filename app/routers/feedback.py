"""Feedback endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, require_roles
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.user import UserRole
from app.schemas.feedback import FeedbackCreate, FeedbackResponse
from app.services import feedback as feedback_service

router = APIRouter(tags=["feedback"])


@router.post(
    "/jobs/{job_id}/feedback",
    response_model=FeedbackResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def submit_feedback(
    job_id: uuid.UUID,
    data: FeedbackCreate,
    auth: AuthenticatedUser = Depends(require_roles(UserRole.CUSTOMER)),
    db: AsyncSession = Depends(get_db),
) -> FeedbackResponse:
    """Rate the provider on a paid job."""
    feedback = await feedback_service.submit_feedback(db, job_id, auth.user_id, data)
    return FeedbackResponse.model_validate(feedback)


@router.get(
    "/providers/{provider_id}/feedback",
    response_model=list[FeedbackResponse],
    dependencies=[Depends(check_rate_limit)],
)
async def get_provider_feedback(
    provider_id: uuid.UUID,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
) -> list[FeedbackResponse]:
    items = await feedback_service.list_provider_feedback(db, provider_id, limit, offset)
    return [FeedbackResponse.model_validate(f) for f in items]
