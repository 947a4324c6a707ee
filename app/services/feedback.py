"""Customer feedback and provider rating."""

import uuid
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.feedback import Feedback
from app.models.job import Job, JobStatus
from app.models.provider import ServiceProvider
from app.models.user import UserRole
from app.schemas.feedback import FeedbackCreate
from app.services.account import get_customer_for_user
from app.services.notification import notify


async def submit_feedback(
    db: AsyncSession,
    job_id: uuid.UUID,
    user_id: uuid.UUID,
    data: FeedbackCreate,
) -> Feedback:
    """Rate the provider on a paid job. One feedback per job."""
    customer = await get_customer_for_user(db, user_id)
    result = await db.execute(select(Job).where(Job.job_id == job_id))
    job = result.scalar_one_or_none()
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.customer_id != customer.customer_id:
        raise HTTPException(status_code=403, detail="You can only review your own jobs")
    if job.status != JobStatus.PAID:
        raise HTTPException(status_code=400, detail="Feedback can only be left on paid jobs")

    existing = await db.execute(select(Feedback.feedback_id).where(Feedback.job_id == job_id))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="You have already left feedback for this job")

    feedback = Feedback(
        feedback_id=uuid.uuid4(),
        job_id=job_id,
        customer_id=customer.customer_id,
        provider_id=job.provider_id,
        rating=data.rating,
        punctuality_rating=data.punctuality_rating,
        comment=data.comment,
    )
    db.add(feedback)
    await db.flush()

    provider = await _update_rating(db, job.provider_id)
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="New Feedback",
        message=f"A customer rated your work {data.rating}/5.",
    )

    await db.commit()
    await db.refresh(feedback)
    return feedback


async def _update_rating(db: AsyncSession, provider_id: uuid.UUID) -> ServiceProvider:
    """Recompute the provider's average rating from all feedback."""
    average = (await db.execute(
        select(func.avg(Feedback.rating)).where(Feedback.provider_id == provider_id)
    )).scalar_one()
    provider = (await db.execute(
        select(ServiceProvider).where(ServiceProvider.provider_id == provider_id)
    )).scalar_one()
    if average is not None:
        provider.rating = Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return provider


async def list_provider_feedback(
    db: AsyncSession, provider_id: uuid.UUID, limit: int = 20, offset: int = 0
) -> list[Feedback]:
    result = await db.execute(
        select(Feedback)
        .where(Feedback.provider_id == provider_id)
        .order_by(Feedback.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
