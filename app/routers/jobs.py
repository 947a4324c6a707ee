"""Job lifecycle endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, get_current_user, require_roles
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.job import JobStatus
from app.models.user import UserRole
from app.schemas.job import (
    AlternativeProvider,
    CancellationQuote,
    JobAction,
    JobCreate,
    JobReassign,
    JobRespond,
    JobResponse,
    JobStatusUpdate,
    ResendResponse,
)
from app.services import job as job_service
from app.services.cancellation import get_cancellation_policy

router = APIRouter(prefix="/jobs", tags=["jobs"])

_customer = require_roles(UserRole.CUSTOMER)
_provider = require_roles(UserRole.PROVIDER)


@router.post("", response_model=JobResponse, status_code=201, dependencies=[Depends(check_rate_limit)])
async def create_job(
    data: JobCreate,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Customer requests a job from a provider."""
    job = await job_service.create_job(db, auth.user_id, data)
    return JobResponse.model_validate(job)


@router.get("", response_model=list[JobResponse], dependencies=[Depends(check_rate_limit)])
async def list_jobs(
    status: JobStatus | None = Query(None),
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[JobResponse]:
    """Jobs visible to the caller, newest first."""
    jobs = await job_service.list_jobs_for_user(db, auth, status)
    return [JobResponse.model_validate(j) for j in jobs]


@router.get("/cancellation-policy", dependencies=[Depends(check_rate_limit)])
async def cancellation_policy() -> dict:
    """Current cancellation fee policy."""
    return get_cancellation_policy()


@router.get("/{job_id}", response_model=JobResponse, dependencies=[Depends(check_rate_limit)])
async def get_job(
    job_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Get job details. Parties, the region's LSM, and admins only."""
    job = await job_service.get_job_for_user(db, job_id, auth)
    return JobResponse.model_validate(job)


@router.post("/{job_id}/respond", response_model=JobResponse, dependencies=[Depends(check_rate_limit)])
async def respond_to_job(
    job_id: uuid.UUID,
    data: JobRespond,
    auth: AuthenticatedUser = Depends(_provider),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Provider accepts, rejects, or negotiates a new request."""
    job = await job_service.respond_to_job(db, job_id, auth.user_id, data)
    return JobResponse.model_validate(job)


@router.post("/{job_id}/action", response_model=JobResponse, dependencies=[Depends(check_rate_limit)])
async def customer_job_action(
    job_id: uuid.UUID,
    data: JobAction,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Customer approves proposed changes, closes the deal, or cancels."""
    job = await job_service.customer_job_action(db, job_id, auth.user_id, data)
    return JobResponse.model_validate(job)


@router.get(
    "/{job_id}/cancellation-quote",
    response_model=CancellationQuote,
    dependencies=[Depends(check_rate_limit)],
)
async def cancellation_quote(
    job_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> CancellationQuote:
    """What cancelling now would cost, without cancelling."""
    job, fee = await job_service.quote_cancellation(db, job_id, auth.user_id)
    return CancellationQuote(
        job_id=job.job_id,
        cancellation_fee=fee.fee,
        reschedulable=fee.reschedulable,
        policy=fee.policy,
        hours_until_job=fee.hours_until_job,
    )


@router.post("/{job_id}/reassign", response_model=JobResponse, dependencies=[Depends(check_rate_limit)])
async def reassign_job(
    job_id: uuid.UUID,
    data: JobReassign,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Send a new or declined request to a different provider."""
    job = await job_service.reassign_job(db, job_id, auth.user_id, data)
    return JobResponse.model_validate(job)


@router.get(
    "/{job_id}/alternative-providers",
    response_model=list[AlternativeProvider],
    dependencies=[Depends(check_rate_limit)],
)
async def alternative_providers(
    job_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> list[AlternativeProvider]:
    providers = await job_service.get_alternative_providers(db, job_id, auth.user_id)
    return [
        AlternativeProvider(
            provider_id=p.provider_id,
            business_name=p.business_name,
            rating=p.rating,
            total_jobs=p.total_jobs,
        )
        for p in providers
    ]


@router.post("/{job_id}/resend", response_model=ResendResponse, dependencies=[Depends(check_rate_limit)])
async def resend_job(
    job_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(_customer),
    db: AsyncSession = Depends(get_db),
) -> ResendResponse:
    """Remind the provider and extend the response deadline."""
    job = await job_service.resend_job_request(db, job_id, auth.user_id)
    return ResendResponse(job_id=job.job_id, response_deadline=job.response_deadline)


@router.post("/{job_id}/status", response_model=JobResponse, dependencies=[Depends(check_rate_limit)])
async def update_job_status(
    job_id: uuid.UUID,
    data: JobStatusUpdate,
    auth: AuthenticatedUser = Depends(_provider),
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Provider marks the job complete or records payment."""
    job = await job_service.update_job_status(db, job_id, auth.user_id, data)
    return JobResponse.model_validate(job)
