"""Dispute filing and resolution."""

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser
from app.models.customer import Customer
from app.models.dispute import Dispute, DisputeStatus
from app.models.job import Job, JobStatus
from app.models.notification import NotificationType
from app.models.provider import LocalServiceManager, ServiceProvider
from app.models.user import UserRole
from app.schemas.dispute import DisputeCreate, DisputeResolve
from app.services.account import get_customer_for_user, get_lsm_for_user, get_provider_for_user
from app.services.notification import notify
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

DISPUTABLE_STATUSES = frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.PAID})


async def _load_parties(
    db: AsyncSession, job: Job
) -> tuple[Customer, ServiceProvider]:
    customer = (await db.execute(
        select(Customer).where(Customer.customer_id == job.customer_id)
    )).scalar_one()
    provider = (await db.execute(
        select(ServiceProvider).where(ServiceProvider.provider_id == job.provider_id)
    )).scalar_one()
    return customer, provider


async def file_dispute(
    db: AsyncSession, auth: AuthenticatedUser, data: DisputeCreate
) -> Dispute:
    """Either party opens a dispute on an active or finished job."""
    job = (await db.execute(select(Job).where(Job.job_id == data.job_id))).scalar_one_or_none()
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")

    customer, provider = await _load_parties(db, job)
    if auth.user_id == customer.user_id:
        raised_by = UserRole.CUSTOMER
    elif auth.user_id == provider.user_id:
        raised_by = UserRole.PROVIDER
    else:
        raise HTTPException(status_code=403, detail="Only parties to the job can file a dispute")

    if job.status not in DISPUTABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot dispute a job with status {job.status.value}",
        )

    existing = await db.execute(
        select(Dispute.dispute_id).where(
            Dispute.job_id == job.job_id,
            Dispute.status == DisputeStatus.PENDING,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="A dispute is already pending for this job")

    dispute = Dispute(
        dispute_id=uuid.uuid4(),
        job_id=job.job_id,
        raised_by_type=raised_by,
        raised_by_user_id=auth.user_id,
        description=data.description,
        status=DisputeStatus.PENDING,
    )
    db.add(dispute)

    if raised_by == UserRole.CUSTOMER:
        notify(
            db, provider.user_id, UserRole.PROVIDER,
            title="Dispute Filed",
            message="The customer filed a dispute on one of your jobs.",
            type=NotificationType.DISPUTE,
        )
    else:
        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Dispute Filed",
            message="The service provider filed a dispute on your job.",
            type=NotificationType.DISPUTE,
        )
    lsm = (await db.execute(
        select(LocalServiceManager).where(LocalServiceManager.lsm_id == provider.lsm_id)
    )).scalar_one_or_none()
    if lsm is not None:
        notify(
            db, lsm.user_id, UserRole.LSM,
            title="New Dispute",
            message=f"A {raised_by.value.replace('_', ' ')} filed a dispute that needs resolution.",
            type=NotificationType.DISPUTE,
        )

    await db.commit()
    await db.refresh(dispute)
    logger.info("Dispute %s filed on job %s by %s", dispute.dispute_id, job.job_id, raised_by.value)
    return dispute


async def _get_dispute(db: AsyncSession, dispute_id: uuid.UUID) -> Dispute:
    result = await db.execute(select(Dispute).where(Dispute.dispute_id == dispute_id))
    dispute = result.scalar_one_or_none()
    if dispute is None:
        raise HTTPException(status_code=404, detail="Dispute not found")
    return dispute


async def _assert_can_resolve(
    db: AsyncSession, auth: AuthenticatedUser, provider: ServiceProvider
) -> None:
    if auth.is_admin:
        return
    lsm = await get_lsm_for_user(db, auth.user_id)
    if provider.lsm_id != lsm.lsm_id:
        raise HTTPException(
            status_code=403,
            detail="Only the local service manager for this region can resolve this dispute",
        )


async def resolve_dispute(
    db: AsyncSession,
    dispute_id: uuid.UUID,
    auth: AuthenticatedUser,
    data: DisputeResolve,
) -> Dispute:
    """Region LSM (or admin) closes a pending dispute. Resolution is final."""
    dispute = await _get_dispute(db, dispute_id)
    job = (await db.execute(select(Job).where(Job.job_id == dispute.job_id))).scalar_one()
    customer, provider = await _load_parties(db, job)
    await _assert_can_resolve(db, auth, provider)

    notes = (data.resolution_notes or "").strip()
    if not notes:
        raise HTTPException(status_code=400, detail="Resolution notes are required")
    if dispute.status != DisputeStatus.PENDING:
        raise HTTPException(status_code=400, detail="Dispute is already resolved")

    # Guarded so a concurrent resolution loses cleanly
    result = await db.execute(
        update(Dispute)
        .where(
            Dispute.dispute_id == dispute_id,
            Dispute.status == DisputeStatus.PENDING,
        )
        .values(
            status=DisputeStatus.RESOLVED,
            resolution_notes=notes,
            resolved_by=auth.user_id,
            resolved_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Dispute is already resolved")

    for user_id, role in ((customer.user_id, UserRole.CUSTOMER), (provider.user_id, UserRole.PROVIDER)):
        notify(
            db, user_id, role,
            title="Dispute Resolved",
            message=f"The dispute on your job has been resolved. Resolution: {notes}",
            type=NotificationType.DISPUTE,
        )

    await db.commit()
    await db.refresh(dispute)
    logger.info("Dispute %s resolved by %s", dispute_id, auth.user_id)
    return dispute


async def get_dispute_for_user(
    db: AsyncSession, dispute_id: uuid.UUID, auth: AuthenticatedUser
) -> Dispute:
    dispute = await _get_dispute(db, dispute_id)
    if auth.is_admin:
        return dispute
    job = (await db.execute(select(Job).where(Job.job_id == dispute.job_id))).scalar_one()
    customer, provider = await _load_parties(db, job)
    if auth.user_id in (customer.user_id, provider.user_id):
        return dispute
    if auth.role == UserRole.LSM:
        lsm = await get_lsm_for_user(db, auth.user_id)
        if provider.lsm_id == lsm.lsm_id:
            return dispute
    raise HTTPException(status_code=403, detail="You do not have access to this dispute")


async def list_disputes(
    db: AsyncSession, auth: AuthenticatedUser, status: DisputeStatus | None = None
) -> list[Dispute]:
    """Admins see everything, LSMs their region, parties their own jobs."""
    query = select(Dispute).join(Job, Job.job_id == Dispute.job_id)
    if auth.role == UserRole.LSM:
        lsm = await get_lsm_for_user(db, auth.user_id)
        query = query.join(
            ServiceProvider, ServiceProvider.provider_id == Job.provider_id
        ).where(ServiceProvider.lsm_id == lsm.lsm_id)
    elif auth.role == UserRole.CUSTOMER:
        customer = await get_customer_for_user(db, auth.user_id)
        query = query.where(Job.customer_id == customer.customer_id)
    elif auth.role == UserRole.PROVIDER:
        provider = await get_provider_for_user(db, auth.user_id)
        query = query.where(Job.provider_id == provider.provider_id)

    if status is not None:
        query = query.where(Dispute.status == status)
    result = await db.execute(query.order_by(Dispute.created_at.desc()))
    return list(result.scalars().all())
