"""Response deadline enforcement for new job requests.

A single async consumer wakes every ``response_timeout_check_seconds`` and
looks for new requests the provider neither accepted nor negotiated before
``response_deadline`` (plus a short grace period). Each one is flagged with
a timeout reason, the customer is told to pick another provider, and the
provider collects a warning. Once a provider reaches
``provider_warning_limit`` warnings their LSM is asked to review them.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.customer import Customer
from app.models.job import Job, JobStatus
from app.models.notification import NotificationType
from app.models.provider import LocalServiceManager, Service, ServiceProvider
from app.models.user import UserRole
from app.services.notification import notify
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "Provider did not respond within deadline"


async def find_overdue_jobs(
    db: AsyncSession, now: datetime | None = None, limit: int | None = None
) -> list[Job]:
    cutoff = (now or utcnow()) - timedelta(minutes=settings.response_timeout_grace_minutes)
    result = await db.execute(
        select(Job)
        .where(
            Job.status == JobStatus.NEW,
            Job.sp_accepted.is_(False),
            Job.pending_approval.is_(False),
            Job.rejection_reason.is_(None),
            Job.response_deadline < cutoff,
        )
        .order_by(Job.response_deadline)
        .limit(limit or settings.response_timeout_batch_size)
    )
    return list(result.scalars().all())


async def _handle_timeout(db: AsyncSession, job: Job) -> None:
    provider = (await db.execute(
        select(ServiceProvider).where(ServiceProvider.provider_id == job.provider_id)
    )).scalar_one()
    customer = (await db.execute(
        select(Customer).where(Customer.customer_id == job.customer_id)
    )).scalar_one()
    service = (await db.execute(
        select(Service).where(Service.service_id == job.service_id)
    )).scalar_one()

    provider.warnings += 1
    job.rejection_reason = TIMEOUT_REASON
    limit = settings.provider_warning_limit

    notify(
        db, customer.user_id, UserRole.CUSTOMER,
        title="Job Response Timeout",
        message=f"The service provider did not respond to your {service.name} request. "
                "You can select a different provider.",
    )
    warning = f"You missed the response deadline for a {service.name} request. " \
              f"Warning {provider.warnings}/{limit}"
    if provider.warnings >= limit:
        warning += " - your account will be reviewed by your local service manager."
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="Response Deadline Missed",
        message=warning,
        type=NotificationType.SYSTEM,
    )

    if provider.warnings >= limit:
        lsm = (await db.execute(
            select(LocalServiceManager).where(LocalServiceManager.lsm_id == provider.lsm_id)
        )).scalar_one_or_none()
        if lsm is not None:
            notify(
                db, lsm.user_id, UserRole.LSM,
                title="Provider Review Required",
                message=f"Service provider {provider.business_name or provider.provider_id} "
                        f"has reached {provider.warnings} missed-deadline warnings.",
                type=NotificationType.SYSTEM,
            )


async def expire_overdue_requests(db: AsyncSession, now: datetime | None = None) -> int:
    """Process one batch of overdue requests, committing each separately."""
    jobs = await find_overdue_jobs(db, now)
    for job in jobs:
        await _handle_timeout(db, job)
        await db.commit()
        logger.info("Job %s timed out waiting for provider %s", job.job_id, job.provider_id)
    return len(jobs)


async def run_response_timeout_consumer() -> None:
    """Sweep for overdue requests until cancelled."""
    from app.database import async_session

    while True:
        try:
            async with async_session() as db:
                processed = await expire_overdue_requests(db)
            if processed:
                logger.info("Response timeout sweep processed %d jobs", processed)
            await asyncio.sleep(settings.response_timeout_check_seconds)
        except asyncio.CancelledError:
            logger.info("Response timeout consumer shutting down")
            break
        except Exception:
            logger.exception("Response timeout consumer error, retrying in 5s")
            await asyncio.sleep(5)
