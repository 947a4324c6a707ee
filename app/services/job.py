"""Job lifecycle and negotiation business logic.

Every mutating function stages its side effects (chat messages,
notifications, payments) on the session and commits once at the end, so
a failure anywhere rolls the whole unit back. Emails go out after commit.
"""

import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser
from app.config import settings
from app.models.chat import MessageType, SenderType
from app.models.customer import Customer, CustomerStatus
from app.models.job import CUSTOMER_CANCELLABLE, REASSIGNABLE, VALID_TRANSITIONS, Job, JobStatus
from app.models.notification import NotificationType
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.provider import (
    LocalServiceManager,
    ProviderService,
    ProviderStatus,
    Service,
    ServiceArea,
    ServiceProvider,
    ServiceStatus,
)
from app.models.user import User, UserRole
from app.schemas.job import (
    IN_PERSON_VISIT_KEY,
    JobAction,
    JobCreate,
    JobReassign,
    JobRespond,
    JobStatusUpdate,
    NegotiationProposal,
)
from app.services import chat as chat_service
from app.services import email as email_service
from app.services.account import get_customer_for_user, get_lsm_for_user, get_provider_for_user
from app.services.cancellation import CancellationFee, calculate_cancellation_fee
from app.services.notification import notify
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _assert_transition(current: JobStatus, target: JobStatus) -> None:
    """Raise 400 if the state transition is not valid."""
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot transition from {current.value} to {target.value}",
        )


def _assert_customer(job: Job, customer: Customer) -> None:
    if job.customer_id != customer.customer_id:
        raise HTTPException(status_code=403, detail="You can only manage your own jobs")


def _assert_provider(job: Job, provider: ServiceProvider) -> None:
    if job.provider_id != provider.provider_id:
        raise HTTPException(status_code=403, detail="This job is not assigned to you")


def _new_response_deadline() -> datetime:
    return utcnow() + timedelta(minutes=settings.job_response_window_minutes)


async def _get_job(db: AsyncSession, job_id: uuid.UUID) -> Job:
    result = await db.execute(select(Job).where(Job.job_id == job_id))
    job = result.scalar_one_or_none()
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


async def _get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.user_id == user_id))
    return result.scalar_one()


async def _get_service(db: AsyncSession, service_id: uuid.UUID) -> Service:
    result = await db.execute(select(Service).where(Service.service_id == service_id))
    service = result.scalar_one_or_none()
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


async def _get_provider(db: AsyncSession, provider_id: uuid.UUID) -> ServiceProvider:
    result = await db.execute(
        select(ServiceProvider).where(ServiceProvider.provider_id == provider_id)
    )
    provider = result.scalar_one_or_none()
    if provider is None:
        raise HTTPException(status_code=404, detail="Service provider not found")
    return provider


async def _check_provider_eligible(
    db: AsyncSession, provider_id: uuid.UUID, service_id: uuid.UUID, zipcode: str
) -> ServiceProvider:
    """The provider must be active, offer the service, and serve the zipcode."""
    provider = await _get_provider(db, provider_id)
    if provider.status != ProviderStatus.ACTIVE:
        raise HTTPException(status_code=400, detail="Service provider is not active")

    offers = await db.execute(
        select(ProviderService.id).where(
            ProviderService.provider_id == provider_id,
            ProviderService.service_id == service_id,
        )
    )
    if offers.scalar_one_or_none() is None:
        raise HTTPException(status_code=400, detail="Service provider does not offer this service")

    serves = await db.execute(
        select(ServiceArea.id).where(
            ServiceArea.provider_id == provider_id,
            ServiceArea.zipcode == zipcode,
        )
    )
    if serves.scalar_one_or_none() is None:
        raise HTTPException(status_code=400, detail="Service provider does not serve this zipcode")
    return provider


async def _check_blocking_jobs(
    db: AsyncSession, customer_id: uuid.UUID, provider_id: uuid.UUID
) -> None:
    """Reject a new request while an earlier job still needs the customer's attention."""
    result = await db.execute(
        select(Job).where(
            Job.customer_id == customer_id,
            Job.status.in_([JobStatus.NEW, JobStatus.IN_PROGRESS, JobStatus.COMPLETED]),
        )
    )
    open_jobs = list(result.scalars().all())

    # Same-provider completions are allowed through so payment can continue
    for job in open_jobs:
        if job.status == JobStatus.COMPLETED and job.provider_id != provider_id:
            payment = await _get_payment(db, job.job_id)
            if payment is None or payment.status != PaymentStatus.RECEIVED:
                raise HTTPException(
                    status_code=400,
                    detail="You have a completed job awaiting payment. "
                           "Settle it before requesting a different provider.",
                )
    if any(j.status == JobStatus.IN_PROGRESS and j.provider_id == provider_id for j in open_jobs):
        raise HTTPException(
            status_code=400,
            detail="You already have a job in progress with this provider",
        )
    if any(j.status == JobStatus.NEW and j.sp_accepted for j in open_jobs):
        raise HTTPException(
            status_code=400,
            detail="You have an accepted request waiting on you. "
                   "Close the deal or cancel it first.",
        )
    if any(j.status == JobStatus.NEW and j.provider_id == provider_id for j in open_jobs):
        raise HTTPException(
            status_code=400,
            detail="You already have a pending request with this provider. Resend it instead.",
        )


async def _get_payment(db: AsyncSession, job_id: uuid.UUID) -> Payment | None:
    result = await db.execute(select(Payment).where(Payment.job_id == job_id))
    return result.scalar_one_or_none()


def _visit_cost(visit: Any) -> Decimal | None:
    if not isinstance(visit, dict) or visit.get("cost") is None:
        return None
    try:
        return Decimal(str(visit["cost"]))
    except InvalidOperation:
        logger.warning("Ignoring unparseable in-person visit cost: %r", visit["cost"])
        return None


def _details_message(service: Service, job: Job) -> str:
    answers = dict(job.answers or {})
    visit = answers.pop(IN_PERSON_VISIT_KEY, None)
    return chat_service.format_job_details_message(
        service_name=service.name,
        location=job.location,
        zipcode=job.zipcode,
        answers=answers,
        budget=job.price,
        preferred_date=job.scheduled_at.isoformat() if job.scheduled_at else None,
        in_person_visit_cost=_visit_cost(visit),
        image_count=len(job.images or []),
    )


async def _open_job_chat(
    db: AsyncSession, job: Job, service: Service, customer_user_id: uuid.UUID
) -> None:
    """Open the job's chat with the request summary (and images, if any)."""
    chat = chat_service.open_chat(db, job)
    await db.flush()
    chat_service.post_message(
        db, chat, SenderType.CUSTOMER, customer_user_id, _details_message(service, job),
    )
    if job.images:
        chat_service.post_message(
            db, chat, SenderType.CUSTOMER, customer_user_id,
            "\n".join(job.images), message_type=MessageType.IMAGE,
        )


async def _post_to_job_chat(
    db: AsyncSession,
    job: Job,
    sender_type: SenderType,
    sender_user_id: uuid.UUID,
    body: str,
    message_type: MessageType = MessageType.TEXT,
) -> None:
    chat = await chat_service.get_active_chat(db, job.job_id)
    if chat is not None:
        chat_service.post_message(db, chat, sender_type, sender_user_id, body, message_type)


# ---------------------------------------------------------------------------
# Customer: request
# ---------------------------------------------------------------------------

async def create_job(db: AsyncSession, user_id: uuid.UUID, data: JobCreate) -> Job:
    """Customer requests a job from a specific provider."""
    customer = await get_customer_for_user(db, user_id)
    if customer.status == CustomerStatus.BANNED:
        raise HTTPException(status_code=403, detail="Your account is banned from requesting jobs")

    service = await _get_service(db, data.service_id)
    if service.status != ServiceStatus.APPROVED:
        raise HTTPException(status_code=400, detail="Service is not available")
    provider = await _check_provider_eligible(db, data.provider_id, data.service_id, data.zipcode)
    await _check_blocking_jobs(db, customer.customer_id, provider.provider_id)

    answers = dict(data.answers or {})
    if data.requires_in_person_visit:
        visit_cost = data.in_person_visit_cost
        if visit_cost is None:
            visit_cost = settings.in_person_visit_default_cost
        answers[IN_PERSON_VISIT_KEY] = {"requested": True, "cost": str(visit_cost)}

    job = Job(
        job_id=uuid.uuid4(),
        customer_id=customer.customer_id,
        provider_id=provider.provider_id,
        service_id=service.service_id,
        status=JobStatus.NEW,
        price=data.customer_budget or Decimal("0.00"),
        location=data.location,
        zipcode=data.zipcode,
        answers=answers or None,
        images=list(data.images or []),
        scheduled_at=data.scheduled_at,
        response_deadline=_new_response_deadline(),
    )
    db.add(job)
    await db.flush()

    await _open_job_chat(db, job, service, user_id)

    customer_user = await _get_user(db, user_id)
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="New Job Request",
        message=f"New {service.name} request from {customer_user.full_name}. "
                f"Please respond within {settings.job_response_window_minutes} minutes.",
    )

    await db.commit()
    await db.refresh(job)
    logger.info(
        "Job %s created customer=%s provider=%s service=%s",
        job.job_id, customer.customer_id, provider.provider_id, service.name,
    )

    provider_user = await _get_user(db, provider.user_id)
    await email_service.send_new_job_email(
        to=provider_user.email,
        provider_name=provider.business_name or provider_user.full_name,
        service_name=service.name,
        customer_name=customer_user.full_name,
        location=job.location,
    )
    return job


# ---------------------------------------------------------------------------
# Provider: respond
# ---------------------------------------------------------------------------

async def respond_to_job(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID, data: JobRespond
) -> Job:
    """Provider accepts, rejects, or proposes changes to a new request."""
    provider = await get_provider_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_provider(job, provider)

    if job.status != JobStatus.NEW:
        raise HTTPException(status_code=400, detail="Job has already been responded to")

    service = await _get_service(db, job.service_id)
    customer = await _get_customer(db, job.customer_id)
    provider_name = provider.business_name or "Service provider"
    send_acceptance_email = False

    if data.action == "accept":
        if job.sp_accepted:
            raise HTTPException(status_code=400, detail="Job has already been accepted")
        if job.pending_approval:
            raise HTTPException(
                status_code=400,
                detail="Waiting for the customer to review your proposed changes",
            )
        job.sp_accepted = True
        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Job Accepted",
            message=f"Your {service.name} request has been accepted. "
                    "You can now close the deal to start the job.",
        )
        await _post_to_job_chat(
            db, job, SenderType.PROVIDER, user_id,
            "I have accepted your request. Please review and close the deal to proceed!",
        )
        send_acceptance_email = True

    elif data.action == "reject":
        reason = (data.rejection_reason or "").strip()
        if not reason:
            raise HTTPException(status_code=400, detail="Rejection reason is required")
        _assert_transition(job.status, JobStatus.REJECTED_BY_SP)
        job.status = JobStatus.REJECTED_BY_SP
        job.rejection_reason = reason
        job.sp_accepted = False
        job.pending_approval = False
        job.edited_answers = None
        await chat_service.delete_job_chats(db, job.job_id)
        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Job Declined",
            message=f"Your {service.name} request was declined. Reason: {reason}",
        )

    else:
        proposal = data.negotiation
        if proposal is None:
            raise HTTPException(status_code=400, detail="Negotiation details are required")
        if not (proposal.notes or "").strip():
            raise HTTPException(status_code=400, detail="Negotiation notes are required")
        proposal = proposal.model_copy(update={"proposed_at": utcnow()})
        job.edited_answers = proposal.model_dump(mode="json")
        job.pending_approval = True
        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Service Provider Proposed Changes",
            message=f"{provider_name} proposed changes to your {service.name} request. "
                    "Please review.",
        )
        await _post_to_job_chat(
            db, job, SenderType.PROVIDER, user_id, _proposal_summary(proposal),
        )

    await db.commit()
    await db.refresh(job)
    logger.info("Job %s provider response=%s", job.job_id, data.action)

    if send_acceptance_email:
        customer_user = await _get_user(db, customer.user_id)
        await email_service.send_job_accepted_email(
            to=customer_user.email,
            customer_name=customer_user.full_name,
            provider_name=provider_name,
            service_name=service.name,
        )
    return job


def _proposal_summary(proposal: NegotiationProposal) -> str:
    lines = ["I have proposed changes to your request:", ""]
    if proposal.proposed_price is not None:
        lines.append(f"New Price: ${proposal.proposed_price}")
    if proposal.proposed_scheduled_at is not None:
        lines.append(f"New Schedule: {proposal.proposed_scheduled_at.isoformat()}")
    if proposal.answer_changes:
        lines.append("Updated Details:")
        for key, value in proposal.answer_changes.items():
            lines.append(f"  - {chat_service.humanize_key(key)}: {value}")
    lines.extend(["", proposal.notes or ""])
    return "\n".join(lines)


async def _get_customer(db: AsyncSession, customer_id: uuid.UUID) -> Customer:
    result = await db.execute(select(Customer).where(Customer.customer_id == customer_id))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Customer: approve edits / close deal / cancel
# ---------------------------------------------------------------------------

async def customer_job_action(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID, data: JobAction
) -> Job:
    customer = await get_customer_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_customer(job, customer)
    service = await _get_service(db, job.service_id)
    provider = await _get_provider(db, job.provider_id)

    if data.action == "approve_edits":
        _approve_edits(job)
        notify(
            db, provider.user_id, UserRole.PROVIDER,
            title="Changes Approved",
            message=f"The customer approved your proposed changes to the {service.name} job.",
        )
        await _post_to_job_chat(
            db, job, SenderType.CUSTOMER, user_id, "I have approved the proposed changes.",
        )
    elif data.action == "close_deal":
        _close_deal(job)
        notify(
            db, provider.user_id, UserRole.PROVIDER,
            title="Deal Closed",
            message=f"The customer closed the deal. Your {service.name} job is now in progress.",
        )
        await _post_to_job_chat(
            db, job, SenderType.CUSTOMER, user_id, "Deal closed. The job is now in progress.",
            message_type=MessageType.SYSTEM,
        )
    else:
        fee = _cancel(job, data.cancellation_reason)
        await chat_service.deactivate_job_chats(db, job.job_id)
        message = f"The customer cancelled the {service.name} job. Reason: {job.cancellation_reason}"
        if fee.fee > 0:
            message += f" A cancellation fee of ${fee.fee} applies."
        notify(db, provider.user_id, UserRole.PROVIDER, title="Job Cancelled", message=message)

    await db.commit()
    await db.refresh(job)
    logger.info("Job %s customer action=%s status=%s", job.job_id, data.action, job.status.value)
    return job


def _approve_edits(job: Job) -> None:
    """Apply the pending proposal to the job and clear it."""
    if job.status != JobStatus.NEW:
        raise HTTPException(status_code=400, detail="Only new jobs can be modified")
    if not job.pending_approval or job.edited_answers is None:
        raise HTTPException(status_code=400, detail="There are no pending changes to approve")

    proposal = NegotiationProposal.model_validate(job.edited_answers)
    if proposal.proposed_price is not None:
        job.price = proposal.proposed_price
    if proposal.proposed_scheduled_at is not None:
        job.scheduled_at = proposal.proposed_scheduled_at
    if proposal.answer_changes:
        job.answers = {**(job.answers or {}), **proposal.answer_changes}

    job.pending_approval = False
    job.edited_answers = None
    # The provider authored these terms
    job.sp_accepted = True


def _close_deal(job: Job) -> None:
    if job.status != JobStatus.NEW or not job.sp_accepted:
        raise HTTPException(
            status_code=400,
            detail="The deal can only be closed on a new job the provider has accepted",
        )
    if job.pending_approval:
        raise HTTPException(
            status_code=400,
            detail="Review the provider's proposed changes before closing the deal",
        )
    _assert_transition(job.status, JobStatus.IN_PROGRESS)
    job.status = JobStatus.IN_PROGRESS


def _cancel(job: Job, reason: str | None) -> CancellationFee:
    reason = (reason or "").strip()
    if not reason:
        raise HTTPException(status_code=400, detail="Cancellation reason is required")
    if job.status not in CUSTOMER_CANCELLABLE:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel a job with status {job.status.value}",
        )
    _assert_transition(job.status, JobStatus.CANCELLED)

    fee = calculate_cancellation_fee(job.scheduled_at, job.price)
    job.status = JobStatus.CANCELLED
    job.cancellation_reason = reason
    job.cancellation_fee = fee.fee
    job.cancelled_at = utcnow()
    job.pending_approval = False
    job.edited_answers = None
    return fee


async def quote_cancellation(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID
) -> tuple[Job, CancellationFee]:
    """Preview the cancellation fee without changing the job."""
    customer = await get_customer_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_customer(job, customer)
    if job.status not in CUSTOMER_CANCELLABLE:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel a job with status {job.status.value}",
        )
    return job, calculate_cancellation_fee(job.scheduled_at, job.price)


# ---------------------------------------------------------------------------
# Customer: reassign / alternatives / resend
# ---------------------------------------------------------------------------

async def reassign_job(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID, data: JobReassign
) -> Job:
    """Move a new or declined job to another provider. Price is preserved."""
    customer = await get_customer_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_customer(job, customer)

    if job.status not in REASSIGNABLE:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot reassign a job with status {job.status.value}",
        )
    if data.provider_id == job.provider_id:
        raise HTTPException(status_code=400, detail="Job is already assigned to this provider")

    provider = await _check_provider_eligible(db, data.provider_id, job.service_id, job.zipcode)
    service = await _get_service(db, job.service_id)
    previous_provider_id = job.provider_id

    await chat_service.delete_job_chats(db, job.job_id)

    if job.status != JobStatus.NEW:
        _assert_transition(job.status, JobStatus.NEW)
    job.provider_id = provider.provider_id
    job.status = JobStatus.NEW
    job.response_deadline = _new_response_deadline()
    job.sp_accepted = False
    job.pending_approval = False
    job.edited_answers = None
    job.rejection_reason = None
    await db.flush()

    await _open_job_chat(db, job, service, user_id)

    customer_user = await _get_user(db, user_id)
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="New Job Request",
        message=f"New {service.name} request from {customer_user.full_name}. "
                f"Please respond within {settings.job_response_window_minutes} minutes.",
    )

    await db.commit()
    await db.refresh(job)
    logger.info(
        "Job %s reassigned from provider=%s to provider=%s",
        job.job_id, previous_provider_id, provider.provider_id,
    )

    provider_user = await _get_user(db, provider.user_id)
    await email_service.send_new_job_email(
        to=provider_user.email,
        provider_name=provider.business_name or provider_user.full_name,
        service_name=service.name,
        customer_name=customer_user.full_name,
        location=job.location,
    )
    return job


async def get_alternative_providers(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID
) -> list[ServiceProvider]:
    """Active providers offering the job's service in its zipcode, minus the current one."""
    customer = await get_customer_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_customer(job, customer)
    if job.status not in REASSIGNABLE:
        raise HTTPException(
            status_code=400,
            detail=f"Alternatives are only available for new or declined jobs, not {job.status.value}",
        )

    result = await db.execute(
        select(ServiceProvider)
        .join(ProviderService, ProviderService.provider_id == ServiceProvider.provider_id)
        .join(ServiceArea, ServiceArea.provider_id == ServiceProvider.provider_id)
        .where(
            ProviderService.service_id == job.service_id,
            ServiceArea.zipcode == job.zipcode,
            ServiceProvider.status == ProviderStatus.ACTIVE,
            ServiceProvider.provider_id != job.provider_id,
        )
        .order_by(ServiceProvider.rating.desc(), ServiceProvider.total_jobs.desc())
    )
    return list(result.scalars().unique().all())


async def resend_job_request(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID
) -> Job:
    """Remind the provider of a pending request and extend its deadline."""
    customer = await get_customer_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_customer(job, customer)

    if job.status != JobStatus.NEW:
        raise HTTPException(status_code=400, detail="Only pending requests can be resent")
    if job.sp_accepted:
        raise HTTPException(status_code=400, detail="The provider has already accepted this request")

    service = await _get_service(db, job.service_id)
    provider = await _get_provider(db, job.provider_id)

    job.response_deadline = _new_response_deadline()
    # Clears a response timeout so the new deadline is enforced again
    job.rejection_reason = None
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="Job Request Reminder",
        message=f"The customer resent their {service.name} request. "
                f"New deadline: {job.response_deadline.isoformat()}",
    )
    await _post_to_job_chat(
        db, job, SenderType.CUSTOMER, user_id,
        "Reminder: please review and respond to this request. Deadline extended.",
    )

    await db.commit()
    await db.refresh(job)
    logger.info("Job %s resent, new deadline %s", job.job_id, job.response_deadline)
    return job


# ---------------------------------------------------------------------------
# Provider: complete / payment
# ---------------------------------------------------------------------------

async def update_job_status(
    db: AsyncSession, job_id: uuid.UUID, user_id: uuid.UUID, data: JobStatusUpdate
) -> Job:
    provider = await get_provider_for_user(db, user_id)
    job = await _get_job(db, job_id)
    _assert_provider(job, provider)
    service = await _get_service(db, job.service_id)
    customer = await _get_customer(db, job.customer_id)

    if data.action == "mark_complete":
        _assert_transition(job.status, JobStatus.COMPLETED)
        job.status = JobStatus.COMPLETED
        job.completed_at = utcnow()
        if await _get_payment(db, job.job_id) is None:
            db.add(Payment(
                payment_id=uuid.uuid4(),
                job_id=job.job_id,
                amount=job.price,
                status=PaymentStatus.PENDING,
            ))
        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Job Completed",
            message=f"Your {service.name} job has been marked complete. "
                    f"Amount due: ${job.price}.",
        )
        await _post_to_job_chat(
            db, job, SenderType.PROVIDER, user_id, "The job has been marked complete.",
            message_type=MessageType.SYSTEM,
        )
    else:
        if data.payment_details is None:
            raise HTTPException(status_code=400, detail="Payment details are required")
        _assert_transition(job.status, JobStatus.PAID)

        now = utcnow()
        payment = await _get_payment(db, job.job_id)
        if payment is None:
            payment = Payment(payment_id=uuid.uuid4(), job_id=job.job_id, amount=job.price)
            db.add(payment)
        payment.status = PaymentStatus.RECEIVED
        payment.method = PaymentMethod(data.payment_details.method)
        payment.notes = data.payment_details.notes
        payment.marked_by = user_id
        payment.marked_at = now

        job.status = JobStatus.PAID
        job.paid_at = now
        provider.earning = (provider.earning or Decimal("0")) + job.price
        provider.total_jobs += 1

        result = await db.execute(
            select(LocalServiceManager).where(LocalServiceManager.lsm_id == provider.lsm_id)
        )
        lsm = result.scalar_one_or_none()
        if lsm is not None:
            lsm.closed_deals_count += 1

        notify(
            db, customer.user_id, UserRole.CUSTOMER,
            title="Payment Confirmed",
            message=f"Payment of ${job.price} for your {service.name} job was received. "
                    "You can now leave feedback.",
            type=NotificationType.PAYMENT,
        )
        notify(
            db, provider.user_id, UserRole.PROVIDER,
            title="Payment Recorded",
            message=f"Payment of ${job.price} for the {service.name} job was recorded.",
            type=NotificationType.PAYMENT,
        )

    await db.commit()
    await db.refresh(job)
    logger.info("Job %s provider status update=%s", job.job_id, data.action)
    return job


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_job(db: AsyncSession, job_id: uuid.UUID) -> Job:
    return await _get_job(db, job_id)


async def get_job_for_user(
    db: AsyncSession, job_id: uuid.UUID, auth: AuthenticatedUser
) -> Job:
    """Parties to the job, the provider's LSM, and admins may view it."""
    job = await _get_job(db, job_id)
    if auth.is_admin:
        return job

    if auth.role == UserRole.CUSTOMER:
        customer = await get_customer_for_user(db, auth.user_id)
        if job.customer_id == customer.customer_id:
            return job
    elif auth.role == UserRole.PROVIDER:
        provider = await get_provider_for_user(db, auth.user_id)
        if job.provider_id == provider.provider_id:
            return job
    elif auth.role == UserRole.LSM:
        lsm = await get_lsm_for_user(db, auth.user_id)
        provider = await _get_provider(db, job.provider_id)
        if provider.lsm_id == lsm.lsm_id:
            return job

    raise HTTPException(status_code=403, detail="You do not have access to this job")


async def list_customer_jobs(
    db: AsyncSession, user_id: uuid.UUID, status: JobStatus | None = None
) -> list[Job]:
    customer = await get_customer_for_user(db, user_id)
    query = select(Job).where(Job.customer_id == customer.customer_id)
    if status is not None:
        query = query.where(Job.status == status)
    result = await db.execute(query.order_by(Job.created_at.desc()))
    return list(result.scalars().all())


async def list_provider_jobs(
    db: AsyncSession, user_id: uuid.UUID, status: JobStatus | None = None
) -> list[Job]:
    provider = await get_provider_for_user(db, user_id)
    query = select(Job).where(Job.provider_id == provider.provider_id)
    if status is not None:
        query = query.where(Job.status == status)
    result = await db.execute(query.order_by(Job.created_at.desc()))
    return list(result.scalars().all())


async def list_jobs_for_user(
    db: AsyncSession, auth: AuthenticatedUser, status: JobStatus | None = None
) -> list[Job]:
    """Jobs visible to the caller: own jobs, the LSM's region, or everything for admins."""
    if auth.role == UserRole.CUSTOMER:
        return await list_customer_jobs(db, auth.user_id, status)
    if auth.role == UserRole.PROVIDER:
        return await list_provider_jobs(db, auth.user_id, status)

    query = select(Job)
    if auth.role == UserRole.LSM:
        lsm = await get_lsm_for_user(db, auth.user_id)
        query = query.join(
            ServiceProvider, ServiceProvider.provider_id == Job.provider_id
        ).where(ServiceProvider.lsm_id == lsm.lsm_id)
    if status is not None:
        query = query.where(Job.status == status)
    result = await db.execute(query.order_by(Job.created_at.desc()))
    return list(result.scalars().all())
