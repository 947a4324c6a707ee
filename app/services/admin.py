"""Admin operations: service catalogue, LSM accounts, customer bans."""

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.customer import Customer, CustomerStatus
from app.models.notification import NotificationType
from app.models.provider import LocalServiceManager, Service, ServiceStatus
from app.models.user import UserRole
from app.schemas.provider import LsmCreate, ServiceCreate
from app.services.account import create_user
from app.services.notification import notify

logger = logging.getLogger(__name__)


async def create_service(db: AsyncSession, data: ServiceCreate) -> Service:
    existing = await db.execute(select(Service.service_id).where(Service.name == data.name))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="A service with this name already exists")

    service = Service(
        service_id=uuid.uuid4(),
        name=data.name,
        category=data.category,
        status=ServiceStatus.APPROVED,
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service


async def list_services(
    db: AsyncSession, category: str | None = None, include_pending: bool = False
) -> list[Service]:
    query = select(Service)
    if not include_pending:
        query = query.where(Service.status == ServiceStatus.APPROVED)
    if category:
        query = query.where(Service.category == category)
    result = await db.execute(query.order_by(Service.category, Service.name))
    return list(result.scalars().all())


async def create_lsm(db: AsyncSession, data: LsmCreate) -> LocalServiceManager:
    """Create an LSM user for a region. One LSM per region."""
    existing = await db.execute(
        select(LocalServiceManager.lsm_id).where(LocalServiceManager.region == data.region)
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="This region already has a local service manager")

    user = await create_user(
        db, data.email, data.password, data.first_name, data.last_name, UserRole.LSM,
    )
    lsm = LocalServiceManager(lsm_id=uuid.uuid4(), user_id=user.user_id, region=data.region)
    db.add(lsm)
    await db.commit()
    await db.refresh(lsm)
    logger.info("Created LSM %s for region %s", lsm.lsm_id, data.region)
    return lsm


async def list_lsms(db: AsyncSession) -> list[LocalServiceManager]:
    result = await db.execute(select(LocalServiceManager).order_by(LocalServiceManager.region))
    return list(result.scalars().all())


async def set_customer_banned(
    db: AsyncSession, customer_id: uuid.UUID, banned: bool
) -> Customer:
    result = await db.execute(select(Customer).where(Customer.customer_id == customer_id))
    customer = result.scalar_one_or_none()
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")

    customer.status = CustomerStatus.BANNED if banned else CustomerStatus.ACTIVE
    notify(
        db, customer.user_id, UserRole.CUSTOMER,
        title="Account Banned" if banned else "Account Reinstated",
        message="Your account has been banned from requesting new jobs."
        if banned else "Your account has been reinstated.",
        type=NotificationType.SYSTEM,
    )
    await db.commit()
    await db.refresh(customer)
    logger.info("Customer %s banned=%s", customer_id, banned)
    return customer
