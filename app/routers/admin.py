"""Admin endpoints and the public service catalogue."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, require_roles
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.user import UserRole
from app.schemas.provider import CustomerResponse, LsmCreate, LsmResponse, ServiceCreate, ServiceResponse
from app.services import admin as admin_service

router = APIRouter(tags=["admin"])

_admin = require_roles(UserRole.ADMIN)


@router.get("/services", response_model=list[ServiceResponse], dependencies=[Depends(check_rate_limit)])
async def list_services(
    category: str | None = Query(None, max_length=64),
    db: AsyncSession = Depends(get_db),
) -> list[ServiceResponse]:
    """Approved catalogue services."""
    services = await admin_service.list_services(db, category=category)
    return [ServiceResponse.model_validate(s) for s in services]


@router.post(
    "/admin/services",
    response_model=ServiceResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def create_service(
    data: ServiceCreate,
    auth: AuthenticatedUser = Depends(_admin),
    db: AsyncSession = Depends(get_db),
) -> ServiceResponse:
    service = await admin_service.create_service(db, data)
    return ServiceResponse.model_validate(service)


@router.post(
    "/admin/lsms",
    response_model=LsmResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def create_lsm(
    data: LsmCreate,
    auth: AuthenticatedUser = Depends(_admin),
    db: AsyncSession = Depends(get_db),
) -> LsmResponse:
    """Create a local service manager account for a region."""
    lsm = await admin_service.create_lsm(db, data)
    return LsmResponse.model_validate(lsm)


@router.get("/admin/lsms", response_model=list[LsmResponse], dependencies=[Depends(check_rate_limit)])
async def list_lsms(
    auth: AuthenticatedUser = Depends(_admin),
    db: AsyncSession = Depends(get_db),
) -> list[LsmResponse]:
    lsms = await admin_service.list_lsms(db)
    return [LsmResponse.model_validate(m) for m in lsms]


@router.post(
    "/admin/customers/{customer_id}/ban",
    response_model=CustomerResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def ban_customer(
    customer_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(_admin),
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await admin_service.set_customer_banned(db, customer_id, banned=True)
    return CustomerResponse.model_validate(customer)


@router.post(
    "/admin/customers/{customer_id}/unban",
    response_model=CustomerResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def unban_customer(
    customer_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(_admin),
    db: AsyncSession = Depends(get_db),
) -> CustomerResponse:
    customer = await admin_service.set_customer_banned(db, customer_id, banned=False)
    return CustomerResponse.model_validate(customer)
