"""Provider self-service and LSM oversight endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, require_roles
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.provider import ProviderStatus
from app.models.user import UserRole
from app.schemas.provider import (
    ProviderProfile,
    ProviderResponse,
    ProviderServiceAdd,
    ProviderStatusUpdate,
    ServiceAreasUpdate,
)
from app.services import provider as provider_service

router = APIRouter(tags=["providers"])

_provider = require_roles(UserRole.PROVIDER)
_lsm = require_roles(UserRole.LSM)


@router.get("/providers/me", response_model=ProviderProfile, dependencies=[Depends(check_rate_limit)])
async def get_my_profile(
    auth: AuthenticatedUser = Depends(_provider),
    db: AsyncSession = Depends(get_db),
) -> ProviderProfile:
    return await provider_service.get_profile(db, auth.user_id)


@router.post(
    "/providers/me/services",
    response_model=ProviderProfile,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def add_service(
    data: ProviderServiceAdd,
    auth: AuthenticatedUser = Depends(_provider),
    db: AsyncSession = Depends(get_db),
) -> ProviderProfile:
    return await provider_service.add_service(db, auth.user_id, data.service_id)


@router.put(
    "/providers/me/service-areas",
    response_model=ProviderProfile,
    dependencies=[Depends(check_rate_limit)],
)
async def replace_service_areas(
    data: ServiceAreasUpdate,
    auth: AuthenticatedUser = Depends(_provider),
    db: AsyncSession = Depends(get_db),
) -> ProviderProfile:
    """Replace the zipcodes this provider serves."""
    return await provider_service.replace_service_areas(db, auth.user_id, data)


@router.get(
    "/lsm/providers",
    response_model=list[ProviderResponse],
    dependencies=[Depends(check_rate_limit)],
)
async def list_region_providers(
    status: ProviderStatus | None = Query(None),
    auth: AuthenticatedUser = Depends(_lsm),
    db: AsyncSession = Depends(get_db),
) -> list[ProviderResponse]:
    """Providers in the caller's region (all regions for admins)."""
    providers = await provider_service.list_region_providers(db, auth, status)
    return [ProviderResponse.model_validate(p) for p in providers]


@router.patch(
    "/lsm/providers/{provider_id}/status",
    response_model=ProviderResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def set_provider_status(
    provider_id: uuid.UUID,
    data: ProviderStatusUpdate,
    auth: AuthenticatedUser = Depends(_lsm),
    db: AsyncSession = Depends(get_db),
) -> ProviderResponse:
    provider = await provider_service.set_provider_status(
        db, auth, provider_id, ProviderStatus(data.status)
    )
    return ProviderResponse.model_validate(provider)
