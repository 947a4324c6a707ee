"""Service provider self-management and LSM oversight."""

import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser
from app.models.notification import NotificationType
from app.models.provider import (
    ProviderService,
    ProviderStatus,
    Service,
    ServiceArea,
    ServiceProvider,
    ServiceStatus,
)
from app.models.user import UserRole
from app.schemas.provider import ProviderProfile, ProviderResponse, ServiceAreasUpdate
from app.services.account import get_lsm_for_user, get_provider_for_user
from app.services.notification import notify

logger = logging.getLogger(__name__)


async def _profile(db: AsyncSession, provider: ServiceProvider) -> ProviderProfile:
    service_ids = (await db.execute(
        select(ProviderService.service_id).where(ProviderService.provider_id == provider.provider_id)
    )).scalars().all()
    areas = (await db.execute(
        select(ServiceArea)
        .where(ServiceArea.provider_id == provider.provider_id)
        .order_by(ServiceArea.is_primary.desc(), ServiceArea.zipcode)
    )).scalars().all()
    return ProviderProfile(
        provider=ProviderResponse.model_validate(provider),
        service_ids=list(service_ids),
        zipcodes=[a.zipcode for a in areas],
    )


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> ProviderProfile:
    provider = await get_provider_for_user(db, user_id)
    return await _profile(db, provider)


async def add_service(
    db: AsyncSession, user_id: uuid.UUID, service_id: uuid.UUID
) -> ProviderProfile:
    provider = await get_provider_for_user(db, user_id)
    service = (await db.execute(
        select(Service).where(Service.service_id == service_id)
    )).scalar_one_or_none()
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if service.status != ServiceStatus.APPROVED:
        raise HTTPException(status_code=400, detail="Service is not approved")

    existing = await db.execute(
        select(ProviderService.id).where(
            ProviderService.provider_id == provider.provider_id,
            ProviderService.service_id == service_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="You already offer this service")

    db.add(ProviderService(provider_id=provider.provider_id, service_id=service_id))
    await db.commit()
    return await _profile(db, provider)


async def replace_service_areas(
    db: AsyncSession, user_id: uuid.UUID, data: ServiceAreasUpdate
) -> ProviderProfile:
    """Replace the provider's zipcodes. The primary defaults to the first one."""
    provider = await get_provider_for_user(db, user_id)
    primary = data.primary_zipcode or data.zipcodes[0]
    if primary not in data.zipcodes:
        raise HTTPException(status_code=400, detail="Primary zipcode must be one of the zipcodes")

    await db.execute(delete(ServiceArea).where(ServiceArea.provider_id == provider.provider_id))
    for zipcode in data.zipcodes:
        db.add(ServiceArea(
            provider_id=provider.provider_id,
            zipcode=zipcode,
            is_primary=(zipcode == primary),
        ))
    await db.commit()
    return await _profile(db, provider)


async def list_region_providers(
    db: AsyncSession, auth: AuthenticatedUser, status: ProviderStatus | None = None
) -> list[ServiceProvider]:
    query = select(ServiceProvider)
    if not auth.is_admin:
        lsm = await get_lsm_for_user(db, auth.user_id)
        query = query.where(ServiceProvider.lsm_id == lsm.lsm_id)
    if status is not None:
        query = query.where(ServiceProvider.status == status)
    result = await db.execute(query.order_by(ServiceProvider.created_at.desc()))
    return list(result.scalars().all())


async def set_provider_status(
    db: AsyncSession,
    auth: AuthenticatedUser,
    provider_id: uuid.UUID,
    status: ProviderStatus,
) -> ServiceProvider:
    """LSM activates or deactivates a provider in their region."""
    provider = (await db.execute(
        select(ServiceProvider).where(ServiceProvider.provider_id == provider_id)
    )).scalar_one_or_none()
    if provider is None:
        raise HTTPException(status_code=404, detail="Service provider not found")
    if not auth.is_admin:
        lsm = await get_lsm_for_user(db, auth.user_id)
        if provider.lsm_id != lsm.lsm_id:
            raise HTTPException(status_code=403, detail="Service provider is not in your region")
    if provider.status == ProviderStatus.BANNED:
        raise HTTPException(status_code=400, detail="Banned providers cannot be reactivated here")

    previous = provider.status
    provider.status = status
    if status == ProviderStatus.ACTIVE:
        message = "Your provider account is now active. You can start receiving job requests."
    else:
        message = "Your provider account has been deactivated by your local service manager."
    notify(
        db, provider.user_id, UserRole.PROVIDER,
        title="Account Status Updated",
        message=message,
        type=NotificationType.SYSTEM,
    )
    await db.commit()
    await db.refresh(provider)
    logger.info(
        "Provider %s status %s -> %s by %s",
        provider_id, previous.value, status.value, auth.user_id,
    )
    return provider
