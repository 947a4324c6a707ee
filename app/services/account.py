"""Account service: registration, login, token refresh, profile lookup."""

import logging
import uuid

import jwt
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.config import settings
from app.models.customer import Customer
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
from app.schemas.account import CustomerRegister, MeResponse, ProviderRegister, TokenResponse, UserResponse

logger = logging.getLogger(__name__)


async def _ensure_email_available(db: AsyncSession, email: str) -> None:
    result = await db.execute(select(User.user_id).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="An account with this email already exists")


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole,
    phone_number: str | None = None,
) -> User:
    """Stage a new user after checking the email is free. Does not commit."""
    await _ensure_email_available(db, email)
    user = User(
        user_id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


async def register_customer(db: AsyncSession, data: CustomerRegister) -> User:
    user = await create_user(
        db, data.email, data.password, data.first_name, data.last_name,
        UserRole.CUSTOMER, data.phone_number,
    )
    db.add(Customer(
        customer_id=uuid.uuid4(),
        user_id=user.user_id,
        address=data.address,
    ))
    await db.commit()
    await db.refresh(user)
    logger.info("Registered customer user_id=%s", user.user_id)
    return user


async def register_provider(db: AsyncSession, data: ProviderRegister) -> User:
    """Register a provider under the LSM that owns the chosen region.

    The account stays ``pending`` until that LSM activates it.
    """
    result = await db.execute(
        select(LocalServiceManager).where(LocalServiceManager.region == data.region)
    )
    lsm = result.scalar_one_or_none()
    if lsm is None:
        raise HTTPException(
            status_code=400,
            detail=f"No local service manager covers region '{data.region}'",
        )

    if data.service_ids:
        result = await db.execute(
            select(Service.service_id).where(
                Service.service_id.in_(data.service_ids),
                Service.status == ServiceStatus.APPROVED,
            )
        )
        found = set(result.scalars().all())
        missing = set(data.service_ids) - found
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown or unapproved service(s): {', '.join(sorted(str(m) for m in missing))}",
            )

    user = await create_user(
        db, data.email, data.password, data.first_name, data.last_name,
        UserRole.PROVIDER, data.phone_number,
    )
    provider = ServiceProvider(
        provider_id=uuid.uuid4(),
        user_id=user.user_id,
        lsm_id=lsm.lsm_id,
        business_name=data.business_name,
        status=ProviderStatus.PENDING,
    )
    db.add(provider)
    await db.flush()

    for i, zipcode in enumerate(dict.fromkeys(data.zipcodes)):
        db.add(ServiceArea(provider_id=provider.provider_id, zipcode=zipcode, is_primary=(i == 0)))
    for service_id in dict.fromkeys(data.service_ids):
        db.add(ProviderService(provider_id=provider.provider_id, service_id=service_id))

    await db.commit()
    await db.refresh(user)
    logger.info(
        "Registered provider user_id=%s region=%s lsm_id=%s",
        user.user_id, data.region, lsm.lsm_id,
    )
    return user


def _issue_tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.user_id, user.role.value),
        refresh_token=create_refresh_token(user.user_id, user.role.value),
        expires_in_seconds=settings.access_token_expire_minutes * 60,
    )


async def login(db: AsyncSession, email: str, password: str) -> TokenResponse:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _issue_tokens(user)


async def refresh(db: AsyncSession, refresh_token: str) -> TokenResponse:
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN_TYPE)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    result = await db.execute(select(User).where(User.user_id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return _issue_tokens(user)


async def get_customer_for_user(
    db: AsyncSession, user_id: uuid.UUID, required: bool = True
) -> Customer | None:
    result = await db.execute(select(Customer).where(Customer.user_id == user_id))
    customer = result.scalar_one_or_none()
    if customer is None and required:
        raise HTTPException(status_code=403, detail="Customer profile required")
    return customer


async def get_provider_for_user(
    db: AsyncSession, user_id: uuid.UUID, required: bool = True
) -> ServiceProvider | None:
    result = await db.execute(select(ServiceProvider).where(ServiceProvider.user_id == user_id))
    provider = result.scalar_one_or_none()
    if provider is None and required:
        raise HTTPException(status_code=403, detail="Service provider profile required")
    return provider


async def get_lsm_for_user(
    db: AsyncSession, user_id: uuid.UUID, required: bool = True
) -> LocalServiceManager | None:
    result = await db.execute(
        select(LocalServiceManager).where(LocalServiceManager.user_id == user_id)
    )
    lsm = result.scalar_one_or_none()
    if lsm is None and required:
        raise HTTPException(status_code=403, detail="Local service manager profile required")
    return lsm


async def get_me(db: AsyncSession, user: User) -> MeResponse:
    customer = await get_customer_for_user(db, user.user_id, required=False)
    provider = await get_provider_for_user(db, user.user_id, required=False)
    lsm = await get_lsm_for_user(db, user.user_id, required=False)
    return MeResponse(
        user=UserResponse.model_validate(user),
        customer_id=customer.customer_id if customer else None,
        provider_id=provider.provider_id if provider else None,
        lsm_id=lsm.lsm_id if lsm else None,
    )
