"""Auth endpoints: registration, login, token refresh, current user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, get_current_user
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.schemas.account import (
    CustomerRegister,
    LoginRequest,
    MeResponse,
    ProviderRegister,
    RefreshRequest,
    TokenResponse,
    UserResponse,
)
from app.services import account as account_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register/customer",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def register_customer(
    data: CustomerRegister,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await account_service.register_customer(db, data)
    return UserResponse.model_validate(user)


@router.post(
    "/register/provider",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def register_provider(
    data: ProviderRegister,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Register a provider. The account stays pending until the region's LSM activates it."""
    user = await account_service.register_provider(db, data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse, dependencies=[Depends(check_rate_limit)])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    return await account_service.login(db, data.email, data.password)


@router.post("/refresh", response_model=TokenResponse, dependencies=[Depends(check_rate_limit)])
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    return await account_service.refresh(db, data.refresh_token)


@router.get("/me", response_model=MeResponse, dependencies=[Depends(check_rate_limit)])
async def me(
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MeResponse:
    return await account_service.get_me(db, auth.user)
