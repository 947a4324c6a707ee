"""Dispute endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, get_current_user, require_roles
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.dispute import DisputeStatus
from app.models.user import UserRole
from app.schemas.dispute import DisputeCreate, DisputeResolve, DisputeResponse
from app.services import dispute as dispute_service

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.post("", response_model=DisputeResponse, status_code=201, dependencies=[Depends(check_rate_limit)])
async def file_dispute(
    data: DisputeCreate,
    auth: AuthenticatedUser = Depends(require_roles(UserRole.CUSTOMER, UserRole.PROVIDER)),
    db: AsyncSession = Depends(get_db),
) -> DisputeResponse:
    """Either party to a job opens a dispute."""
    dispute = await dispute_service.file_dispute(db, auth, data)
    return DisputeResponse.model_validate(dispute)


@router.get("", response_model=list[DisputeResponse], dependencies=[Depends(check_rate_limit)])
async def list_disputes(
    status: DisputeStatus | None = Query(None),
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[DisputeResponse]:
    disputes = await dispute_service.list_disputes(db, auth, status)
    return [DisputeResponse.model_validate(d) for d in disputes]


@router.get("/{dispute_id}", response_model=DisputeResponse, dependencies=[Depends(check_rate_limit)])
async def get_dispute(
    dispute_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> DisputeResponse:
    dispute = await dispute_service.get_dispute_for_user(db, dispute_id, auth)
    return DisputeResponse.model_validate(dispute)


@router.post(
    "/{dispute_id}/resolve",
    response_model=DisputeResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def resolve_dispute(
    dispute_id: uuid.UUID,
    data: DisputeResolve,
    auth: AuthenticatedUser = Depends(require_roles(UserRole.LSM)),
    db: AsyncSession = Depends(get_db),
) -> DisputeResponse:
    """Region LSM (or admin) resolves a pending dispute."""
    dispute = await dispute_service.resolve_dispute(db, dispute_id, auth, data)
    return DisputeResponse.model_validate(dispute)
