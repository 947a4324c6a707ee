"""Notification endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, get_current_user
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.models.notification import NotificationType
from app.schemas.notification import MarkedCount, NotificationList, NotificationResponse, UnreadCount
from app.services import notification as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList, dependencies=[Depends(check_rate_limit)])
async def list_notifications(
    is_read: bool | None = Query(None),
    type: NotificationType | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationList:
    items, total = await notification_service.list_notifications(
        db, auth.user_id, is_read=is_read, type=type, limit=limit, offset=offset,
    )
    unread = await notification_service.unread_count(db, auth.user_id)
    return NotificationList(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=unread,
    )


@router.get("/unread-count", response_model=UnreadCount, dependencies=[Depends(check_rate_limit)])
async def unread_count(
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UnreadCount:
    return UnreadCount(unread=await notification_service.unread_count(db, auth.user_id))


@router.post("/read-all", response_model=MarkedCount, dependencies=[Depends(check_rate_limit)])
async def mark_all_read(
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MarkedCount:
    return MarkedCount(updated=await notification_service.mark_all_read(db, auth.user_id))


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    dependencies=[Depends(check_rate_limit)],
)
async def mark_read(
    notification_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationResponse:
    notification = await notification_service.mark_read(db, notification_id, auth.user_id)
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=204,
    dependencies=[Depends(check_rate_limit)],
)
async def delete_notification(
    notification_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await notification_service.delete_notification(db, notification_id, auth.user_id)
    return Response(status_code=204)
