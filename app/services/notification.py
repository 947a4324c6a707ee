"""In-app notifications.

``notify`` only stages the row on the session; the caller's transaction
commits it together with the state change that caused it.
"""

import uuid

from fastapi import HTTPException
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationType
from app.models.user import UserRole


def notify(
    db: AsyncSession,
    recipient_user_id: uuid.UUID,
    recipient_type: UserRole,
    title: str,
    message: str,
    type: NotificationType = NotificationType.JOB,
) -> Notification:
    notification = Notification(
        notification_id=uuid.uuid4(),
        recipient_user_id=recipient_user_id,
        recipient_type=recipient_type,
        type=type,
        title=title,
        message=message,
    )
    db.add(notification)
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    is_read: bool | None = None,
    type: NotificationType | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Notification], int]:
    """Return (page, total matching) for a user, newest first."""
    filters = [Notification.recipient_user_id == user_id]
    if is_read is not None:
        filters.append(Notification.is_read.is_(is_read))
    if type is not None:
        filters.append(Notification.type == type)

    total = (await db.execute(
        select(func.count()).select_from(Notification).where(*filters)
    )).scalar_one()

    result = await db.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count()).select_from(Notification).where(
            Notification.recipient_user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar_one()


async def _get_own(
    db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID
) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.notification_id == notification_id)
    )
    notification = result.scalar_one_or_none()
    # Other users' notifications are reported as missing
    if notification is None or notification.recipient_user_id != user_id:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


async def mark_read(
    db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID
) -> Notification:
    notification = await _get_own(db, notification_id, user_id)
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
    result = await db.execute(
        update(Notification)
        .where(
            Notification.recipient_user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount


async def delete_notification(
    db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    await _get_own(db, notification_id, user_id)
    await db.execute(
        delete(Notification).where(Notification.notification_id == notification_id)
    )
    await db.commit()
