"""Job chat: opening, system messages, and participant messaging."""

import uuid
from decimal import Decimal
from typing import Any

from fastapi import HTTPException
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser
from app.models.chat import Chat, Message, MessageType, SenderType
from app.models.job import Job
from app.models.user import UserRole
from app.schemas.chat import MessageCreate
from app.services.account import get_customer_for_user, get_provider_for_user

_SENDER_FOR_ROLE = {
    UserRole.CUSTOMER: SenderType.CUSTOMER,
    UserRole.PROVIDER: SenderType.PROVIDER,
    UserRole.LSM: SenderType.LSM,
    UserRole.ADMIN: SenderType.ADMIN,
}


def humanize_key(key: str) -> str:
    return key.replace("_", " ").title()


def format_job_details_message(
    service_name: str,
    location: str,
    zipcode: str,
    answers: dict[str, Any] | None = None,
    budget: Decimal | None = None,
    preferred_date: str | None = None,
    in_person_visit_cost: Decimal | None = None,
    image_count: int = 0,
) -> str:
    """Render the opening chat message describing a new request."""
    lines = [f"New {service_name} Request", ""]
    lines.append(f"Location: {location}")
    lines.append(f"Zipcode: {zipcode}")
    if budget:
        lines.append(f"Customer Budget: ${budget}")
    if preferred_date:
        lines.append(f"Preferred Date: {preferred_date}")
    if in_person_visit_cost is not None:
        lines.append(f"In-Person Visit Requested (Additional Cost: ${in_person_visit_cost})")
    if image_count:
        lines.extend(["", f"Customer uploaded {image_count} image(s) to support this request"])
    if answers:
        lines.extend(["", "Details:"])
        for key, value in answers.items():
            lines.append(f"  - {humanize_key(key)}: {value}")
    return "\n".join(lines)


def open_chat(db: AsyncSession, job: Job) -> Chat:
    """Stage a new active chat between the job's customer and provider."""
    chat = Chat(
        chat_id=uuid.uuid4(),
        job_id=job.job_id,
        customer_id=job.customer_id,
        provider_id=job.provider_id,
        is_active=True,
    )
    db.add(chat)
    return chat


def post_message(
    db: AsyncSession,
    chat: Chat,
    sender_type: SenderType,
    sender_user_id: uuid.UUID,
    body: str,
    message_type: MessageType = MessageType.TEXT,
) -> Message:
    message = Message(
        message_id=uuid.uuid4(),
        chat_id=chat.chat_id,
        sender_type=sender_type,
        sender_user_id=sender_user_id,
        message_type=message_type,
        body=body,
    )
    db.add(message)
    return message


async def get_active_chat(db: AsyncSession, job_id: uuid.UUID) -> Chat | None:
    result = await db.execute(
        select(Chat)
        .where(Chat.job_id == job_id, Chat.is_active.is_(True))
        .order_by(Chat.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def delete_job_chats(db: AsyncSession, job_id: uuid.UUID) -> None:
    """Remove every chat and message belonging to a job."""
    chat_ids = select(Chat.chat_id).where(Chat.job_id == job_id)
    await db.execute(delete(Message).where(Message.chat_id.in_(chat_ids)))
    await db.execute(delete(Chat).where(Chat.job_id == job_id))


async def deactivate_job_chats(db: AsyncSession, job_id: uuid.UUID) -> None:
    await db.execute(
        update(Chat).where(Chat.job_id == job_id).values(is_active=False)
    )


async def _participant_ids(
    db: AsyncSession, auth: AuthenticatedUser
) -> tuple[uuid.UUID | None, uuid.UUID | None]:
    customer = await get_customer_for_user(db, auth.user_id, required=False)
    provider = await get_provider_for_user(db, auth.user_id, required=False)
    return (
        customer.customer_id if customer else None,
        provider.provider_id if provider else None,
    )


async def _get_chat_for(
    db: AsyncSession, chat_id: uuid.UUID, auth: AuthenticatedUser
) -> Chat:
    result = await db.execute(select(Chat).where(Chat.chat_id == chat_id))
    chat = result.scalar_one_or_none()
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    if auth.is_admin:
        return chat
    customer_id, provider_id = await _participant_ids(db, auth)
    if chat.customer_id != customer_id and chat.provider_id != provider_id:
        raise HTTPException(status_code=403, detail="Not a participant in this chat")
    return chat


async def list_chats(db: AsyncSession, auth: AuthenticatedUser) -> list[Chat]:
    query = select(Chat).order_by(Chat.created_at.desc())
    if not auth.is_admin:
        customer_id, provider_id = await _participant_ids(db, auth)
        if customer_id is None and provider_id is None:
            return []
        query = query.where(
            (Chat.customer_id == customer_id) | (Chat.provider_id == provider_id)
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_messages(
    db: AsyncSession,
    chat_id: uuid.UUID,
    auth: AuthenticatedUser,
    limit: int = 50,
    offset: int = 0,
) -> list[Message]:
    await _get_chat_for(db, chat_id, auth)
    result = await db.execute(
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def send_message(
    db: AsyncSession,
    chat_id: uuid.UUID,
    auth: AuthenticatedUser,
    data: MessageCreate,
) -> Message:
    chat = await _get_chat_for(db, chat_id, auth)
    if not chat.is_active:
        raise HTTPException(status_code=400, detail="Chat is no longer active")

    message = post_message(
        db, chat,
        sender_type=_SENDER_FOR_ROLE[auth.role],
        sender_user_id=auth.user_id,
        body=data.body,
        message_type=MessageType(data.message_type),
    )
    await db.commit()
    await db.refresh(message)
    return message
