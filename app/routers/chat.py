"""Job chat endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.middleware import AuthenticatedUser, get_current_user
from app.auth.rate_limit import check_rate_limit
from app.database import get_db
from app.schemas.chat import ChatResponse, MessageCreate, MessageResponse
from app.services import chat as chat_service

router = APIRouter(prefix="/chats", tags=["chat"])


@router.get("", response_model=list[ChatResponse], dependencies=[Depends(check_rate_limit)])
async def list_chats(
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ChatResponse]:
    chats = await chat_service.list_chats(db, auth)
    return [ChatResponse.model_validate(c) for c in chats]


@router.get(
    "/{chat_id}/messages",
    response_model=list[MessageResponse],
    dependencies=[Depends(check_rate_limit)],
)
async def list_messages(
    chat_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[MessageResponse]:
    messages = await chat_service.list_messages(db, chat_id, auth, limit, offset)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post(
    "/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=201,
    dependencies=[Depends(check_rate_limit)],
)
async def send_message(
    chat_id: uuid.UUID,
    data: MessageCreate,
    auth: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Post to an active chat you take part in."""
    message = await chat_service.send_message(db, chat_id, auth, data)
    return MessageResponse.model_validate(message)
