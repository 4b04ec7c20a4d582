from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.chat import (
    ChatAck,
    ChatReadResponse,
    ChatUser,
    ConversationCreate,
    ConversationDTO,
    ConversationRef,
    MessageCreate,
    MessageDTO,
    TypingSignal,
)
from app.services import chat as chat_service

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/users", response_model=list[ChatUser], summary="Active colleagues to chat with")
async def list_chat_users(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> list[ChatUser]:
    users = await chat_service.list_chat_users(db, ctx)
    return [ChatUser.model_validate(user) for user in users]


@router.get("/conversations", response_model=list[ConversationDTO], summary="Conversations of the caller")
async def list_conversations(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> list[ConversationDTO]:
    return await chat_service.list_conversations(db, ctx, current_user)


@router.post(
    "/conversations",
    response_model=ConversationDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Open a direct or group conversation",
)
async def create_conversation(
    payload: ConversationCreate,
    response: Response,
    background: BackgroundTasks,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> ConversationDTO:
    conversation, created = await chat_service.create_conversation(
        db, ctx, current_user, payload, background
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return conversation


@router.get("/messages", response_model=list[MessageDTO], summary="Latest messages of a conversation")
async def list_messages(
    conversation_id: UUID = Query(alias="conversationId"),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> list[MessageDTO]:
    return await chat_service.list_messages(db, ctx, current_user, conversation_id)


@router.post(
    "/messages",
    response_model=MessageDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    payload: MessageCreate,
    background: BackgroundTasks,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> MessageDTO:
    return await chat_service.send_message(db, ctx, current_user, payload, background)


@router.patch("/read", response_model=ChatReadResponse, summary="Mark a conversation read")
async def mark_conversation_read(
    payload: ConversationRef,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> ChatReadResponse:
    cleared = await chat_service.mark_read(db, ctx, current_user, payload.conversation_id)
    return ChatReadResponse(notifications_read=cleared)


@router.post("/typing", response_model=ChatAck, summary="Broadcast a typing indicator")
async def send_typing(
    payload: TypingSignal,
    background: BackgroundTasks,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.CHAT_USE)),
    db: AsyncSession = Depends(get_db),
) -> ChatAck:
    await chat_service.send_typing(db, ctx, current_user, payload, background)
    return ChatAck()
