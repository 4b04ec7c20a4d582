"""Team chat between staff of one company.

Conversations are either direct messages between two users or named
groups. Every relay event is queued on the request's background tasks and
goes to each member's user channel once the write has committed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID, uuid4

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import AuthorizationError, ValidationError
from app.db.transaction import commit_atomic
from app.models.chat import Conversation, ConversationMember, Message, MessageMention
from app.models.notification import Notification
from app.models.user import User
from app.schemas.chat import (
    ChatUser,
    ConversationCreate,
    ConversationDTO,
    MessageCreate,
    MessageDTO,
    TypingSignal,
)
from app.services import realtime

logger = logging.getLogger(__name__)

MESSAGE_PAGE_SIZE = 100
MENTION_PREVIEW_LENGTH = 100
MENTION_TYPE = "MENTION"

NEW_CONVERSATION_EVENT = "new-conversation"
NEW_MESSAGE_EVENT = "new-message"
TYPING_EVENT = "typing"
NOTIFICATION_EVENT = "notification"


def conversation_link(conversation_id: UUID | str) -> str:
    return f"/chat/{conversation_id}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def message_dto(message: Message, sender: User | None, mentioned: list[UUID] | None = None) -> MessageDTO:
    return MessageDTO(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        content=message.content,
        created_at=message.created_at,
        sender=ChatUser.model_validate(sender) if sender is not None else None,
        mentioned_user_ids=mentioned or [],
    )


def conversation_dto(
    conversation: Conversation,
    members: list[User],
    last_message: MessageDTO | None = None,
    has_unread: bool = False,
) -> ConversationDTO:
    return ConversationDTO(
        id=conversation.id,
        name=conversation.name,
        is_group=bool(conversation.is_group),
        updated_at=conversation.updated_at,
        members=[ChatUser.model_validate(member) for member in members],
        last_message=last_message,
        has_unread=has_unread,
    )


def is_unread(last_message: Message | None, member: ConversationMember, user_id: UUID) -> bool:
    """Someone else wrote after the member last opened the conversation."""
    if last_message is None or last_message.sender_id == user_id:
        return False
    if member.last_read_at is None:
        return True
    return last_message.created_at > member.last_read_at


async def _membership(
    db: AsyncSession, ctx: deps.TenantContext, user: User, conversation_id: UUID
) -> tuple[Conversation, ConversationMember]:
    row = (
        await db.execute(
            select(Conversation, ConversationMember)
            .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
            .where(
                Conversation.id == conversation_id,
                Conversation.company_id == ctx.org_id,
                ConversationMember.user_id == user.id,
            )
        )
    ).first()
    if not row:
        raise AuthorizationError(message="Not a member of this conversation", code="not_a_member")
    return row[0], row[1]


async def _member_ids(db: AsyncSession, conversation_id: UUID) -> list[UUID]:
    result = await db.execute(
        select(ConversationMember.user_id).where(ConversationMember.conversation_id == conversation_id)
    )
    return list(result.scalars().all())


async def _users_by_id(db: AsyncSession, ctx: deps.TenantContext, user_ids) -> dict[UUID, User]:
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.company_id == ctx.org_id, User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


async def list_chat_users(db: AsyncSession, ctx: deps.TenantContext) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.company_id == ctx.org_id, User.is_active.is_(True))
        .order_by(User.first_name.asc())
    )
    return list(result.scalars().all())


async def list_conversations(
    db: AsyncSession, ctx: deps.TenantContext, user: User
) -> list[ConversationDTO]:
    memberships = (
        await db.execute(
            select(Conversation, ConversationMember)
            .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
            .where(Conversation.company_id == ctx.org_id, ConversationMember.user_id == user.id)
            .order_by(Conversation.updated_at.desc())
        )
    ).all()
    if not memberships:
        return []
    conversation_ids = [conversation.id for conversation, _ in memberships]

    member_rows = (
        await db.execute(
            select(ConversationMember.conversation_id, User)
            .join(User, User.id == ConversationMember.user_id)
            .where(ConversationMember.conversation_id.in_(conversation_ids))
            .order_by(ConversationMember.joined_at.asc())
        )
    ).all()
    members: dict[UUID, list[User]] = {conversation_id: [] for conversation_id in conversation_ids}
    users: dict[UUID, User] = {}
    for conversation_id, member in member_rows:
        members.setdefault(conversation_id, []).append(member)
        users[member.id] = member

    # DISTINCT ON keeps the newest message of each conversation.
    latest = (
        await db.execute(
            select(Message)
            .where(Message.conversation_id.in_(conversation_ids))
            .order_by(Message.conversation_id, Message.created_at.desc())
            .distinct(Message.conversation_id)
        )
    ).scalars().all()
    last_by_conversation = {message.conversation_id: message for message in latest}

    items = []
    for conversation, membership in memberships:
        last = last_by_conversation.get(conversation.id)
        items.append(
            conversation_dto(
                conversation,
                members.get(conversation.id, []),
                last_message=message_dto(last, users.get(last.sender_id)) if last else None,
                has_unread=is_unread(last, membership, user.id),
            )
        )
    return items


async def _existing_direct_conversation(
    db: AsyncSession, ctx: deps.TenantContext, user_id: UUID, other_id: UUID
) -> Conversation | None:
    result = await db.execute(
        select(Conversation)
        .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
        .where(
            Conversation.company_id == ctx.org_id,
            Conversation.is_group.is_(False),
            ConversationMember.user_id.in_([user_id, other_id]),
        )
        .group_by(Conversation.id)
        .having(func.count(ConversationMember.id) == 2)
        .order_by(Conversation.updated_at.desc())
    )
    return result.scalars().first()


async def create_conversation(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    payload: ConversationCreate,
    background: BackgroundTasks,
) -> tuple[ConversationDTO, bool]:
    """Open a conversation; returns the DTO and whether a new one was created.

    A direct message with someone the caller already talks to returns that
    conversation instead of opening a second one.
    """
    other_ids = list(dict.fromkeys(uid for uid in payload.user_ids if uid != actor.id))
    if not other_ids:
        raise ValidationError(message="At least one other user is required", code="users_required")

    result = await db.execute(
        select(User).where(
            User.company_id == ctx.org_id,
            User.id.in_(other_ids),
            User.is_active.is_(True),
        )
    )
    others = {user.id: user for user in result.scalars().all()}
    missing = [str(uid) for uid in other_ids if uid not in others]
    if missing:
        raise ValidationError(
            message="Unknown or inactive users",
            code="invalid_members",
            details={"userIds": missing},
        )
    participants = [actor, *(others[uid] for uid in other_ids)]

    is_group = payload.is_group or len(other_ids) > 1
    if not is_group:
        existing = await _existing_direct_conversation(db, ctx, actor.id, other_ids[0])
        if existing is not None:
            return conversation_dto(existing, participants), False

    name = (payload.name or "").strip() or None
    conversation = Conversation(
        id=uuid4(),
        company_id=ctx.org_id,
        name=name if is_group else None,
        is_group=is_group,
    )
    db.add(conversation)
    for participant in participants:
        db.add(ConversationMember(conversation_id=conversation.id, user_id=participant.id))
    await commit_atomic(db, operation="chat.conversation.create")
    await db.refresh(conversation)
    logger.info("Conversation %s opened with %d member(s)", conversation.id, len(participants))

    dto = conversation_dto(conversation, participants)
    realtime.schedule_fan_out(
        background,
        [participant.id for participant in participants],
        NEW_CONVERSATION_EVENT,
        dto.model_dump(by_alias=True),
    )
    return dto, True


async def list_messages(
    db: AsyncSession, ctx: deps.TenantContext, user: User, conversation_id: UUID
) -> list[MessageDTO]:
    """Latest page of messages, oldest first; opening them marks the conversation read."""
    _, membership = await _membership(db, ctx, user, conversation_id)
    newest_first = (
        await db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(MESSAGE_PAGE_SIZE)
        )
    ).scalars().all()
    messages = list(reversed(newest_first))

    senders = await _users_by_id(db, ctx, [message.sender_id for message in messages])
    mentioned: dict[UUID, list[UUID]] = {}
    if messages:
        mentions = (
            await db.execute(
                select(MessageMention).where(
                    MessageMention.message_id.in_([message.id for message in messages])
                )
            )
        ).scalars().all()
        for mention in mentions:
            mentioned.setdefault(mention.message_id, []).append(mention.user_id)

    membership.last_read_at = _now()
    db.add(membership)
    await commit_atomic(db, operation="chat.conversation.read")
    return [
        message_dto(message, senders.get(message.sender_id), mentioned.get(message.id))
        for message in messages
    ]


async def send_message(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    payload: MessageCreate,
    background: BackgroundTasks,
) -> MessageDTO:
    content = (payload.content or "").strip()
    if not content:
        raise ValidationError(message="Message content is required", code="content_required")
    conversation, membership = await _membership(db, ctx, actor, payload.conversation_id)
    member_ids = await _member_ids(db, conversation.id)
    # Only members of the conversation can be mentioned.
    mentioned = [
        uid
        for uid in dict.fromkeys(payload.mentioned_user_ids)
        if uid != actor.id and uid in member_ids
    ]

    sent_at = _now()
    message = Message(
        id=uuid4(),
        conversation_id=conversation.id,
        sender_id=actor.id,
        content=content,
        created_at=sent_at,
    )
    db.add(message)
    conversation.updated_at = sent_at
    db.add(conversation)
    membership.last_read_at = sent_at
    db.add(membership)

    title = f"{actor.full_name} mentioned you"
    preview = content[:MENTION_PREVIEW_LENGTH]
    link = conversation_link(conversation.id)
    for user_id in mentioned:
        db.add(MessageMention(message_id=message.id, user_id=user_id))
        db.add(
            Notification(
                company_id=ctx.org_id,
                user_id=user_id,
                type=MENTION_TYPE,
                title=title,
                message=preview,
                link=link,
                read=False,
            )
        )
    await commit_atomic(db, operation="chat.message.send")

    dto = message_dto(message, actor, mentioned)
    realtime.schedule_fan_out(background, member_ids, NEW_MESSAGE_EVENT, dto.model_dump(by_alias=True))
    if mentioned:
        realtime.schedule_fan_out(
            background,
            mentioned,
            NOTIFICATION_EVENT,
            {
                "type": MENTION_TYPE,
                "title": title,
                "message": preview,
                "link": link,
                "conversationId": conversation.id,
                "messageId": message.id,
            },
        )
    logger.info("Message %s sent to conversation %s", message.id, conversation.id)
    return dto


async def mark_read(
    db: AsyncSession, ctx: deps.TenantContext, user: User, conversation_id: UUID
) -> int:
    """Mark the conversation read and clear its mention notifications; returns how many were cleared."""
    _, membership = await _membership(db, ctx, user, conversation_id)
    membership.last_read_at = _now()
    db.add(membership)
    unread = (
        await db.execute(
            select(Notification).where(
                Notification.company_id == ctx.org_id,
                Notification.user_id == user.id,
                Notification.type == MENTION_TYPE,
                Notification.link == conversation_link(conversation_id),
                Notification.read.is_(False),
            )
        )
    ).scalars().all()
    for notification in unread:
        notification.read = True
        db.add(notification)
    await commit_atomic(db, operation="chat.conversation.read")
    return len(unread)


async def send_typing(
    db: AsyncSession,
    ctx: deps.TenantContext,
    user: User,
    payload: TypingSignal,
    background: BackgroundTasks,
) -> None:
    await _membership(db, ctx, user, payload.conversation_id)
    member_ids = await _member_ids(db, payload.conversation_id)
    realtime.schedule_fan_out(
        background,
        [member_id for member_id in member_ids if member_id != user.id],
        TYPING_EVENT,
        {
            "conversationId": payload.conversation_id,
            "userId": user.id,
            "userName": user.full_name,
            "isTyping": payload.is_typing,
        },
    )
