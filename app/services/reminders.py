"""Personal reminders and company-wide announcements.

A reminder is fanned out to one ``ReminderRecipient`` row and one
notification per recipient inside the creating transaction; the relay
event is queued as a background task once that transaction has committed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from uuid import UUID, uuid4

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.core.permissions import PermissionCode
from app.db.transaction import commit_atomic
from app.models.notification import Notification
from app.models.reminder import Reminder, ReminderRecipient
from app.models.user import User
from app.schemas.common import ReminderRecurrence, ReminderType
from app.schemas.leads import UserBrief
from app.schemas.reminders import (
    AdminReminderDTO,
    PendingReminderDTO,
    ReminderCreate,
    ReminderDTO,
    ReminderRecipientDTO,
    ReminderRecipientsResponse,
    ReminderStats,
)
from app.services import authz, realtime

logger = logging.getLogger(__name__)

NEW_REMINDER_EVENT = "new-reminder"
NOTIFICATION_TYPE = "REMINDER"
NOTIFICATION_LINK = "/my-reminders"
PENDING = "PENDING"


def _resolve_type(actor: User, requested: str | None) -> str:
    can_broadcast = authz.has_permission(actor, PermissionCode.REMINDER_COMPANY_MANAGE)
    if requested == ReminderType.COMPANY_WIDE.value and not can_broadcast:
        raise AuthorizationError(message="Only admins can create company-wide announcements")
    if not can_broadcast:
        return ReminderType.PERSONAL.value
    return requested or ReminderType.COMPANY_WIDE.value


async def _users_by_id(db: AsyncSession, ctx: deps.TenantContext, user_ids) -> dict[UUID, User]:
    ids = {user_id for user_id in user_ids if user_id}
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.company_id == ctx.org_id, User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


def _reminder_dto(reminder: Reminder, creator: User | None) -> ReminderDTO:
    dto = ReminderDTO.model_validate(reminder)
    if creator is not None:
        dto = dto.model_copy(update={"creator": UserBrief.model_validate(creator)})
    return dto


def _stats(statuses) -> ReminderStats:
    stats = ReminderStats()
    for status, count in statuses:
        stats.total += count
        if status == "DONE":
            stats.done += count
        elif status == "DISMISSED":
            stats.dismissed += count
        elif status == PENDING:
            stats.pending += count
    return stats


async def create_reminder(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    payload: ReminderCreate,
    background: BackgroundTasks,
) -> tuple[Reminder, list[UUID]]:
    title = (payload.title or "").strip()
    content = (payload.content or "").strip()
    if not title or not content:
        raise ValidationError(message="Title and content required", code="title_content_required")
    reminder_type = _resolve_type(actor, payload.type)

    if reminder_type == ReminderType.COMPANY_WIDE.value:
        result = await db.execute(
            select(User.id).where(User.company_id == ctx.org_id, User.is_active.is_(True))
        )
        recipient_ids = list(result.scalars().all())
    else:
        recipient_ids = [actor.id]

    recurrence = payload.recurrence if payload.is_recurring else None
    reminder = Reminder(
        id=uuid4(),
        company_id=ctx.org_id,
        creator_id=actor.id,
        type=reminder_type,
        title=title,
        content=content,
        scheduled_at=payload.scheduled_at,
        is_recurring=payload.is_recurring,
        recurrence=recurrence,
        days_of_week=(
            payload.days_of_week if recurrence == ReminderRecurrence.SPECIFIC_DAYS.value else None
        ),
        time_of_day=payload.time_of_day,
        is_active=True,
    )
    db.add(reminder)
    for user_id in recipient_ids:
        db.add(
            ReminderRecipient(
                reminder_id=reminder.id,
                company_id=ctx.org_id,
                user_id=user_id,
                status=PENDING,
            )
        )
        db.add(
            Notification(
                company_id=ctx.org_id,
                user_id=user_id,
                type=NOTIFICATION_TYPE,
                title=title,
                message=content,
                link=NOTIFICATION_LINK,
                read=False,
            )
        )
    await commit_atomic(db, operation="reminder.create")
    await db.refresh(reminder)
    reminder.recipient_count = len(recipient_ids)
    logger.info("Reminder %s (%s) sent to %d recipient(s)", reminder.id, reminder_type, len(recipient_ids))

    event = {
        "id": reminder.id,
        "title": reminder.title,
        "content": reminder.content,
        "type": reminder_type,
        "creatorName": actor.full_name,
    }
    realtime.schedule_fan_out(background, recipient_ids, NEW_REMINDER_EVENT, event)
    return reminder, recipient_ids


async def list_pending(
    db: AsyncSession, ctx: deps.TenantContext, user: User
) -> list[PendingReminderDTO]:
    rows = (
        await db.execute(
            select(ReminderRecipient, Reminder)
            .join(Reminder, Reminder.id == ReminderRecipient.reminder_id)
            .where(
                ReminderRecipient.company_id == ctx.org_id,
                ReminderRecipient.user_id == user.id,
                ReminderRecipient.status == PENDING,
                Reminder.is_active.is_(True),
            )
            .order_by(ReminderRecipient.created_at.desc())
        )
    ).all()
    creators = await _users_by_id(db, ctx, [reminder.creator_id for _, reminder in rows])
    return [
        PendingReminderDTO(
            id=recipient.id,
            status=recipient.status,
            created_at=recipient.created_at,
            reminder=_reminder_dto(reminder, creators.get(reminder.creator_id)),
        )
        for recipient, reminder in rows
    ]


async def respond(
    db: AsyncSession,
    ctx: deps.TenantContext,
    user: User,
    reminder_id: UUID,
    status: str,
) -> ReminderRecipient:
    result = await db.execute(
        select(ReminderRecipient).where(
            ReminderRecipient.reminder_id == reminder_id,
            ReminderRecipient.company_id == ctx.org_id,
            ReminderRecipient.user_id == user.id,
        )
    )
    recipient = result.scalar_one_or_none()
    if not recipient:
        raise NotFoundError("Reminder not found")
    recipient.status = status
    recipient.responded_at = datetime.now(timezone.utc)
    db.add(recipient)
    await commit_atomic(db, operation="reminder.respond")
    return recipient


async def list_company_reminders(db: AsyncSession, ctx: deps.TenantContext) -> list[AdminReminderDTO]:
    reminders = (
        await db.execute(
            select(Reminder)
            .where(Reminder.company_id == ctx.org_id)
            .order_by(Reminder.created_at.desc())
        )
    ).scalars().all()
    if not reminders:
        return []
    count_rows = (
        await db.execute(
            select(ReminderRecipient.reminder_id, ReminderRecipient.status, func.count())
            .where(
                ReminderRecipient.company_id == ctx.org_id,
                ReminderRecipient.reminder_id.in_([reminder.id for reminder in reminders]),
            )
            .group_by(ReminderRecipient.reminder_id, ReminderRecipient.status)
        )
    ).all()
    per_reminder: dict[UUID, list[tuple[str, int]]] = defaultdict(list)
    for reminder_id, status, count in count_rows:
        per_reminder[reminder_id].append((status, int(count)))
    creators = await _users_by_id(db, ctx, [reminder.creator_id for reminder in reminders])

    items = []
    for reminder in reminders:
        stats = _stats(per_reminder.get(reminder.id, []))
        base = _reminder_dto(reminder, creators.get(reminder.creator_id))
        items.append(
            AdminReminderDTO(**base.model_dump(), recipient_count=stats.total, stats=stats)
        )
    return items


async def get_recipients(
    db: AsyncSession, ctx: deps.TenantContext, reminder_id: UUID
) -> ReminderRecipientsResponse:
    reminder = (
        await db.execute(
            select(Reminder).where(Reminder.id == reminder_id, Reminder.company_id == ctx.org_id)
        )
    ).scalar_one_or_none()
    if not reminder:
        raise NotFoundError("Reminder not found")
    recipients = (
        await db.execute(
            select(ReminderRecipient)
            .where(ReminderRecipient.reminder_id == reminder.id)
            .order_by(ReminderRecipient.created_at.asc())
        )
    ).scalars().all()
    users = await _users_by_id(
        db, ctx, [reminder.creator_id, *(recipient.user_id for recipient in recipients)]
    )

    recipient_dtos = []
    for recipient in recipients:
        dto = ReminderRecipientDTO.model_validate(recipient)
        user = users.get(recipient.user_id)
        if user is not None:
            dto = dto.model_copy(update={"user": UserBrief.model_validate(user)})
        recipient_dtos.append(dto)

    counts: dict[str, int] = defaultdict(int)
    for recipient in recipients:
        counts[recipient.status] += 1
    return ReminderRecipientsResponse(
        reminder=_reminder_dto(reminder, users.get(reminder.creator_id)),
        recipients=recipient_dtos,
        stats=_stats(counts.items()),
    )
