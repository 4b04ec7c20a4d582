from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.db.transaction import commit_atomic
from app.models.notification import Notification
from app.models.user import User
from app.schemas.notifications import NotificationMarkRead

RECENT_LIMIT = 50


async def list_recent(
    db: AsyncSession, ctx: deps.TenantContext, user: User
) -> tuple[list[Notification], int]:
    """Newest notifications of one user plus the number still unread."""
    scope = (Notification.company_id == ctx.org_id, Notification.user_id == user.id)
    items = (
        await db.execute(
            select(Notification)
            .where(*scope)
            .order_by(Notification.created_at.desc())
            .limit(RECENT_LIMIT)
        )
    ).scalars().all()
    unread = (
        await db.execute(
            select(func.count()).select_from(Notification).where(*scope, Notification.read.is_(False))
        )
    ).scalar_one_or_none()
    return list(items), int(unread or 0)


async def mark_read(
    db: AsyncSession, ctx: deps.TenantContext, user: User, payload: NotificationMarkRead
) -> int:
    if not payload.mark_all_read and not payload.notification_ids:
        return 0
    stmt = select(Notification).where(
        Notification.company_id == ctx.org_id,
        Notification.user_id == user.id,
        Notification.read.is_(False),
    )
    if not payload.mark_all_read:
        stmt = stmt.where(Notification.id.in_(payload.notification_ids))
    unread = (await db.execute(stmt)).scalars().all()
    for notification in unread:
        notification.read = True
        db.add(notification)
    if unread:
        await commit_atomic(db, operation="notification.mark_read")
    return len(unread)
