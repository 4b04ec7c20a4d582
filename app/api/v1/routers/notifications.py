from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.notifications import (
    NotificationDTO,
    NotificationListResponse,
    NotificationMarkRead,
    NotificationMarkReadResponse,
)
from app.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse, summary="Recent notifications")
async def list_notifications(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.NOTIFICATION_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    items, unread = await notification_service.list_recent(db, ctx, current_user)
    return NotificationListResponse(
        notifications=[NotificationDTO.model_validate(item) for item in items],
        unread_count=unread,
    )


@router.patch("", response_model=NotificationMarkReadResponse, summary="Mark notifications as read")
async def mark_notifications_read(
    payload: NotificationMarkRead,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.NOTIFICATION_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> NotificationMarkReadResponse:
    updated = await notification_service.mark_read(db, ctx, current_user, payload)
    return NotificationMarkReadResponse(updated=updated)
