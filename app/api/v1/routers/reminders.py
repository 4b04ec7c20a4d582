from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.reminders import (
    AdminReminderDTO,
    PendingReminderDTO,
    ReminderCreate,
    ReminderDTO,
    ReminderRecipientsResponse,
    ReminderRespond,
    ReminderRespondResponse,
)
from app.services import reminders as reminder_service

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=list[PendingReminderDTO], summary="Pending reminders for the caller")
async def list_my_reminders(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.REMINDER_PERSONAL_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> list[PendingReminderDTO]:
    return await reminder_service.list_pending(db, ctx, current_user)


@router.post(
    "",
    response_model=ReminderDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reminder or company-wide announcement",
)
async def create_reminder(
    payload: ReminderCreate,
    background: BackgroundTasks,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.REMINDER_PERSONAL_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> ReminderDTO:
    reminder, _ = await reminder_service.create_reminder(db, ctx, current_user, payload, background)
    return ReminderDTO.model_validate(reminder)


@router.get("/admin", response_model=list[AdminReminderDTO], summary="All company reminders")
async def list_company_reminders(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.REMINDER_COMPANY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> list[AdminReminderDTO]:
    return await reminder_service.list_company_reminders(db, ctx)


@router.patch(
    "/{reminder_id}/respond",
    response_model=ReminderRespondResponse,
    summary="Mark a reminder done or dismissed",
)
async def respond_to_reminder(
    reminder_id: UUID,
    payload: ReminderRespond,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.REMINDER_PERSONAL_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> ReminderRespondResponse:
    recipient = await reminder_service.respond(db, ctx, current_user, reminder_id, payload.status)
    return ReminderRespondResponse(status=recipient.status)


@router.get(
    "/{reminder_id}/recipients",
    response_model=ReminderRecipientsResponse,
    summary="Recipients of a reminder and their responses",
)
async def get_reminder_recipients(
    reminder_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.REMINDER_COMPANY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> ReminderRecipientsResponse:
    return await reminder_service.get_recipients(db, ctx, reminder_id)
