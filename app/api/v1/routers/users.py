from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.users import (
    UserCreateRequest,
    UserListResponse,
    UserManageRequest,
    UserSummary,
)
from app.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse, summary="List company users")
async def list_users(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.USER_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    users = await user_service.list_users(db, ctx)
    return UserListResponse(
        items=[UserSummary.model_validate(user) for user in users],
        total=len(users),
    )


@router.post(
    "",
    response_model=UserSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create a staff user",
)
async def create_user(
    payload: UserCreateRequest,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.USER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> UserSummary:
    user = await user_service.create_user(db, ctx, current_user, payload)
    return UserSummary.model_validate(user)


@router.patch("/{user_id}", response_model=UserSummary, summary="Activate, deactivate or reset a user")
async def manage_user(
    user_id: UUID,
    payload: UserManageRequest,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.USER_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> UserSummary:
    user = await user_service.manage_user(db, ctx, current_user, user_id, payload)
    return UserSummary.model_validate(user)
