from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.db.session import get_db
from app.models.user import User
from app.schemas.profile import EmailSettingsDTO, EmailSettingsUpdate, ProfileDTO, ProfileUpdate
from app.services import profile as profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileDTO, summary="The caller's profile")
async def get_profile(current_user: User = Depends(deps.get_current_user)) -> ProfileDTO:
    return ProfileDTO.model_validate(current_user)


@router.patch("", response_model=ProfileDTO, summary="Update the caller's profile")
async def update_profile(
    payload: ProfileUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileDTO:
    user = await profile_service.update_profile(db, ctx, current_user, payload)
    return ProfileDTO.model_validate(user)


@router.get("/email-settings", response_model=EmailSettingsDTO, summary="The caller's email template settings")
async def get_email_settings(current_user: User = Depends(deps.get_current_user)) -> EmailSettingsDTO:
    return EmailSettingsDTO.model_validate(current_user)


@router.put("/email-settings", response_model=EmailSettingsDTO, summary="Update email template settings")
async def update_email_settings(
    payload: EmailSettingsUpdate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EmailSettingsDTO:
    user = await profile_service.update_email_settings(db, current_user, payload)
    return EmailSettingsDTO.model_validate(user)
