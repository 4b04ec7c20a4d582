import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import ConflictError, ValidationError
from app.db.transaction import commit_atomic
from app.models.user import User
from app.schemas.profile import EmailProvider, EmailSettingsUpdate, ProfileUpdate
from app.services import audit
from app.services.users import USER_AUDIT_FIELDS, hash_user_password

logger = logging.getLogger(__name__)

PROFILE_AUDIT_FIELDS = (*USER_AUDIT_FIELDS, "avatar_url")


async def update_profile(
    db: AsyncSession, ctx: deps.TenantContext, user: User, payload: ProfileUpdate
) -> User:
    """Update the caller's own name, email and avatar, and optionally the password.

    A new password bumps ``token_version`` like an admin reset does.
    """
    first_name = payload.first_name.strip()
    last_name = payload.last_name.strip()
    email = str(payload.email).strip().lower()
    if not first_name or not last_name:
        raise ValidationError(message="First name, last name and email are required", code="profile_required")

    if email != (user.email or "").lower():
        taken = await db.execute(
            select(User.id).where(
                User.company_id == ctx.org_id,
                func.lower(User.email) == email,
                User.id != user.id,
            )
        )
        if taken.scalar_one_or_none():
            raise ConflictError(message="A user with this email already exists", code="email_taken")

    old_snapshot = audit.model_snapshot(user, include=PROFILE_AUDIT_FIELDS)
    user.first_name = first_name
    user.last_name = last_name
    user.email = email
    user.avatar_url = payload.avatar_url or None
    if payload.temp_password:
        user.hashed_password = hash_user_password(payload.temp_password)
        user.token_version = (user.token_version or 0) + 1
    db.add(user)
    audit.record_audit_log(
        db,
        ctx,
        actor_id=user.id,
        action="user.profile.updated",
        resource_type="user",
        resource_id=str(user.id),
        old_value=old_snapshot,
        new_value=audit.model_snapshot(user, include=PROFILE_AUDIT_FIELDS),
    )
    await commit_atomic(db, operation="user.profile.update")
    await db.refresh(user)
    logger.info("User %s updated their profile", user.id)
    return user


async def update_email_settings(
    db: AsyncSession, user: User, payload: EmailSettingsUpdate
) -> User:
    changes = payload.model_dump(exclude_unset=True)
    provider = changes.get("email_provider")
    if provider is not None:
        try:
            changes["email_provider"] = EmailProvider(provider.strip().upper()).value
        except ValueError as exc:
            raise ValidationError(
                message=f"Invalid email provider: {provider}",
                code="invalid_email_provider",
                details={"allowed": [member.value for member in EmailProvider]},
            ) from exc
    for field, value in changes.items():
        setattr(user, field, value)
    if changes:
        db.add(user)
        await commit_atomic(db, operation="user.email_settings.update")
    return user
