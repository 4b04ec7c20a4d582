import logging
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.security import get_password_hash
from app.db.transaction import commit_atomic
from app.models.user import User
from app.schemas.users import UserCreateRequest, UserManageRequest
from app.services import audit

logger = logging.getLogger(__name__)

USER_AUDIT_FIELDS = ("email", "first_name", "last_name", "role", "is_active", "token_version")


async def list_users(db: AsyncSession, ctx: deps.TenantContext) -> list[User]:
    result = await db.execute(
        select(User).where(User.company_id == ctx.org_id).order_by(User.created_at.desc())
    )
    return list(result.scalars().all())


def hash_user_password(password: str) -> str:
    try:
        return get_password_hash(password)
    except ValueError as exc:
        raise ValidationError(message=str(exc), code="weak_password") from exc


async def create_user(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    payload: UserCreateRequest,
) -> User:
    email = str(payload.email).strip().lower()
    hashed = hash_user_password(payload.password)

    existing = await db.execute(
        select(User.id).where(User.company_id == ctx.org_id, func.lower(User.email) == email)
    )
    if existing.scalar_one_or_none():
        raise ConflictError(message="A user with this email already exists", code="email_taken")

    user = User(
        id=uuid4(),
        company_id=ctx.org_id,
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        hashed_password=hashed,
        role=payload.role,
        is_active=True,
        token_version=0,
    )
    db.add(user)
    audit.record_audit_log(
        db,
        ctx,
        actor_id=actor.id,
        action="user.created",
        resource_type="user",
        resource_id=str(user.id),
        new_value=audit.model_snapshot(user, include=USER_AUDIT_FIELDS),
    )
    await commit_atomic(db, operation="user.create")
    await db.refresh(user)
    logger.info("User %s created with role %s", user.id, user.role)
    return user


async def manage_user(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    user_id: UUID,
    payload: UserManageRequest,
) -> User:
    """Activate/deactivate a staff user or reset their password.

    Both actions bump ``token_version`` so tokens issued before the change
    stop working.
    """
    result = await db.execute(
        select(User).where(User.id == user_id, User.company_id == ctx.org_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")

    old_snapshot = audit.model_snapshot(user, include=USER_AUDIT_FIELDS)
    if payload.action == "toggle_status":
        if payload.is_active is None:
            raise ValidationError(message="isActive is required", code="is_active_required")
        if user.id == actor.id and not payload.is_active:
            raise ValidationError(message="You cannot deactivate yourself", code="self_deactivation")
        user.is_active = payload.is_active
        action = "user.status.updated"
    elif payload.action == "reset_password":
        user.hashed_password = hash_user_password(payload.password or "")
        action = "user.password.reset"
    else:
        raise ValidationError(message="Invalid action", code="invalid_action")

    user.token_version = (user.token_version or 0) + 1
    db.add(user)
    audit.record_audit_log(
        db,
        ctx,
        actor_id=actor.id,
        action=action,
        resource_type="user",
        resource_id=str(user.id),
        old_value=old_snapshot,
        new_value=audit.model_snapshot(user, include=USER_AUDIT_FIELDS),
    )
    await commit_atomic(db, operation=action)
    await db.refresh(user)
    logger.info("User %s: %s", user.id, payload.action)
    return user
