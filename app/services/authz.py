from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import ROLE_PERMISSIONS, PermissionCode
from app.models.user import User

if TYPE_CHECKING:
    from app.api.deps import TenantContext


def permissions_for(user: User) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(str(user.role), frozenset())


def has_permission(user: User, permission_code: PermissionCode | str) -> bool:
    target = permission_code.value if isinstance(permission_code, PermissionCode) else str(permission_code)
    return target in permissions_for(user)


async def check_permission(
    user: User,
    ctx: "TenantContext",
    permission_code: PermissionCode | str,
    db: AsyncSession | None = None,
) -> bool:
    """Role bucket check; the actor must also belong to the tenant being addressed."""
    if not user.is_active:
        return False
    if str(user.company_id) != str(ctx.org_id):
        return False
    return has_permission(user, permission_code)
