from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import set_actor_id, set_tenant_id
from app.core.security import decode_token
from app.core.permissions import PermissionCode
from app.services import authz
from app.core.settings import settings
from app.db.session import get_db
from app.models import User


@dataclass(slots=True)
class TenantContext:
    """The company every query in this request is scoped to."""

    org_id: str


bearer_scheme = HTTPBearer(auto_error=False)


def company_from_host(host_header: str) -> str | None:
    """``acme.leadforge.example:8000`` -> ``acme``; bare hosts name no company."""
    host = host_header.partition(":")[0]
    if settings.allowed_tenant_hosts and host not in settings.allowed_tenant_hosts:
        return None
    label, _, rest = host.partition(".")
    return label if rest.count(".") >= 1 else None


def resolve_company_id(request: Request, header_value: str | None) -> str | None:
    if settings.tenancy_mode != "multi":
        return settings.default_org_id
    return header_value or company_from_host(request.headers.get("host", ""))


def _bind_company(company_id: str) -> TenantContext:
    set_tenant_id(company_id)
    return TenantContext(org_id=company_id)


async def get_tenant_context(
    request: Request,
    tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
) -> TenantContext:
    company_id = resolve_company_id(request, tenant_id)
    if not company_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant resolution failed: provide X-Tenant-ID header or subdomain",
        )
    return _bind_company(company_id)


async def get_optional_tenant_context(
    request: Request,
    tenant_id: str | None = Header(default=None, alias="X-Tenant-ID"),
) -> Optional[TenantContext]:
    """Tenant for public endpoints, where the body may name the company instead."""
    company_id = resolve_company_id(request, tenant_id)
    return _bind_company(company_id) if company_id else None


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def _load_user_from_token(
    token: str,
    db: AsyncSession,
    ctx: Optional[TenantContext],
) -> User:
    try:
        payload = decode_token(token, expected_type="access")
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    user_sub = payload.get("sub")
    token_version = payload.get("tv")
    if not user_sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    token_company = payload.get("cid")
    if ctx is not None and token_company is not None and token_company != ctx.org_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token issued for another company")

    stmt = select(User).where(User.id == user_sub)
    if ctx is not None:
        stmt = stmt.where(User.company_id == ctx.org_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    if token_version is not None and user.token_version != token_version:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")

    set_actor_id(str(user.id))
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    ctx: TenantContext = Depends(get_tenant_context),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await _load_user_from_token(credentials.credentials, db, ctx)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
    ctx: Optional[TenantContext] = Depends(get_optional_tenant_context),
) -> Optional[User]:
    """Return the caller when a bearer token is sent; anonymous callers get ``None``."""
    if credentials is None:
        return None
    return await _load_user_from_token(credentials.credentials, db, ctx)


async def ensure_permission(
    user: User,
    ctx: TenantContext,
    permission_code: PermissionCode | str,
    db: AsyncSession | None = None,
) -> None:
    allowed = await authz.check_permission(user, ctx, permission_code, db)
    if not allowed:
        target = permission_code.value if isinstance(permission_code, PermissionCode) else str(permission_code)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permission: {target}",
        )


def require_permission(permission_code: PermissionCode | str):
    async def dependency(
        current_user: User = Depends(get_current_user),
        ctx: TenantContext = Depends(get_tenant_context),
        db: AsyncSession = Depends(get_db_session),
    ) -> User:
        if not ctx.org_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant context missing")
        await ensure_permission(current_user, ctx, permission_code, db)
        return current_user

    return dependency
