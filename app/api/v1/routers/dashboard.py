from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.dashboard import DashboardStats
from app.services import dashboard as dashboard_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats, summary="Dashboard cards and charts")
async def get_dashboard_stats(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.DASHBOARD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> DashboardStats:
    return await dashboard_service.build_dashboard_stats(db, ctx, current_user)
