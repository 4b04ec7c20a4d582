from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.reports import ReportResponse
from app.services import reports as report_service

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("", response_model=ReportResponse, summary="Company performance report")
async def get_report(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    period: Literal["week", "month"] | None = Query(None),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.REPORT_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> ReportResponse:
    return await report_service.build_report(db, ctx, start_date, end_date, period)
