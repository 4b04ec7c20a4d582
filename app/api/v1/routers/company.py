from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.company import CompanyDTO, CompanyUpdate
from app.services import companies as company_service

router = APIRouter(prefix="/company", tags=["company"])


@router.get("", response_model=CompanyDTO, summary="Get company settings")
async def get_company(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    _: User = Depends(deps.require_permission(PermissionCode.COMPANY_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> CompanyDTO:
    company = await company_service.get_company(db, ctx)
    return CompanyDTO.model_validate(company)


@router.patch("", response_model=CompanyDTO, summary="Update company settings")
async def update_company(
    payload: CompanyUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.COMPANY_MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> CompanyDTO:
    company = await company_service.update_company(db, ctx, current_user, payload)
    return CompanyDTO.model_validate(company)
