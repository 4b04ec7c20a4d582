import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import NotFoundError, ValidationError
from app.db.transaction import commit_atomic
from app.models.company import Company
from app.models.user import User
from app.schemas.company import CompanyUpdate
from app.services import audit
from app.services.funding import HUNDRED

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "email", "phone", "address", "logo_url", "default_admin_fee_percent")


async def get_company(db: AsyncSession, ctx: deps.TenantContext) -> Company:
    result = await db.execute(select(Company).where(Company.id == ctx.org_id))
    company = result.scalar_one_or_none()
    if not company:
        raise NotFoundError("Company not found")
    return company


async def update_company(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    payload: CompanyUpdate,
) -> Company:
    fee = payload.default_admin_fee_percent
    if fee < 0 or fee > HUNDRED:
        raise ValidationError(
            message="default_admin_fee_percent must be between 0 and 100",
            code="invalid_rate",
            details={"field": "default_admin_fee_percent"},
        )

    company = await get_company(db, ctx)
    old_snapshot = audit.model_snapshot(company, include=EDITABLE_FIELDS)
    for name in EDITABLE_FIELDS:
        setattr(company, name, getattr(payload, name))
    db.add(company)
    audit.record_audit_log(
        db,
        ctx,
        actor_id=actor.id,
        action="company.settings.updated",
        resource_type="company",
        resource_id=company.id,
        old_value=old_snapshot,
        new_value=audit.model_snapshot(company, include=EDITABLE_FIELDS),
    )
    await commit_atomic(db, operation="company.update")
    await db.refresh(company)
    logger.info("Company %s settings updated", company.id)
    return company
