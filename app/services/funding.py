"""Funding arithmetic and the funding-details write path.

The calculator functions are pure so the router, the reports and the tests
share one definition of the money rules:

* admin fee = funded amount x rate / 100, rounded half-up to cents
* total loan amount = funded amount + admin fee + PPSR fee
  (the discharge amount is tracked but never part of the total)
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.permissions import PermissionCode
from app.db.transaction import commit_atomic
from app.models.company import Company
from app.models.lead import Lead
from app.models.user import User
from app.services import audit, authz

if TYPE_CHECKING:
    from app.schemas.funding import FundingUpdate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

FUNDING_FIELDS = (
    "funded_amount",
    "admin_fee",
    "ppsr_fee",
    "discharge_amount",
    "total_loan_amount",
    "loan_payment_frequency",
    "first_payment_date",
)
NON_NEGATIVE_FIELDS = ("funded_amount", "admin_fee_rate", "admin_fee", "ppsr_fee", "discharge_amount")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def coerce_money(value: Any) -> Decimal | None:
    """Turn form input into a 2dp ``Decimal``; blanks and junk become ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        candidate = value
    elif isinstance(value, int):
        candidate = Decimal(value)
    elif isinstance(value, float):
        candidate = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("$", "")
        if not cleaned:
            return None
        try:
            candidate = Decimal(cleaned)
        except InvalidOperation:
            return None
    else:
        return None
    if not candidate.is_finite():
        return None
    return quantize_money(candidate)


def compute_admin_fee(funded_amount: Decimal | None, rate_percent: Decimal | None) -> Decimal | None:
    if funded_amount is None or rate_percent is None:
        return None
    return quantize_money(Decimal(funded_amount) * Decimal(rate_percent) / HUNDRED)


def compute_total_loan_amount(
    funded_amount: Decimal | None,
    admin_fee: Decimal | None,
    ppsr_fee: Decimal | None,
) -> Decimal | None:
    if funded_amount is None:
        return None
    total = Decimal(funded_amount) + Decimal(admin_fee or 0) + Decimal(ppsr_fee or 0)
    return quantize_money(total)


def _validate_amounts(payload: "FundingUpdate") -> None:
    for name in NON_NEGATIVE_FIELDS:
        value = getattr(payload, name)
        if value is not None and value < 0:
            raise ValidationError(
                message=f"{name} cannot be negative",
                code="negative_amount",
                details={"field": name},
            )
    if payload.admin_fee_rate is not None and payload.admin_fee_rate > HUNDRED:
        raise ValidationError(
            message="admin_fee_rate cannot exceed 100",
            code="invalid_rate",
            details={"field": "admin_fee_rate"},
        )


def resolve_admin_fee(
    *,
    actor: User,
    funded_amount: Decimal | None,
    requested_rate: Decimal | None,
    requested_fee: Decimal | None,
    default_rate: Decimal,
) -> Decimal | None:
    """Pick the admin fee to store, enforcing the fee-management gate."""
    effective_rate = requested_rate if requested_rate is not None else default_rate
    derived_fee = compute_admin_fee(funded_amount, effective_rate)

    if authz.has_permission(actor, PermissionCode.LEAD_FEES_MANAGE):
        return requested_fee if requested_fee is not None else derived_fee

    if requested_rate is not None and requested_rate != default_rate:
        raise AuthorizationError(
            message="Only administrators can change the admin fee rate",
            code="fee_override_forbidden",
            details={"field": "admin_fee_rate"},
        )
    if requested_fee is not None and requested_fee != derived_fee:
        raise AuthorizationError(
            message="Only administrators can change the admin fee amount",
            code="fee_override_forbidden",
            details={"field": "admin_fee"},
        )
    return derived_fee


async def apply_funding(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    lead_id: UUID,
    payload: "FundingUpdate",
) -> Lead:
    _validate_amounts(payload)

    lead_result = await db.execute(
        select(Lead).where(Lead.id == lead_id, Lead.company_id == ctx.org_id)
    )
    lead = lead_result.scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")
    if payload.version is not None and payload.version != lead.version:
        raise ConflictError(
            message="The lead was updated by another request. Please refresh and retry.",
            details={"expected_version": payload.version, "current_version": lead.version},
        )

    company_result = await db.execute(select(Company).where(Company.id == ctx.org_id))
    company = company_result.scalar_one_or_none()
    if not company:
        raise NotFoundError("Company not found")
    default_rate = coerce_money(company.default_admin_fee_percent) or Decimal("0.00")

    admin_fee = resolve_admin_fee(
        actor=actor,
        funded_amount=payload.funded_amount,
        requested_rate=payload.admin_fee_rate,
        requested_fee=payload.admin_fee,
        default_rate=default_rate,
    )
    total = compute_total_loan_amount(payload.funded_amount, admin_fee, payload.ppsr_fee)
    if payload.total_loan_amount is not None and payload.total_loan_amount != total:
        logger.warning(
            "Client total_loan_amount %s ignored for lead %s; recomputed %s",
            payload.total_loan_amount,
            lead.id,
            total,
        )

    old_snapshot = audit.model_snapshot(lead, include=FUNDING_FIELDS)
    lead.funded_amount = payload.funded_amount
    lead.admin_fee = admin_fee
    lead.ppsr_fee = payload.ppsr_fee
    lead.discharge_amount = payload.discharge_amount
    lead.total_loan_amount = total
    lead.loan_payment_frequency = payload.loan_payment_frequency
    lead.first_payment_date = payload.first_payment_date
    db.add(lead)
    audit.record_audit_log(
        db,
        ctx,
        actor_id=actor.id,
        action="lead.funding.updated",
        resource_type="lead",
        resource_id=str(lead.id),
        old_value=old_snapshot,
        new_value=audit.model_snapshot(lead, include=FUNDING_FIELDS),
    )
    await commit_atomic(db, operation="lead.funding.update")
    await db.refresh(lead)
    logger.info("Funding updated for lead %s", lead.id)
    return lead
