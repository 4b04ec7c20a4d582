"""Application intake: returning-applicant lookup, create and resubmission."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.core.permissions import PermissionCode, Role
from app.db.transaction import commit_atomic
from app.models.company import Company
from app.models.lead import Lead
from app.models.note import Note
from app.models.user import User
from app.schemas.common import LeadStatus, NoteType
from app.schemas.leads import MASKED_SIN_PATTERN, LeadSubmission
from app.services import authz
from app.services.lead_transitions import get_assignable_owner

logger = logging.getLogger(__name__)

WELCOME_BACK_MESSAGE = "Welcome back! We found your previous application."
INTERNAL_EDIT_NOTE = "Lead details manually updated by agent."

APPLICATION_FIELDS = (
    "loan_type",
    "first_name",
    "last_name",
    "email",
    "phone",
    "consent_given",
    "connected_owner",
    "street",
    "city",
    "province_state",
    "postal_zip",
    "country",
    "employer_name",
    "position",
    "years_employed",
    "employer_phone",
    "employer_address",
    "employment_status",
    "monthly_salary",
    "paystub_frequency",
    "owns_vehicle",
    "vehicle_details",
    "owns_home",
    "home_details",
    "amount_requested",
)

_NON_DIGITS = re.compile(r"\D")


@dataclass
class SubmissionResult:
    lead: Lead
    created: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_phone(phone: str | None) -> str:
    return _NON_DIGITS.sub("", phone or "")


def mask_sin(sin: str | None) -> str | None:
    """``123-456-789`` -> ``***-***-789``."""
    if not sin:
        return None
    digits = normalize_phone(sin)
    if len(digits) < 3:
        return "***-***-***"
    return f"***-***-{digits[-3:]}"


def _is_masked(sin: str | None) -> bool:
    return bool(sin and MASKED_SIN_PATTERN.match(sin))


async def find_existing_applicant(
    db: AsyncSession,
    *,
    company_id: str,
    email: str | None,
    phone: str | None,
) -> Lead | None:
    """Most recent lead of the company matching the email or the phone digits."""
    clauses = []
    if email and email.strip():
        clauses.append(func.lower(Lead.email) == email.strip().lower())
    digits = normalize_phone(phone)
    if digits:
        clauses.append(func.regexp_replace(Lead.phone, r"\D", "", "g") == digits)
    if not clauses:
        return None
    stmt = (
        select(Lead)
        .where(Lead.company_id == company_id, or_(*clauses))
        .order_by(Lead.created_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def check_existing_applicant(
    db: AsyncSession,
    *,
    company_id: str | None,
    email: str | None,
    phone: str | None,
) -> Lead | None:
    if not (email and email.strip()) or not (phone and phone.strip()):
        raise ValidationError(message="Email and phone are required", code="contact_required")
    if not company_id:
        raise ValidationError(message="Company could not be resolved", code="company_required")
    return await find_existing_applicant(db, company_id=company_id, email=email, phone=phone)


async def resolve_company(
    db: AsyncSession,
    ctx: deps.TenantContext | None,
    actor: User | None,
    payload: LeadSubmission,
) -> Company:
    """Internal submissions belong to the actor's company; public ones name it or use the tenant."""
    if payload.is_internal:
        company_id = str(actor.company_id)
    else:
        company_id = payload.company_id or (ctx.org_id if ctx else None)
    if not company_id:
        raise ValidationError(message="Company could not be resolved", code="company_required")
    result = await db.execute(select(Company).where(Company.id == company_id))
    company = result.scalar_one_or_none()
    if not company:
        raise NotFoundError(message="Company not found", code="company_not_found")
    return company


async def _first_admin_id(db: AsyncSession, company_id: str) -> UUID | None:
    result = await db.execute(
        select(User.id)
        .where(User.company_id == company_id, User.role == Role.ADMIN.value)
        .order_by(User.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_note_author(
    db: AsyncSession, *, lead: Lead, actor: User | None, company_id: str
) -> UUID | None:
    if lead.current_owner_id:
        return lead.current_owner_id
    if actor is not None:
        return actor.id
    return await _first_admin_id(db, company_id)


def _authorize_internal(actor: User | None, payload: LeadSubmission) -> None:
    if actor is None:
        raise AuthenticationError(message="Authentication required for internal submissions")
    permission = (
        PermissionCode.LEAD_EDIT if payload.is_update else PermissionCode.LEAD_CREATE_INTERNAL
    )
    if not authz.has_permission(actor, permission):
        raise AuthorizationError(message=f"Missing permission: {permission.value}")


def _is_same_applicant(lead: Lead, payload: LeadSubmission) -> bool:
    """A public resubmission may only touch the lead its email or phone locates."""
    email = (payload.email or "").strip().lower()
    if email and (lead.email or "").strip().lower() == email:
        return True
    digits = normalize_phone(payload.phone)
    return bool(digits) and normalize_phone(lead.phone) == digits


def _apply_application_fields(lead: Lead, payload: LeadSubmission) -> None:
    for name in APPLICATION_FIELDS:
        setattr(lead, name, getattr(payload, name))
    # An omitted or masked SIN keeps the one already on file.
    if payload.sin and not _is_masked(payload.sin):
        lead.sin_full = payload.sin


async def _update_existing(
    db: AsyncSession,
    company: Company,
    actor: User | None,
    payload: LeadSubmission,
) -> Lead:
    if payload.lead_id is None:
        raise ValidationError(message="leadId is required for updates", code="lead_id_required")
    result = await db.execute(
        select(Lead).where(Lead.id == payload.lead_id, Lead.company_id == company.id)
    )
    lead = result.scalar_one_or_none()
    if not lead or (not payload.is_internal and not _is_same_applicant(lead, payload)):
        raise NotFoundError("Lead not found for update")

    previous_created_at = lead.created_at
    _apply_application_fields(lead, payload)

    if payload.is_internal:
        note_type = NoteType.NOTE.value
        content = INTERNAL_EDIT_NOTE
    else:
        now = _utcnow()
        lead.status = LeadStatus.UNASSIGNED.value
        lead.last_application_date = previous_created_at
        lead.created_at = now
        lead.application_count = (lead.application_count or 1) + 1
        lead.is_resubmission = True
        lead.consent_timestamp = now
        note_type = NoteType.RESUBMISSION.value
        previous_label = previous_created_at.date().isoformat() if previous_created_at else "unknown"
        content = f"Application resubmitted. Previous application date: {previous_label}"

    author_id = await resolve_note_author(db, lead=lead, actor=actor, company_id=company.id)
    db.add(lead)
    db.add(
        Note(
            company_id=company.id,
            lead_id=lead.id,
            user_id=author_id,
            type=note_type,
            content=content,
        )
    )
    operation = "lead.intake.edit" if payload.is_internal else "lead.intake.resubmit"
    await commit_atomic(db, operation=operation)
    logger.info("Lead %s updated via %s (application_count=%s)", lead.id, operation, lead.application_count)
    return lead


async def _create_new(
    db: AsyncSession,
    company: Company,
    payload: LeadSubmission,
) -> Lead:
    if not payload.sin or _is_masked(payload.sin):
        raise ValidationError(message="SIN is required", code="sin_required")

    owner_id = None
    if payload.is_internal and payload.owner_id is not None:
        owner = await get_assignable_owner(db, deps.TenantContext(org_id=company.id), payload.owner_id)
        owner_id = owner.id

    now = _utcnow()
    lead = Lead(
        company_id=company.id,
        status=(LeadStatus.CONNECTED.value if owner_id else LeadStatus.UNASSIGNED.value),
        current_owner_id=owner_id,
        consent_timestamp=now,
        application_count=1,
        is_resubmission=False,
        created_at=now,
    )
    _apply_application_fields(lead, payload)
    db.add(lead)
    await commit_atomic(db, operation="lead.intake.create")
    logger.info("Lead %s created (internal=%s, owner=%s)", lead.id, payload.is_internal, owner_id)
    return lead


async def submit_application(
    db: AsyncSession,
    ctx: deps.TenantContext | None,
    actor: User | None,
    payload: LeadSubmission,
) -> SubmissionResult:
    """Create a lead, or update one in place for a resubmission or a staff edit."""
    if payload.is_internal:
        _authorize_internal(actor, payload)
    elif not payload.consent_given:
        raise ValidationError(message="You must consent to proceed", code="consent_required")

    company = await resolve_company(db, ctx, actor, payload)
    if payload.is_update:
        lead = await _update_existing(db, company, actor, payload)
        created = False
    else:
        lead = await _create_new(db, company, payload)
        created = True
    await db.refresh(lead)
    return SubmissionResult(lead=lead, created=created)
