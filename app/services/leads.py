from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import NotFoundError, ValidationError
from app.core.permissions import PermissionCode
from app.db.transaction import commit_atomic
from app.models.lead import Lead
from app.models.note import Note
from app.models.ownership_history import OwnershipHistory
from app.models.user import User
from app.schemas.common import NoteType
from app.schemas.leads import (
    LeadApplicantDTO,
    LeadDetailDTO,
    NoteDTO,
    OwnershipHistoryDTO,
    UserBrief,
)
from app.services import authz
from app.services.lead_intake import mask_sin

logger = logging.getLogger(__name__)

ALL = "ALL"


@dataclass
class LeadListFilters:
    search: str | None = None
    status: str | None = None
    loan_type: str | None = None
    provinces: list[str] = field(default_factory=list)
    employment: str | None = None
    vehicle: bool = False
    home: bool = False
    created_from: datetime | None = None
    created_to: datetime | None = None
    owner_id: UUID | None = None


def _filter_clauses(ctx: deps.TenantContext, filters: LeadListFilters) -> list:
    clauses = [Lead.company_id == ctx.org_id]
    if filters.search and filters.search.strip():
        pattern = f"%{filters.search.strip()}%"
        clauses.append(
            or_(
                Lead.first_name.ilike(pattern),
                Lead.last_name.ilike(pattern),
                Lead.email.ilike(pattern),
            )
        )
    if filters.status and filters.status != ALL:
        clauses.append(Lead.status == filters.status)
    if filters.loan_type and filters.loan_type != ALL:
        clauses.append(Lead.loan_type == filters.loan_type)
    if filters.provinces:
        clauses.append(Lead.province_state.in_(filters.provinces))
    if filters.employment and filters.employment != ALL:
        clauses.append(Lead.employment_status == filters.employment)
    if filters.vehicle:
        clauses.append(Lead.owns_vehicle.is_(True))
    if filters.home:
        clauses.append(Lead.owns_home.is_(True))
    if filters.created_from is not None:
        clauses.append(Lead.created_at >= filters.created_from)
    if filters.created_to is not None:
        clauses.append(Lead.created_at <= filters.created_to)
    if filters.owner_id is not None:
        clauses.append(Lead.current_owner_id == filters.owner_id)
    return clauses


async def list_leads(
    db: AsyncSession,
    ctx: deps.TenantContext,
    filters: LeadListFilters,
    *,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Lead], int]:
    clauses = _filter_clauses(ctx, filters)
    total = (
        await db.execute(select(func.count()).select_from(Lead).where(*clauses))
    ).scalar_one_or_none() or 0
    stmt = (
        select(Lead)
        .where(*clauses)
        .order_by(Lead.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    leads = (await db.execute(stmt)).scalars().all()
    return list(leads), int(total)


async def _users_by_id(db: AsyncSession, ctx: deps.TenantContext, user_ids: set[UUID]) -> dict[UUID, User]:
    if not user_ids:
        return {}
    result = await db.execute(
        select(User).where(User.company_id == ctx.org_id, User.id.in_(user_ids))
    )
    return {user.id: user for user in result.scalars().all()}


def applicant_view(lead: Lead) -> LeadApplicantDTO:
    """Pre-fill view for a returning applicant; never carries the plaintext SIN."""
    dto = LeadApplicantDTO.model_validate(lead)
    return dto.model_copy(
        update={"sin_masked": mask_sin(lead.sin_full), "sin_on_file": bool(lead.sin_full)}
    )


async def get_lead_detail(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    lead_id: UUID,
) -> LeadDetailDTO:
    lead = (
        await db.execute(select(Lead).where(Lead.id == lead_id, Lead.company_id == ctx.org_id))
    ).scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")

    notes = (
        await db.execute(
            select(Note)
            .where(Note.lead_id == lead.id, Note.company_id == ctx.org_id)
            .order_by(Note.created_at.desc())
        )
    ).scalars().all()
    history = (
        await db.execute(
            select(OwnershipHistory)
            .where(OwnershipHistory.lead_id == lead.id, OwnershipHistory.company_id == ctx.org_id)
            .order_by(OwnershipHistory.created_at.desc())
        )
    ).scalars().all()

    user_ids = {note.user_id for note in notes if note.user_id}
    if lead.current_owner_id:
        user_ids.add(lead.current_owner_id)
    users = await _users_by_id(db, ctx, user_ids)

    note_dtos = []
    for note in notes:
        dto = NoteDTO.model_validate(note)
        author = users.get(note.user_id) if note.user_id else None
        if author is not None:
            dto = dto.model_copy(update={"author": UserBrief.model_validate(author)})
        note_dtos.append(dto)

    owner = users.get(lead.current_owner_id) if lead.current_owner_id else None
    can_view_sin = authz.has_permission(actor, PermissionCode.LEAD_SIN_VIEW)
    detail = LeadDetailDTO.model_validate(lead)
    return detail.model_copy(
        update={
            "owner": UserBrief.model_validate(owner) if owner else None,
            "sin": lead.sin_full if can_view_sin else mask_sin(lead.sin_full),
            "sin_masked": mask_sin(lead.sin_full),
            "sin_on_file": bool(lead.sin_full),
            "notes": note_dtos,
            "ownership_history": [OwnershipHistoryDTO.model_validate(row) for row in history],
        }
    )


async def add_note(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    lead_id: UUID,
    content: str | None,
) -> NoteDTO:
    text = (content or "").strip()
    if not text:
        raise ValidationError(message="Content required", code="content_required")

    exists = (
        await db.execute(select(Lead.id).where(Lead.id == lead_id, Lead.company_id == ctx.org_id))
    ).scalar_one_or_none()
    if not exists:
        raise NotFoundError("Lead not found")

    note = Note(
        company_id=ctx.org_id,
        lead_id=lead_id,
        user_id=actor.id,
        type=NoteType.NOTE.value,
        content=text,
    )
    db.add(note)
    await commit_atomic(db, operation="lead.note.create")
    await db.refresh(note)
    logger.info("Note %s added to lead %s", note.id, lead_id)
    dto = NoteDTO.model_validate(note)
    return dto.model_copy(update={"author": UserBrief.model_validate(actor)})
