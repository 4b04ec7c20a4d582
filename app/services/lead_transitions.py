from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.db.transaction import commit_atomic
from app.models.lead import Lead
from app.models.note import Note
from app.models.ownership_history import OwnershipHistory
from app.models.user import User
from app.schemas.common import LeadStatus, NoteType, OwnershipAction

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()

AUTO_CONNECT_NOTE = "Status automatically updated to CONNECTED upon assignment"


@dataclass
class TransitionResult:
    lead: Lead
    status_changed: bool = False
    owner_changed: bool = False
    auto_connected: bool = False


async def get_lead_for_update(db: AsyncSession, ctx: deps.TenantContext, lead_id: UUID) -> Lead:
    result = await db.execute(
        select(Lead).where(Lead.id == lead_id, Lead.company_id == ctx.org_id)
    )
    lead = result.scalar_one_or_none()
    if not lead:
        raise NotFoundError("Lead not found")
    return lead


async def get_assignable_owner(db: AsyncSession, ctx: deps.TenantContext, owner_id: UUID) -> User:
    result = await db.execute(
        select(User).where(
            User.id == owner_id,
            User.company_id == ctx.org_id,
            User.is_active.is_(True),
        )
    )
    owner = result.scalar_one_or_none()
    if not owner:
        raise ValidationError(
            message="Owner must be an active user of this company",
            code="owner_not_assignable",
            details={"owner_id": str(owner_id)},
        )
    return owner


def _status_note(lead: Lead, actor: User, content: str) -> Note:
    return Note(
        company_id=lead.company_id,
        lead_id=lead.id,
        user_id=actor.id,
        type=NoteType.STATUS_CHANGE.value,
        content=content,
    )


async def _apply_status(db: AsyncSession, lead: Lead, actor: User, new_status: str) -> None:
    previous = lead.status
    lead.status = new_status
    db.add(lead)
    db.add(_status_note(lead, actor, f"Status changed from {previous} to {new_status}"))
    await commit_atomic(db, operation="lead.status.update")
    logger.info("Lead %s status %s -> %s", lead.id, previous, new_status)


async def _apply_owner(db: AsyncSession, lead: Lead, actor: User, new_owner_id: UUID | None) -> bool:
    previous_owner_id = lead.current_owner_id
    auto_connect = new_owner_id is not None and lead.status == LeadStatus.UNASSIGNED.value

    lead.current_owner_id = new_owner_id
    if auto_connect:
        lead.status = LeadStatus.CONNECTED.value
    db.add(lead)
    db.add(
        OwnershipHistory(
            company_id=lead.company_id,
            lead_id=lead.id,
            from_user_id=previous_owner_id,
            to_user_id=new_owner_id,
            performed_by_user_id=actor.id,
            action_type=(
                OwnershipAction.ASSIGNED.value if new_owner_id else OwnershipAction.RELEASED.value
            ),
        )
    )
    db.add(
        Note(
            company_id=lead.company_id,
            lead_id=lead.id,
            user_id=actor.id,
            type=NoteType.OWNERSHIP_CHANGE.value,
            content=(
                "Ownership transferred to new owner" if new_owner_id else "Lead unassigned (released)"
            ),
        )
    )
    if auto_connect:
        db.add(_status_note(lead, actor, AUTO_CONNECT_NOTE))
    await commit_atomic(db, operation="lead.owner.update")
    logger.info(
        "Lead %s owner %s -> %s%s",
        lead.id,
        previous_owner_id,
        new_owner_id,
        " (auto-connected)" if auto_connect else "",
    )
    return auto_connect


async def update_lead_status_and_owner(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    lead_id: UUID,
    *,
    status: str | None = None,
    owner_id: UUID | None | _Unset = UNSET,
    expected_version: int | None = None,
) -> TransitionResult:
    """Apply a status change and/or an owner change to one lead.

    Each concern commits as its own unit of work, status first. Re-sending
    the current status or the current owner writes nothing. Assigning an
    owner to an ``UNASSIGNED`` lead also moves it to ``CONNECTED``.
    """
    if status is not None:
        try:
            status = LeadStatus(status).value
        except ValueError as exc:
            raise ValidationError(
                message=f"Invalid status: {status}",
                code="invalid_status",
                details={"allowed": [member.value for member in LeadStatus]},
            ) from exc

    lead = await get_lead_for_update(db, ctx, lead_id)
    if expected_version is not None and expected_version != lead.version:
        raise ConflictError(
            message="The lead was updated by another request. Please refresh and retry.",
            details={"expected_version": expected_version, "current_version": lead.version},
        )

    owner_requested = not isinstance(owner_id, _Unset) and owner_id != lead.current_owner_id
    if owner_requested and owner_id is not None:
        await get_assignable_owner(db, ctx, owner_id)

    result = TransitionResult(lead=lead)
    if status is not None and status != lead.status:
        await _apply_status(db, lead, actor, status)
        result.status_changed = True

    if owner_requested:
        result.auto_connected = await _apply_owner(db, lead, actor, owner_id)
        result.owner_changed = True

    if result.status_changed or result.owner_changed:
        await db.refresh(lead)
    return result
