from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import ValidationError
from app.core.permissions import PermissionCode
from app.db.session import get_db
from app.models.user import User
from app.schemas.funding import FundingDTO, FundingUpdate
from app.schemas.leads import (
    LeadCheckRequest,
    LeadCheckResponse,
    LeadDetailDTO,
    LeadListResponse,
    LeadStatusOwnerUpdate,
    LeadSubmission,
    LeadSubmitResponse,
    LeadSummaryDTO,
    LeadTransitionResponse,
    NoteCreate,
    NoteDTO,
)
from app.services import funding as funding_service
from app.services import lead_intake, lead_transitions
from app.services import leads as lead_service

router = APIRouter(prefix="/leads", tags=["leads"])


@router.get("", response_model=LeadListResponse, summary="List leads")
async def list_leads(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    lead_status: str | None = Query(None, alias="status"),
    loan_type: str | None = Query(None, alias="loanType"),
    provinces: str | None = Query(None, description="Comma separated province codes"),
    employment: str | None = Query(None),
    vehicle: bool = Query(False),
    home: bool = Query(False),
    created_from: datetime | None = Query(None, alias="from"),
    created_to: datetime | None = Query(None, alias="to"),
    mine: bool = Query(False),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> LeadListResponse:
    filters = lead_service.LeadListFilters(
        search=search,
        status=lead_status,
        loan_type=loan_type,
        provinces=[item.strip() for item in (provinces or "").split(",") if item.strip()],
        employment=employment,
        vehicle=vehicle,
        home=home,
        created_from=created_from,
        created_to=created_to,
        owner_id=current_user.id if mine else None,
    )
    leads, total = await lead_service.list_leads(db, ctx, filters, page=page, page_size=page_size)
    return LeadListResponse(
        items=[LeadSummaryDTO.model_validate(lead) for lead in leads],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/check", response_model=LeadCheckResponse, summary="Look up a returning applicant")
async def check_applicant(
    payload: LeadCheckRequest,
    ctx: deps.TenantContext | None = Depends(deps.get_optional_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> LeadCheckResponse:
    company_id = payload.company_id or (ctx.org_id if ctx else None)
    lead = await lead_intake.check_existing_applicant(
        db, company_id=company_id, email=payload.email, phone=payload.phone
    )
    if lead is None:
        return LeadCheckResponse(exists=False)
    return LeadCheckResponse(
        exists=True,
        lead=lead_service.applicant_view(lead),
        message=lead_intake.WELCOME_BACK_MESSAGE,
    )


@router.post("", response_model=LeadSubmitResponse, summary="Submit or resubmit an application")
async def submit_application(
    payload: LeadSubmission,
    response: Response,
    ctx: deps.TenantContext | None = Depends(deps.get_optional_tenant_context),
    actor: User | None = Depends(deps.get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> LeadSubmitResponse:
    result = await lead_intake.submit_application(db, ctx, actor, payload)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return LeadSubmitResponse(
        created=result.created,
        lead=LeadSummaryDTO.model_validate(result.lead),
    )


@router.get("/{lead_id}", response_model=LeadDetailDTO, summary="Get lead detail")
async def get_lead(
    lead_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_VIEW)),
    db: AsyncSession = Depends(get_db),
) -> LeadDetailDTO:
    return await lead_service.get_lead_detail(db, ctx, current_user, lead_id)


@router.patch("/{lead_id}", response_model=LeadTransitionResponse, summary="Change lead status or owner")
async def update_lead(
    lead_id: UUID,
    payload: LeadStatusOwnerUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LeadTransitionResponse:
    if payload.status is None and not payload.owner_provided:
        raise ValidationError(message="Provide status and/or ownerId", code="empty_update")
    if payload.status is not None:
        await deps.ensure_permission(current_user, ctx, PermissionCode.LEAD_STATUS_UPDATE, db)
    if payload.owner_provided:
        await deps.ensure_permission(current_user, ctx, PermissionCode.LEAD_ASSIGN, db)

    result = await lead_transitions.update_lead_status_and_owner(
        db,
        ctx,
        current_user,
        lead_id,
        status=payload.status,
        owner_id=payload.owner_id if payload.owner_provided else lead_transitions.UNSET,
        expected_version=payload.version,
    )
    return LeadTransitionResponse(
        lead=LeadSummaryDTO.model_validate(result.lead),
        status_changed=result.status_changed,
        owner_changed=result.owner_changed,
    )


@router.patch("/{lead_id}/funding", response_model=FundingDTO, summary="Save funding details")
async def update_funding(
    lead_id: UUID,
    payload: FundingUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_FUNDING_UPDATE)),
    db: AsyncSession = Depends(get_db),
) -> FundingDTO:
    lead = await funding_service.apply_funding(db, ctx, current_user, lead_id, payload)
    return FundingDTO.model_validate(lead)


@router.post(
    "/{lead_id}/notes",
    response_model=NoteDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Add a note to a lead",
)
async def add_note(
    lead_id: UUID,
    payload: NoteCreate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    current_user: User = Depends(deps.require_permission(PermissionCode.LEAD_NOTE_CREATE)),
    db: AsyncSession = Depends(get_db),
) -> NoteDTO:
    return await lead_service.add_note(db, ctx, current_user, lead_id, payload.content)
