"""Company reporting: status breakdown, officer performance and funded volume.

Every sub-aggregate is filtered by the same ``created_at`` window so the
numbers on one report always describe the same set of leads.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.errors import ValidationError
from app.models.lead import Lead
from app.models.user import User
from app.schemas.common import LeadStatus
from app.schemas.reports import (
    CompanyStats,
    Financials,
    FundedLeadRow,
    OfficerStats,
    ReportResponse,
)

_STATUS_FIELDS = {
    LeadStatus.UNASSIGNED.value: "unassigned",
    LeadStatus.ATTEMPTED_TO_CONTACT.value: "attempted_to_contact",
    LeadStatus.CONNECTED.value: "connected",
    LeadStatus.QUALIFIED.value: "qualified",
    LeadStatus.UNQUALIFIED.value: "unqualified",
    LeadStatus.DECLINED.value: "declined",
    LeadStatus.FUNDED.value: "funded",
}
_CONTACTED = (LeadStatus.ATTEMPTED_TO_CONTACT.value, LeadStatus.CONNECTED.value)


def percentage(part: int, whole: int) -> str:
    """``part / whole`` as a percentage with one decimal, ``"0.0"`` for an empty whole."""
    if not whole:
        return "0.0"
    return f"{part / whole * 100:.1f}"


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def resolve_window(
    start: date | datetime | None,
    end: date | datetime | None,
    period: str | None,
    *,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Translate the report query into an inclusive ``created_at`` window.

    Explicit dates win over ``period``; either one alone bounds that side
    only. An end date covers that whole day. ``week`` starts on Monday.
    """
    current = now or datetime.now(timezone.utc)
    if start is not None or end is not None:
        lower = None if start is None else _as_datetime(start, time.min)
        upper = None if end is None else _as_datetime(end, time.max)
        if lower is not None and upper is not None and lower > upper:
            raise ValidationError(
                message="startDate must be before endDate", code="invalid_date_range"
            )
        return lower, upper
    if period == "week":
        monday = current.date() - timedelta(days=current.weekday())
        return datetime.combine(monday, time.min, tzinfo=timezone.utc), None
    if period == "month":
        first = current.date().replace(day=1)
        return datetime.combine(first, time.min, tzinfo=timezone.utc), None
    return None, None


def _as_datetime(value: date | datetime, at: time) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, at, tzinfo=timezone.utc)


def _window_clauses(ctx: deps.TenantContext, lower: datetime | None, upper: datetime | None) -> list:
    clauses = [Lead.company_id == ctx.org_id]
    if lower is not None:
        clauses.append(Lead.created_at >= lower)
    if upper is not None:
        clauses.append(Lead.created_at <= upper)
    return clauses


def build_company_stats(status_counts: dict[str, int]) -> CompanyStats:
    stats = CompanyStats()
    for status, count in status_counts.items():
        stats.total += count
        field_name = _STATUS_FIELDS.get(status)
        if field_name:
            setattr(stats, field_name, getattr(stats, field_name) + count)
    stats.conversion_rate = percentage(stats.funded, stats.total)
    return stats


def build_officer_stats(
    officers: list[User], owner_status_counts: dict[tuple, int]
) -> list[OfficerStats]:
    rows = []
    for officer in officers:
        counts = {
            status: count
            for (owner_id, status), count in owner_status_counts.items()
            if owner_id == officer.id
        }
        total = sum(counts.values())
        funded = counts.get(LeadStatus.FUNDED.value, 0)
        rows.append(
            OfficerStats(
                id=officer.id,
                name=officer.full_name,
                role=officer.role,
                total_assigned=total,
                funded=funded,
                qualified=counts.get(LeadStatus.QUALIFIED.value, 0),
                declined=counts.get(LeadStatus.DECLINED.value, 0),
                unqualified=counts.get(LeadStatus.UNQUALIFIED.value, 0),
                contacted=sum(counts.get(status, 0) for status in _CONTACTED),
                success_rate=percentage(funded, total),
            )
        )
    return rows


async def build_report(
    db: AsyncSession,
    ctx: deps.TenantContext,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
    period: str | None = None,
) -> ReportResponse:
    lower, upper = resolve_window(start, end, period)
    clauses = _window_clauses(ctx, lower, upper)

    status_rows = (
        await db.execute(select(Lead.status, func.count()).where(*clauses).group_by(Lead.status))
    ).all()
    company_stats = build_company_stats({row[0]: int(row[1]) for row in status_rows})

    officers = (
        await db.execute(
            select(User)
            .where(User.company_id == ctx.org_id)
            .order_by(User.first_name.asc(), User.last_name.asc())
        )
    ).scalars().all()
    owner_rows = (
        await db.execute(
            select(Lead.current_owner_id, Lead.status, func.count())
            .where(*clauses, Lead.current_owner_id.is_not(None))
            .group_by(Lead.current_owner_id, Lead.status)
        )
    ).all()
    officer_stats = build_officer_stats(
        list(officers), {(row[0], row[1]): int(row[2]) for row in owner_rows}
    )

    funded = (
        await db.execute(
            select(Lead)
            .where(*clauses, Lead.status == LeadStatus.FUNDED.value)
            .order_by(Lead.updated_at.desc())
        )
    ).scalars().all()
    names = {officer.id: officer.full_name for officer in officers}

    volume = Decimal("0")
    revenue = Decimal("0")
    funded_rows = []
    for lead in funded:
        fees = _money(lead.admin_fee) + _money(lead.ppsr_fee)
        volume += _money(lead.funded_amount)
        revenue += fees
        funded_rows.append(
            FundedLeadRow(
                id=lead.id,
                client_name=f"{lead.first_name} {lead.last_name}",
                funded_amount=float(_money(lead.funded_amount)),
                fees=float(fees),
                total_loan=float(_money(lead.total_loan_amount)),
                officer_name=names.get(lead.current_owner_id, "Unassigned"),
                date=lead.first_payment_date,
            )
        )

    return ReportResponse(
        company_stats=company_stats,
        officer_stats=officer_stats,
        financials=Financials(total_funded_volume=float(volume), total_revenue=float(revenue)),
        funded_leads=funded_rows,
    )
