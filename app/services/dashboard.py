from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.lead import Lead
from app.models.user import User
from app.schemas.common import LeadStatus
from app.schemas.dashboard import (
    DailyLeadCount,
    DashboardCards,
    DashboardCharts,
    DashboardStats,
    NamedCount,
    OwnerCount,
)
from app.services.reports import percentage

TREND_DAYS = 30


async def _count(db: AsyncSession, *clauses) -> int:
    stmt = select(func.count()).select_from(Lead).where(*clauses)
    return int((await db.execute(stmt)).scalar_one_or_none() or 0)


def build_daily_series(
    rows: list[tuple[datetime, bool]], today: date, days: int = TREND_DAYS
) -> list[DailyLeadCount]:
    """Zero-filled per-day counts, oldest first, split into new and resubmitted."""
    keys = [(today - timedelta(days=offset)).isoformat() for offset in range(days)]
    buckets = {key: DailyLeadCount(date=key) for key in keys}
    for created_at, is_resubmission in rows:
        if created_at is None:
            continue
        bucket = buckets.get(created_at.date().isoformat())
        if bucket is None:
            continue
        if is_resubmission:
            bucket.resubmitted += 1
        else:
            bucket.new += 1
    return [buckets[key] for key in sorted(buckets)]


async def build_dashboard_stats(
    db: AsyncSession,
    ctx: deps.TenantContext,
    actor: User,
    now: datetime | None = None,
) -> DashboardStats:
    current = now or datetime.now(timezone.utc)
    month_start = datetime.combine(current.date().replace(day=1), time.min, tzinfo=timezone.utc)
    window_start = current - timedelta(days=TREND_DAYS)
    tenant = Lead.company_id == ctx.org_id

    total = await _count(db, tenant)
    mine = await _count(db, tenant, Lead.current_owner_id == actor.id)
    unassigned = await _count(db, tenant, Lead.status == LeadStatus.UNASSIGNED.value)
    this_month = await _count(db, tenant, Lead.created_at >= month_start)
    funded = await _count(db, tenant, Lead.status == LeadStatus.FUNDED.value)
    resubmitted = await _count(db, tenant, Lead.application_count > 1)

    by_status = (
        await db.execute(select(Lead.status, func.count()).where(tenant).group_by(Lead.status))
    ).all()
    by_loan_type = (
        await db.execute(select(Lead.loan_type, func.count()).where(tenant).group_by(Lead.loan_type))
    ).all()
    by_owner = (
        await db.execute(
            select(Lead.current_owner_id, func.count()).where(tenant).group_by(Lead.current_owner_id)
        )
    ).all()
    owner_ids = [row[0] for row in by_owner if row[0] is not None]
    names: dict = {}
    if owner_ids:
        users = (
            await db.execute(select(User).where(User.company_id == ctx.org_id, User.id.in_(owner_ids)))
        ).scalars().all()
        names = {user.id: user.full_name for user in users}

    recent = (
        await db.execute(
            select(Lead.created_at, Lead.is_resubmission).where(tenant, Lead.created_at >= window_start)
        )
    ).all()

    cards = DashboardCards(
        total_leads=total,
        my_leads=mine,
        unassigned_leads=unassigned,
        leads_this_month=this_month,
        conversion_rate=percentage(funded, total),
        resubmitted_leads=resubmitted,
    )
    charts = DashboardCharts(
        leads_by_status=[NamedCount(name=row[0], value=int(row[1])) for row in by_status],
        leads_by_loan_type=[NamedCount(name=row[0], value=int(row[1])) for row in by_loan_type],
        leads_by_owner=[
            OwnerCount(
                owner_id=row[0],
                name=names.get(row[0], "Unknown") if row[0] else "Unassigned",
                value=int(row[1]),
            )
            for row in by_owner
        ],
        leads_over_time=build_daily_series([(row[0], row[1]) for row in recent], current.date()),
    )
    return DashboardStats(cards=cards, charts=charts)
