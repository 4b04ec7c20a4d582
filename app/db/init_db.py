import asyncio
import logging
import re

from sqlalchemy import select

from app.core.permissions import Role
from app.core.security import get_password_hash
from app.core.settings import settings
from app.db.session import AsyncSessionLocal
from app.models.company import Company
from app.models.user import User

logger = logging.getLogger(__name__)


def _slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "company"


async def init_db() -> None:
    """Bootstrap the default company and its first admin when SEED_ADMIN_EMAIL is set."""
    if not settings.seed_admin_email or not settings.seed_admin_password:
        logger.info("Seed admin not configured; skipping bootstrap")
        return

    company_id = settings.default_org_id
    email = settings.seed_admin_email.strip().lower()
    async with AsyncSessionLocal() as session:
        company = (
            await session.execute(select(Company).where(Company.id == company_id))
        ).scalar_one_or_none()
        if not company:
            logger.info("Creating company %s", company_id)
            company = Company(
                id=company_id,
                name=settings.seed_company_name,
                slug=_slugify(company_id),
                email=email,
                default_admin_fee_percent=0,
                status="ACTIVE",
            )
            session.add(company)

        admin = (
            await session.execute(
                select(User).where(User.company_id == company_id, User.email == email)
            )
        ).scalar_one_or_none()
        if admin:
            logger.info("Seed admin already exists")
        else:
            logger.info("Creating seed admin %s", email)
            session.add(
                User(
                    company_id=company_id,
                    email=email,
                    first_name="Admin",
                    last_name="User",
                    hashed_password=get_password_hash(settings.seed_admin_password),
                    role=Role.ADMIN.value,
                    is_active=True,
                    token_version=0,
                )
            )
        await session.commit()


if __name__ == "__main__":
    asyncio.run(init_db())
