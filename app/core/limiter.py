from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.settings import settings


def company_scoped_key(request: Request) -> str:
    """Bucket callers per company header and client address."""
    company = request.headers.get("X-Tenant-ID") or settings.default_org_id
    return f"{company}:{get_remote_address(request)}"


limiter = Limiter(
    key_func=company_scoped_key,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.redis_url,
    key_prefix="leadforge-rl",
)

__all__ = ["company_scoped_key", "limiter"]
