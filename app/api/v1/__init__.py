from fastapi import APIRouter

from app.api.v1.routers import (
    chat,
    company,
    dashboard,
    health,
    leads,
    notifications,
    profile,
    reminders,
    reports,
    users,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(leads.router)
api_router.include_router(reports.router)
api_router.include_router(dashboard.router)
api_router.include_router(company.router)
api_router.include_router(users.router)
api_router.include_router(notifications.router)
api_router.include_router(reminders.router)
api_router.include_router(chat.router)
api_router.include_router(profile.router)

__all__ = ["api_router"]
