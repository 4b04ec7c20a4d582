from enum import Enum
from typing import Iterable, List


class Role(str, Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"


class PermissionCode(str, Enum):
    # Leads
    LEAD_VIEW = "lead.view"
    LEAD_CREATE_INTERNAL = "lead.create_internal"
    LEAD_EDIT = "lead.edit"
    LEAD_STATUS_UPDATE = "lead.status.update"
    LEAD_ASSIGN = "lead.assign"
    LEAD_NOTE_CREATE = "lead.note.create"
    LEAD_SIN_VIEW = "lead.sin.view"

    # Funding
    LEAD_FUNDING_UPDATE = "lead.funding.update"
    LEAD_FEES_MANAGE = "lead.fees.manage"

    # Dashboards / reporting
    DASHBOARD_VIEW = "dashboard.view"
    REPORT_VIEW = "report.view"

    # Company / users
    COMPANY_VIEW = "company.view"
    COMPANY_MANAGE = "company.manage"
    USER_VIEW = "user.view"
    USER_MANAGE = "user.manage"

    # Notifications / reminders
    NOTIFICATION_VIEW = "notification.view"
    REMINDER_PERSONAL_MANAGE = "reminder.personal.manage"
    REMINDER_COMPANY_MANAGE = "reminder.company.manage"

    # Team chat
    CHAT_USE = "chat.use"

    @classmethod
    def list_all(cls) -> List[str]:
        return [code.value for code in cls]

    @classmethod
    def normalize(cls, values: Iterable[str]) -> List[str]:
        """Return unique permission codes that are valid members."""
        seen = set()
        normalized: list[str] = []
        for value in values:
            try:
                code = cls(value)
            except ValueError:
                continue
            if code.value not in seen:
                seen.add(code.value)
                normalized.append(code.value)
        return normalized


ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    Role.ADMIN.value: frozenset(PermissionCode.list_all()),
    Role.AGENT.value: frozenset(
        PermissionCode.normalize(
            [
                PermissionCode.LEAD_VIEW,
                PermissionCode.LEAD_CREATE_INTERNAL,
                PermissionCode.LEAD_EDIT,
                PermissionCode.LEAD_STATUS_UPDATE,
                PermissionCode.LEAD_ASSIGN,
                PermissionCode.LEAD_NOTE_CREATE,
                PermissionCode.LEAD_SIN_VIEW,
                PermissionCode.LEAD_FUNDING_UPDATE,
                PermissionCode.DASHBOARD_VIEW,
                PermissionCode.COMPANY_VIEW,
                PermissionCode.NOTIFICATION_VIEW,
                PermissionCode.REMINDER_PERSONAL_MANAGE,
                PermissionCode.CHAT_USE,
            ]
        )
    ),
}
