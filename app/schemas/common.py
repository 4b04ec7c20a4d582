from __future__ import annotations

from enum import Enum


def _normalize_token(value) -> str:
    return str(value).strip().upper().replace("-", "_").replace(" ", "_")


class LeadStatus(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    ATTEMPTED_TO_CONTACT = "ATTEMPTED_TO_CONTACT"
    CONNECTED = "CONNECTED"
    QUALIFIED = "QUALIFIED"
    UNQUALIFIED = "UNQUALIFIED"
    DECLINED = "DECLINED"
    FUNDED = "FUNDED"

    @classmethod
    def _missing_(cls, value):  # type: ignore[override]
        if not isinstance(value, str):
            return None
        return cls._value2member_map_.get(_normalize_token(value))


class NoteType(str, Enum):
    STATUS_CHANGE = "STATUS_CHANGE"
    OWNERSHIP_CHANGE = "OWNERSHIP_CHANGE"
    RESUBMISSION = "RESUBMISSION"
    NOTE = "NOTE"


class OwnershipAction(str, Enum):
    ASSIGNED = "ASSIGNED"
    RELEASED = "RELEASED"


class LoanType(str, Enum):
    PERSONAL_LOAN = "PERSONAL_LOAN"
    DEBT_CONSOLIDATION = "DEBT_CONSOLIDATION"
    HOME_EQUITY = "HOME_EQUITY"


class EmploymentStatus(str, Enum):
    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    SELF_EMPLOYED = "SELF_EMPLOYED"
    UNEMPLOYED = "UNEMPLOYED"
    RETIRED = "RETIRED"


class PaymentFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BI_WEEKLY = "BI_WEEKLY"
    SEMI_MONTHLY = "SEMI_MONTHLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def _missing_(cls, value):  # type: ignore[override]
        if not isinstance(value, str):
            return None
        normalized = _normalize_token(value)
        aliases = {"BIWEEKLY": cls.BI_WEEKLY, "SEMIMONTHLY": cls.SEMI_MONTHLY}
        return aliases.get(normalized) or cls._value2member_map_.get(normalized)


class ReminderType(str, Enum):
    PERSONAL = "PERSONAL"
    COMPANY_WIDE = "COMPANY_WIDE"


class ReminderRecurrence(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    SPECIFIC_DAYS = "SPECIFIC_DAYS"


class ReminderResponseStatus(str, Enum):
    DONE = "DONE"
    DISMISSED = "DISMISSED"
