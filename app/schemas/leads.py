from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.common import EmploymentStatus, LeadStatus, LoanType, PaymentFrequency

PHONE_PATTERN = re.compile(r"^\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})$")
SIN_PATTERN = re.compile(r"^\d{3}[-. ]?\d{3}[-. ]?\d{3}$")
MASKED_SIN_PATTERN = re.compile(r"^\*{3}-\*{3}-\d{3}$")


class LeadStatusOwnerUpdate(BaseModel):
    """Body of ``PATCH /leads/{id}``; an explicit ``ownerId: null`` releases the lead."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    # Checked against LeadStatus by the service so bad values are a 400.
    status: str | None = None
    owner_id: UUID | None = Field(default=None, alias="ownerId")
    version: int | None = None

    @property
    def owner_provided(self) -> bool:
        return "owner_id" in self.model_fields_set


class LeadCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone: str | None = None
    company_id: str | None = Field(default=None, alias="companyId")


class LeadSubmission(BaseModel):
    """Application wizard payload, shared by public applicants and staff."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    is_update: bool = False
    lead_id: UUID | None = None
    is_internal: bool = False
    owner_id: UUID | None = None
    company_id: str | None = None

    loan_type: LoanType = LoanType.PERSONAL_LOAN
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    sin: str | None = None
    consent_given: bool = False
    connected_owner: bool = False

    street: str | None = None
    city: str | None = None
    province_state: str | None = None
    postal_zip: str | None = None
    country: str | None = None

    employer_name: str | None = None
    position: str | None = None
    years_employed: Decimal | None = Field(default=None, ge=0)
    employer_phone: str | None = None
    employer_address: dict[str, Any] | None = None
    employment_status: EmploymentStatus | None = None
    monthly_salary: Decimal | None = Field(default=None, ge=0)
    paystub_frequency: PaymentFrequency | None = None

    owns_vehicle: bool = False
    vehicle_details: dict[str, Any] | None = None
    owns_home: bool = False
    home_details: dict[str, Any] | None = None
    amount_requested: Decimal | None = Field(default=None, ge=0)

    @field_validator("first_name", "last_name")
    @classmethod
    def non_empty(cls, v: str) -> str:
        value = (v or "").strip()
        if not value:
            raise ValueError("Value cannot be empty")
        return value

    @field_validator("phone", "employer_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        value = v.strip()
        if not PHONE_PATTERN.match(value):
            raise ValueError("Phone must be 10 digits")
        return value

    @field_validator("sin")
    @classmethod
    def validate_sin(cls, v: str | None) -> str | None:
        if v is None:
            return v
        value = v.strip()
        if not value:
            return None
        if MASKED_SIN_PATTERN.match(value):
            return value
        if not SIN_PATTERN.match(value):
            raise ValueError("SIN must be exactly 9 digits")
        return value

    @field_validator("connected_owner", mode="before")
    @classmethod
    def parse_connected_owner(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in {"yes", "true", "1"}
        return bool(v)

    @field_validator(
        "street", "city", "province_state", "postal_zip", "country", "employer_name", "position"
    )
    @classmethod
    def strip_opt(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip() or None
        return v


class NoteCreate(BaseModel):
    content: str | None = None


class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str | None = None


class NoteDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lead_id: UUID
    user_id: UUID | None = None
    type: str
    content: str
    created_at: datetime | None = None
    author: UserBrief | None = None


class OwnershipHistoryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_user_id: UUID | None = None
    to_user_id: UUID | None = None
    performed_by_user_id: UUID | None = None
    action_type: str
    created_at: datetime | None = None


class LeadSummaryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: str
    status: str
    current_owner_id: UUID | None = None
    loan_type: str
    first_name: str
    last_name: str
    email: str
    phone: str
    province_state: str | None = None
    employment_status: str | None = None
    owns_vehicle: bool = False
    owns_home: bool = False
    amount_requested: Decimal | None = None
    application_count: int = 1
    is_resubmission: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int | None = None


class LeadApplicantDTO(BaseModel):
    """Fields returned to a returning applicant for form pre-fill."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    loan_type: str
    first_name: str
    last_name: str
    email: str
    phone: str
    sin_masked: str | None = None
    sin_on_file: bool = False
    consent_given: bool = False
    connected_owner: bool = False
    street: str | None = None
    city: str | None = None
    province_state: str | None = None
    postal_zip: str | None = None
    country: str | None = None
    employer_name: str | None = None
    position: str | None = None
    years_employed: Decimal | None = None
    employer_phone: str | None = None
    employer_address: dict[str, Any] | None = None
    employment_status: str | None = None
    monthly_salary: Decimal | None = None
    paystub_frequency: str | None = None
    owns_vehicle: bool = False
    vehicle_details: dict[str, Any] | None = None
    owns_home: bool = False
    home_details: dict[str, Any] | None = None
    amount_requested: Decimal | None = None
    application_count: int = 1


class LeadDetailDTO(LeadApplicantDTO):
    company_id: str
    status: str
    current_owner_id: UUID | None = None
    owner: UserBrief | None = None
    sin: str | None = None
    consent_timestamp: datetime | None = None
    funded_amount: Decimal | None = None
    admin_fee: Decimal | None = None
    ppsr_fee: Decimal | None = None
    discharge_amount: Decimal | None = None
    total_loan_amount: Decimal | None = None
    loan_payment_frequency: str | None = None
    first_payment_date: date | None = None
    is_resubmission: bool = False
    last_application_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int | None = None
    notes: list[NoteDTO] = []
    ownership_history: list[OwnershipHistoryDTO] = []


class LeadListResponse(BaseModel):
    items: list[LeadSummaryDTO]
    total: int
    page: int
    page_size: int


class LeadCheckResponse(BaseModel):
    exists: bool
    lead: LeadApplicantDTO | None = None
    message: str | None = None


class LeadSubmitResponse(BaseModel):
    success: bool = True
    created: bool
    lead: LeadSummaryDTO


class LeadTransitionResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    lead: LeadSummaryDTO
    status_changed: bool = False
    owner_changed: bool = False
