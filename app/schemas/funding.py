from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from app.schemas.common import PaymentFrequency
from app.services.funding import coerce_money


class FundingUpdate(BaseModel):
    """One funding-form submission; blank or non-numeric amounts arrive as ``None``."""

    model_config = ConfigDict(use_enum_values=True)

    funded_amount: Decimal | None = None
    admin_fee_rate: Decimal | None = None
    admin_fee: Decimal | None = None
    ppsr_fee: Decimal | None = None
    discharge_amount: Decimal | None = None
    total_loan_amount: Decimal | None = None
    loan_payment_frequency: PaymentFrequency | None = None
    first_payment_date: date | None = None
    version: int | None = None

    @field_validator(
        "funded_amount",
        "admin_fee_rate",
        "admin_fee",
        "ppsr_fee",
        "discharge_amount",
        "total_loan_amount",
        mode="before",
    )
    @classmethod
    def coerce_amount(cls, v):
        return coerce_money(v)

    @field_validator("loan_payment_frequency", "first_payment_date", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class FundingDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    funded_amount: Decimal | None = None
    admin_fee: Decimal | None = None
    ppsr_fee: Decimal | None = None
    discharge_amount: Decimal | None = None
    total_loan_amount: Decimal | None = None
    loan_payment_frequency: str | None = None
    first_payment_date: date | None = None
    version: int
