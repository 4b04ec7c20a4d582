from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.services.funding import coerce_money


class CompanyDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    email: str
    phone: str | None = None
    address: str | None = None
    logo_url: str | None = None
    default_admin_fee_percent: Decimal
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CompanyUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = None
    address: str | None = None
    logo_url: str | None = None
    default_admin_fee_percent: Decimal = Decimal("0.00")

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("default_admin_fee_percent", mode="before")
    @classmethod
    def _coerce_percent(cls, value):
        # An empty form field means no default fee.
        coerced = coerce_money(value)
        return coerced if coerced is not None else Decimal("0.00")
