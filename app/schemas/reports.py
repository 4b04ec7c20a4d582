from datetime import date as date_type
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyStats(_CamelModel):
    total: int = 0
    unassigned: int = 0
    attempted_to_contact: int = 0
    connected: int = 0
    qualified: int = 0
    unqualified: int = 0
    declined: int = 0
    funded: int = 0
    conversion_rate: str = "0.0"


class OfficerStats(_CamelModel):
    id: UUID
    name: str
    role: str
    total_assigned: int = 0
    funded: int = 0
    qualified: int = 0
    declined: int = 0
    unqualified: int = 0
    contacted: int = 0
    success_rate: str = "0.0"


class Financials(_CamelModel):
    total_funded_volume: float = 0.0
    total_revenue: float = 0.0


class FundedLeadRow(_CamelModel):
    id: UUID
    client_name: str
    funded_amount: float = 0.0
    fees: float = 0.0
    total_loan: float = 0.0
    officer_name: str = "Unassigned"
    date: date_type | None = None


class ReportResponse(_CamelModel):
    company_stats: CompanyStats
    officer_stats: list[OfficerStats]
    financials: Financials
    funded_leads: list[FundedLeadRow]
