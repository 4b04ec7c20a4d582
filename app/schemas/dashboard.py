from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DashboardCards(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_leads: int = 0
    my_leads: int = 0
    unassigned_leads: int = 0
    leads_this_month: int = 0
    conversion_rate: str = "0.0"
    resubmitted_leads: int = 0


class NamedCount(BaseModel):
    name: str
    value: int


class OwnerCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    owner_id: UUID | None = Field(default=None, alias="ownerId")
    name: str
    value: int


class DailyLeadCount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: str
    new: int = Field(default=0, alias="New")
    resubmitted: int = Field(default=0, alias="Resubmitted")


class DashboardCharts(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    leads_by_status: list[NamedCount]
    leads_by_loan_type: list[NamedCount]
    leads_by_owner: list[OwnerCount]
    leads_over_time: list[DailyLeadCount]


class DashboardStats(BaseModel):
    cards: DashboardCards
    charts: DashboardCharts
