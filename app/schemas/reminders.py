from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.common import ReminderRecurrence, ReminderResponseStatus, ReminderType
from app.schemas.leads import UserBrief

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        from_attributes=True,
    )


class ReminderCreate(_CamelModel):
    title: str | None = None
    content: str | None = None
    type: ReminderType | None = None
    scheduled_at: datetime | None = None
    is_recurring: bool = False
    recurrence: ReminderRecurrence | None = None
    days_of_week: list[int] | None = None
    time_of_day: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)

    @field_validator("days_of_week")
    @classmethod
    def _valid_days(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return value
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("daysOfWeek entries must be between 0 (Sunday) and 6")
        return sorted(set(value))


class ReminderRespond(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    status: ReminderResponseStatus


class ReminderDTO(_CamelModel):
    id: UUID
    type: str
    title: str
    content: str
    scheduled_at: datetime | None = None
    is_recurring: bool = False
    recurrence: str | None = None
    days_of_week: list[int] | None = None
    time_of_day: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    creator: UserBrief | None = None


class ReminderStats(BaseModel):
    total: int = 0
    done: int = 0
    dismissed: int = 0
    pending: int = 0


class AdminReminderDTO(ReminderDTO):
    recipient_count: int = 0
    stats: ReminderStats = Field(default_factory=ReminderStats)


class ReminderRecipientDTO(_CamelModel):
    id: UUID
    reminder_id: UUID
    user_id: UUID
    status: str
    responded_at: datetime | None = None
    created_at: datetime | None = None
    user: UserBrief | None = None


class PendingReminderDTO(_CamelModel):
    id: UUID
    status: str
    created_at: datetime | None = None
    reminder: ReminderDTO


class ReminderRecipientsResponse(BaseModel):
    reminder: ReminderDTO
    recipients: list[ReminderRecipientDTO]
    stats: ReminderStats


class ReminderRespondResponse(BaseModel):
    success: bool = True
    status: str
