from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.core.permissions import Role


class UserSummary(BaseModel):
    id: UUID
    company_id: str
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    items: list[UserSummary]
    total: int


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role = Role.AGENT


class UserManageRequest(BaseModel):
    """``toggle_status`` needs ``isActive``; ``reset_password`` needs ``password``."""

    model_config = ConfigDict(populate_by_name=True)

    action: str
    is_active: bool | None = Field(default=None, alias="isActive")
    password: str | None = None
