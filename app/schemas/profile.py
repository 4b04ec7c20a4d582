from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class EmailProvider(str, Enum):
    GMAIL = "GMAIL"
    OUTLOOK = "OUTLOOK"
    YAHOO = "YAHOO"
    ICLOUD = "ICLOUD"
    PROTONMAIL = "PROTONMAIL"


class ProfileDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str
    avatar_url: str | None = None
    role: str


class ProfileUpdate(BaseModel):
    """An empty ``tempPassword`` leaves the password unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    email: EmailStr
    temp_password: str | None = None
    avatar_url: str | None = Field(default=None, max_length=1024)


class EmailSettingsDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    email_provider: str | None = None
    email_subject: str | None = None
    email_body: str | None = None
    email_signature: str | None = None


class EmailSettingsUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Checked against EmailProvider by the service so bad values are a 400.
    email_provider: str | None = None
    email_subject: str | None = Field(default=None, max_length=255)
    email_body: str | None = None
    email_signature: str | None = None
