from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ChatUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str
    avatar_url: str | None = None
    role: str


class MessageDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime | None = None
    sender: ChatUser | None = None
    mentioned_user_ids: list[UUID] = Field(default_factory=list)


class ConversationDTO(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: UUID
    name: str | None = None
    is_group: bool = False
    updated_at: datetime | None = None
    members: list[ChatUser] = Field(default_factory=list)
    last_message: MessageDTO | None = None
    has_unread: bool = False


class ConversationCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_ids: list[UUID] = Field(default_factory=list)
    name: str | None = Field(default=None, max_length=255)
    is_group: bool = False


class MessageCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conversation_id: UUID
    content: str = Field(default="", max_length=5000)
    mentioned_user_ids: list[UUID] = Field(default_factory=list)


class ConversationRef(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conversation_id: UUID


class TypingSignal(ConversationRef):
    is_typing: bool = True


class ChatReadResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    notifications_read: int = 0


class ChatAck(BaseModel):
    success: bool = True
