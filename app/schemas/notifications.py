from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: str
    title: str
    message: str
    link: str | None = None
    read: bool = False
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notifications: list[NotificationDTO]
    unread_count: int = Field(alias="unreadCount")


class NotificationMarkRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_ids: list[UUID] = Field(default_factory=list, alias="notificationIds")
    mark_all_read: bool = Field(default=False, alias="markAllRead")


class NotificationMarkReadResponse(BaseModel):
    success: bool = True
    updated: int
