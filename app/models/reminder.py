import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.db.base import Base


class Reminder(Base):
    __tablename__ = "reminders"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint("type IN ('PERSONAL', 'COMPANY_WIDE')", name="ck_reminders_type"),
        CheckConstraint(
            "recurrence IS NULL OR recurrence IN ('DAILY', 'WEEKLY', 'SPECIFIC_DAYS')",
            name="ck_reminders_recurrence",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False, default="PERSONAL")
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence = Column(String(20), nullable=True)
    days_of_week = Column(JSONB, nullable=True)
    time_of_day = Column(String(5), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    # transient fields for responses
    recipient_count: int | None = None


class ReminderRecipient(Base):
    __tablename__ = "reminder_recipients"
    __table_args__ = (
        UniqueConstraint("reminder_id", "user_id", name="uq_reminder_recipient"),
        CheckConstraint(
            "status IN ('PENDING', 'DONE', 'DISMISSED')", name="ck_reminder_recipients_status"
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reminder_id = Column(
        UUID(as_uuid=True), ForeignKey("reminders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id = Column(
        String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
