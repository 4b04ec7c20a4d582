import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Note(Base):
    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint(
            "type IN ('STATUS_CHANGE', 'OWNERSHIP_CHANGE', 'RESUBMISSION', 'NOTE')",
            name="ck_notes_type",
        ),
        Index("ix_notes_lead_created_at", "lead_id", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lead_id = Column(UUID(as_uuid=True), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    # Null for system-authored notes with no attributable staff member.
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(30), nullable=False, default="NOTE")
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
