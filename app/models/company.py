from sqlalchemy import CheckConstraint, Column, DateTime, Numeric, String, Text, func

from app.db.base import Base


class Company(Base):
    __tablename__ = "companies"
    __table_args__ = (
        CheckConstraint(
            "default_admin_fee_percent >= 0 AND default_admin_fee_percent <= 100",
            name="ck_companies_admin_fee_percent_range",
        ),
    )

    id = Column(String, primary_key=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    logo_url = Column(String(1024), nullable=True)
    default_admin_fee_percent = Column(Numeric(5, 2), nullable=False, default=0, server_default="0")
    status = Column(String(50), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
