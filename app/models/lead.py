import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.db.base import Base
from app.models.types import EncryptedString

LEAD_STATUSES = (
    "UNASSIGNED",
    "ATTEMPTED_TO_CONTACT",
    "CONNECTED",
    "QUALIFIED",
    "UNQUALIFIED",
    "DECLINED",
    "FUNDED",
)


class Lead(Base):
    __tablename__ = "leads"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint(
            "status IN ('UNASSIGNED', 'ATTEMPTED_TO_CONTACT', 'CONNECTED', 'QUALIFIED', "
            "'UNQUALIFIED', 'DECLINED', 'FUNDED')",
            name="ck_leads_status",
        ),
        CheckConstraint(
            "loan_type IN ('PERSONAL_LOAN', 'DEBT_CONSOLIDATION', 'HOME_EQUITY')",
            name="ck_leads_loan_type",
        ),
        CheckConstraint("application_count >= 1", name="ck_leads_application_count_positive"),
        CheckConstraint("version >= 1", name="ck_leads_version_positive"),
        CheckConstraint("amount_requested IS NULL OR amount_requested >= 0", name="ck_leads_amount_requested_nonneg"),
        CheckConstraint("funded_amount IS NULL OR funded_amount >= 0", name="ck_leads_funded_nonneg"),
        CheckConstraint("admin_fee IS NULL OR admin_fee >= 0", name="ck_leads_admin_fee_nonneg"),
        CheckConstraint("ppsr_fee IS NULL OR ppsr_fee >= 0", name="ck_leads_ppsr_fee_nonneg"),
        CheckConstraint("discharge_amount IS NULL OR discharge_amount >= 0", name="ck_leads_discharge_nonneg"),
        CheckConstraint(
            "total_loan_amount IS NULL OR total_loan_amount = "
            "COALESCE(funded_amount, 0) + COALESCE(admin_fee, 0) + COALESCE(ppsr_fee, 0)",
            name="ck_leads_total_loan_amount_sum",
        ),
        Index("ix_leads_company_created_at", "company_id", "created_at"),
        Index("ix_leads_company_email", "company_id", "email"),
        Index("ix_leads_company_phone", "company_id", "phone"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        String, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(30), nullable=False, default="UNASSIGNED", index=True)
    current_owner_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    loan_type = Column(String(30), nullable=False, default="PERSONAL_LOAN")

    # Applicant
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    sin_full = Column(EncryptedString(), nullable=True)
    consent_given = Column(Boolean, nullable=False, default=False)
    consent_timestamp = Column(DateTime(timezone=True), nullable=True)
    connected_owner = Column(Boolean, nullable=False, default=False)

    # Address
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    province_state = Column(String(100), nullable=True)
    postal_zip = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)

    # Employment
    employer_name = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    years_employed = Column(Numeric(5, 2), nullable=True)
    employer_phone = Column(String(50), nullable=True)
    employer_address = Column(JSONB, nullable=True)
    employment_status = Column(String(30), nullable=True)
    monthly_salary = Column(Numeric(12, 2), nullable=True)
    paystub_frequency = Column(String(20), nullable=True)

    # Assets
    owns_vehicle = Column(Boolean, nullable=False, default=False)
    vehicle_details = Column(JSONB, nullable=True)
    owns_home = Column(Boolean, nullable=False, default=False)
    home_details = Column(JSONB, nullable=True)
    amount_requested = Column(Numeric(12, 2), nullable=True)

    # Funding
    funded_amount = Column(Numeric(12, 2), nullable=True)
    admin_fee = Column(Numeric(12, 2), nullable=True)
    ppsr_fee = Column(Numeric(12, 2), nullable=True)
    discharge_amount = Column(Numeric(12, 2), nullable=True)
    total_loan_amount = Column(Numeric(12, 2), nullable=True)
    loan_payment_frequency = Column(String(20), nullable=True)
    first_payment_date = Column(Date, nullable=True)

    # Resubmission tracking
    application_count = Column(Integer, nullable=False, default=1)
    is_resubmission = Column(Boolean, nullable=False, default=False)
    last_application_date = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    # Bumped on public resubmission so the lead sorts as new.
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __mapper_args__ = {"version_id_col": version}
