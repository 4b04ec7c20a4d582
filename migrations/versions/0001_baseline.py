"""Baseline schema: companies, users, leads and their activity tables"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.TIMESTAMP(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
                server_onupdate=sa.func.now(),
            )
        )
    return columns


def _company_fk() -> sa.Column:
    return sa.Column(
        "company_id",
        sa.String(),
        sa.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "default_admin_fee_percent",
            sa.Numeric(5, 2),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="ACTIVE"),
        *_timestamps(),
        sa.UniqueConstraint("slug", name="uq_companies_slug"),
        sa.CheckConstraint(
            "default_admin_fee_percent >= 0 AND default_admin_fee_percent <= 100",
            name="ck_companies_admin_fee_percent_range",
        ),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="AGENT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("token_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.UniqueConstraint("company_id", "email", name="uq_users_company_email"),
        sa.CheckConstraint("role IN ('ADMIN', 'AGENT')", name="ck_users_role"),
    )
    op.create_index("ix_users_company_id", "users", ["company_id"])

    op.create_table(
        "leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="UNASSIGNED"),
        sa.Column(
            "current_owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("loan_type", sa.String(length=30), nullable=False, server_default="PERSONAL_LOAN"),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=False),
        sa.Column("sin_full", sa.LargeBinary(), nullable=True),
        sa.Column("consent_given", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("consent_timestamp", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("connected_owner", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("province_state", sa.String(length=100), nullable=True),
        sa.Column("postal_zip", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.Column("employer_name", sa.String(length=255), nullable=True),
        sa.Column("position", sa.String(length=255), nullable=True),
        sa.Column("years_employed", sa.Numeric(5, 2), nullable=True),
        sa.Column("employer_phone", sa.String(length=50), nullable=True),
        sa.Column("employer_address", postgresql.JSONB(), nullable=True),
        sa.Column("employment_status", sa.String(length=30), nullable=True),
        sa.Column("monthly_salary", sa.Numeric(12, 2), nullable=True),
        sa.Column("paystub_frequency", sa.String(length=20), nullable=True),
        sa.Column("owns_vehicle", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("vehicle_details", postgresql.JSONB(), nullable=True),
        sa.Column("owns_home", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("home_details", postgresql.JSONB(), nullable=True),
        sa.Column("amount_requested", sa.Numeric(12, 2), nullable=True),
        sa.Column("funded_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("admin_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("ppsr_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("discharge_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_loan_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("loan_payment_frequency", sa.String(length=20), nullable=True),
        sa.Column("first_payment_date", sa.Date(), nullable=True),
        sa.Column("application_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_resubmission", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_application_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('UNASSIGNED', 'ATTEMPTED_TO_CONTACT', 'CONNECTED', 'QUALIFIED', "
            "'UNQUALIFIED', 'DECLINED', 'FUNDED')",
            name="ck_leads_status",
        ),
        sa.CheckConstraint(
            "loan_type IN ('PERSONAL_LOAN', 'DEBT_CONSOLIDATION', 'HOME_EQUITY')",
            name="ck_leads_loan_type",
        ),
        sa.CheckConstraint("application_count >= 1", name="ck_leads_application_count_positive"),
        sa.CheckConstraint("version >= 1", name="ck_leads_version_positive"),
        sa.CheckConstraint(
            "amount_requested IS NULL OR amount_requested >= 0", name="ck_leads_amount_requested_nonneg"
        ),
        sa.CheckConstraint("funded_amount IS NULL OR funded_amount >= 0", name="ck_leads_funded_nonneg"),
        sa.CheckConstraint("admin_fee IS NULL OR admin_fee >= 0", name="ck_leads_admin_fee_nonneg"),
        sa.CheckConstraint("ppsr_fee IS NULL OR ppsr_fee >= 0", name="ck_leads_ppsr_fee_nonneg"),
        sa.CheckConstraint(
            "discharge_amount IS NULL OR discharge_amount >= 0", name="ck_leads_discharge_nonneg"
        ),
        sa.CheckConstraint(
            "total_loan_amount IS NULL OR total_loan_amount = "
            "COALESCE(funded_amount, 0) + COALESCE(admin_fee, 0) + COALESCE(ppsr_fee, 0)",
            name="ck_leads_total_loan_amount_sum",
        ),
    )
    op.create_index("ix_leads_company_id", "leads", ["company_id"])
    op.create_index("ix_leads_status", "leads", ["status"])
    op.create_index("ix_leads_current_owner_id", "leads", ["current_owner_id"])
    op.create_index("ix_leads_company_created_at", "leads", ["company_id", "created_at"])
    op.create_index("ix_leads_company_email", "leads", ["company_id", "email"])
    op.create_index("ix_leads_company_phone", "leads", ["company_id", "phone"])

    op.create_table(
        "notes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("type", sa.String(length=30), nullable=False, server_default="NOTE"),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(with_updated=False),
        sa.CheckConstraint(
            "type IN ('STATUS_CHANGE', 'OWNERSHIP_CHANGE', 'RESUBMISSION', 'NOTE')",
            name="ck_notes_type",
        ),
    )
    op.create_index("ix_notes_company_id", "notes", ["company_id"])
    op.create_index("ix_notes_lead_created_at", "notes", ["lead_id", "created_at"])

    op.create_table(
        "ownership_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column(
            "lead_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("leads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "from_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "to_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "performed_by_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action_type", sa.String(length=20), nullable=False),
        *_timestamps(with_updated=False),
        sa.CheckConstraint("action_type IN ('ASSIGNED', 'RELEASED')", name="ck_ownership_history_action"),
    )
    op.create_index("ix_ownership_history_company_id", "ownership_history", ["company_id"])
    op.create_index(
        "ix_ownership_history_lead_created_at", "ownership_history", ["lead_id", "created_at"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="SYSTEM"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=1024), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_notifications_company_id", "notifications", ["company_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])

    op.create_table(
        "reminders",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        _company_fk(),
        sa.Column(
            "creator_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="PERSONAL"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("scheduled_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recurrence", sa.String(length=20), nullable=True),
        sa.Column("days_of_week", postgresql.JSONB(), nullable=True),
        sa.Column("time_of_day", sa.String(length=5), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("type IN ('PERSONAL', 'COMPANY_WIDE')", name="ck_reminders_type"),
        sa.CheckConstraint(
            "recurrence IS NULL OR recurrence IN ('DAILY', 'WEEKLY', 'SPECIFIC_DAYS')",
            name="ck_reminders_recurrence",
        ),
    )
    op.create_index("ix_reminders_company_id", "reminders", ["company_id"])

    op.create_table(
        "reminder_recipients",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "reminder_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reminders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _company_fk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("responded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(with_updated=False),
        sa.UniqueConstraint("reminder_id", "user_id", name="uq_reminder_recipient"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'DONE', 'DISMISSED')", name="ck_reminder_recipients_status"
        ),
    )
    op.create_index("ix_reminder_recipients_reminder_id", "reminder_recipients", ["reminder_id"])
    op.create_index("ix_reminder_recipients_company_id", "reminder_recipients", ["company_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("company_id", sa.String(), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("resource_type", sa.String(length=255), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
    )
    op.create_index("ix_audit_logs_company_id", "audit_logs", ["company_id"])
    op.create_index(
        "ix_audit_logs_company_resource", "audit_logs", ["company_id", "resource_type", "resource_id"]
    )


def downgrade() -> None:
    for table in (
        "audit_logs",
        "reminder_recipients",
        "reminders",
        "notifications",
        "ownership_history",
        "notes",
        "leads",
        "users",
        "companies",
    ):
        op.drop_table(table)
