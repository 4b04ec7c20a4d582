"""Team chat tables and per-user profile and email settings"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0002_chat_profile"
down_revision = "0001_baseline"
branch_labels = None
depends_on = None

EMAIL_PROVIDERS = "'GMAIL', 'OUTLOOK', 'YAHOO', 'ICLOUD', 'PROTONMAIL'"


def _user_fk(name: str = "user_id") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    op.add_column("users", sa.Column("avatar_url", sa.String(length=1024), nullable=True))
    op.add_column("users", sa.Column("email_provider", sa.String(length=20), nullable=True))
    op.add_column("users", sa.Column("email_subject", sa.String(length=255), nullable=True))
    op.add_column("users", sa.Column("email_body", sa.Text(), nullable=True))
    op.add_column("users", sa.Column("email_signature", sa.Text(), nullable=True))
    op.create_check_constraint(
        "ck_users_email_provider",
        "users",
        f"email_provider IS NULL OR email_provider IN ({EMAIL_PROVIDERS})",
    )

    op.create_table(
        "conversations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("is_group", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_conversations_company_id", "conversations", ["company_id"])

    op.create_table(
        "conversation_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk(),
        sa.Column("last_read_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("joined_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("conversation_id", "user_id", name="uq_conversation_member"),
    )
    op.create_index("ix_conversation_members_conversation_id", "conversation_members", ["conversation_id"])
    op.create_index("ix_conversation_members_user_id", "conversation_members", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("sender_id"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_conversation_created_at", "messages", ["conversation_id", "created_at"])

    op.create_table(
        "message_mentions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "message_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("messages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk(),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_mention"),
    )
    op.create_index("ix_message_mentions_message_id", "message_mentions", ["message_id"])


def downgrade() -> None:
    for table in ("message_mentions", "messages", "conversation_members", "conversations"):
        op.drop_table(table)
    op.drop_constraint("ck_users_email_provider", "users", type_="check")
    for column in ("email_signature", "email_body", "email_subject", "email_provider", "avatar_url"):
        op.drop_column("users", column)
