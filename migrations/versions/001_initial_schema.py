"""Initial marketplace schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Shared enum types are created once up front and referenced with create_type=False
ENUMS = {
    "userrole": ("customer", "service_provider", "local_service_manager", "admin"),
    "customerstatus": ("active", "banned"),
    "servicestatus": ("pending", "approved"),
    "providerstatus": ("pending", "active", "inactive", "banned"),
    "jobstatus": ("new", "in_progress", "completed", "paid", "cancelled", "rejected_by_sp"),
    "sendertype": ("customer", "service_provider", "local_service_manager", "admin"),
    "messagetype": ("text", "image", "system"),
    "notificationtype": ("job", "payment", "dispute", "system"),
    "paymentstatus": ("pending", "received"),
    "paymentmethod": ("cash", "card", "bank_transfer", "online"),
    "disputestatus": ("pending", "resolved"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("role", _enum("userrole"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "customers",
        sa.Column("customer_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("status", _enum("customerstatus"), nullable=False, server_default="active"),
    )

    op.create_table(
        "services",
        sa.Column("service_id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False, unique=True),
        sa.Column("category", sa.String(64), nullable=False),
        sa.Column("status", _enum("servicestatus"), nullable=False, server_default="approved"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "local_service_managers",
        sa.Column("lsm_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("region", sa.String(128), nullable=False, unique=True),
        sa.Column("closed_deals_count", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "service_providers",
        sa.Column("provider_id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("lsm_id", sa.Uuid(), sa.ForeignKey("local_service_managers.lsm_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("business_name", sa.String(256), nullable=True),
        sa.Column("status", _enum("providerstatus"), nullable=False, server_default="pending"),
        sa.Column("rating", sa.Numeric(3, 2), nullable=False, server_default="0.00"),
        sa.Column("total_jobs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("warnings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("earning", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_service_providers_lsm_id", "service_providers", ["lsm_id"])

    op.create_table(
        "provider_services",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("service_providers.provider_id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.service_id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("provider_id", "service_id", name="uq_provider_services_provider_service"),
    )

    op.create_table(
        "service_areas",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("service_providers.provider_id", ondelete="CASCADE"), nullable=False),
        sa.Column("zipcode", sa.String(10), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("provider_id", "zipcode", name="uq_service_areas_provider_zipcode"),
    )
    op.create_index("ix_service_areas_zipcode", "service_areas", ["zipcode"])

    op.create_table(
        "jobs",
        sa.Column("job_id", sa.Uuid(), primary_key=True),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.customer_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("service_providers.provider_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.service_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", _enum("jobstatus"), nullable=False, server_default="new"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0.00"),
        sa.Column("location", sa.String(512), nullable=False),
        sa.Column("zipcode", sa.String(10), nullable=False),
        sa.Column("answers", JSONB, nullable=True),
        sa.Column("images", JSONB, nullable=True, server_default="[]"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("response_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sp_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pending_approval", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_answers", JSONB, nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancellation_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_jobs_customer_id", "jobs", ["customer_id"])
    op.create_index("ix_jobs_provider_id", "jobs", ["provider_id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])
    op.create_index("ix_jobs_status_response_deadline", "jobs", ["status", "response_deadline"])

    op.create_table(
        "chats",
        sa.Column("chat_id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.job_id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.customer_id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("service_providers.provider_id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_chats_job_id", "chats", ["job_id"])

    op.create_table(
        "messages",
        sa.Column("message_id", sa.Uuid(), primary_key=True),
        sa.Column("chat_id", sa.Uuid(), sa.ForeignKey("chats.chat_id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_type", _enum("sendertype"), nullable=False),
        sa.Column("sender_user_id", sa.Uuid(), nullable=False),
        sa.Column("message_type", _enum("messagetype"), nullable=False, server_default="text"),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])

    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.Uuid(), primary_key=True),
        sa.Column("recipient_user_id", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipient_type", _enum("userrole"), nullable=False),
        sa.Column("type", _enum("notificationtype"), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_recipient_read", "notifications", ["recipient_user_id", "is_read"])

    op.create_table(
        "payments",
        sa.Column("payment_id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.job_id", ondelete="RESTRICT"), nullable=False, unique=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", _enum("paymentstatus"), nullable=False, server_default="pending"),
        sa.Column("method", _enum("paymentmethod"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("marked_by", sa.Uuid(), nullable=True),
        sa.Column("marked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "disputes",
        sa.Column("dispute_id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.job_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("raised_by_type", _enum("userrole"), nullable=False),
        sa.Column("raised_by_user_id", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", _enum("disputestatus"), nullable=False, server_default="pending"),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.Uuid(), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_disputes_job_id", "disputes", ["job_id"])

    op.create_table(
        "feedbacks",
        sa.Column("feedback_id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.job_id", ondelete="RESTRICT"), nullable=False, unique=True),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.customer_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("service_providers.provider_id", ondelete="RESTRICT"), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("punctuality_rating", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedbacks_rating"),
    )
    op.create_index("ix_feedbacks_provider_id", "feedbacks", ["provider_id"])


def downgrade() -> None:
    for table in (
        "feedbacks", "disputes", "payments", "notifications", "messages", "chats",
        "jobs", "service_areas", "provider_services", "service_providers",
        "local_service_managers", "services", "customers", "users",
    ):
        op.drop_table(table)
    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
