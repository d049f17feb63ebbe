"""Initial schema - lead capture, customers, projects, email log, admin users.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Contact form
    op.create_table(
        "contact_submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("company", sa.String(255)),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("source", sa.String(50), default="contact-form"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_contact_submissions_created_at", "contact_submissions", ["created_at"])

    # Plan quiz
    op.create_table(
        "quiz_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("plan", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("link", sa.String(500), nullable=False),
        sa.Column("consent", sa.Boolean, default=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_quiz_results_created_at", "quiz_results", ["created_at"])

    # Private build applications
    op.create_table(
        "private_build_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("company", sa.String(255)),
        sa.Column("project_type", sa.String(100), nullable=False),
        sa.Column("budget", sa.String(100), nullable=False),
        sa.Column("timeline", sa.String(100), nullable=False),
        sa.Column("vision", sa.Text, nullable=False),
        sa.Column("referral_source", sa.String(255)),
        sa.Column("status", sa.String(30), default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_private_build_status", "private_build_applications", ["status"])

    # Customers (created from completed checkouts)
    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("stripe_customer_id", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), default=""),
        sa.Column("company", sa.String(255)),
        sa.Column("phone", sa.String(30)),
        sa.Column("chat_access_token", sa.String(100), nullable=False, unique=True),
        sa.Column("chat_access_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_customers_stripe_customer_id", "customers", ["stripe_customer_id"])

    # Projects
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("project_type", sa.String(50), nullable=False),
        sa.Column("stripe_payment_intent_id", sa.String(100)),
        sa.Column("total_amount", sa.Float, default=0.0),
        sa.Column("rush_fee_applied", sa.Boolean, default=False),
        sa.Column("add_ons", postgresql.JSONB),
        sa.Column("project_details", postgresql.JSONB),
        sa.Column("status", sa.String(30), default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"])

    # Failed email deliveries
    op.create_table(
        "email_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", sa.String(100)),
        sa.Column("email_type", sa.String(50), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), default="failed"),
        sa.Column("error_message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Admin users
    op.create_table(
        "admin_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(30), default="viewer"),
        sa.Column("is_active", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("admin_users")
    op.drop_table("email_logs")
    op.drop_table("projects")
    op.drop_table("customers")
    op.drop_table("private_build_applications")
    op.drop_table("quiz_results")
    op.drop_table("contact_submissions")
