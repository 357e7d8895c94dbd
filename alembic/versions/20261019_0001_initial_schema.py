"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM(
    "ADMIN", "SALES", "OPERATIONS", "FINANCE", "MANAGEMENT", name="user_role", create_type=False
)
project_segment = postgresql.ENUM(
    "RESIDENTIAL_SUBSIDY",
    "RESIDENTIAL_NON_SUBSIDY",
    "COMMERCIAL_INDUSTRIAL",
    name="project_segment",
    create_type=False,
)
lead_source = postgresql.ENUM(
    "WEBSITE",
    "REFERRAL",
    "GOOGLE",
    "CHANNEL_PARTNER",
    "DIGITAL_MARKETING",
    "SALES",
    "MANAGEMENT_CONNECT",
    "OTHER",
    name="lead_source",
    create_type=False,
)
project_status = postgresql.ENUM(
    "LEAD",
    "SITE_SURVEY",
    "PROPOSAL",
    "CONFIRMED",
    "UNDER_INSTALLATION",
    "SUBMITTED_FOR_SUBSIDY",
    "COMPLETED",
    "COMPLETED_SUBSIDY_CREDITED",
    "LOST",
    name="project_status",
    create_type=False,
)


def upgrade() -> None:
    user_role.create(op.get_bind(), checkfirst=True)
    project_segment.create(op.get_bind(), checkfirst=True)
    lead_source.create(op.get_bind(), checkfirst=True)
    project_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("customer_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("consumer_number", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("sl_no", sa.Integer(), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("salesperson_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("segment", project_segment, nullable=False),
        sa.Column("lead_source", lead_source, nullable=True),
        sa.Column("project_status", project_status, nullable=False, server_default="LEAD"),
        sa.Column("financial_year", sa.String(length=16), nullable=True),
        sa.Column("confirmation_date", sa.Date(), nullable=True),
        sa.Column("system_capacity", sa.Numeric(10, 2), nullable=True),
        sa.Column("project_cost", sa.Numeric(14, 2), nullable=True),
        sa.Column("gross_profit", sa.Numeric(14, 2), nullable=True),
        sa.Column("profitability", sa.Numeric(7, 2), nullable=True),
        sa.Column("total_amount_received", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("balance_amount", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("payment_status", sa.String(length=32), nullable=True, server_default="PENDING"),
        sa.Column("loan_availed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("loan_bank", sa.String(length=128), nullable=True),
        sa.Column("feasibility_date", sa.Date(), nullable=True),
        sa.Column("registration_date", sa.Date(), nullable=True),
        sa.Column("mnre_registration_date", sa.Date(), nullable=True),
        sa.Column("installation_completion_date", sa.Date(), nullable=True),
        sa.Column("subsidy_request_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("project_cost IS NULL OR project_cost >= 0", name="ck_projects_cost_non_negative"),
        sa.CheckConstraint(
            "system_capacity IS NULL OR system_capacity >= 0", name="ck_projects_capacity_non_negative"
        ),
    )
    op.create_index("ix_projects_salesperson_id", "projects", ["salesperson_id"])
    op.create_index("ix_projects_financial_year", "projects", ["financial_year"])
    op.create_index("ix_projects_status", "projects", ["project_status"])


def downgrade() -> None:
    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_index("ix_projects_financial_year", table_name="projects")
    op.drop_index("ix_projects_salesperson_id", table_name="projects")
    op.drop_table("projects")

    op.drop_table("customers")
    op.drop_table("users")

    project_status.drop(op.get_bind(), checkfirst=True)
    lead_source.drop(op.get_bind(), checkfirst=True)
    project_segment.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
