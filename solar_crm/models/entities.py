"""ORM entities for the solar CRM schema."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solar_crm.db.base import Base


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    SALES = "SALES"
    OPERATIONS = "OPERATIONS"
    FINANCE = "FINANCE"
    MANAGEMENT = "MANAGEMENT"


class ProjectStatus(str, enum.Enum):
    LEAD = "LEAD"
    SITE_SURVEY = "SITE_SURVEY"
    PROPOSAL = "PROPOSAL"
    CONFIRMED = "CONFIRMED"
    UNDER_INSTALLATION = "UNDER_INSTALLATION"
    SUBMITTED_FOR_SUBSIDY = "SUBMITTED_FOR_SUBSIDY"
    COMPLETED = "COMPLETED"
    COMPLETED_SUBSIDY_CREDITED = "COMPLETED_SUBSIDY_CREDITED"
    LOST = "LOST"


class ProjectSegment(str, enum.Enum):
    RESIDENTIAL_SUBSIDY = "RESIDENTIAL_SUBSIDY"
    RESIDENTIAL_NON_SUBSIDY = "RESIDENTIAL_NON_SUBSIDY"
    COMMERCIAL_INDUSTRIAL = "COMMERCIAL_INDUSTRIAL"


class LeadSource(str, enum.Enum):
    WEBSITE = "WEBSITE"
    REFERRAL = "REFERRAL"
    GOOGLE = "GOOGLE"
    CHANNEL_PARTNER = "CHANNEL_PARTNER"
    DIGITAL_MARKETING = "DIGITAL_MARKETING"
    SALES = "SALES"
    MANAGEMENT_CONNECT = "MANAGEMENT_CONNECT"
    OTHER = "OTHER"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    FULLY_PAID = "FULLY_PAID"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="user_role",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    consumer_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("project_cost IS NULL OR project_cost >= 0", name="ck_projects_cost_non_negative"),
        CheckConstraint("system_capacity IS NULL OR system_capacity >= 0", name="ck_projects_capacity_non_negative"),
        Index("ix_projects_salesperson_id", "salesperson_id"),
        Index("ix_projects_financial_year", "financial_year"),
        Index("ix_projects_status", "project_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sl_no: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    salesperson_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    segment: Mapped[ProjectSegment] = mapped_column(
        SQLEnum(
            ProjectSegment,
            name="project_segment",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    lead_source: Mapped[LeadSource | None] = mapped_column(
        SQLEnum(
            LeadSource,
            name="lead_source",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=True,
    )
    project_status: Mapped[ProjectStatus] = mapped_column(
        SQLEnum(
            ProjectStatus,
            name="project_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=ProjectStatus.LEAD,
    )
    financial_year: Mapped[str | None] = mapped_column(String(16), nullable=True)
    confirmation_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    system_capacity: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    project_cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    gross_profit: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    profitability: Mapped[Decimal | None] = mapped_column(Numeric(7, 2), nullable=True)
    total_amount_received: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    balance_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payment_status: Mapped[str | None] = mapped_column(String(32), nullable=True, default=PaymentStatus.PENDING.value)
    loan_availed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    loan_bank: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # KSEB feasibility/registration and MNRE portal milestones
    feasibility_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    mnre_registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    installation_completion_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    subsidy_request_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    customer: Mapped[Customer] = relationship(lazy="joined")
    salesperson: Mapped[User | None] = relationship(lazy="joined")
