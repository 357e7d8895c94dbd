from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import date
from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from solar_crm.core.auth import ensure_user
from solar_crm.db.base import Base
from solar_crm.db.dependencies import get_db_session
import solar_crm.models.entities  # noqa: F401
from solar_crm.main import create_app
from solar_crm.models.entities import (
    Customer,
    LeadSource,
    Project,
    ProjectSegment,
    ProjectStatus,
    User,
    UserRole,
)

TEST_TABLES = [
    User.__table__,
    Customer.__table__,
    Project.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(email: str, role: UserRole, name: str | None = None, active: bool = True) -> User:
        return ensure_user(db_session, email=email, name=name or email.split("@")[0], role=role, active=active)

    return _make_user


@pytest.fixture()
def make_project(db_session: Session) -> Callable[..., Project]:
    serials = count(1)

    def _make_project(
        *,
        status: ProjectStatus = ProjectStatus.CONFIRMED,
        cost: str | None = "100000.00",
        profit: str | None = "20000.00",
        capacity: str | None = "5.00",
        profitability: str | None = None,
        financial_year: str | None = "2024-25",
        confirmation_date: date | None = date(2024, 5, 10),
        segment: ProjectSegment = ProjectSegment.RESIDENTIAL_SUBSIDY,
        lead_source: LeadSource | None = LeadSource.WEBSITE,
        salesperson: User | None = None,
        payment_status: str | None = "PENDING",
        received: str = "0.00",
        balance: str = "0.00",
        loan_bank: str | None = None,
        feasibility_date: date | None = None,
        registration_date: date | None = None,
        mnre_registration_date: date | None = None,
        installation_completion_date: date | None = None,
        subsidy_request_date: date | None = None,
        customer_name: str | None = None,
    ) -> Project:
        serial = next(serials)
        customer = Customer(
            customer_code=f"CUST-{serial:04d}",
            customer_name=customer_name or f"Customer {serial}",
        )
        db_session.add(customer)
        db_session.flush()

        project = Project(
            sl_no=serial,
            customer_id=customer.id,
            salesperson_id=salesperson.id if salesperson else None,
            segment=segment,
            lead_source=lead_source,
            project_status=status,
            financial_year=financial_year,
            confirmation_date=confirmation_date,
            system_capacity=Decimal(capacity) if capacity is not None else None,
            project_cost=Decimal(cost) if cost is not None else None,
            gross_profit=Decimal(profit) if profit is not None else None,
            profitability=Decimal(profitability) if profitability is not None else None,
            total_amount_received=Decimal(received),
            balance_amount=Decimal(balance),
            payment_status=payment_status,
            loan_availed=loan_bank is not None,
            loan_bank=loan_bank,
            feasibility_date=feasibility_date,
            registration_date=registration_date,
            mnre_registration_date=mnre_registration_date,
            installation_completion_date=installation_completion_date,
            subsidy_request_date=subsidy_request_date,
        )
        db_session.add(project)
        db_session.commit()
        db_session.refresh(project)
        return project

    return _make_project
