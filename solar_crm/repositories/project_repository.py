"""Project filters shared by the list view and every dashboard aggregate."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import ColumnElement, extract, false, func, or_, select
from sqlalchemy.orm import Session

from solar_crm.core.auth import VisibilityScope
from solar_crm.models.entities import Customer, PaymentStatus, Project, ProjectStatus
from solar_crm.services.period_filter import PeriodFilter

REVENUE_STATUSES: frozenset[ProjectStatus] = frozenset(
    {
        ProjectStatus.CONFIRMED,
        ProjectStatus.UNDER_INSTALLATION,
        ProjectStatus.COMPLETED,
        ProjectStatus.COMPLETED_SUBSIDY_CREDITED,
    }
)
PIPELINE_STATUSES: frozenset[ProjectStatus] = frozenset(
    status for status in ProjectStatus if status is not ProjectStatus.LOST
)

PAYMENT_BUCKET_FULLY_PAID = PaymentStatus.FULLY_PAID.value
PAYMENT_BUCKET_PARTIAL = PaymentStatus.PARTIAL.value
PAYMENT_BUCKET_NA = "N/A"
PAYMENT_BUCKETS: tuple[str, ...] = (PAYMENT_BUCKET_FULLY_PAID, PAYMENT_BUCKET_PARTIAL, PAYMENT_BUCKET_NA)


def payment_bucket(payment_status: str | None) -> str:
    """Collapse a stored payment status into Fully Paid, Partial or N/A."""

    if payment_status == PAYMENT_BUCKET_FULLY_PAID:
        return PAYMENT_BUCKET_FULLY_PAID
    if payment_status == PAYMENT_BUCKET_PARTIAL:
        return PAYMENT_BUCKET_PARTIAL
    return PAYMENT_BUCKET_NA


def booking_month():
    """Month of the confirmation date, falling back to the creation timestamp."""

    return extract("month", func.coalesce(Project.confirmation_date, Project.created_at))


def _parse_statuses(values: Iterable[str]) -> list[ProjectStatus]:
    known = {member.value: member for member in ProjectStatus}
    return sorted({known[value] for value in values if value in known}, key=lambda member: member.value)


def _payment_status_condition(values: Iterable[str]) -> ColumnElement[bool]:
    requested = sorted(set(values))
    parts: list[ColumnElement[bool]] = []
    exact = [value for value in requested if value != PAYMENT_BUCKET_NA]
    if exact:
        parts.append(Project.payment_status.in_(exact))
    if PAYMENT_BUCKET_NA in requested:
        parts.append(
            or_(
                Project.payment_status.is_(None),
                Project.payment_status.not_in([PAYMENT_BUCKET_FULLY_PAID, PAYMENT_BUCKET_PARTIAL]),
            )
        )
    return or_(*parts)


@dataclass(frozen=True)
class ProjectQuery:
    """Drill-down filters of the Projects list.

    Empty tuples mean "no restriction"; values that match no known status
    narrow the result to nothing.
    """

    statuses: tuple[str, ...] = ()
    payment_statuses: tuple[str, ...] = ()
    search: str | None = None


def project_conditions(
    *,
    scope: VisibilityScope,
    period: PeriodFilter,
    statuses: Iterable[str | ProjectStatus] | None = None,
    payment_statuses: Iterable[str] | None = None,
) -> list[ColumnElement[bool]]:
    """WHERE clauses for projects visible in ``scope`` and matching ``period``."""

    conditions: list[ColumnElement[bool]] = []
    if scope.salesperson_id is not None:
        conditions.append(Project.salesperson_id == scope.salesperson_id)

    if period.financial_years:
        conditions.append(Project.financial_year.in_(sorted(period.financial_years)))

    months = period.month_numbers()
    if months is not None:
        if months:
            conditions.append(booking_month().in_(sorted(months)))
        else:
            conditions.append(false())

    if statuses is not None:
        raw = [status.value if isinstance(status, ProjectStatus) else status for status in statuses]
        if raw:
            parsed = _parse_statuses(raw)
            conditions.append(Project.project_status.in_(parsed) if parsed else false())

    if payment_statuses is not None:
        requested = list(payment_statuses)
        if requested:
            conditions.append(_payment_status_condition(requested))

    return conditions


class ProjectRepository:
    """Read operations behind the Projects list view."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _conditions(
        self,
        *,
        scope: VisibilityScope,
        period: PeriodFilter,
        query: ProjectQuery,
    ) -> list[ColumnElement[bool]]:
        conditions = project_conditions(
            scope=scope,
            period=period,
            statuses=query.statuses,
            payment_statuses=query.payment_statuses,
        )
        if query.search:
            pattern = f"%{query.search.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(Customer.customer_name).like(pattern),
                    func.lower(Customer.customer_code).like(pattern),
                    func.lower(Customer.consumer_number).like(pattern),
                )
            )
        return conditions

    def list_projects(
        self,
        *,
        scope: VisibilityScope,
        period: PeriodFilter,
        query: ProjectQuery,
        offset: int,
        limit: int,
    ) -> list[Project]:
        statement = (
            select(Project)
            .join(Customer, Customer.id == Project.customer_id)
            .where(*self._conditions(scope=scope, period=period, query=query))
            .order_by(
                Project.confirmation_date.desc(),
                Project.created_at.desc(),
                Project.sl_no.asc(),
            )
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.scalars(statement).all())

    def count_projects(
        self,
        *,
        scope: VisibilityScope,
        period: PeriodFilter,
        query: ProjectQuery,
    ) -> int:
        statement = (
            select(func.count(Project.id))
            .select_from(Project)
            .join(Customer, Customer.id == Project.customer_id)
            .where(*self._conditions(scope=scope, period=period, query=query))
        )
        return self.db.scalar(statement) or 0
